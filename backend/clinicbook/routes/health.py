# backend/clinicbook/routes/health.py
"""
Health check endpoint.

Used by the load balancer and uptime checks; reports database and catalog
cache connectivity without failing the request when a component is down.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..api.dependencies import get_catalog_cache, get_db
from ..core.constants import API_TITLE, API_VERSION
from ..core.timeutils import utc_now
from ..infrastructure.cache import CatalogCache
from ..schemas.base_responses import HealthCheckResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
def health_check(
    response: Response,
    db: Session = Depends(get_db),
    cache: Optional[CatalogCache] = Depends(get_catalog_cache),
) -> HealthCheckResponse:
    """
    Basic health check endpoint.

    Returns:
        Simple status indicating the service is running.
    """
    checks = {}
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = False

    if cache is not None:
        try:
            cache.get("health:probe")
            checks["cache"] = True
        except Exception as e:
            logger.warning(f"Catalog cache health check failed: {e}")
            checks["cache"] = False

    response.headers["Cache-Control"] = "no-store"
    return HealthCheckResponse(
        status="healthy" if all(checks.values()) else "degraded",
        service=API_TITLE,
        version=API_VERSION,
        timestamp=utc_now(),
        checks=checks,
    )
