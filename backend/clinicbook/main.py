# backend/clinicbook/main.py
"""
clinicbook API application.

Mounts the versioned routers under /api/v1, the health and Prometheus
endpoints at the root, and the unified error envelope.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .init_db import init_db
from .routes import health, prometheus
from .routes.v1 import appointments as appointments_v1
from .routes.v1 import catalog as catalog_v1
from .routes.v1 import payments as payments_v1
from .routes.v1 import slots as slots_v1
from .routes.v1 import waitlist as waitlist_v1

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create missing tables on startup; tests manage their own schema."""
    logger.info(f"Starting {BRAND_NAME} API ({settings.environment})")
    if not is_running_tests():
        init_db()
    yield
    logger.info(f"{BRAND_NAME} API stopped")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

register_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(slots_v1.router)
api_v1.include_router(appointments_v1.router, prefix="/appointments")
api_v1.include_router(payments_v1.router)
api_v1.include_router(waitlist_v1.router, prefix="/waitlist")
api_v1.include_router(catalog_v1.router, prefix="/catalog")

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(prometheus.router)
