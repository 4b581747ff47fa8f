# backend/clinicbook/routes/prometheus.py
"""
GET /metrics: Prometheus scrape endpoint.

Unauthenticated, as scrapers expect. Exposes the service operation timings
and the scheduling counters (slot conflicts, waitlist offers, catalog cache
results, notifications, audit writes).
"""

from fastapi import APIRouter, Response
from prometheus_client import Counter

from ..monitoring.prometheus_metrics import REGISTRY, prometheus_metrics

router = APIRouter(tags=["monitoring"])

scrapes_total = Counter(
    "clinicbook_metrics_scrapes_total",
    "Scrapes of the /metrics endpoint",
    registry=REGISTRY,
)


@router.get("/metrics", include_in_schema=False, response_class=Response)
async def metrics() -> Response:
    scrapes_total.inc()
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={"Cache-Control": "no-store"},
    )
