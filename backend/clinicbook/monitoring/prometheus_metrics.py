"""
Prometheus metrics module for clinicbook.

Service operations are timed by the @measure_operation decorator on
BaseService and land here; domain counters cover the scheduling outcomes
operators care about (slot conflicts, waitlist offers, catalog cache hits,
notification dispatch).
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Own registry so test runs and reloads never collide with the global default
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "clinicbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "clinicbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "clinicbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_conflicts_total = Counter(
    "clinicbook_slot_conflicts_total",
    "Bookings or reschedules rejected because the slot was taken",
    ["stage"],  # advisory | write
    registry=REGISTRY,
)

malformed_records_total = Counter(
    "clinicbook_malformed_records_total",
    "Stored records skipped because required fields were missing",
    ["entity"],
    registry=REGISTRY,
)

waitlist_offers_total = Counter(
    "clinicbook_waitlist_offers_total",
    "Waitlist promotion outcomes",
    ["outcome"],  # notified | no_candidate | already_offered | expired
    registry=REGISTRY,
)

catalog_cache_requests_total = Counter(
    "clinicbook_catalog_cache_requests_total",
    "Catalog cache lookups by result",
    ["result"],  # hit | miss | error
    registry=REGISTRY,
)

notifications_total = Counter(
    "clinicbook_notifications_total",
    "Notification requests handed to the gateway",
    ["template", "status"],
    registry=REGISTRY,
)

audit_writes_total = Counter(
    "clinicbook_audit_writes_total",
    "Audit rows written",
    ["entity_type", "action"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Recording helpers for the clinicbook counters, plus exposition for /metrics."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """Called by BaseService.measure_operation for every timed service call."""
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_slot_conflict(stage: str) -> None:
        slot_conflicts_total.labels(stage=stage).inc()

    @staticmethod
    def record_malformed_record(entity: str) -> None:
        malformed_records_total.labels(entity=entity).inc()

    @staticmethod
    def record_waitlist_offer(outcome: str) -> None:
        waitlist_offers_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_catalog_cache(result: str) -> None:
        catalog_cache_requests_total.labels(result=result).inc()

    @staticmethod
    def record_notification(template: str, status: str) -> None:
        notifications_total.labels(template=template, status=status).inc()

    @staticmethod
    def record_audit_write(entity_type: str, action: str) -> None:
        audit_writes_total.labels(entity_type=entity_type, action=action).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Render every clinicbook metric in the Prometheus text format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
