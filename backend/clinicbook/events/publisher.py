"""Event publisher - routes domain events to the audit sink and notification gateway."""
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Protocol, Type

from ..monitoring.prometheus_metrics import prometheus_metrics
from .appointment_events import (
    AppointmentCancelled,
    AppointmentConfirmed,
    AppointmentCreated,
    AppointmentExpired,
    AppointmentRescheduled,
    PaymentRefunded,
    WaitlistOfferSent,
)

if TYPE_CHECKING:
    from ..services.audit_sink import AuditSink
    from ..services.notification_gateway import NotificationGateway

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    entity_type: str
    action: str
    user_id: str

    @property
    def entity_id(self) -> str:
        ...

    def to_dict(self) -> Dict[str, Any]:
        ...


# Events the patient hears about, and the template each one renders with
NOTIFICATION_TEMPLATES: Dict[Type[Any], str] = {
    AppointmentCreated: "appointment_booked",
    AppointmentConfirmed: "appointment_confirmed",
    AppointmentCancelled: "appointment_cancelled",
    AppointmentExpired: "appointment_expired",
    AppointmentRescheduled: "appointment_rescheduled",
    PaymentRefunded: "payment_refunded",
    WaitlistOfferSent: "waitlist_slot_available",
}


class EventPublisher:
    """
    Two-phase event routing.

    `record` runs inside the caller's transaction and writes the audit
    trail, so a rolled-back change leaves no audit row. `dispatch` runs after
    commit and hands patient-facing events to the notification gateway; a
    failed notification is logged and never undoes the committed change.
    """

    def __init__(
        self,
        audit_sink: Optional["AuditSink"] = None,
        notifier: Optional["NotificationGateway"] = None,
    ):
        self.audit_sink = audit_sink
        self.notifier = notifier

    def record(self, event: Event) -> Event:
        if self.audit_sink is not None:
            self.audit_sink.record(event)
        return event

    def dispatch(self, events: Iterable[Event]) -> None:
        if self.notifier is None:
            return
        for event in events:
            template = NOTIFICATION_TEMPLATES.get(type(event))
            if template is None:
                continue
            payload = event.to_dict()
            payload["event"] = type(event).__name__
            try:
                self.notifier.notify(event.user_id, template, payload)
                prometheus_metrics.record_notification(template, "sent")
            except Exception:
                prometheus_metrics.record_notification(template, "failed")
                logger.exception(
                    "Notification %s for %s %s failed",
                    template,
                    event.entity_type,
                    event.entity_id,
                )


def build_event_publisher(db: Any, config: Any) -> EventPublisher:
    """Publisher wired from settings: SQL audit trail plus the configured gateway."""
    from ..services.audit_sink import NullAuditSink, SqlAuditSink
    from ..services.notification_gateway import build_notification_gateway

    audit_sink = SqlAuditSink(db) if config.audit_enabled else NullAuditSink()
    return EventPublisher(audit_sink=audit_sink, notifier=build_notification_gateway(config))
