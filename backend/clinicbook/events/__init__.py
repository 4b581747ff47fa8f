"""Domain events emitted by the scheduling core."""

from .appointment_events import (
    AppointmentCancelled,
    AppointmentCompleted,
    AppointmentConfirmed,
    AppointmentCreated,
    AppointmentEvent,
    AppointmentExpired,
    AppointmentNoShow,
    AppointmentRescheduled,
    PaymentRecorded,
    PaymentRefunded,
    ServicePaymentWaived,
    WaitlistEntryBooked,
    WaitlistEntryCancelled,
    WaitlistEvent,
    WaitlistJoined,
    WaitlistOfferExpired,
    WaitlistOfferSent,
)
from .publisher import NOTIFICATION_TEMPLATES, EventPublisher, build_event_publisher

__all__ = [
    "AppointmentCancelled",
    "AppointmentCompleted",
    "AppointmentConfirmed",
    "AppointmentCreated",
    "AppointmentEvent",
    "AppointmentExpired",
    "AppointmentNoShow",
    "AppointmentRescheduled",
    "EventPublisher",
    "NOTIFICATION_TEMPLATES",
    "PaymentRecorded",
    "PaymentRefunded",
    "ServicePaymentWaived",
    "WaitlistEntryBooked",
    "WaitlistEntryCancelled",
    "WaitlistEvent",
    "WaitlistJoined",
    "WaitlistOfferExpired",
    "WaitlistOfferSent",
    "build_event_publisher",
]
