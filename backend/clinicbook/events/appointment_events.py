"""Appointment, payment and waitlist domain events."""
from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


@dataclass
class AppointmentEvent:
    """
    Base for events about one appointment.

    before/after are state snapshots for the audit trail; actor_* name who
    initiated the change.
    """

    entity_type: ClassVar[str] = "appointment"
    action: ClassVar[str] = "changed"

    appointment_id: str
    user_id: str
    occurred_at: datetime
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None

    @property
    def entity_id(self) -> str:
        return self.appointment_id

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("before", None)
        payload.pop("after", None)
        return {key: _jsonable(value) for key, value in payload.items()}


@dataclass
class AppointmentCreated(AppointmentEvent):
    """Fired after an appointment is booked."""

    action: ClassVar[str] = "created"

    provider_id: Optional[str] = None
    appointment_date: Optional[date] = None
    start_time: Optional[str] = None
    confirmation_number: Optional[str] = None


@dataclass
class AppointmentConfirmed(AppointmentEvent):
    action: ClassVar[str] = "confirmed"


@dataclass
class AppointmentCancelled(AppointmentEvent):
    """Fired after an appointment is cancelled; the freed slot feeds waitlist promotion."""

    action: ClassVar[str] = "cancelled"

    reason: Optional[str] = None
    provider_id: Optional[str] = None
    service_id: Optional[str] = None
    appointment_date: Optional[date] = None
    start_time: Optional[str] = None


@dataclass
class AppointmentExpired(AppointmentCancelled):
    """A pending hold lapsed without confirmation or payment."""

    action: ClassVar[str] = "expired"


@dataclass
class AppointmentRescheduled(AppointmentEvent):
    action: ClassVar[str] = "rescheduled"

    from_date: Optional[date] = None
    from_start_time: Optional[str] = None
    to_date: Optional[date] = None
    to_start_time: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class AppointmentCompleted(AppointmentEvent):
    action: ClassVar[str] = "completed"


@dataclass
class AppointmentNoShow(AppointmentEvent):
    action: ClassVar[str] = "no_show"


@dataclass
class PaymentRecorded(AppointmentEvent):
    action: ClassVar[str] = "payment_recorded"

    axis: Optional[str] = None
    amount: Optional[Decimal] = None
    method: Optional[str] = None


@dataclass
class ServicePaymentWaived(AppointmentEvent):
    action: ClassVar[str] = "service_payment_waived"

    reason: Optional[str] = None


@dataclass
class PaymentRefunded(AppointmentEvent):
    action: ClassVar[str] = "refunded"

    amount: Optional[Decimal] = None
    reason: Optional[str] = None


@dataclass
class WaitlistEvent:
    """Base for events about one waitlist entry."""

    entity_type: ClassVar[str] = "waitlist_entry"
    action: ClassVar[str] = "changed"

    entry_id: str
    user_id: str
    occurred_at: datetime
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None

    @property
    def entity_id(self) -> str:
        return self.entry_id

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("before", None)
        payload.pop("after", None)
        return {key: _jsonable(value) for key, value in payload.items()}


@dataclass
class WaitlistJoined(WaitlistEvent):
    action: ClassVar[str] = "joined"


@dataclass
class WaitlistOfferSent(WaitlistEvent):
    """A freed slot was offered to the patient at the head of the waitlist."""

    action: ClassVar[str] = "notified"

    provider_id: Optional[str] = None
    service_id: Optional[str] = None
    offered_date: Optional[date] = None
    offered_time: Optional[str] = None
    offer_expires_at: Optional[datetime] = None


@dataclass
class WaitlistOfferExpired(WaitlistEvent):
    action: ClassVar[str] = "expired"


@dataclass
class WaitlistEntryBooked(WaitlistEvent):
    action: ClassVar[str] = "booked"

    appointment_id: Optional[str] = None


@dataclass
class WaitlistEntryCancelled(WaitlistEvent):
    action: ClassVar[str] = "cancelled"
