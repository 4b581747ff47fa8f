# backend/clinicbook/schemas/appointment.py
"""
Appointment schemas for clinicbook.

Request models are strict (unknown fields are rejected). Responses are built
from Appointment rows; times render as "HH:MM" and money as two-place strings.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.constants import MAX_REASON_LENGTH
from ..core.enums import ActorRole
from ._strict_base import StrictRequestModel
from .base import ClockTime, Money, StandardizedModel


def _clean_reason(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AppointmentCreate(StrictRequestModel):
    """Book a slot returned by the slots endpoint."""

    provider_id: str = Field(..., min_length=1, description="Provider to book")
    service_id: str = Field(..., min_length=1, description="Catalog service being booked")
    user_id: str = Field(..., min_length=1, max_length=128, description="Patient booking the slot")
    appointment_date: date = Field(..., description="Calendar date of the appointment")
    start_time: ClockTime = Field(..., description="Slot start as HH:MM")


class AppointmentCancel(StrictRequestModel):
    initiator: str = Field(..., min_length=1, max_length=128, description="Who is cancelling")
    initiator_role: ActorRole = Field(ActorRole.PATIENT, description="Role of the initiator")
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return _clean_reason(v)


class AppointmentReschedule(StrictRequestModel):
    new_date: date = Field(..., description="Date of the new slot")
    new_start_time: ClockTime = Field(..., description="Start of the new slot as HH:MM")
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    rescheduled_by: Optional[str] = Field(None, max_length=128)
    rescheduled_by_role: ActorRole = Field(ActorRole.PATIENT)

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return _clean_reason(v)


class AppointmentAction(StrictRequestModel):
    """Body for confirm / complete / no-show; all fields optional."""

    actor_id: Optional[str] = Field(None, max_length=128)
    actor_role: ActorRole = Field(ActorRole.STAFF)


class AppointmentResponse(StandardizedModel):
    id: str
    provider_id: str
    service_id: str
    user_id: str
    appointment_date: date
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    duration_minutes: int
    status: str
    confirmation_number: str

    payment_status: str
    payment_amount: Money
    payment_method: Optional[str] = None
    refund_amount: Money
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None

    service_payment_status: str
    service_payment_amount: Money
    service_payment_method: Optional[str] = None

    reschedule_count: int
    max_reschedules: int
    pending_expires_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None


class RescheduleHistoryEntry(StandardizedModel):
    from_date: date
    from_start_time: Optional[ClockTime] = None
    to_date: date
    to_start_time: ClockTime
    reason: Optional[str] = None
    rescheduled_by: Optional[str] = None
    rescheduled_by_role: Optional[str] = None
    rescheduled_at: datetime


class SlotListResponse(StandardizedModel):
    provider_id: str
    service_id: str
    date: date
    slots: List[str] = Field(default_factory=list, description="Bookable starts as HH:MM")
