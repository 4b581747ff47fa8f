# backend/clinicbook/schemas/waitlist.py
"""Waitlist schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from ..core.enums import ActorRole
from ._strict_base import StrictRequestModel
from .base import ClockTime, StandardizedModel


class WaitlistJoin(StrictRequestModel):
    provider_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, max_length=128)
    preferred_date: date
    preferred_time: Optional[ClockTime] = Field(
        None, description="Only offer this start; any start when omitted"
    )


class WaitlistPromote(StrictRequestModel):
    """Staff "notify next" for a free slot."""

    provider_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    slot_date: date
    slot_time: ClockTime
    actor_id: Optional[str] = Field(None, max_length=128)


class WaitlistCancel(StrictRequestModel):
    actor_id: Optional[str] = Field(None, max_length=128)
    actor_role: ActorRole = Field(ActorRole.PATIENT)


class WaitlistEntryResponse(StandardizedModel):
    id: str
    provider_id: str
    service_id: str
    user_id: str
    preferred_date: date
    preferred_time: Optional[ClockTime] = None
    status: str
    offered_time: Optional[ClockTime] = None
    notified_at: Optional[datetime] = None
    offer_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class WaitlistPromoteResponse(StandardizedModel):
    promoted: bool
    entry: Optional[WaitlistEntryResponse] = None
