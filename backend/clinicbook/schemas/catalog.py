# backend/clinicbook/schemas/catalog.py
"""Staff catalog write schemas and catalog views."""

from typing import Optional

from pydantic import Field, model_validator

from ._strict_base import StrictRequestModel
from .base import ClockTime, Money, StandardizedModel


class ProviderUpsert(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True


class ServiceUpsert(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    price: Money
    is_active: bool = True


class ScheduleRuleUpsert(StrictRequestModel):
    start_time: ClockTime
    end_time: ClockTime
    break_start: Optional[ClockTime] = None
    break_end: Optional[ClockTime] = None
    is_available: bool = True

    @model_validator(mode="after")
    def check_window(self) -> "ScheduleRuleUpsert":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        if (self.break_start is None) != (self.break_end is None):
            raise ValueError("break_start and break_end must be given together")
        return self


class ProviderResponse(StandardizedModel):
    id: str
    name: str
    is_active: bool


class ServiceResponse(StandardizedModel):
    id: str
    name: str
    duration_minutes: int
    price: Money
    is_active: bool


class ScheduleRuleResponse(StandardizedModel):
    provider_id: str
    day_of_week: int
    start_time: str
    end_time: str
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    is_available: bool
