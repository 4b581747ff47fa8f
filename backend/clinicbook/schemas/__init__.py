"""Pydantic request/response schemas for the HTTP API."""

from ._strict_base import StrictRequestModel
from .appointment import (
    AppointmentAction,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    RescheduleHistoryEntry,
    SlotListResponse,
)
from .base import ClockTime, Money, StandardizedModel
from .base_responses import HealthCheckResponse
from .catalog import (
    ProviderResponse,
    ProviderUpsert,
    ScheduleRuleResponse,
    ScheduleRuleUpsert,
    ServiceResponse,
    ServiceUpsert,
)
from .payment import (
    PaymentCreate,
    PaymentRecordResponse,
    RefundCreate,
    RevenueResponse,
    ServicePaymentWaive,
)
from .waitlist import (
    WaitlistCancel,
    WaitlistEntryResponse,
    WaitlistJoin,
    WaitlistPromote,
    WaitlistPromoteResponse,
)

__all__ = [
    "AppointmentAction",
    "AppointmentCancel",
    "AppointmentCreate",
    "AppointmentReschedule",
    "AppointmentResponse",
    "ClockTime",
    "HealthCheckResponse",
    "Money",
    "PaymentCreate",
    "PaymentRecordResponse",
    "ProviderResponse",
    "ProviderUpsert",
    "RefundCreate",
    "RescheduleHistoryEntry",
    "RevenueResponse",
    "ScheduleRuleResponse",
    "ScheduleRuleUpsert",
    "ServicePaymentWaive",
    "ServiceResponse",
    "ServiceUpsert",
    "SlotListResponse",
    "StandardizedModel",
    "StrictRequestModel",
    "WaitlistCancel",
    "WaitlistEntryResponse",
    "WaitlistJoin",
    "WaitlistPromote",
    "WaitlistPromoteResponse",
]
