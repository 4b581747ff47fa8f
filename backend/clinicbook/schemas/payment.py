# backend/clinicbook/schemas/payment.py
"""Payment, refund and revenue schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from ..core.constants import MAX_REASON_LENGTH
from ..core.enums import ActorRole, PaymentAxis, PaymentMethod
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel


class PaymentCreate(StrictRequestModel):
    axis: PaymentAxis = Field(..., description="reservation (deposit) or service")
    amount: Optional[Decimal] = Field(
        None,
        gt=0,
        max_digits=10,
        decimal_places=2,
        description="Defaults to the configured reservation fee on the reservation axis",
    )
    method: Optional[PaymentMethod] = None
    reference: Optional[str] = Field(None, max_length=255, description="Gateway transaction id")
    notes: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    recorded_by: Optional[str] = Field(None, max_length=128)


class ServicePaymentWaive(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    waived_by: Optional[str] = Field(None, max_length=128)


class RefundCreate(StrictRequestModel):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    force_cancel: bool = Field(
        False, description="Cancel the appointment in the same step if it is still active"
    )
    refunded_by: Optional[str] = Field(None, max_length=128)
    actor_role: ActorRole = Field(ActorRole.STAFF)


class PaymentRecordResponse(StandardizedModel):
    id: str
    appointment_id: str
    axis: str
    kind: str
    amount: Money
    currency: str
    method: Optional[str] = None
    transaction_reference: Optional[str] = None
    recorded_by: Optional[str] = None
    recorded_at: datetime


class RevenueResponse(StandardizedModel):
    date: date
    currency: str
    reservation: Money
    service: Money
    refunds: Money
    net: Money
