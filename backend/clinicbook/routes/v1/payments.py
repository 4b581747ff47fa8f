# backend/clinicbook/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /appointments/{appointment_id}/payments - Record a reservation or service payment
    GET /appointments/{appointment_id}/payments - Ledger rows for an appointment
    POST /appointments/{appointment_id}/service-payment/waive - Waive the service charge
    POST /appointments/{appointment_id}/refunds - Refund the deposit
    GET /payments/revenue?date= - Net revenue for appointments on a date
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_payment_ledger
from ...schemas.appointment import AppointmentResponse
from ...schemas.payment import (
    PaymentCreate,
    PaymentRecordResponse,
    RefundCreate,
    RevenueResponse,
    ServicePaymentWaive,
)
from ...services.payment_ledger import PaymentLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


@router.post(
    "/appointments/{appointment_id}/payments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    appointment_id: str,
    payload: PaymentCreate,
    payments: PaymentLedger = Depends(get_payment_ledger),
) -> AppointmentResponse:
    appointment = await asyncio.to_thread(
        payments.record_payment,
        appointment_id,
        axis=payload.axis.value,
        amount=payload.amount,
        method=payload.method.value if payload.method else None,
        reference=payload.reference,
        notes=payload.notes,
        recorded_by=payload.recorded_by,
    )
    return AppointmentResponse.model_validate(appointment)


@router.get(
    "/appointments/{appointment_id}/payments", response_model=List[PaymentRecordResponse]
)
async def list_payments(
    appointment_id: str,
    payments: PaymentLedger = Depends(get_payment_ledger),
) -> List[PaymentRecordResponse]:
    records = await asyncio.to_thread(payments.list_payments, appointment_id)
    return [PaymentRecordResponse.model_validate(record) for record in records]


@router.post(
    "/appointments/{appointment_id}/service-payment/waive", response_model=AppointmentResponse
)
async def waive_service_payment(
    appointment_id: str,
    payload: Optional[ServicePaymentWaive] = Body(None),
    payments: PaymentLedger = Depends(get_payment_ledger),
) -> AppointmentResponse:
    waive = payload or ServicePaymentWaive()
    appointment = await asyncio.to_thread(
        payments.waive_service_payment, appointment_id, waive.reason, waive.waived_by
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/appointments/{appointment_id}/refunds", response_model=AppointmentResponse)
async def refund_payment(
    appointment_id: str,
    payload: RefundCreate,
    payments: PaymentLedger = Depends(get_payment_ledger),
) -> AppointmentResponse:
    """
    Refund the reservation deposit.

    The appointment must be cancelled first unless `force_cancel` is set.
    """
    appointment = await asyncio.to_thread(
        payments.refund_payment,
        appointment_id,
        payload.amount,
        reason=payload.reason,
        force_cancel=payload.force_cancel,
        refunded_by=payload.refunded_by,
        actor_role=payload.actor_role.value,
    )
    return AppointmentResponse.model_validate(appointment)


@router.get("/payments/revenue", response_model=RevenueResponse)
async def get_revenue(
    on_date: date = Query(..., alias="date", description="Appointment date (YYYY-MM-DD)"),
    payments: PaymentLedger = Depends(get_payment_ledger),
) -> RevenueResponse:
    totals = await asyncio.to_thread(payments.net_revenue, on_date)
    return RevenueResponse.model_validate(totals)
