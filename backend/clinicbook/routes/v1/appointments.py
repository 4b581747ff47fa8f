# backend/clinicbook/routes/v1/appointments.py
"""
Appointment routes - API v1

Versioned appointment endpoints under /api/v1/appointments.
All business logic delegated to BookingLedger.

Endpoints:
    POST / - Book a slot (409 SLOT_UNAVAILABLE when it was just taken)
    GET /{appointment_id} - Appointment details
    GET /{appointment_id}/history - Reschedule history
    POST /{appointment_id}/confirm - pending -> confirmed
    POST /{appointment_id}/cancel - Cancel and release the slot
    POST /{appointment_id}/reschedule - Move to another slot
    POST /{appointment_id}/complete - confirmed -> completed
    POST /{appointment_id}/no-show - confirmed -> no_show
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies import get_booking_ledger
from ...schemas.appointment import (
    AppointmentAction,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    RescheduleHistoryEntry,
)
from ...services.booking_ledger import BookingLedger

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["appointments-v1"])


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    appointment = await asyncio.to_thread(
        booking.book_appointment,
        provider_id=payload.provider_id,
        service_id=payload.service_id,
        user_id=payload.user_id,
        appointment_date=payload.appointment_date,
        start_time=payload.start_time,
    )
    return AppointmentResponse.model_validate(appointment)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    appointment = await asyncio.to_thread(booking.get_appointment, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.get("/{appointment_id}/history", response_model=List[RescheduleHistoryEntry])
async def get_reschedule_history(
    appointment_id: str,
    booking: BookingLedger = Depends(get_booking_ledger),
) -> List[RescheduleHistoryEntry]:
    await asyncio.to_thread(booking.get_appointment, appointment_id)
    entries = await asyncio.to_thread(booking.repository.get_reschedule_history, appointment_id)
    return [RescheduleHistoryEntry.model_validate(entry) for entry in entries]


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_appointment(
    appointment_id: str,
    payload: Optional[AppointmentAction] = Body(None),
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    action = payload or AppointmentAction()
    appointment = await asyncio.to_thread(
        booking.confirm_appointment, appointment_id, action.actor_id, action.actor_role.value
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    payload: AppointmentCancel,
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    """
    Cancel a pending or confirmed appointment.

    Does not refund a paid deposit; staff refund through the payments API.
    """
    appointment = await asyncio.to_thread(
        booking.cancel_appointment,
        appointment_id,
        initiator=payload.initiator,
        reason=payload.reason,
        initiator_role=payload.initiator_role.value,
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: str,
    payload: AppointmentReschedule,
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    appointment = await asyncio.to_thread(
        booking.reschedule_appointment,
        appointment_id,
        new_date=payload.new_date,
        new_start_time=payload.new_start_time,
        reason=payload.reason,
        rescheduled_by=payload.rescheduled_by,
        rescheduled_by_role=payload.rescheduled_by_role.value,
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: str,
    payload: Optional[AppointmentAction] = Body(None),
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    action = payload or AppointmentAction()
    appointment = await asyncio.to_thread(
        booking.mark_completed, appointment_id, action.actor_id, action.actor_role.value
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_no_show(
    appointment_id: str,
    payload: Optional[AppointmentAction] = Body(None),
    booking: BookingLedger = Depends(get_booking_ledger),
) -> AppointmentResponse:
    action = payload or AppointmentAction()
    appointment = await asyncio.to_thread(
        booking.mark_no_show, appointment_id, action.actor_id, action.actor_role.value
    )
    return AppointmentResponse.model_validate(appointment)
