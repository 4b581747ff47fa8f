# backend/clinicbook/routes/v1/slots.py
"""
Slot availability routes - API v1

Endpoints:
    GET /providers/{provider_id}/slots?date=&service_id= - Bookable starts
"""

import asyncio
from datetime import date
import logging

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_computer
from ...schemas.appointment import SlotListResponse
from ...services.availability import AvailabilityComputer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["slots-v1"])


@router.get("/providers/{provider_id}/slots", response_model=SlotListResponse)
async def get_available_slots(
    provider_id: str,
    on_date: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    service_id: str = Query(..., min_length=1),
    availability: AvailabilityComputer = Depends(get_availability_computer),
) -> SlotListResponse:
    """
    Bookable start times for a provider, date and service.

    An empty list means the provider does not work that day, the day is full,
    or the service is not currently offered. The list is advisory: booking
    re-checks the slot.
    """
    slots = await asyncio.to_thread(
        availability.get_available_slots, provider_id, on_date, service_id
    )
    return SlotListResponse(provider_id=provider_id, service_id=service_id, date=on_date, slots=slots)
