# backend/clinicbook/routes/v1/waitlist.py
"""
Waitlist routes - API v1

Endpoints:
    POST / - Join the waitlist for a provider, service and date
    GET /{entry_id} - Entry details
    POST /promote - Staff "notify next" for a free slot
    POST /{entry_id}/cancel - Leave the waitlist
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies import get_waitlist_promoter
from ...core.enums import ActorRole
from ...schemas.waitlist import (
    WaitlistCancel,
    WaitlistEntryResponse,
    WaitlistJoin,
    WaitlistPromote,
    WaitlistPromoteResponse,
)
from ...services.waitlist_promoter import WaitlistPromoter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["waitlist-v1"])


@router.post("", response_model=WaitlistEntryResponse, status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    payload: WaitlistJoin,
    waitlist: WaitlistPromoter = Depends(get_waitlist_promoter),
) -> WaitlistEntryResponse:
    entry = await asyncio.to_thread(
        waitlist.join_waitlist,
        payload.provider_id,
        payload.service_id,
        payload.user_id,
        payload.preferred_date,
        payload.preferred_time,
    )
    return WaitlistEntryResponse.model_validate(entry)


@router.post("/promote", response_model=WaitlistPromoteResponse)
async def promote_waitlist(
    payload: WaitlistPromote,
    waitlist: WaitlistPromoter = Depends(get_waitlist_promoter),
) -> WaitlistPromoteResponse:
    """Offer the slot to the next patient in line; `promoted` is false when nobody was notified."""
    entry = await asyncio.to_thread(
        waitlist.promote_waitlist,
        payload.provider_id,
        payload.service_id,
        payload.slot_date,
        payload.slot_time,
        actor_id=payload.actor_id,
        actor_role=ActorRole.STAFF.value,
    )
    if entry is None:
        return WaitlistPromoteResponse(promoted=False)
    return WaitlistPromoteResponse(promoted=True, entry=WaitlistEntryResponse.model_validate(entry))


@router.get("/{entry_id}", response_model=WaitlistEntryResponse)
async def get_waitlist_entry(
    entry_id: str,
    waitlist: WaitlistPromoter = Depends(get_waitlist_promoter),
) -> WaitlistEntryResponse:
    entry = await asyncio.to_thread(waitlist.get_entry, entry_id)
    return WaitlistEntryResponse.model_validate(entry)


@router.post("/{entry_id}/cancel", response_model=WaitlistEntryResponse)
async def cancel_waitlist_entry(
    entry_id: str,
    payload: Optional[WaitlistCancel] = Body(None),
    waitlist: WaitlistPromoter = Depends(get_waitlist_promoter),
) -> WaitlistEntryResponse:
    cancel = payload or WaitlistCancel()
    entry = await asyncio.to_thread(
        waitlist.cancel_entry, entry_id, cancel.actor_id, cancel.actor_role.value
    )
    return WaitlistEntryResponse.model_validate(entry)
