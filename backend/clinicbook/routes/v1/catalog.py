# backend/clinicbook/routes/v1/catalog.py
"""
Staff catalog routes - API v1

Writes go through ScheduleCatalog, which invalidates the cached entry as
soon as the change commits.

Endpoints:
    PUT /providers/{provider_id} - Create or update a provider
    PUT /services/{service_id} - Create or update a service
    PUT /providers/{provider_id}/schedule/{day_of_week} - Weekly rule (0 = Sunday)
    GET /providers/{provider_id}/schedule/{day_of_week} - Current weekly rule
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Path

from ...api.dependencies import get_schedule_catalog
from ...core.exceptions import NotFoundException
from ...schemas.catalog import (
    ProviderResponse,
    ProviderUpsert,
    ScheduleRuleResponse,
    ScheduleRuleUpsert,
    ServiceResponse,
    ServiceUpsert,
)
from ...services.schedule_catalog import ScheduleCatalog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog-v1"])


@router.put("/providers/{provider_id}", response_model=ProviderResponse)
async def upsert_provider(
    provider_id: str,
    payload: ProviderUpsert,
    catalog: ScheduleCatalog = Depends(get_schedule_catalog),
) -> ProviderResponse:
    view = await asyncio.to_thread(
        catalog.upsert_provider, provider_id, payload.name, payload.is_active
    )
    return ProviderResponse.model_validate(view)


@router.put("/services/{service_id}", response_model=ServiceResponse)
async def upsert_service(
    service_id: str,
    payload: ServiceUpsert,
    catalog: ScheduleCatalog = Depends(get_schedule_catalog),
) -> ServiceResponse:
    view = await asyncio.to_thread(
        catalog.upsert_service,
        service_id,
        payload.name,
        payload.duration_minutes,
        payload.price,
        payload.is_active,
    )
    return ServiceResponse.model_validate(view)


@router.put("/providers/{provider_id}/schedule/{day_of_week}", response_model=ScheduleRuleResponse)
async def upsert_schedule_rule(
    provider_id: str,
    payload: ScheduleRuleUpsert,
    day_of_week: int = Path(..., ge=0, le=6),
    catalog: ScheduleCatalog = Depends(get_schedule_catalog),
) -> ScheduleRuleResponse:
    view = await asyncio.to_thread(
        catalog.upsert_schedule_rule,
        provider_id,
        day_of_week,
        payload.start_time,
        payload.end_time,
        break_start=payload.break_start,
        break_end=payload.break_end,
        is_available=payload.is_available,
    )
    return ScheduleRuleResponse.model_validate(view.to_public())


@router.get("/providers/{provider_id}/schedule/{day_of_week}", response_model=ScheduleRuleResponse)
async def get_schedule_rule(
    provider_id: str,
    day_of_week: int = Path(..., ge=0, le=6),
    catalog: ScheduleCatalog = Depends(get_schedule_catalog),
) -> ScheduleRuleResponse:
    view = await asyncio.to_thread(catalog.get_rule, provider_id, day_of_week)
    if view is None:
        raise NotFoundException(
            "No schedule for this provider on that day",
            code="SCHEDULE_NOT_FOUND",
            details={"provider_id": provider_id, "day_of_week": day_of_week},
        )
    return ScheduleRuleResponse.model_validate(view.to_public())
