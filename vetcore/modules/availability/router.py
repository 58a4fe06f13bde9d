import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.db import get_session
from vetcore.core.security import get_principal, Principal
from vetcore.modules.availability.models import LocationType
from vetcore.modules.availability.service import AvailabilityService
from vetcore.modules.availability.schemas import (
    WindowCreate, WindowOut, BlockedDateCreate, BlockedDateOut, SlotOut,
)

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session)) -> AvailabilityService:
    return AvailabilityService(s)

# Slot search
@router.get("/availability/slots", response_model=list[SlotOut])
async def get_available_slots(
    professional_id: uuid.UUID,
    on: date = Query(..., alias="date"),
    duration_minutes: int | None = Query(None, ge=5, le=240),
    location_type: LocationType | None = None,
    principal: Principal = Depends(get_principal),
    service: AvailabilityService = Depends(svc),
):
    return await service.get_available_slots(professional_id, on, duration_minutes, location_type)

# Weekly windows
@router.post("/availability/windows", response_model=WindowOut, status_code=status.HTTP_201_CREATED)
async def create_window(payload: WindowCreate, principal: Principal = Depends(get_principal), service: AvailabilityService = Depends(svc)):
    return await service.create_window(actor_id=principal.actor_id, is_admin=principal.is_admin, **payload.model_dump())

@router.get("/availability/windows", response_model=list[WindowOut])
async def list_windows(professional_id: uuid.UUID, principal: Principal = Depends(get_principal), service: AvailabilityService = Depends(svc)):
    return await service.list_windows(professional_id)

@router.delete("/availability/windows/{window_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_window(window_id: uuid.UUID, principal: Principal = Depends(get_principal), service: AvailabilityService = Depends(svc)):
    await service.delete_window(window_id, actor_id=principal.actor_id, is_admin=principal.is_admin)

# Blocked dates
@router.post("/availability/blocked-dates", response_model=BlockedDateOut, status_code=status.HTTP_201_CREATED)
async def create_blocked_date(payload: BlockedDateCreate, principal: Principal = Depends(get_principal), service: AvailabilityService = Depends(svc)):
    return await service.create_blocked_date(actor_id=principal.actor_id, is_admin=principal.is_admin, **payload.model_dump())

@router.get("/availability/blocked-dates", response_model=list[BlockedDateOut])
async def list_blocked_dates(
    professional_id: uuid.UUID,
    start: date | None = None,
    end: date | None = None,
    principal: Principal = Depends(get_principal),
    service: AvailabilityService = Depends(svc),
):
    return await service.list_blocked_dates(professional_id, start, end)

@router.delete("/availability/blocked-dates/{blocked_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blocked_date(blocked_id: uuid.UUID, principal: Principal = Depends(get_principal), service: AvailabilityService = Depends(svc)):
    await service.delete_blocked_date(blocked_id, actor_id=principal.actor_id, is_admin=principal.is_admin)
