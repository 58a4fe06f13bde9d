import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.db import get_session
from vetcore.core.security import get_principal, Principal
from vetcore.core.timeutils import local_now
from vetcore.modules.calendar.service import CalendarService
from vetcore.modules.calendar.schemas import DayAvailabilityOut

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session)) -> CalendarService:
    return CalendarService(s)

@router.get("/calendar/{professional_id}", response_model=dict[date, DayAvailabilityOut])
async def get_calendar_availability(
    professional_id: uuid.UUID,
    start_date: date | None = None,
    months_ahead: int = Query(3, ge=0),
    principal: Principal = Depends(get_principal),
    service: CalendarService = Depends(svc),
):
    # upper bound is a setting, enforced by the service
    return await service.get_calendar_availability(professional_id, start_date or local_now().date(), months_ahead)
