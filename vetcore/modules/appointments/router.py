import uuid
from typing import Literal
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.db import get_session
from vetcore.core.errors import NotAuthorized
from vetcore.core.security import get_principal, Principal
from vetcore.platform.provider_registry import ProviderRegistry, get_providers
from vetcore.modules.notifications.service import Notifier
from vetcore.modules.appointments.models import AppointmentStatus
from vetcore.modules.appointments.service import AppointmentService
from vetcore.modules.appointments.sweeps import build_sweeps, SchedulingSweeps
from vetcore.modules.appointments.schemas import (
    AppointmentCreate, AppointmentStatusChange, AppointmentOut, ConfirmationResponse, ConfirmationOutcomeOut,
)

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session), providers: ProviderRegistry = Depends(get_providers)) -> AppointmentService:
    return AppointmentService(s, Notifier(providers.notification_sender()), providers.booking_locks())

def sweeps(s: AsyncSession = Depends(get_session), providers: ProviderRegistry = Depends(get_providers)) -> SchedulingSweeps:
    return build_sweeps(s, providers)

@router.post("/appointments", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(payload: AppointmentCreate, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    data = payload.model_dump()
    tutor_id = data.pop("tutor_id") or principal.actor_id
    if tutor_id != principal.actor_id and not principal.is_admin:
        raise NotAuthorized("Appointments can only be booked for yourself")
    return await service.create(tutor_id=tutor_id, **data)

# Token link sent to the tutor; the token itself is the credential
@router.post("/appointments/confirmations/respond", response_model=ConfirmationOutcomeOut)
async def respond_to_confirmation(payload: ConfirmationResponse, jobs: SchedulingSweeps = Depends(sweeps)):
    return await jobs.respond_to_confirmation(payload.token, payload.action)

@router.post("/appointments/{appointment_id}/status", response_model=AppointmentOut)
async def change_status(appointment_id: uuid.UUID, payload: AppointmentStatusChange, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.change_status(appointment_id, payload.status, principal.actor_id, notes=payload.notes, is_admin=principal.is_admin)

@router.get("/appointments/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(appointment_id: uuid.UUID, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.get(appointment_id, principal.actor_id, is_admin=principal.is_admin)

@router.get("/appointments", response_model=list[AppointmentOut])
async def list_appointments(
    role: Literal["tutor", "professional"] | None = None,
    status: AppointmentStatus | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    return await service.list_for(principal.actor_id, role=role, status=status, limit=limit, offset=offset)
