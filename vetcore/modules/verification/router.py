import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.config import settings
from vetcore.core.db import get_session
from vetcore.core.errors import NotAuthorized
from vetcore.core.security import get_principal, require_roles, Principal
from vetcore.platform.provider_registry import ProviderRegistry, get_providers
from vetcore.modules.notifications.service import Notifier
from vetcore.modules.verification.service import VerificationService
from vetcore.modules.verification.schemas import (
    EligibilityOut, VerificationStatusChange, VerificationLogOut, PublicProfessionalOut,
)

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session), providers: ProviderRegistry = Depends(get_providers)) -> VerificationService:
    return VerificationService(s, Notifier(providers.notification_sender()), providers.cooldown_cache())

@router.get("/verification/stats", dependencies=[Depends(require_roles(settings.ADMIN_ROLE))])
async def verification_stats(service: VerificationService = Depends(svc)):
    return await service.stats()

@router.get("/verification/public", response_model=list[PublicProfessionalOut])
async def list_public_professionals(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: VerificationService = Depends(svc),
):
    return await service.list_public_professionals(limit, offset)

@router.get("/verification/{profile_id}/eligibility", response_model=EligibilityOut)
async def can_verify(profile_id: uuid.UUID, principal: Principal = Depends(get_principal), service: VerificationService = Depends(svc)):
    if not principal.is_admin and principal.actor_id != profile_id:
        raise NotAuthorized("Eligibility is visible to the profile owner and admins only")
    return await service.can_verify(profile_id)

@router.post("/verification/{profile_id}/status")
async def change_verification_status(
    profile_id: uuid.UUID,
    payload: VerificationStatusChange,
    principal: Principal = Depends(get_principal),
    service: VerificationService = Depends(svc),
):
    # role check lives in the service so non-admins get NOT_AUTHORIZED for any target status
    ok = await service.change_status(profile_id, payload.status, principal.actor_id, principal.is_admin, payload.notes)
    return {"ok": ok}

@router.get("/verification/{profile_id}/logs", response_model=list[VerificationLogOut], dependencies=[Depends(require_roles(settings.ADMIN_ROLE))])
async def list_logs(
    profile_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: VerificationService = Depends(svc),
):
    return await service.list_logs(profile_id, limit, offset)
