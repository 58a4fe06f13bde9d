import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.config import settings
from vetcore.core.db import get_session
from vetcore.core.errors import NotAuthorized
from vetcore.core.security import get_principal, require_roles, Principal
from vetcore.platform.provider_registry import ProviderRegistry, get_providers
from vetcore.modules.notifications.service import Notifier
from vetcore.modules.credits.service import CreditService
from vetcore.modules.credits.schemas import (
    CreditCheckOut, CreditStatsOut, CreditGrant, SuspensionChange, CreditTransactionOut,
)

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session), providers: ProviderRegistry = Depends(get_providers)) -> CreditService:
    return CreditService(s, Notifier(providers.notification_sender()))

def _ensure_self_or_admin(principal: Principal, professional_id: uuid.UUID) -> None:
    if not principal.is_admin and principal.actor_id != professional_id:
        raise NotAuthorized("Credit details are visible to the professional and admins only")

@router.get("/credits/{professional_id}", response_model=CreditCheckOut)
async def check_credits(professional_id: uuid.UUID, principal: Principal = Depends(get_principal), service: CreditService = Depends(svc)):
    _ensure_self_or_admin(principal, professional_id)
    return await service.check_credits(professional_id)

@router.get("/credits/{professional_id}/stats", response_model=CreditStatsOut)
async def credit_stats(professional_id: uuid.UUID, principal: Principal = Depends(get_principal), service: CreditService = Depends(svc)):
    _ensure_self_or_admin(principal, professional_id)
    return await service.credit_stats(professional_id)

@router.get("/credits/{professional_id}/transactions", response_model=list[CreditTransactionOut])
async def list_transactions(
    professional_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: CreditService = Depends(svc),
):
    _ensure_self_or_admin(principal, professional_id)
    return await service.list_transactions(professional_id, limit, offset)

# Admin
@router.post("/credits/{professional_id}/grants", status_code=status.HTTP_201_CREATED)
async def add_credits(
    professional_id: uuid.UUID,
    payload: CreditGrant,
    principal: Principal = Depends(require_roles(settings.ADMIN_ROLE)),
    service: CreditService = Depends(svc),
):
    ok = await service.add_credits(professional_id, payload.amount, payload.description, actor_id=principal.actor_id)
    return {"ok": ok}

@router.post("/credits/{professional_id}/suspension", response_model=CreditCheckOut)
async def set_suspension(
    professional_id: uuid.UUID,
    payload: SuspensionChange,
    principal: Principal = Depends(require_roles(settings.ADMIN_ROLE)),
    service: CreditService = Depends(svc),
):
    return await service.set_suspended(professional_id, payload.suspended, actor_id=principal.actor_id)
