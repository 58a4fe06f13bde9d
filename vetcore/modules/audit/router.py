from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.db import get_session
from vetcore.core.config import settings
from vetcore.core.security import require_roles
from vetcore.modules.audit.service import AuditService

router = APIRouter()

@router.get("/audit", dependencies=[Depends(require_roles(settings.ADMIN_ROLE))])
async def list_audit(
    resource_type: str | None = None,
    resource_id: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
):
    rows = await AuditService(session).list_events(resource_type=resource_type, resource_id=resource_id, limit=limit)
    # Return raw dicts for simplicity
    return [
        {
            "id": row.id,
            "actor_id": row.actor_id,
            "action": row.action,
            "resource_type": row.resource_type,
            "resource_id": row.resource_id,
            "detail": row.detail,
            "created_at": row.created_at,
        }
        for row in rows
    ]
