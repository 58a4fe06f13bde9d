import uuid
from typing import Sequence
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from vetcore.modules.audit.models import AuditEvent

class AuditService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self,
                     actor_id: uuid.UUID,
                     action: str,
                     resource_type: str,
                     resource_id: uuid.UUID | str,
                     detail: dict | None = None) -> AuditEvent:
        """Stage an audit row in the caller's transaction; the caller commits."""
        ev = AuditEvent(
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            detail=jsonable_encoder(detail) if detail else None,
        )
        self.session.add(ev)
        await self.session.flush()
        return ev

    async def list_events(self,
                   resource_type: str | None = None,
                   resource_id: str | None = None,
                   limit: int = 50) -> Sequence[AuditEvent]:
        q = select(AuditEvent)
        if resource_type:
            q = q.where(AuditEvent.resource_type == resource_type)
        if resource_id:
            q = q.where(AuditEvent.resource_id == resource_id)
        q = q.order_by(desc(AuditEvent.created_at)).limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()
