import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from vetcore.modules.verification.models import Document, DocumentType, VerificationLog

class DocumentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def verified_types(self, profile_id: uuid.UUID) -> set[DocumentType]:
        res = await self.session.execute(
            select(Document.document_type).where(
                Document.profile_id == profile_id,
                Document.is_verified.is_(True),
            ).distinct()
        )
        return set(res.scalars().all())

class VerificationLogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, **data) -> VerificationLog:
        obj = VerificationLog(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def list_for(self, profile_id: uuid.UUID, limit: int = 50, offset: int = 0) -> Sequence[VerificationLog]:
        res = await self.session.execute(
            select(VerificationLog)
            .where(VerificationLog.profile_id == profile_id)
            .order_by(VerificationLog.created_at.desc())
            .limit(limit).offset(offset)
        )
        return res.scalars().all()
