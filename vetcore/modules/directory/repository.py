import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from vetcore.modules.directory.models import Profile, PROFESSIONAL_TYPES
from vetcore.modules.verification.models import VerificationStatus

class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, profile_id: uuid.UUID) -> Profile | None:
        return await self.session.get(Profile, profile_id)

    async def get_for_update(self, profile_id: uuid.UUID) -> Profile | None:
        q = select(Profile).where(Profile.id == profile_id).with_for_update()
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_public_professionals(self, limit: int = 100, offset: int = 0) -> Sequence[Profile]:
        q = (
            select(Profile)
            .where(
                Profile.user_type.in_(PROFESSIONAL_TYPES),
                Profile.is_active.is_(True),
                Profile.verification_status == VerificationStatus.VERIFIED,
            )
            .order_by(Profile.full_name.asc())
            .limit(limit).offset(offset)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count_professionals_by_status(self) -> dict[VerificationStatus, int]:
        q = (
            select(Profile.verification_status, func.count(Profile.id))
            .where(Profile.user_type.in_(PROFESSIONAL_TYPES))
            .group_by(Profile.verification_status)
        )
        res = await self.session.execute(q)
        return {status: count for status, count in res.all()}
