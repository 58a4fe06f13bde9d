import logging
import uuid
from dataclasses import dataclass, field
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.base import utcnow
from vetcore.core.config import settings
from vetcore.core.errors import NotAuthorized, NotFound, MissingDocuments, ValidationFailed
from vetcore.platform.ports.cooldown_cache import CooldownCachePort
from vetcore.modules.directory.repository import ProfileRepository
from vetcore.modules.notifications.service import Notifier, NotificationEvent
from vetcore.modules.verification.models import VerificationStatus, VerificationAction, DocumentType
from vetcore.modules.verification.repository import DocumentRepository, VerificationLogRepository

logger = logging.getLogger(__name__)

CRMV_LABEL = "CRMV"
ID_DOCUMENT_LABEL = "RG ou CNH"
ID_DOCUMENT_TYPES = frozenset({DocumentType.RG, DocumentType.CNH})

ACTION_FOR_STATUS: dict[VerificationStatus, VerificationAction] = {
    VerificationStatus.VERIFIED: VerificationAction.VERIFY,
    VerificationStatus.REJECTED: VerificationAction.REJECT,
    VerificationStatus.NOT_VERIFIED: VerificationAction.RESET,
    VerificationStatus.UNDER_REVIEW: VerificationAction.REVIEW,
}

@dataclass(frozen=True)
class Eligibility:
    can_verify: bool
    has_crmv_document: bool
    has_id_document: bool
    missing_documents: list[str] = field(default_factory=list)

def cooldown_key(profile_id: uuid.UUID, status: VerificationStatus) -> str:
    return f"verification-notify:{profile_id}:{status.value}"

class VerificationService:
    """Document-gated verification state for professional profiles.

    Only admins change the state. Moving into ``verified`` requires a verified
    CRMV plus a verified RG or CNH. Every change is logged; the professional is
    notified after commit, with duplicate (profile, status) notifications
    suppressed for a short cooldown.
    """

    def __init__(self, session: AsyncSession, notifier: Notifier | None = None, cooldown: CooldownCachePort | None = None):
        self.session = session
        self.profiles = ProfileRepository(session)
        self.documents = DocumentRepository(session)
        self.logs = VerificationLogRepository(session)
        self.notifier = notifier
        self.cooldown = cooldown

    async def can_verify(self, profile_id: uuid.UUID) -> Eligibility:
        types = await self.documents.verified_types(profile_id)
        has_crmv = DocumentType.CRMV in types
        has_id = bool(types & ID_DOCUMENT_TYPES)
        missing = []
        if not has_crmv:
            missing.append(CRMV_LABEL)
        if not has_id:
            missing.append(ID_DOCUMENT_LABEL)
        return Eligibility(
            can_verify=not missing,
            has_crmv_document=has_crmv,
            has_id_document=has_id,
            missing_documents=missing,
        )

    async def change_status(
        self,
        profile_id: uuid.UUID,
        new_status: VerificationStatus | str,
        actor_id: uuid.UUID,
        is_admin: bool,
        notes: str | None = None,
    ) -> bool:
        if not is_admin:
            raise NotAuthorized("Only administrators can change verification status")
        try:
            new_status = VerificationStatus(new_status)
        except ValueError:
            raise ValidationFailed(f"unknown verification status: {new_status}")

        profile = await self.profiles.get_for_update(profile_id)
        if profile is None:
            raise NotFound("Profile not found")

        if new_status == VerificationStatus.VERIFIED:
            eligibility = await self.can_verify(profile_id)
            if not eligibility.can_verify:
                await self.session.rollback()
                raise MissingDocuments(eligibility.missing_documents)

        old_status = profile.apply_verification_status(new_status, actor_id=actor_id, notes=notes, at=utcnow())
        if old_status == new_status:
            logger.info(f"Verification status of {profile_id} re-applied: {new_status.value}")
        await self.logs.append(
            profile_id=profile_id,
            action=ACTION_FOR_STATUS[new_status],
            old_status=old_status,
            new_status=new_status,
            notes=notes,
            performed_by=actor_id,
        )
        await self.session.commit()
        logger.info(f"Verification status of {profile_id}: {old_status.value if old_status else None} -> {new_status.value} by {actor_id}")

        await self._notify(profile_id, old_status, new_status, notes)
        return True

    async def _notify(self, profile_id: uuid.UUID, old_status, new_status: VerificationStatus, notes: str | None) -> None:
        if self.notifier is None:
            return
        key = cooldown_key(profile_id, new_status)
        if self.cooldown is not None and not await self.cooldown.try_mark(key, settings.VERIFICATION_NOTIFICATION_COOLDOWN_SECONDS):
            logger.info(f"Verification notification for {profile_id} ({new_status.value}) suppressed by cooldown")
            return
        await self.notifier.notify(profile_id, NotificationEvent.VERIFICATION_STATUS_CHANGED, {
            "old_status": old_status,
            "new_status": new_status,
            "notes": notes,
        })

    async def list_logs(self, profile_id: uuid.UUID, limit: int = 50, offset: int = 0):
        return await self.logs.list_for(profile_id, limit, offset)

    async def stats(self) -> dict[str, int]:
        counts = await self.profiles.count_professionals_by_status()
        out = {s.value: counts.get(s, 0) for s in VerificationStatus}
        out["total"] = sum(counts.values())
        return out

    async def list_public_professionals(self, limit: int = 100, offset: int = 0):
        return await self.profiles.list_public_professionals(limit, offset)
