import logging
import uuid
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.config import settings
from vetcore.core.errors import ValidationFailed, NotFound
from vetcore.modules.credits.models import CreditStatus, TransactionType, derive_status
from vetcore.modules.credits.repository import CreditRepository
from vetcore.modules.directory.repository import ProfileRepository
from vetcore.modules.audit.service import AuditService
from vetcore.modules.notifications.service import Notifier, NotificationEvent

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class CreditCheck:
    has_credits: bool
    remaining: int
    status: CreditStatus

@dataclass(frozen=True)
class CreditStats:
    total: int
    used: int
    remaining: int
    status: CreditStatus
    is_low: bool
    confirmed_appointments: int
    lost_clients: int

def is_low(remaining: int) -> bool:
    return 0 < remaining <= settings.LOW_CREDITS_THRESHOLD

def consumption_event(remaining: int) -> NotificationEvent | None:
    """Event owed to the professional right after a consumption left ``remaining``."""
    if remaining == 0:
        return NotificationEvent.CREDITS_DEPLETED
    if remaining == settings.LOW_CREDITS_THRESHOLD:
        return NotificationEvent.CREDITS_LOW
    return None

class CreditService:
    def __init__(self, session: AsyncSession, notifier: Notifier | None = None):
        self.session = session
        self.repo = CreditRepository(session)
        self.notifier = notifier

    async def check_credits(self, professional_id: uuid.UUID) -> CreditCheck:
        row = await self.repo.get(professional_id)
        if row is None:
            return CreditCheck(has_credits=False, remaining=0, status=CreditStatus.DEPLETED)
        return CreditCheck(has_credits=row.status == CreditStatus.ACTIVE, remaining=row.remaining, status=row.status)

    async def consume(self, professional_id: uuid.UUID) -> int | None:
        """Take one credit inside the caller's transaction; returns credits left, or None when refused.

        Does not commit. The ledger row is guarded by a conditional UPDATE so two
        concurrent callers can never both take the last credit.
        """
        after = await self.repo.try_consume(professional_id)
        if after is None:
            return None
        total, used = after
        await self.repo.add_transaction(professional_id, -1, TransactionType.CONSUMPTION, "Appointment booked")
        return total - used

    async def consume_credit(self, professional_id: uuid.UUID) -> bool:
        return await self.consume(professional_id) is not None

    async def add_credits(self, professional_id: uuid.UUID, amount: int, description: str | None = None, *, actor_id: uuid.UUID | None = None) -> bool:
        if amount <= 0:
            raise ValidationFailed("amount must be positive", details={"amount": amount})
        if await ProfileRepository(self.session).get(professional_id) is None:
            raise NotFound("Professional not found")

        await self.repo.get_or_create(professional_id)
        total, used, suspended = await self.repo.increment_total(professional_id, amount)
        await self.repo.add_transaction(professional_id, amount, TransactionType.GRANT, description or "Credits granted")
        if actor_id is not None:
            await AuditService(self.session).record(
                actor_id, "credits.grant", "credits", professional_id,
                {"amount": amount, "total_credits": total, "used_credits": used},
            )
        await self.session.commit()
        logger.info(f"Granted {amount} credits to professional {professional_id} (total={total}, used={used})")

        was_depleted = (total - amount - used) <= 0
        if was_depleted and not suspended and self.notifier:
            await self.notifier.notify(professional_id, NotificationEvent.CREDITS_REACTIVATED, {"remaining": total - used})
        return True

    async def set_suspended(self, professional_id: uuid.UUID, suspended: bool, *, actor_id: uuid.UUID | None = None) -> CreditCheck:
        if await ProfileRepository(self.session).get(professional_id) is None:
            raise NotFound("Professional not found")
        await self.repo.get_or_create(professional_id)
        await self.repo.set_suspended(professional_id, suspended)
        if actor_id is not None:
            await AuditService(self.session).record(actor_id, "credits.suspension", "credits", professional_id, {"suspended": suspended})
        await self.session.commit()
        logger.info(f"Credits for professional {professional_id} suspended={suspended}")
        return await self.check_credits(professional_id)

    async def credit_stats(self, professional_id: uuid.UUID) -> CreditStats:
        row = await self.repo.get(professional_id)
        total = row.total_credits if row else 0
        used = row.used_credits if row else 0
        remaining = total - used
        status = derive_status(remaining, row.suspended if row else False)
        return CreditStats(
            total=total,
            used=used,
            remaining=remaining,
            status=status,
            is_low=is_low(remaining),
            confirmed_appointments=await self.repo.count_confirmed_appointments(professional_id),
            lost_clients=await self.repo.count_lost_appointments(professional_id),
        )

    async def list_transactions(self, professional_id: uuid.UUID, limit: int = 50, offset: int = 0):
        return await self.repo.list_transactions(professional_id, limit, offset)
