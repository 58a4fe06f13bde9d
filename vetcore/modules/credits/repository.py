import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from vetcore.core.base import utcnow
from vetcore.modules.credits.models import ProfessionalCredit, CreditTransaction, TransactionType
from vetcore.modules.appointments.models import Appointment, AppointmentStatus, LostAppointment

class CreditRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, professional_id: uuid.UUID) -> ProfessionalCredit | None:
        res = await self.session.execute(
            select(ProfessionalCredit)
            .where(ProfessionalCredit.professional_id == professional_id)
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    async def get_or_create(self, professional_id: uuid.UUID) -> ProfessionalCredit:
        row = await self.get(professional_id)
        if row is not None:
            return row
        # a concurrent first grant may insert the same ledger; the unique key decides
        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        await self.session.execute(
            insert(ProfessionalCredit)
            .values(professional_id=professional_id, total_credits=0, used_credits=0, suspended=False)
            .on_conflict_do_nothing(index_elements=[ProfessionalCredit.professional_id])
        )
        return await self.get(professional_id)

    async def try_consume(self, professional_id: uuid.UUID) -> tuple[int, int] | None:
        """Compare-and-increment ``used_credits``; returns (total, used) after the write or None."""
        now = utcnow()
        stmt = (
            update(ProfessionalCredit)
            .where(
                ProfessionalCredit.professional_id == professional_id,
                ProfessionalCredit.used_credits < ProfessionalCredit.total_credits,
                ProfessionalCredit.suspended.is_(False),
            )
            .values(used_credits=ProfessionalCredit.used_credits + 1, last_credit_update=now, updated_at=now)
            .returning(ProfessionalCredit.total_credits, ProfessionalCredit.used_credits)
            .execution_options(synchronize_session=False)
        )
        row = (await self.session.execute(stmt)).first()
        return (row[0], row[1]) if row else None

    async def increment_total(self, professional_id: uuid.UUID, amount: int) -> tuple[int, int, bool]:
        """Atomic grant; returns (total, used, suspended) after the write."""
        now = utcnow()
        stmt = (
            update(ProfessionalCredit)
            .where(ProfessionalCredit.professional_id == professional_id)
            .values(total_credits=ProfessionalCredit.total_credits + amount, last_credit_update=now, updated_at=now)
            .returning(ProfessionalCredit.total_credits, ProfessionalCredit.used_credits, ProfessionalCredit.suspended)
            .execution_options(synchronize_session=False)
        )
        row = (await self.session.execute(stmt)).one()
        return row[0], row[1], row[2]

    async def set_suspended(self, professional_id: uuid.UUID, suspended: bool) -> None:
        await self.session.execute(
            update(ProfessionalCredit)
            .where(ProfessionalCredit.professional_id == professional_id)
            .values(suspended=suspended, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    async def add_transaction(self, professional_id: uuid.UUID, amount: int, transaction_type: TransactionType, description: str | None) -> CreditTransaction:
        tx = CreditTransaction(
            professional_id=professional_id, amount=amount,
            transaction_type=transaction_type, description=description,
        )
        self.session.add(tx)
        await self.session.flush()
        return tx

    async def list_transactions(self, professional_id: uuid.UUID, limit: int = 50, offset: int = 0) -> Sequence[CreditTransaction]:
        res = await self.session.execute(
            select(CreditTransaction)
            .where(CreditTransaction.professional_id == professional_id)
            .order_by(CreditTransaction.created_at.desc())
            .limit(limit).offset(offset)
        )
        return res.scalars().all()

    async def ledger_balance(self, professional_id: uuid.UUID) -> int:
        res = await self.session.execute(
            select(func.coalesce(func.sum(CreditTransaction.amount), 0))
            .where(CreditTransaction.professional_id == professional_id)
        )
        return int(res.scalar_one())

    async def count_confirmed_appointments(self, professional_id: uuid.UUID) -> int:
        res = await self.session.execute(
            select(func.count(Appointment.id)).where(
                Appointment.professional_id == professional_id,
                Appointment.status.in_([AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED]),
            )
        )
        return int(res.scalar_one())

    async def count_lost_appointments(self, professional_id: uuid.UUID) -> int:
        res = await self.session.execute(
            select(func.count(LostAppointment.id)).where(LostAppointment.professional_id == professional_id)
        )
        return int(res.scalar_one())
