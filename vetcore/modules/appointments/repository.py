import uuid
from datetime import date, datetime, time
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_
from vetcore.core.base import utcnow
from vetcore.modules.appointments.models import (
    Appointment, AppointmentStatus, AppointmentConfirmation, LostAppointment, LostReason,
)

class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Appointment:
        obj = Appointment(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, appointment_id: uuid.UUID) -> Appointment | None:
        res = await self.session.execute(
            select(Appointment).where(Appointment.id == appointment_id).execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    async def compare_and_set_status(self, appointment_id: uuid.UUID, expected: AppointmentStatus, new: AppointmentStatus, **extra) -> bool:
        res = await self.session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == expected)
            .values(status=new, updated_at=utcnow(), **extra)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def mark_reminder_sent(self, appointment_id: uuid.UUID, at: datetime) -> bool:
        res = await self.session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.reminder_sent_at.is_(None))
            .values(reminder_sent_at=at)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def list_for_actor(self, actor_id: uuid.UUID, *, role: str | None = None, status: AppointmentStatus | None = None, limit: int = 50, offset: int = 0) -> Sequence[Appointment]:
        if role == "tutor":
            who = Appointment.tutor_id == actor_id
        elif role == "professional":
            who = Appointment.professional_id == actor_id
        else:
            who = or_(Appointment.tutor_id == actor_id, Appointment.professional_id == actor_id)
        q = select(Appointment).where(who)
        if status is not None:
            q = q.where(Appointment.status == status)
        q = q.order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    # sweeps
    async def stale_pending_ids(self, created_before: datetime, today: date, now_time: time) -> list[uuid.UUID]:
        started = or_(
            Appointment.appointment_date < today,
            and_(Appointment.appointment_date == today, Appointment.start_time <= now_time),
        )
        res = await self.session.execute(
            select(Appointment.id).where(
                Appointment.status == AppointmentStatus.PENDING,
                or_(Appointment.created_at < created_before, started),
            )
        )
        return list(res.scalars().all())

    async def starting_between_dates(self, first: date, last: date, statuses) -> Sequence[Appointment]:
        res = await self.session.execute(
            select(Appointment).where(
                Appointment.appointment_date >= first,
                Appointment.appointment_date <= last,
                Appointment.status.in_(list(statuses)),
            ).order_by(Appointment.appointment_date, Appointment.start_time)
        )
        return res.scalars().all()

    # lost demand
    async def record_lost(self, *, tutor_id: uuid.UUID, professional_id: uuid.UUID, service_id: uuid.UUID | None, attempted_date: date, reason: LostReason) -> LostAppointment:
        obj = LostAppointment(
            tutor_id=tutor_id, professional_id=professional_id, service_id=service_id,
            attempted_date=attempted_date, reason=reason,
        )
        self.session.add(obj)
        await self.session.flush()
        return obj

class ConfirmationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, appointment_id: uuid.UUID, token: str, confirmation_type: str) -> AppointmentConfirmation:
        obj = AppointmentConfirmation(appointment_id=appointment_id, confirmation_token=token, confirmation_type=confirmation_type)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def exists_for(self, appointment_id: uuid.UUID, confirmation_type: str) -> bool:
        res = await self.session.execute(
            select(AppointmentConfirmation.id).where(
                AppointmentConfirmation.appointment_id == appointment_id,
                AppointmentConfirmation.confirmation_type == confirmation_type,
            ).limit(1)
        )
        return res.scalar_one_or_none() is not None

    async def get_by_token(self, token: str) -> AppointmentConfirmation | None:
        res = await self.session.execute(
            select(AppointmentConfirmation).where(AppointmentConfirmation.confirmation_token == token)
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    async def stamp(self, confirmation_id: uuid.UUID, **values) -> bool:
        """Record the tutor's answer once; False when it was already answered."""
        res = await self.session.execute(
            update(AppointmentConfirmation)
            .where(
                AppointmentConfirmation.id == confirmation_id,
                AppointmentConfirmation.confirmed_at.is_(None),
                AppointmentConfirmation.reschedule_requested_at.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1
