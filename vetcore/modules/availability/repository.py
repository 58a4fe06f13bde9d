import uuid
from datetime import date, time
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from vetcore.modules.availability.models import AvailabilityWindow, BlockedDate
from vetcore.modules.appointments.models import Appointment, ACTIVE_STATUSES

class AvailabilityRepository:
    def __init__(self, s: AsyncSession): self.s = s

    # windows
    async def create_window(self, **data) -> AvailabilityWindow:
        obj = AvailabilityWindow(**data); self.s.add(obj); await self.s.flush(); return obj

    async def get_window(self, window_id: uuid.UUID) -> AvailabilityWindow | None:
        return await self.s.get(AvailabilityWindow, window_id)

    async def list_windows(self, professional_id: uuid.UUID) -> Sequence[AvailabilityWindow]:
        res = await self.s.execute(select(AvailabilityWindow).where(
            AvailabilityWindow.professional_id == professional_id,
        ).order_by(AvailabilityWindow.day_of_week, AvailabilityWindow.start_time))
        return res.scalars().all()

    async def windows_for_weekday(self, professional_id: uuid.UUID, day_of_week: int) -> Sequence[AvailabilityWindow]:
        res = await self.s.execute(select(AvailabilityWindow).where(
            AvailabilityWindow.professional_id == professional_id,
            AvailabilityWindow.day_of_week == day_of_week,
        ).order_by(AvailabilityWindow.start_time))
        return res.scalars().all()

    # blocked dates
    async def create_blocked_date(self, **data) -> BlockedDate:
        obj = BlockedDate(**data); self.s.add(obj); await self.s.flush(); return obj

    async def get_blocked_date(self, blocked_id: uuid.UUID) -> BlockedDate | None:
        return await self.s.get(BlockedDate, blocked_id)

    async def find_blocked_date(self, professional_id: uuid.UUID, on: date) -> BlockedDate | None:
        res = await self.s.execute(select(BlockedDate).where(
            BlockedDate.professional_id == professional_id, BlockedDate.blocked_date == on,
        ))
        return res.scalar_one_or_none()

    async def is_blocked(self, professional_id: uuid.UUID, on: date) -> bool:
        return await self.find_blocked_date(professional_id, on) is not None

    async def list_blocked_dates(self, professional_id: uuid.UUID, start: date | None = None, end: date | None = None) -> Sequence[BlockedDate]:
        q = select(BlockedDate).where(BlockedDate.professional_id == professional_id)
        if start is not None:
            q = q.where(BlockedDate.blocked_date >= start)
        if end is not None:
            q = q.where(BlockedDate.blocked_date <= end)
        res = await self.s.execute(q.order_by(BlockedDate.blocked_date))
        return res.scalars().all()

    async def delete(self, obj) -> None:
        await self.s.delete(obj); await self.s.flush()

    # occupancy
    async def active_intervals(self, professional_id: uuid.UUID, on: date) -> list[tuple[time, time]]:
        res = await self.s.execute(select(Appointment.start_time, Appointment.end_time).where(
            Appointment.professional_id == professional_id,
            Appointment.appointment_date == on,
            Appointment.status.in_(ACTIVE_STATUSES),
        ))
        return [(s, e) for s, e in res.all()]

    async def active_counts_by_date(self, professional_id: uuid.UUID, start: date, end: date) -> dict[date, int]:
        res = await self.s.execute(
            select(Appointment.appointment_date, func.count(Appointment.id))
            .where(
                Appointment.professional_id == professional_id,
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            .group_by(Appointment.appointment_date)
        )
        return {d: n for d, n in res.all()}
