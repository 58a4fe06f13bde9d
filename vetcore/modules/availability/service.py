import logging
import uuid
from datetime import date, time
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.errors import NotFound, NotAuthorized, ValidationFailed
from vetcore.modules.availability.models import AvailabilityWindow, BlockedDate, LocationType
from vetcore.modules.availability.repository import AvailabilityRepository
from vetcore.modules.availability.slots import Slot, compile_slots, interval_is_bookable
from vetcore.modules.directory.repository import ProfileRepository

logger = logging.getLogger(__name__)

def _ensure_owner(professional_id: uuid.UUID, actor_id: uuid.UUID, is_admin: bool) -> None:
    if not is_admin and actor_id != professional_id:
        raise NotAuthorized("Only the professional or an admin can change this schedule")

class AvailabilityService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.repo = AvailabilityRepository(s)

    async def get_available_slots(
        self,
        professional_id: uuid.UUID,
        on: date,
        duration_minutes: int | None = None,
        location_type: LocationType | None = None,
    ) -> list[Slot]:
        """Free slots for one professional on one date, ordered by start.

        Read path: a store failure is logged and reported as "no slots".
        """
        try:
            if await self.repo.is_blocked(professional_id, on):
                return []
            windows = await self.repo.windows_for_weekday(professional_id, on.weekday())
            if not windows:
                return []
            busy = await self.repo.active_intervals(professional_id, on)
        except SQLAlchemyError:
            logger.exception(f"Failed to load availability for professional {professional_id} on {on}")
            return []
        return compile_slots(windows, busy, duration_minutes=duration_minutes, location_type=location_type)

    async def is_bookable(self, professional_id: uuid.UUID, on: date, start: time, end: time, location_type: LocationType) -> bool:
        # write path: store errors propagate so the booking transaction rolls back
        if await self.repo.is_blocked(professional_id, on):
            return False
        windows = await self.repo.windows_for_weekday(professional_id, on.weekday())
        busy = await self.repo.active_intervals(professional_id, on)
        return interval_is_bookable(windows, busy, start, end, location_type)

    # ---- schedule management ----

    async def _require_professional(self, professional_id: uuid.UUID):
        prof = await ProfileRepository(self.s).get(professional_id)
        if prof is None:
            raise NotFound("Professional not found")
        if not prof.is_professional:
            raise ValidationFailed("Profile is not a professional")
        return prof

    async def create_window(self, *, actor_id: uuid.UUID, is_admin: bool, **data) -> AvailabilityWindow:
        _ensure_owner(data["professional_id"], actor_id, is_admin)
        await self._require_professional(data["professional_id"])
        obj = await self.repo.create_window(**data)
        await self.s.commit()
        logger.info(f"Availability window {obj.id} created for professional {obj.professional_id}")
        return obj

    async def list_windows(self, professional_id: uuid.UUID):
        return await self.repo.list_windows(professional_id)

    async def delete_window(self, window_id: uuid.UUID, *, actor_id: uuid.UUID, is_admin: bool) -> None:
        obj = await self.repo.get_window(window_id)
        if obj is None:
            raise NotFound("Availability window not found")
        _ensure_owner(obj.professional_id, actor_id, is_admin)
        await self.repo.delete(obj)
        await self.s.commit()

    async def create_blocked_date(self, *, actor_id: uuid.UUID, is_admin: bool, **data) -> BlockedDate:
        _ensure_owner(data["professional_id"], actor_id, is_admin)
        await self._require_professional(data["professional_id"])
        if await self.repo.is_blocked(data["professional_id"], data["blocked_date"]):
            raise ValidationFailed("Date is already blocked", details={"blocked_date": data["blocked_date"].isoformat()})
        obj = await self.repo.create_blocked_date(**data)
        await self.s.commit()
        return obj

    async def list_blocked_dates(self, professional_id: uuid.UUID, start: date | None = None, end: date | None = None):
        return await self.repo.list_blocked_dates(professional_id, start, end)

    async def delete_blocked_date(self, blocked_id: uuid.UUID, *, actor_id: uuid.UUID, is_admin: bool) -> None:
        obj = await self.repo.get_blocked_date(blocked_id)
        if obj is None:
            raise NotFound("Blocked date not found")
        _ensure_owner(obj.professional_id, actor_id, is_admin)
        await self.repo.delete(obj)
        await self.s.commit()
