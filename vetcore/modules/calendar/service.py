import enum
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.config import settings
from vetcore.core.errors import ValidationFailed
from vetcore.core.timeutils import add_months, month_end, month_start
from vetcore.modules.availability.repository import AvailabilityRepository
from vetcore.modules.availability.slots import slots_per_window

logger = logging.getLogger(__name__)

class DayStatus(str, enum.Enum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    UNAVAILABLE = "unavailable"
    BLOCKED = "blocked"

@dataclass(frozen=True)
class DayAvailability:
    status: DayStatus
    remaining_slots: int

def classify_day(total: int, booked: int) -> DayAvailability:
    remaining = max(total - booked, 0)
    if total == 0 or remaining == 0:
        return DayAvailability(DayStatus.UNAVAILABLE, remaining)
    if booked > 0:
        return DayAvailability(DayStatus.PARTIAL, remaining)
    return DayAvailability(DayStatus.AVAILABLE, remaining)

def calendar_range(start_date: date, months_ahead: int) -> tuple[date, date]:
    """First day of start_date's month through the last day of the month ``months_ahead`` later."""
    first = month_start(start_date)
    return first, month_end(add_months(first, months_ahead))

class CalendarService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.repo = AvailabilityRepository(s)

    async def get_calendar_availability(
        self,
        professional_id: uuid.UUID,
        start_date: date,
        months_ahead: int = 3,
    ) -> dict[date, DayAvailability]:
        if months_ahead < 0 or months_ahead > settings.CALENDAR_MAX_MONTHS_AHEAD:
            raise ValidationFailed(
                f"months_ahead must be between 0 and {settings.CALENDAR_MAX_MONTHS_AHEAD}",
                details={"months_ahead": months_ahead},
            )
        first, last = calendar_range(start_date, months_ahead)

        try:
            windows = await self.repo.list_windows(professional_id)
            blocked = {b.blocked_date for b in await self.repo.list_blocked_dates(professional_id, first, last)}
            booked = await self.repo.active_counts_by_date(professional_id, first, last)
        except SQLAlchemyError:
            logger.exception(f"Failed to build calendar for professional {professional_id} from {first}")
            return {}

        capacity: dict[int, int] = defaultdict(int)
        for w in windows:
            capacity[w.day_of_week] += slots_per_window(w.start_time, w.end_time, w.slot_duration_minutes)

        out: dict[date, DayAvailability] = {}
        day = first
        while day <= last:
            if day in blocked:
                out[day] = DayAvailability(DayStatus.BLOCKED, 0)
            else:
                out[day] = classify_day(capacity[day.weekday()], booked.get(day, 0))
            day += timedelta(days=1)
        return out
