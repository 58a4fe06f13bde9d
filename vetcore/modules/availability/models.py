import enum
import uuid
from datetime import date, time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Date, Time, ForeignKey, UniqueConstraint, CheckConstraint
from vetcore.core.base import Base, TimestampedMixin, enum_column

class LocationType(str, enum.Enum):
    CLINIC = "clinic"
    HOME_VISIT = "home_visit"
    BOTH = "both"

    def accepts(self, other: "LocationType") -> bool:
        """``both`` on either side matches anything."""
        return self == other or LocationType.BOTH in (self, other)

# Recurring weekly schedule: day_of_week 0=Mon..6=Sun
class AvailabilityWindow(Base, TimestampedMixin):
    __tablename__ = "availability_window"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_window_day_of_week"),
        CheckConstraint("end_time > start_time", name="ck_window_interval"),
    )

    professional_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    day_of_week: Mapped[int] = mapped_column(Integer)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    location_type: Mapped[LocationType] = mapped_column(enum_column(LocationType, 16), default=LocationType.CLINIC)
    slot_duration_minutes: Mapped[int] = mapped_column(Integer, default=30)

# Whole-day exception; wins over every window on that date
class BlockedDate(Base, TimestampedMixin):
    __tablename__ = "blocked_date"
    __table_args__ = (UniqueConstraint("professional_id", "blocked_date", name="uq_blocked_date"),)

    professional_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    blocked_date: Mapped[date] = mapped_column(Date)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
