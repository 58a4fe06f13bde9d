import enum
import uuid
from datetime import date, time, datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Date, Time, TIMESTAMP, Numeric, ForeignKey, Index
from vetcore.core.base import Base, TimestampedMixin, AppendOnlyMixin, enum_column
from vetcore.modules.availability.models import LocationType

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

# only these occupy the calendar and count against availability
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

class LostReason(str, enum.Enum):
    NO_CREDITS_AVAILABLE = "NO_CREDITS_AVAILABLE"
    PROFESSIONAL_INACTIVE = "PROFESSIONAL_INACTIVE"

class Appointment(Base, TimestampedMixin):
    __table_args__ = (
        Index("ix_appointment_professional_date", "professional_id", "appointment_date"),
    )

    tutor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    professional_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"))
    service_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)  # services catalog lives outside the engine
    pet_id: Mapped[uuid.UUID] = mapped_column()

    appointment_date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    location_type: Mapped[LocationType] = mapped_column(enum_column(LocationType, 16))
    location_address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[AppointmentStatus] = mapped_column(enum_column(AppointmentStatus), default=AppointmentStatus.PENDING)
    tutor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    professional_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)


# Demand that could not be admitted; feeds capacity reporting
class LostAppointment(Base, AppendOnlyMixin):
    __tablename__ = "lost_appointment"
    tutor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"))
    professional_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    service_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    attempted_date: Mapped[date] = mapped_column(Date)
    reason: Mapped[LostReason] = mapped_column(enum_column(LostReason, 32))


class AppointmentConfirmation(Base, AppendOnlyMixin):
    __tablename__ = "appointment_confirmation"
    appointment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("appointment.id"), index=True)
    confirmation_token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    confirmation_type: Mapped[str] = mapped_column(String(16), default="24h")
    confirmed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    reschedule_requested_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
