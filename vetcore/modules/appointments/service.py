import logging
import uuid
from datetime import date, time
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.base import utcnow
from vetcore.core.errors import (
    ValidationFailed, NotFound, NotAuthorized, SlotUnavailable, InvalidTransition,
    NoCreditsAvailable, ProfessionalInactive,
)
from vetcore.core.security import SYSTEM_ACTOR_ID
from vetcore.core.timeutils import local_now, on_minute
from vetcore.platform.ports.booking_lock import BookingLockPort
from vetcore.modules.appointments.models import Appointment, AppointmentStatus, LostReason
from vetcore.modules.appointments.repository import AppointmentRepository
from vetcore.modules.appointments.transitions import can_transition, event_for
from vetcore.modules.availability.models import LocationType
from vetcore.modules.availability.service import AvailabilityService
from vetcore.modules.audit.service import AuditService
from vetcore.modules.credits.service import CreditService, consumption_event
from vetcore.modules.directory.repository import ProfileRepository
from vetcore.modules.notifications.service import Notifier, NotificationEvent

logger = logging.getLogger(__name__)

def booking_lock_key(professional_id: uuid.UUID, on: date) -> str:
    return f"booking:{professional_id}:{on.isoformat()}"

def appointment_payload(appt: Appointment, **extra) -> dict:
    payload = {
        "appointment_id": appt.id,
        "status": appt.status,
        "appointment_date": appt.appointment_date,
        "start_time": appt.start_time,
        "end_time": appt.end_time,
        "location_type": appt.location_type,
    }
    payload.update(extra)
    return payload

class AppointmentService:
    def __init__(self, session: AsyncSession, notifier: Notifier, locks: BookingLockPort):
        self.session = session
        self.appts = AppointmentRepository(session)
        self.notifier = notifier
        self.locks = locks

    # ---- create ----

    async def create(
        self,
        *,
        tutor_id: uuid.UUID,
        professional_id: uuid.UUID,
        pet_id: uuid.UUID | None,
        appointment_date: date,
        start_time: time,
        end_time: time,
        location_type: LocationType | str,
        service_id: uuid.UUID | None = None,
        location_address: str | None = None,
        tutor_notes: str | None = None,
        price: Decimal | None = None,
    ) -> Appointment:
        """Admit a new booking request.

        Runs validation first, then, under the (professional, date) booking lock:
        professional is active, slot is still free, one credit is consumed, the
        appointment is inserted. Capacity rejections leave a LostAppointment row.
        Notifications go out only after the commit.
        """
        location_type = self._validate_request(pet_id, appointment_date, start_time, end_time, location_type, price)

        try:
            async with self.locks.hold(self.session, booking_lock_key(professional_id, appointment_date)):
                try:
                    appt, remaining = await self._admit(
                        tutor_id=tutor_id, professional_id=professional_id, pet_id=pet_id,
                        appointment_date=appointment_date, start_time=start_time, end_time=end_time,
                        location_type=location_type, service_id=service_id,
                        location_address=location_address, tutor_notes=tutor_notes, price=price,
                    )
                except Exception:
                    await self.session.rollback()
                    raise
        except NoCreditsAvailable:
            await self.notifier.notify(professional_id, NotificationEvent.LOST_CLIENT, {
                "tutor_id": tutor_id,
                "attempted_date": appointment_date,
                "reason": LostReason.NO_CREDITS_AVAILABLE,
            })
            raise

        logger.info(f"Appointment {appt.id} created for professional {professional_id} on {appointment_date} {start_time}")
        await self.notifier.notify(professional_id, NotificationEvent.NEW_APPOINTMENT, appointment_payload(appt, tutor_id=tutor_id))
        low = consumption_event(remaining)
        if low is not None:
            await self.notifier.notify(professional_id, low, {"remaining": remaining})
        return appt

    def _validate_request(self, pet_id, appointment_date, start_time, end_time, location_type, price) -> LocationType:
        if pet_id is None:
            raise ValidationFailed("pet_id is required")
        if end_time <= start_time:
            raise ValidationFailed("end_time must be after start_time",
                                   details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()})
        if not (on_minute(start_time) and on_minute(end_time)):
            raise ValidationFailed("start_time and end_time must fall on a whole minute",
                                   details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()})
        if appointment_date < local_now().date():
            raise ValidationFailed("appointment_date is in the past", details={"appointment_date": appointment_date.isoformat()})
        try:
            location_type = LocationType(location_type)
        except ValueError:
            raise ValidationFailed(f"unknown location_type: {location_type}")
        if price is not None and price < 0:
            raise ValidationFailed("price must not be negative")
        return location_type

    async def _admit(self, *, tutor_id, professional_id, appointment_date, start_time, end_time, location_type, service_id, **rest) -> tuple[Appointment, int]:
        prof = await ProfileRepository(self.session).get(professional_id)
        if prof is None:
            raise NotFound("Professional not found")
        if not prof.is_professional or not prof.is_active:
            await self.appts.record_lost(
                tutor_id=tutor_id, professional_id=professional_id, service_id=service_id,
                attempted_date=appointment_date, reason=LostReason.PROFESSIONAL_INACTIVE,
            )
            await self.session.commit()
            raise ProfessionalInactive("Professional is not accepting appointments",
                                       details={"reason": LostReason.PROFESSIONAL_INACTIVE.value})

        available = await AvailabilityService(self.session).is_bookable(
            professional_id, appointment_date, start_time, end_time, location_type,
        )
        if not available:
            raise SlotUnavailable("Requested time is no longer available", details={
                "appointment_date": appointment_date.isoformat(),
                "start_time": start_time.isoformat(),
                "end_time": end_time.isoformat(),
            })

        remaining = await CreditService(self.session).consume(professional_id)
        if remaining is None:
            await self.appts.record_lost(
                tutor_id=tutor_id, professional_id=professional_id, service_id=service_id,
                attempted_date=appointment_date, reason=LostReason.NO_CREDITS_AVAILABLE,
            )
            await self.session.commit()
            logger.warning(f"Booking for professional {professional_id} on {appointment_date} refused: no credits")
            raise NoCreditsAvailable("Professional has no credits available",
                                     details={"reason": LostReason.NO_CREDITS_AVAILABLE.value})

        appt = await self.appts.create(
            tutor_id=tutor_id, professional_id=professional_id, service_id=service_id,
            appointment_date=appointment_date, start_time=start_time, end_time=end_time,
            location_type=location_type, status=AppointmentStatus.PENDING, **rest,
        )
        await AuditService(self.session).record(tutor_id, "appointment.create", "appointment", appt.id, {
            "professional_id": professional_id,
            "appointment_date": appointment_date,
            "start_time": start_time,
            "end_time": end_time,
            "credits_remaining": remaining,
        })
        await self.session.commit()
        return appt, remaining

    # ---- status ----

    async def change_status(
        self,
        appointment_id: uuid.UUID,
        new_status: AppointmentStatus | str,
        actor_id: uuid.UUID,
        notes: str | None = None,
        is_admin: bool = False,
    ) -> Appointment:
        try:
            new_status = AppointmentStatus(new_status)
        except ValueError:
            raise ValidationFailed(f"unknown status: {new_status}")

        appt = await self.appts.get(appointment_id)
        if appt is None:
            raise NotFound("Appointment not found")

        is_tutor = actor_id == appt.tutor_id
        is_professional = actor_id == appt.professional_id
        privileged = is_admin or actor_id == SYSTEM_ACTOR_ID
        if not (privileged or is_tutor or is_professional):
            raise NotAuthorized("Only the appointment's participants can change its status")
        if is_tutor and not (privileged or is_professional) and new_status != AppointmentStatus.CANCELLED:
            raise NotAuthorized("Tutors can only cancel appointments")

        old_status = appt.status
        if not can_transition(old_status, new_status):
            raise InvalidTransition(
                f"Cannot move appointment from {old_status.value} to {new_status.value}",
                details={"from": old_status.value, "to": new_status.value},
            )

        now = utcnow()
        extra = {}
        if new_status == AppointmentStatus.CONFIRMED:
            extra["confirmed_at"] = now
        elif new_status == AppointmentStatus.CANCELLED:
            extra["cancelled_at"] = now
            extra["cancellation_reason"] = notes

        if not await self.appts.compare_and_set_status(appointment_id, old_status, new_status, **extra):
            await self.session.rollback()
            raise InvalidTransition(
                "Appointment status changed concurrently",
                details={"from": old_status.value, "to": new_status.value},
            )
        await AuditService(self.session).record(actor_id, "appointment.status", "appointment", appointment_id, {
            "from": old_status, "to": new_status, "notes": notes,
        })
        await self.session.commit()
        logger.info(f"Appointment {appointment_id}: {old_status.value} -> {new_status.value} by {actor_id}")

        appt = await self.appts.get(appointment_id)
        if privileged:
            recipients = [appt.tutor_id, appt.professional_id]
        elif is_tutor:
            recipients = [appt.professional_id]
        else:
            recipients = [appt.tutor_id]
        payload = appointment_payload(appt, previous_status=old_status, reason=notes)
        for recipient in recipients:
            await self.notifier.notify(recipient, event_for(new_status), payload)
        return appt

    # ---- reads ----

    async def get(self, appointment_id: uuid.UUID, actor_id: uuid.UUID, is_admin: bool = False) -> Appointment:
        appt = await self.appts.get(appointment_id)
        if appt is None:
            raise NotFound("Appointment not found")
        if not is_admin and actor_id not in (appt.tutor_id, appt.professional_id):
            raise NotAuthorized("Not a participant of this appointment")
        return appt

    async def list_for(self, actor_id: uuid.UUID, *, role: str | None = None, status: AppointmentStatus | None = None, limit: int = 50, offset: int = 0):
        return await self.appts.list_for_actor(actor_id, role=role, status=status, limit=limit, offset=offset)
