import asyncio
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.core.config import settings
from vetcore.core.db import SessionLocal
from vetcore.core.errors import InvalidTransition, NotFound, ValidationFailed, ConfirmationExpired
from vetcore.core.security import SYSTEM_ACTOR_ID
from vetcore.core.timeutils import now_utc, local_now, local_zone, as_aware
from vetcore.platform.provider_registry import ProviderRegistry
from vetcore.modules.appointments.models import Appointment, AppointmentStatus, ACTIVE_STATUSES
from vetcore.modules.appointments.repository import AppointmentRepository, ConfirmationRepository
from vetcore.modules.appointments.service import AppointmentService, appointment_payload
from vetcore.modules.notifications.service import Notifier, NotificationEvent

log = logging.getLogger("appointments.sweeps")

AUTO_CANCEL_REASON = "auto_cancelled: confirmation deadline exceeded"
CONFIRMATION_TYPE_24H = "24h"
CONFIRMATION_ACTIONS = ("confirm", "reschedule")

@dataclass(frozen=True)
class ConfirmationOutcome:
    appointment_id: uuid.UUID
    action: str
    already_processed: bool
    status: AppointmentStatus

def _starts_at(appt: Appointment) -> datetime:
    return datetime.combine(appt.appointment_date, appt.start_time, tzinfo=local_zone())

class SchedulingSweeps:
    """Time-driven jobs over appointments. Each one is safe to run repeatedly."""

    def __init__(self, session: AsyncSession, notifier: Notifier, lifecycle: AppointmentService):
        self.session = session
        self.notifier = notifier
        self.lifecycle = lifecycle
        self.appts = AppointmentRepository(session)
        self.confirmations = ConfirmationRepository(session)

    async def _upcoming(self, now: datetime, lead_hours: int, statuses) -> list[Appointment]:
        start = local_now(now)
        horizon = start + timedelta(hours=lead_hours)
        rows = await self.appts.starting_between_dates(start.date(), horizon.date(), statuses)
        return [a for a in rows if start <= _starts_at(a) <= horizon]

    async def auto_cancel_stale(self, now: datetime | None = None) -> int:
        now = now or now_utc()
        cutoff = now - timedelta(hours=settings.PENDING_CONFIRMATION_TIMEOUT_HOURS)
        local = local_now(now)
        ids = await self.appts.stale_pending_ids(cutoff, local.date(), local.time().replace(microsecond=0))
        cancelled = 0
        for appointment_id in ids:
            try:
                await self.lifecycle.change_status(appointment_id, AppointmentStatus.CANCELLED, SYSTEM_ACTOR_ID, notes=AUTO_CANCEL_REASON)
                cancelled += 1
            except InvalidTransition:
                # confirmed or cancelled by someone else since the scan
                log.info(f"auto-cancel skipped for {appointment_id}: status already changed")
        if cancelled:
            log.info(f"auto-cancelled {cancelled} stale pending appointments")
        return cancelled

    async def issue_confirmation_requests(self, now: datetime | None = None) -> int:
        now = now or now_utc()
        issued = 0
        for appt in await self._upcoming(now, settings.CONFIRMATION_LEAD_HOURS, ACTIVE_STATUSES):
            if await self.confirmations.exists_for(appt.id, CONFIRMATION_TYPE_24H):
                continue
            token = secrets.token_urlsafe(32)
            await self.confirmations.create(appt.id, token, CONFIRMATION_TYPE_24H)
            await self.session.commit()
            issued += 1
            await self.notifier.notify(appt.tutor_id, NotificationEvent.CONFIRMATION_REQUEST,
                                       appointment_payload(appt, confirmation_token=token))
        if issued:
            log.info(f"issued {issued} confirmation requests")
        return issued

    async def send_reminders(self, now: datetime | None = None) -> int:
        now = now or now_utc()
        sent = 0
        for appt in await self._upcoming(now, settings.REMINDER_LEAD_HOURS, [AppointmentStatus.CONFIRMED]):
            if appt.reminder_sent_at is not None:
                continue
            if not await self.appts.mark_reminder_sent(appt.id, now):
                continue
            await self.session.commit()
            sent += 1
            payload = appointment_payload(appt)
            await self.notifier.notify(appt.tutor_id, NotificationEvent.REMINDER, payload)
            await self.notifier.notify(appt.professional_id, NotificationEvent.REMINDER, payload)
        if sent:
            log.info(f"sent {sent} appointment reminders")
        return sent

    async def respond_to_confirmation(self, token: str, action: str, now: datetime | None = None) -> ConfirmationOutcome:
        if action not in CONFIRMATION_ACTIONS:
            raise ValidationFailed(f"action must be one of {', '.join(CONFIRMATION_ACTIONS)}")
        now = now or now_utc()
        conf = await self.confirmations.get_by_token(token)
        if conf is None:
            raise NotFound("Unknown confirmation token")
        if as_aware(conf.created_at) + timedelta(hours=settings.CONFIRMATION_TOKEN_TTL_HOURS) < now:
            raise ConfirmationExpired("Confirmation link expired; contact the professional to reschedule")

        appt = await self.appts.get(conf.appointment_id)
        if conf.confirmed_at is not None or conf.reschedule_requested_at is not None:
            return ConfirmationOutcome(appt.id, action, True, appt.status)

        field = "confirmed_at" if action == "confirm" else "reschedule_requested_at"
        if not await self.confirmations.stamp(conf.id, **{field: now}):
            await self.session.rollback()
            return ConfirmationOutcome(appt.id, action, True, appt.status)
        await self.session.commit()

        if action == "confirm":
            if appt.status == AppointmentStatus.PENDING:
                try:
                    appt = await self.lifecycle.change_status(appt.id, AppointmentStatus.CONFIRMED, SYSTEM_ACTOR_ID,
                                                              notes="confirmed by tutor")
                except InvalidTransition:
                    appt = await self.appts.get(appt.id)
        else:
            await self.notifier.notify(appt.professional_id, NotificationEvent.RESCHEDULE_REQUESTED,
                                       appointment_payload(appt, tutor_id=appt.tutor_id))
        return ConfirmationOutcome(appt.id, action, False, appt.status)

    async def run_all(self, now: datetime | None = None) -> dict[str, int]:
        now = now or now_utc()
        return {
            "auto_cancelled": await self.auto_cancel_stale(now),
            "confirmations": await self.issue_confirmation_requests(now),
            "reminders": await self.send_reminders(now),
        }

def build_sweeps(session: AsyncSession, providers: ProviderRegistry) -> SchedulingSweeps:
    notifier = Notifier(providers.notification_sender())
    lifecycle = AppointmentService(session, notifier, providers.booking_locks())
    return SchedulingSweeps(session, notifier, lifecycle)

async def run_scheduling_sweeps(providers: ProviderRegistry, interval_seconds: float | None = None):
    interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
    log.info("Scheduling sweeps started, interval=%ss", interval)
    try:
        while True:
            async with SessionLocal() as session:
                try:
                    counts = await build_sweeps(session, providers).run_all()
                    log.debug("Sweep iteration done %s", counts)
                except Exception:
                    log.exception("Sweep iteration failed")
                    await session.rollback()
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        log.info("Scheduling sweeps cancelled; shutting down")
        raise
