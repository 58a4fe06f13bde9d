from datetime import time, timedelta
import pytest
from sqlalchemy import select
from vetcore.core.errors import ConfirmationExpired, NotFound, ValidationFailed
from vetcore.core.timeutils import now_utc, local_now
from vetcore.modules.appointments.models import Appointment, AppointmentStatus, AppointmentConfirmation
from vetcore.modules.appointments.service import AppointmentService
from vetcore.modules.appointments.sweeps import SchedulingSweeps, AUTO_CANCEL_REASON
from vetcore.modules.notifications.service import NotificationEvent


@pytest.fixture
def sweeps(session, notifier, locks):
    return SchedulingSweeps(session, notifier, AppointmentService(session, notifier, locks))


@pytest.fixture
async def pair(factory):
    return await factory.professional(), await factory.tutor()


async def appointment_in(factory, pair, now, hours, status=AppointmentStatus.CONFIRMED, **kw):
    prof, tutor = pair
    start = (local_now(now) + timedelta(hours=hours)).replace(second=0, microsecond=0)
    end = start + timedelta(minutes=30)
    return await factory.appointment(tutor.id, prof.id, start.date(), start.time(), end.time(), status=status, **kw)


async def statuses(session):
    rows = (await session.execute(select(Appointment).execution_options(populate_existing=True))).scalars().all()
    return {a.id: a.status for a in rows}


async def test_auto_cancel_is_idempotent(session, factory, pair, monday, sweeps, sender):
    prof, tutor = pair
    now = now_utc()
    stale = await factory.appointment(tutor.id, prof.id, monday, created_at=now - timedelta(hours=25))
    fresh = await factory.appointment(tutor.id, prof.id, monday, status=AppointmentStatus.PENDING,
                                      start=time(10), end=time(10, 30))
    started = await factory.appointment(tutor.id, prof.id, local_now(now).date() - timedelta(days=1))
    old_confirmed = await factory.appointment(tutor.id, prof.id, monday, status=AppointmentStatus.CONFIRMED,
                                              created_at=now - timedelta(days=3))

    assert await sweeps.auto_cancel_stale(now) == 2
    after_first = await statuses(session)
    assert after_first[stale.id] == after_first[started.id] == AppointmentStatus.CANCELLED
    assert after_first[fresh.id] == AppointmentStatus.PENDING
    assert after_first[old_confirmed.id] == AppointmentStatus.CONFIRMED

    assert await sweeps.auto_cancel_stale(now) == 0
    assert await statuses(session) == after_first

    cancelled = await session.get(Appointment, stale.id, populate_existing=True)
    assert cancelled.cancellation_reason == AUTO_CANCEL_REASON
    assert len(sender.events(NotificationEvent.APPOINTMENT_CANCELLED.value)) == 4  # tutor and professional for each


async def test_confirmation_requests_are_issued_once(session, factory, pair, sweeps, sender):
    now = now_utc()
    soon = await appointment_in(factory, pair, now, 10, status=AppointmentStatus.PENDING)
    await appointment_in(factory, pair, now, 30)

    assert await sweeps.issue_confirmation_requests(now) == 1
    assert await sweeps.issue_confirmation_requests(now) == 0

    rows = (await session.execute(select(AppointmentConfirmation))).scalars().all()
    assert [(r.appointment_id, r.confirmation_type) for r in rows] == [(soon.id, "24h")]
    recipient, _, payload = sender.events(NotificationEvent.CONFIRMATION_REQUEST.value)[0]
    assert recipient == soon.tutor_id
    assert payload["confirmation_token"] == rows[0].confirmation_token


async def test_reminders_are_sent_once_for_confirmed_only(session, factory, pair, sweeps, sender):
    now = now_utc()
    confirmed = await appointment_in(factory, pair, now, 1)
    await appointment_in(factory, pair, now, 1.5, status=AppointmentStatus.PENDING)
    await appointment_in(factory, pair, now, 5)

    assert await sweeps.send_reminders(now) == 1
    assert await sweeps.send_reminders(now) == 0

    row = await session.get(Appointment, confirmed.id, populate_existing=True)
    assert row.reminder_sent_at is not None
    assert {r for r, _, _ in sender.events(NotificationEvent.REMINDER.value)} == {confirmed.tutor_id, confirmed.professional_id}


async def test_tutor_confirms_through_token(session, factory, pair, sweeps, sender):
    now = now_utc()
    appt = await appointment_in(factory, pair, now, 10, status=AppointmentStatus.PENDING)
    await sweeps.issue_confirmation_requests(now)
    token = sender.events(NotificationEvent.CONFIRMATION_REQUEST.value)[0][2]["confirmation_token"]

    outcome = await sweeps.respond_to_confirmation(token, "confirm", now=now)
    assert outcome.already_processed is False
    assert outcome.status == AppointmentStatus.CONFIRMED

    again = await sweeps.respond_to_confirmation(token, "reschedule", now=now)
    assert again.already_processed is True
    assert again.status == AppointmentStatus.CONFIRMED
    assert (await session.get(Appointment, appt.id, populate_existing=True)).status == AppointmentStatus.CONFIRMED


async def test_reschedule_request_notifies_professional(session, factory, pair, sweeps, sender):
    now = now_utc()
    appt = await appointment_in(factory, pair, now, 10)
    await sweeps.issue_confirmation_requests(now)
    token = sender.events(NotificationEvent.CONFIRMATION_REQUEST.value)[0][2]["confirmation_token"]

    outcome = await sweeps.respond_to_confirmation(token, "reschedule", now=now)

    assert outcome.already_processed is False and outcome.status == AppointmentStatus.CONFIRMED
    recipient, _, _ = sender.events(NotificationEvent.RESCHEDULE_REQUESTED.value)[0]
    assert recipient == appt.professional_id


async def test_confirmation_token_errors(session, factory, pair, sweeps, sender):
    now = now_utc()
    await appointment_in(factory, pair, now, 10)
    await sweeps.issue_confirmation_requests(now)
    token = sender.events(NotificationEvent.CONFIRMATION_REQUEST.value)[0][2]["confirmation_token"]

    with pytest.raises(ConfirmationExpired):
        await sweeps.respond_to_confirmation(token, "confirm", now=now + timedelta(hours=73))
    with pytest.raises(NotFound):
        await sweeps.respond_to_confirmation("not-a-real-token", "confirm", now=now)
    with pytest.raises(ValidationFailed):
        await sweeps.respond_to_confirmation(token, "maybe", now=now)


async def test_run_all_reports_counts(factory, pair, monday, sweeps):
    now = now_utc()
    prof, tutor = pair
    await factory.appointment(tutor.id, prof.id, monday, created_at=now - timedelta(hours=30))

    counts = await sweeps.run_all(now)

    assert counts["auto_cancelled"] == 1
    assert set(counts) == {"auto_cancelled", "confirmations", "reminders"}
