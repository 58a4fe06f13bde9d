import asyncio
import uuid
import pytest
from vetcore.core.errors import ValidationFailed, NotFound
from vetcore.core.db import SessionLocal
from vetcore.core.timeutils import local_now
from vetcore.modules.appointments.models import AppointmentStatus, LostReason
from vetcore.modules.appointments.repository import AppointmentRepository
from vetcore.modules.credits.models import CreditStatus, TransactionType
from vetcore.modules.credits.repository import CreditRepository
from vetcore.modules.credits.service import CreditService, consumption_event, is_low
from vetcore.modules.notifications.service import NotificationEvent


async def test_missing_ledger_reads_as_depleted(session, factory):
    prof = await factory.professional()
    check = await CreditService(session).check_credits(prof.id)
    assert (check.has_credits, check.remaining, check.status) == (False, 0, CreditStatus.DEPLETED)


async def test_consume_until_depleted(session, factory):
    prof = await factory.professional()
    await factory.credits(prof.id, total=2)
    service = CreditService(session)

    assert await service.consume_credit(prof.id) is True
    assert await service.consume_credit(prof.id) is True
    assert await service.consume_credit(prof.id) is False
    await session.commit()

    check = await service.check_credits(prof.id)
    assert (check.has_credits, check.remaining, check.status) == (False, 0, CreditStatus.DEPLETED)
    txs = await service.list_transactions(prof.id)
    assert [t.amount for t in txs] == [-1, -1]
    assert all(t.transaction_type == TransactionType.CONSUMPTION for t in txs)


async def test_suspended_ledger_refuses_consumption(session, factory):
    prof = await factory.professional()
    await factory.credits(prof.id, total=5, suspended=True)
    service = CreditService(session)

    check = await service.check_credits(prof.id)
    assert check.has_credits is False and check.status == CreditStatus.SUSPENDED and check.remaining == 5
    assert await service.consume_credit(prof.id) is False

    await service.set_suspended(prof.id, False)
    assert await service.consume_credit(prof.id) is True


async def test_consumption_rolls_back_with_the_transaction(session, factory):
    prof = await factory.professional()
    await factory.credits(prof.id, total=1)
    service = CreditService(session)

    assert await service.consume_credit(prof.id)
    await session.rollback()

    check = await service.check_credits(prof.id)
    assert check.remaining == 1
    assert list(await service.list_transactions(prof.id)) == []


async def test_add_credits_creates_ledger_and_reconciles(session, factory, notifier, sender):
    prof = await factory.professional()
    service = CreditService(session, notifier)

    assert await service.add_credits(prof.id, 3, "Pacote inicial") is True
    assert await service.consume_credit(prof.id)
    await session.commit()
    await service.add_credits(prof.id, 2)

    repo = CreditRepository(session)
    row = await repo.get(prof.id)
    assert (row.total_credits, row.used_credits) == (5, 1)
    assert await repo.ledger_balance(prof.id) == row.total_credits - row.used_credits
    # first grant reactivated a ledger that had nothing left
    assert [e[1] for e in sender.events()] == [NotificationEvent.CREDITS_REACTIVATED.value]


async def test_add_credits_notifies_reactivation_when_depleted(session, factory, notifier, sender):
    prof = await factory.professional()
    await factory.credits(prof.id, total=1, used=1)

    await CreditService(session, notifier).add_credits(prof.id, 10)

    assert sender.events(NotificationEvent.CREDITS_REACTIVATED.value)[0][0] == prof.id
    assert sender.events(NotificationEvent.CREDITS_REACTIVATED.value)[0][2] == {"remaining": 10}


async def test_add_credits_validation(session, factory):
    prof = await factory.professional()
    service = CreditService(session)
    with pytest.raises(ValidationFailed):
        await service.add_credits(prof.id, 0)
    with pytest.raises(NotFound):
        await service.add_credits(uuid.uuid4(), 5)


async def test_concurrent_consumers_never_overdraw(db, factory):
    prof = await factory.professional()
    await factory.credits(prof.id, total=3)

    async def attempt():
        async with SessionLocal() as s:
            ok = await CreditService(s).consume_credit(prof.id)
            await s.commit()
            return ok

    results = await asyncio.gather(*(attempt() for _ in range(6)))

    assert results.count(True) == 3
    async with SessionLocal() as s:
        repo = CreditRepository(s)
        row = await repo.get(prof.id)
        assert row.used_credits == row.total_credits == 3
        assert await repo.ledger_balance(prof.id) == -3


async def test_credit_stats(session, factory):
    prof = await factory.professional()
    tutor = await factory.tutor()
    await factory.credits(prof.id, total=10, used=8)
    today = local_now().date()
    await factory.appointment(tutor.id, prof.id, today, status=AppointmentStatus.CONFIRMED)
    await factory.appointment(tutor.id, prof.id, today, status=AppointmentStatus.COMPLETED)
    await factory.appointment(tutor.id, prof.id, today, status=AppointmentStatus.CANCELLED)
    await AppointmentRepository(session).record_lost(
        tutor_id=tutor.id, professional_id=prof.id, service_id=None,
        attempted_date=today, reason=LostReason.NO_CREDITS_AVAILABLE,
    )
    await session.commit()

    stats = await CreditService(session).credit_stats(prof.id)

    assert (stats.total, stats.used, stats.remaining) == (10, 8, 2)
    assert stats.status == CreditStatus.ACTIVE and stats.is_low is True
    assert stats.confirmed_appointments == 2
    assert stats.lost_clients == 1


def test_low_credit_thresholds():
    assert is_low(3) and is_low(1)
    assert not is_low(0) and not is_low(4)
    assert consumption_event(3) == NotificationEvent.CREDITS_LOW
    assert consumption_event(0) == NotificationEvent.CREDITS_DEPLETED
    assert consumption_event(2) is None


async def test_concurrent_first_grants_share_one_ledger(factory):
    prof = await factory.professional()

    async def grant():
        async with SessionLocal() as s:
            return await CreditService(s).add_credits(prof.id, 5)

    assert await asyncio.gather(grant(), grant()) == [True, True]

    async with SessionLocal() as s:
        repo = CreditRepository(s)
        row = await repo.get(prof.id)
        assert (row.total_credits, row.used_credits) == (10, 0)
        assert await repo.ledger_balance(prof.id) == 10
        assert len(await repo.list_transactions(prof.id)) == 2


async def test_suspension_creates_missing_ledger(session, factory):
    prof = await factory.professional()
    check = await CreditService(session).set_suspended(prof.id, True)
    assert (check.has_credits, check.remaining) == (False, 0)
    row = await CreditRepository(session).get(prof.id)
    assert row.suspended is True and row.total_credits == 0
