import os
import tempfile

# settings are read at import time; point them at a throwaway SQLite file first
_DB_DIR = tempfile.mkdtemp(prefix="vetcore-tests-")
os.environ["ENV"] = "test"
os.environ["POSTGRES_DSN"] = f"sqlite+aiosqlite:///{_DB_DIR}/vetcore.db"
os.environ["SWEEP_ENABLED"] = "false"
os.environ["BOOKING_LOCK_PROVIDER"] = "local"
os.environ["NOTIFICATION_PROVIDER"] = "log"
os.environ["COOLDOWN_PROVIDER"] = "memory"

import uuid
from datetime import date, time, timedelta
import pytest
import pytest_asyncio
from jose import jwt

from vetcore.core.base import Base
from vetcore.core.config import settings
from vetcore.core.db import engine, SessionLocal
from vetcore.core.timeutils import local_now
from vetcore.platform.provider_registry import ProviderRegistry
from vetcore.platform.adapters.cooldown_memory import InMemoryCooldownCache
from vetcore.platform.adapters.lock_local import LocalBookingLocks
from vetcore.modules.directory.models import Profile, UserType
from vetcore.modules.availability.models import AvailabilityWindow, BlockedDate, LocationType
from vetcore.modules.appointments.models import Appointment, AppointmentStatus
from vetcore.modules.credits.models import ProfessionalCredit, CreditTransaction  # noqa: F401
from vetcore.modules.verification.models import Document, DocumentType, VerificationStatus
from vetcore.modules.audit.models import AuditEvent  # noqa: F401
from vetcore.modules.notifications.service import Notifier


class RecordingSender:
    def __init__(self):
        self.sent: list[tuple[uuid.UUID, str, dict]] = []

    async def send(self, recipient_profile_id, event_type, payload):
        self.sent.append((recipient_profile_id, event_type, payload))

    def events(self, event_type: str | None = None):
        return [s for s in self.sent if event_type is None or s[1] == event_type]


class FailingSender:
    async def send(self, recipient_profile_id, event_type, payload):
        raise RuntimeError("delivery service down")


def next_weekday(weekday: int, *, weeks_ahead: int = 1) -> date:
    """A date strictly in the future (local zone) falling on ``weekday``."""
    today = local_now().date()
    days = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days + 7 * (weeks_ahead - 1))


@pytest_asyncio.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with SessionLocal() as s:
        yield s


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def notifier(sender):
    return Notifier(sender)


@pytest.fixture
def cooldown():
    return InMemoryCooldownCache()


@pytest.fixture
def locks():
    return LocalBookingLocks()


@pytest.fixture
def providers(sender, cooldown, locks):
    return ProviderRegistry(sender=sender, cooldown=cooldown, locks=locks)


@pytest.fixture
def monday():
    return next_weekday(0)


class Factory:
    """Seeds rows and hands them back detached, so a service rollback on the
    shared session cannot expire them under the test."""

    def __init__(self, session):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        self.session.expunge(obj)
        return obj

    async def profile(self, user_type=UserType.PROFISSIONAL, *, is_active=True, name="Dra. Ana Souza") -> Profile:
        p = Profile(full_name=name, email=f"{uuid.uuid4().hex[:8]}@example.com", user_type=user_type, is_active=is_active)
        return await self._save(p)

    async def professional(self, **kw) -> Profile:
        return await self.profile(UserType.PROFISSIONAL, **kw)

    async def tutor(self, **kw) -> Profile:
        return await self.profile(UserType.TUTOR, name="Carlos Lima", **kw)

    async def window(self, professional_id, day_of_week=0, start=time(9, 0), end=time(10, 0),
                     location_type=LocationType.CLINIC, slot_duration_minutes=30) -> AvailabilityWindow:
        w = AvailabilityWindow(professional_id=professional_id, day_of_week=day_of_week, start_time=start,
                               end_time=end, location_type=location_type, slot_duration_minutes=slot_duration_minutes)
        return await self._save(w)

    async def block(self, professional_id, on: date, reason="Feriado") -> BlockedDate:
        b = BlockedDate(professional_id=professional_id, blocked_date=on, reason=reason)
        return await self._save(b)

    async def credits(self, professional_id, total: int, used: int = 0, suspended: bool = False) -> ProfessionalCredit:
        row = ProfessionalCredit(professional_id=professional_id, total_credits=total, used_credits=used, suspended=suspended)
        return await self._save(row)

    async def appointment(self, tutor_id, professional_id, on: date, start=time(9, 0), end=time(9, 30),
                          status=AppointmentStatus.PENDING, **kw) -> Appointment:
        a = Appointment(tutor_id=tutor_id, professional_id=professional_id, pet_id=uuid.uuid4(),
                        appointment_date=on, start_time=start, end_time=end,
                        location_type=kw.pop("location_type", LocationType.CLINIC), status=status, **kw)
        return await self._save(a)

    async def document(self, profile_id, document_type: DocumentType, is_verified=True) -> Document:
        d = Document(profile_id=profile_id, document_type=document_type, is_verified=is_verified)
        return await self._save(d)


@pytest.fixture
def factory(session):
    return Factory(session)


def make_token(profile_id: uuid.UUID, roles: list[str] | None = None) -> str:
    claims = {"sub": str(profile_id), "roles": roles or []}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def auth(profile_id: uuid.UUID, *, admin: bool = False) -> dict:
    roles = [settings.ADMIN_ROLE] if admin else []
    return {"Authorization": f"Bearer {make_token(profile_id, roles)}"}


@pytest_asyncio.fixture
async def client(db, providers):
    from httpx import AsyncClient, ASGITransport
    from vetcore.main import app
    app.state.providers = providers
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
