import hashlib
import logging
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from vetcore.platform.ports.booking_lock import BookingLockPort

log = logging.getLogger("lock.postgres")

def advisory_key(key: str) -> int:
    digest = hashlib.blake2b(key.encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)

class PostgresAdvisoryLocks(BookingLockPort):
    # pg_advisory_xact_lock is released by PostgreSQL at COMMIT/ROLLBACK
    @asynccontextmanager
    async def hold(self, session: AsyncSession, key: str):
        await session.execute(text("SELECT pg_advisory_xact_lock(:k)"), {"k": advisory_key(key)})
        log.debug(f"advisory lock taken key={key}")
        yield
