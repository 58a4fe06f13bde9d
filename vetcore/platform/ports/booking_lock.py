from typing import AsyncContextManager, Protocol, runtime_checkable
from sqlalchemy.ext.asyncio import AsyncSession

@runtime_checkable
class BookingLockPort(Protocol):
    def hold(self, session: AsyncSession, key: str) -> AsyncContextManager[None]:
        """Serialize writers for ``key`` until the session's transaction ends."""
        ...
