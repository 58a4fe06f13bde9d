from typing import Protocol, runtime_checkable

@runtime_checkable
class CooldownCachePort(Protocol):
    async def try_mark(self, key: str, ttl_seconds: float) -> bool:
        """Set ``key`` for ``ttl_seconds`` unless it is already set; True when this call set it."""
        ...
