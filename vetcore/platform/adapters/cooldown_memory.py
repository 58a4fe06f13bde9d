import time
from vetcore.platform.ports.cooldown_cache import CooldownCachePort

class InMemoryCooldownCache(CooldownCachePort):
    """Per-instance TTL map; share state across instances with the Redis adapter."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._expires: dict[str, float] = {}

    async def try_mark(self, key: str, ttl_seconds: float) -> bool:
        # no await between the check and the write, so callers on one loop cannot interleave
        now = self._clock()
        expires = self._expires.get(key)
        if expires is not None and now < expires:
            return False
        self._expires[key] = now + ttl_seconds
        return True

    def clear(self) -> None:
        self._expires.clear()
