from vetcore.platform.ports.cooldown_cache import CooldownCachePort
from vetcore.core.redis import redis_manager

class RedisCooldownCache(CooldownCachePort):
    def __init__(self, redis=None, prefix: str = "cooldown:"):
        self.redis = redis or redis_manager.client()
        self.prefix = prefix

    async def try_mark(self, key: str, ttl_seconds: float) -> bool:
        # SET NX PX: one round trip decides which caller owns the window
        acquired = await self.redis.set(self.prefix + key, "1", nx=True, px=max(int(ttl_seconds * 1000), 1))
        return bool(acquired)
