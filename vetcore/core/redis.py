from redis import asyncio as aioredis
from vetcore.core.config import settings


class RedisManager:
    def __init__(self):
        self.redis = None

    async def connect(self):
        """Connect to Redis (called on FastAPI startup when REDIS_URL is set)."""
        if not settings.REDIS_URL:
            return
        self.redis = await aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()

    def client(self):
        if self.redis is None:
            if not settings.REDIS_URL:
                raise RuntimeError("REDIS_URL not configured")
            self.redis = aioredis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        return self.redis

redis_manager = RedisManager()
