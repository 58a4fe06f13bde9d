from fastapi import Request
from vetcore.core.config import settings
from vetcore.platform.ports.notification_sender import NotificationSenderPort
from vetcore.platform.adapters.sender_log import LogNotificationSender
from vetcore.platform.adapters.sender_webhook import WebhookNotificationSender
from vetcore.platform.adapters.sender_redis import RedisStreamNotificationSender
from vetcore.platform.ports.cooldown_cache import CooldownCachePort
from vetcore.platform.adapters.cooldown_memory import InMemoryCooldownCache
from vetcore.platform.adapters.cooldown_redis import RedisCooldownCache
from vetcore.platform.ports.booking_lock import BookingLockPort
from vetcore.platform.adapters.lock_local import LocalBookingLocks
from vetcore.platform.adapters.lock_postgres import PostgresAdvisoryLocks

class ProviderRegistry:
    """Builds adapters from settings. One registry is owned by the app (app.state)."""

    def __init__(
        self,
        sender: NotificationSenderPort | None = None,
        cooldown: CooldownCachePort | None = None,
        locks: BookingLockPort | None = None,
    ):
        self._sender = sender
        self._cooldown = cooldown
        self._locks = locks

    def notification_sender(self) -> NotificationSenderPort:
        if self._sender is None:
            prov = settings.NOTIFICATION_PROVIDER
            if prov == "webhook":
                self._sender = WebhookNotificationSender()
            elif prov == "redis":
                self._sender = RedisStreamNotificationSender()
            else:
                self._sender = LogNotificationSender()
        return self._sender

    def cooldown_cache(self) -> CooldownCachePort:
        if self._cooldown is None:
            if settings.COOLDOWN_PROVIDER == "redis":
                self._cooldown = RedisCooldownCache()
            else:
                self._cooldown = InMemoryCooldownCache()
        return self._cooldown

    def booking_locks(self) -> BookingLockPort:
        if self._locks is None:
            prov = settings.BOOKING_LOCK_PROVIDER
            if prov == "auto":
                prov = "postgres" if settings.POSTGRES_DSN.startswith("postgresql") else "local"
            self._locks = PostgresAdvisoryLocks() if prov == "postgres" else LocalBookingLocks()
        return self._locks

def get_providers(request: Request) -> ProviderRegistry:
    """FastAPI dependency: the registry attached to the running app."""
    return request.app.state.providers
