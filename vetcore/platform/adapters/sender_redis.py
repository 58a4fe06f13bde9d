import json
import logging
import uuid
from vetcore.platform.ports.notification_sender import NotificationSenderPort
from vetcore.core.config import settings
from vetcore.core.redis import redis_manager

log = logging.getLogger("notify.redis")

class RedisStreamNotificationSender(NotificationSenderPort):
    def __init__(self, redis=None):
        self.redis = redis or redis_manager.client()
        self.stream = settings.REDIS_STREAM or "vetcore.notifications"

    async def send(self, recipient_profile_id: uuid.UUID, event_type: str, payload: dict) -> None:
        entry = {
            "recipient_profile_id": str(recipient_profile_id),
            "event_type": event_type,
            "payload": json.dumps(payload, default=str),
        }
        await self.redis.xadd(self.stream, entry, maxlen=settings.REDIS_STREAM_MAXLEN, approximate=True)
        log.debug(f"[REDIS NOTIFY] XADD stream={self.stream} to={recipient_profile_id} event={event_type}")
