import json
import logging
import uuid
from vetcore.platform.ports.notification_sender import NotificationSenderPort

log = logging.getLogger("notify.log")

class LogNotificationSender(NotificationSenderPort):
    async def send(self, recipient_profile_id: uuid.UUID, event_type: str, payload: dict) -> None:
        log.info(f"[LOG NOTIFY] to={recipient_profile_id} event={event_type} payload={json.dumps(payload, default=str)}")
