import logging
import uuid
import httpx
from vetcore.platform.ports.notification_sender import NotificationSenderPort
from vetcore.core.config import settings

log = logging.getLogger("notify.webhook")

class WebhookNotificationSender(NotificationSenderPort):
    """POSTs each notification to an external delivery service (email/push workers)."""

    def __init__(self, url: str | None = None, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.url = url or settings.NOTIFICATION_WEBHOOK_URL
        if not self.url:
            raise RuntimeError("NOTIFICATION_WEBHOOK_URL not configured")
        self.timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS
        self.transport = transport

    async def send(self, recipient_profile_id: uuid.UUID, event_type: str, payload: dict) -> None:
        body = {
            "recipient_profile_id": str(recipient_profile_id),
            "event_type": event_type,
            "payload": payload,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=body)
            response.raise_for_status()
        log.debug(f"[WEBHOOK NOTIFY] to={recipient_profile_id} event={event_type} status={response.status_code}")
