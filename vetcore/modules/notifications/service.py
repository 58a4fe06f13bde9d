import enum
import logging
import uuid
from fastapi.encoders import jsonable_encoder
from vetcore.platform.ports.notification_sender import NotificationSenderPort

log = logging.getLogger("notifications")

class NotificationEvent(str, enum.Enum):
    NEW_APPOINTMENT = "new_appointment"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_COMPLETED = "appointment_completed"
    APPOINTMENT_NO_SHOW = "appointment_no_show"
    CONFIRMATION_REQUEST = "confirmation_request"
    RESCHEDULE_REQUESTED = "reschedule_requested"
    REMINDER = "reminder"
    CREDITS_LOW = "credits_low"
    CREDITS_DEPLETED = "credits_depleted"
    CREDITS_REACTIVATED = "credits_reactivated"
    LOST_CLIENT = "lost_client"
    VERIFICATION_STATUS_CHANGED = "verification_status_changed"


class Notifier:
    """Fire-and-forget dispatch. Call only after the owning transaction committed."""

    def __init__(self, sender: NotificationSenderPort):
        self.sender = sender

    async def notify(self, recipient_id: uuid.UUID, event: NotificationEvent, payload: dict | None = None) -> bool:
        try:
            await self.sender.send(recipient_id, event.value, jsonable_encoder(payload or {}))
            return True
        except Exception:
            log.exception(f"notification {event.value} to {recipient_id} failed")
            return False
