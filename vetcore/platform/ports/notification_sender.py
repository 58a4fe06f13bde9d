import uuid
from typing import Protocol, runtime_checkable

@runtime_checkable
class NotificationSenderPort(Protocol):
    async def send(self, recipient_profile_id: uuid.UUID, event_type: str, payload: dict) -> None: ...
