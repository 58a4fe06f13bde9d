import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, JSON
from vetcore.core.base import Base, AppendOnlyMixin

class AuditEvent(Base, AppendOnlyMixin):
    __tablename__ = "audit_event"
    # who
    actor_id: Mapped[uuid.UUID] = mapped_column(index=True)
    # what happened
    action: Mapped[str] = mapped_column(String(48))          # appointment.create | appointment.status | credits.grant | ...
    resource_type: Mapped[str] = mapped_column(String(48))   # appointment | credits
    resource_id: Mapped[str] = mapped_column(String(64), index=True)  # UUID as string
    detail: Mapped[dict | None] = mapped_column(JSON, nullable=True)
