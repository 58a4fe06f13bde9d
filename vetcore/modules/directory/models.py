import enum
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy import String, Text, TIMESTAMP
from vetcore.core.base import Base, TimestampedMixin, enum_column
from vetcore.modules.verification.models import VerificationStatus

class UserType(str, enum.Enum):
    TUTOR = "tutor"
    PROFISSIONAL = "profissional"
    EMPRESA = "empresa"

PROFESSIONAL_TYPES = (UserType.PROFISSIONAL, UserType.EMPRESA)

class Profile(Base, TimestampedMixin):
    full_name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160), nullable=True)
    user_type: Mapped[UserType] = mapped_column(enum_column(UserType, 16), index=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    verification_status: Mapped[VerificationStatus] = mapped_column(
        enum_column(VerificationStatus), default=VerificationStatus.NOT_VERIFIED, index=True
    )
    verified_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    verified_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # mirror of verification_status; written only by apply_verification_status
    is_verified: Mapped[bool] = mapped_column(default=False)

    @property
    def is_professional(self) -> bool:
        return self.user_type in PROFESSIONAL_TYPES

    @validates("is_verified")
    def _guard_is_verified(self, key, value):
        current = self.verification_status or VerificationStatus.NOT_VERIFIED
        if bool(value) != (current == VerificationStatus.VERIFIED):
            raise ValueError("is_verified mirrors verification_status and cannot be set independently")
        return bool(value)

    def apply_verification_status(self, status: VerificationStatus, *, actor_id: uuid.UUID, notes: str | None, at: datetime) -> VerificationStatus | None:
        """Single write path for the verification state. Returns the previous status."""
        previous = self.verification_status
        self.verification_status = status
        self.is_verified = status == VerificationStatus.VERIFIED
        if status == VerificationStatus.VERIFIED:
            self.verified_at = at
            self.verified_by = actor_id
        else:
            self.verified_at = None
            self.verified_by = None
        self.verification_notes = notes
        return previous
