import enum
import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, ForeignKey, Boolean
from vetcore.core.base import Base, TimestampedMixin, AppendOnlyMixin, enum_column

class VerificationStatus(str, enum.Enum):
    NOT_VERIFIED = "not_verified"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"

class VerificationAction(str, enum.Enum):
    VERIFY = "verify"
    REJECT = "reject"
    RESET = "reset"
    REVIEW = "review"

class DocumentType(str, enum.Enum):
    RG = "rg"
    CNH = "cnh"
    CRMV = "crmv"
    CNPJ_CARD = "cnpj_card"

# Owned by the document-review subsystem; read here by the eligibility predicate
class Document(Base, TimestampedMixin):
    profile_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    document_type: Mapped[DocumentType] = mapped_column(enum_column(DocumentType, 16))
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)

class VerificationLog(Base, AppendOnlyMixin):
    __tablename__ = "verification_log"
    profile_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    action: Mapped[VerificationAction] = mapped_column(enum_column(VerificationAction, 16))
    old_status: Mapped[VerificationStatus | None] = mapped_column(enum_column(VerificationStatus), nullable=True)
    new_status: Mapped[VerificationStatus] = mapped_column(enum_column(VerificationStatus))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_by: Mapped[uuid.UUID] = mapped_column()
