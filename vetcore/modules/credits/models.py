import enum
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, TIMESTAMP, ForeignKey, CheckConstraint
from vetcore.core.base import Base, TimestampedMixin, AppendOnlyMixin, enum_column

class CreditStatus(str, enum.Enum):
    ACTIVE = "active"
    DEPLETED = "depleted"
    SUSPENDED = "suspended"

class TransactionType(str, enum.Enum):
    CONSUMPTION = "consumption"
    GRANT = "grant"

def derive_status(remaining: int, suspended: bool) -> CreditStatus:
    if suspended:
        return CreditStatus.SUSPENDED
    if remaining <= 0:
        return CreditStatus.DEPLETED
    return CreditStatus.ACTIVE

class ProfessionalCredit(Base, TimestampedMixin):
    __tablename__ = "professional_credit"
    __table_args__ = (
        CheckConstraint("used_credits >= 0", name="ck_credit_used_non_negative"),
        CheckConstraint("used_credits <= total_credits", name="ck_credit_no_overdraw"),
    )

    professional_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), unique=True)
    total_credits: Mapped[int] = mapped_column(Integer, default=0)
    used_credits: Mapped[int] = mapped_column(Integer, default=0)
    suspended: Mapped[bool] = mapped_column(Boolean, default=False)
    last_credit_update: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    @property
    def remaining(self) -> int:
        return self.total_credits - self.used_credits

    @property
    def status(self) -> CreditStatus:
        # derived on read, never stored
        return derive_status(self.remaining, self.suspended)

# Ledger: sum(amount) per professional == total_credits - used_credits
class CreditTransaction(Base, AppendOnlyMixin):
    __tablename__ = "credit_transaction"
    professional_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profile.id"), index=True)
    amount: Mapped[int] = mapped_column(Integer)
    transaction_type: Mapped[TransactionType] = mapped_column(enum_column(TransactionType, 16))
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
