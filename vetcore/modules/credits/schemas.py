import uuid
from datetime import datetime
from pydantic import BaseModel, Field
from vetcore.modules.credits.models import CreditStatus, TransactionType

class CreditCheckOut(BaseModel):
    has_credits: bool
    remaining: int
    status: CreditStatus
    class Config: from_attributes = True

class CreditStatsOut(BaseModel):
    total: int
    used: int
    remaining: int
    status: CreditStatus
    is_low: bool
    confirmed_appointments: int
    lost_clients: int
    class Config: from_attributes = True

class CreditGrant(BaseModel):
    amount: int = Field(gt=0)
    description: str | None = Field(default=None, max_length=255)

class SuspensionChange(BaseModel):
    suspended: bool

class CreditTransactionOut(BaseModel):
    id: uuid.UUID
    professional_id: uuid.UUID
    amount: int
    transaction_type: TransactionType
    description: str | None = None
    created_at: datetime
    class Config: from_attributes = True
