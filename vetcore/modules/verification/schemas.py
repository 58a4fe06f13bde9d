import uuid
from datetime import datetime
from pydantic import BaseModel
from vetcore.modules.directory.models import UserType
from vetcore.modules.verification.models import VerificationStatus, VerificationAction

class EligibilityOut(BaseModel):
    can_verify: bool
    missing_documents: list[str]
    has_crmv_document: bool
    has_id_document: bool
    class Config: from_attributes = True

class VerificationStatusChange(BaseModel):
    status: VerificationStatus
    notes: str | None = None

class VerificationLogOut(BaseModel):
    id: uuid.UUID
    profile_id: uuid.UUID
    action: VerificationAction
    old_status: VerificationStatus | None = None
    new_status: VerificationStatus
    notes: str | None = None
    performed_by: uuid.UUID
    created_at: datetime
    class Config: from_attributes = True

class PublicProfessionalOut(BaseModel):
    id: uuid.UUID
    full_name: str
    user_type: UserType
    is_verified: bool
    verified_at: datetime | None = None
    class Config: from_attributes = True
