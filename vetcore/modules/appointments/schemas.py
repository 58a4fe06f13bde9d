import uuid
from datetime import date, time, datetime
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, Field
from vetcore.modules.appointments.models import AppointmentStatus
from vetcore.modules.availability.models import LocationType

class AppointmentCreate(BaseModel):
    professional_id: uuid.UUID
    pet_id: uuid.UUID
    appointment_date: date
    start_time: time
    end_time: time
    location_type: LocationType
    service_id: uuid.UUID | None = None
    location_address: str | None = Field(default=None, max_length=255)
    tutor_notes: str | None = None
    price: Decimal | None = Field(default=None, ge=0)
    # admins may book on behalf of a tutor; everyone else books for themselves
    tutor_id: uuid.UUID | None = None

class AppointmentStatusChange(BaseModel):
    status: AppointmentStatus
    notes: str | None = None

class AppointmentOut(BaseModel):
    id: uuid.UUID
    tutor_id: uuid.UUID
    professional_id: uuid.UUID
    service_id: uuid.UUID | None = None
    pet_id: uuid.UUID
    appointment_date: date
    start_time: time
    end_time: time
    location_type: LocationType
    location_address: str | None = None
    status: AppointmentStatus
    tutor_notes: str | None = None
    professional_notes: str | None = None
    price: Decimal | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    class Config: from_attributes = True

class ConfirmationResponse(BaseModel):
    token: str = Field(min_length=8, max_length=64)
    action: Literal["confirm", "reschedule"]

class ConfirmationOutcomeOut(BaseModel):
    appointment_id: uuid.UUID
    action: str
    already_processed: bool
    status: AppointmentStatus
    class Config: from_attributes = True
