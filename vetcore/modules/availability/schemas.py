import uuid
from datetime import date, time, datetime
from pydantic import BaseModel, Field, model_validator
from vetcore.core.timeutils import on_minute
from vetcore.modules.availability.models import LocationType

class WindowCreate(BaseModel):
    professional_id: uuid.UUID
    day_of_week: int = Field(ge=0, le=6)  # 0=Monday
    start_time: time
    end_time: time
    location_type: LocationType = LocationType.CLINIC
    slot_duration_minutes: int = Field(default=30, ge=5, le=240)

    @model_validator(mode="after")
    def _check_interval(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if not (on_minute(self.start_time) and on_minute(self.end_time)):
            raise ValueError("window bounds must fall on a whole minute")
        return self

class WindowOut(WindowCreate):
    id: uuid.UUID
    created_at: datetime
    class Config: from_attributes = True

class BlockedDateCreate(BaseModel):
    professional_id: uuid.UUID
    blocked_date: date
    reason: str | None = Field(default=None, max_length=255)

class BlockedDateOut(BlockedDateCreate):
    id: uuid.UUID
    created_at: datetime
    class Config: from_attributes = True

class SlotOut(BaseModel):
    slot_start: time
    slot_end: time
    location_type: LocationType
    class Config: from_attributes = True
