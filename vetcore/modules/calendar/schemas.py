from pydantic import BaseModel
from vetcore.modules.calendar.service import DayStatus

class DayAvailabilityOut(BaseModel):
    status: DayStatus
    remaining_slots: int
    class Config: from_attributes = True
