"""
Pydantic schemas for weekly availability and open slots
"""
import datetime as dt
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from uuid import UUID

from soro.models.availability import Weekday


class SlotSchema(BaseModel):
    """A recurring time range on one weekday"""
    model_config = ConfigDict(from_attributes=True)

    start_time: dt.time
    end_time: dt.time


class DayUpdateRequest(BaseModel):
    """Replaces every slot of one weekday"""
    slots: List[SlotSchema] = Field(default_factory=list)
    available: bool = True


class WeekDayUpdate(DayUpdateRequest):
    weekday: Weekday


class WeekUpdateRequest(BaseModel):
    """Replaces the listed weekdays together; unlisted days are left as they are"""
    days: List[WeekDayUpdate] = Field(..., min_length=1, max_length=7)


class DayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    weekday: Weekday
    available: bool
    slots: List[SlotSchema] = Field(default_factory=list)


class WeekResponse(BaseModel):
    professional_id: UUID
    initialized: bool
    days: List[DayResponse]


class OpenSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    professional_id: UUID
    professional_label: str
    weekday: Weekday
    date: dt.date
    start_time: dt.time
    end_time: dt.time


class SlotCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_available: bool
    reason: Optional[str] = None
