"""
Pydantic schemas for booking requests and masked booking views
"""
import datetime as dt
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from uuid import UUID

from soro.models.booking import Modality


# ============================================================================
# Request Schemas
# ============================================================================

class BookingCreateRequest(BaseModel):
    professional_id: UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    modality: Modality
    concern: str = Field(..., min_length=1, max_length=2000)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator('modality', mode='before')
    @classmethod
    def normalize_modality(cls, v):
        # Accepts "Video" / "Audio" as well
        return v.lower() if isinstance(v, str) else v


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RescheduleRequest(BaseModel):
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    reason: Optional[str] = Field(None, max_length=500)


# ============================================================================
# Response Schemas
# ============================================================================

class BookingResponse(BaseModel):
    """A booking as one party sees it; counterpart is already masked"""
    id: UUID
    date: str
    start_time: str
    end_time: str
    modality: str
    status: str
    counterpart: str
    counterpart_id: str
    anonymous: bool
    meeting_link: Optional[str] = None
    meeting_password: Optional[str] = None


class BookingDetailResponse(BookingResponse):
    concern: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    rescheduled_from_id: Optional[UUID] = None
    reminder_sent: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PageInfo(BaseModel):
    skip: int
    limit: int
    total_pages: int


class BookingListResponse(BaseModel):
    total_bookings: int
    page: PageInfo
    bookings: List[BookingResponse]
