"""
Pydantic schemas for the in-app notification inbox
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from uuid import UUID

from soro.schemas.booking import PageInfo


class NotificationResponse(BaseModel):
    id: UUID
    booking_id: Optional[UUID] = None
    type: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    read_at: Optional[str] = None
    created_at: Optional[str] = None


class NotificationListResponse(BaseModel):
    total_notifications: int
    unread_count: int
    page: PageInfo
    notifications: List[NotificationResponse]


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int
