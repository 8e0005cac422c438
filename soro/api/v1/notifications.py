"""
Notification Routes
The signed-in user's in-app inbox
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID

from soro.config.database import get_db
from soro.core.principal import Principal
from soro.api.dependencies import get_current_principal
from soro.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from soro.services.notification.notification_query_service import NotificationQueryService

router = APIRouter(tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
        unread_only: bool = Query(False),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return NotificationQueryService.list_notifications(
        db, principal, unread_only=unread_only, skip=skip, limit=limit
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return {"count": NotificationQueryService.unread_count(db, principal)}


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return {"updated": NotificationQueryService.mark_all_read(db, principal)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
        notification_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return NotificationQueryService.mark_read(db, principal, notification_id)
