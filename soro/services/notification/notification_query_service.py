# ============================================================================
# soro/services/notification/notification_query_service.py
# In-app inbox: listing, unread count and read markers
# ============================================================================
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.orm import Session

from soro.core.exceptions import ForbiddenError, NotFoundError
from soro.core.principal import Principal
from soro.models.notification import Notification
import logging

logger = logging.getLogger(__name__)


class NotificationQueryService:
    """A user's stored notifications"""

    @staticmethod
    def list_notifications(
            db: Session,
            principal: Principal,
            unread_only: bool = False,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Newest first, with the unread count alongside the page"""
        query = db.query(Notification).filter(Notification.recipient_id == principal.id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))

        total = query.count()
        notifications = query.order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()

        return {
            "total_notifications": total,
            "unread_count": NotificationQueryService.unread_count(db, principal),
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "notifications": [NotificationQueryService.serialize(n) for n in notifications]
        }

    @staticmethod
    def unread_count(db: Session, principal: Principal) -> int:
        return db.query(Notification).filter(
            Notification.recipient_id == principal.id,
            Notification.is_read.is_(False)
        ).count()

    @staticmethod
    def mark_read(db: Session, principal: Principal, notification_id: UUID) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: no such notification
            ForbiddenError: notification belongs to someone else
        """
        notification = db.query(Notification).filter(Notification.id == notification_id).first()
        if not notification:
            raise NotFoundError("Notification not found", {"notification_id": str(notification_id)})
        if notification.recipient_id != principal.id:
            raise ForbiddenError("Not your notification", {"notification_id": str(notification_id)})

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(notification)

        return NotificationQueryService.serialize(notification)

    @staticmethod
    def mark_all_read(db: Session, principal: Principal) -> int:
        """Returns how many notifications were marked"""
        updated = db.query(Notification).filter(
            Notification.recipient_id == principal.id,
            Notification.is_read.is_(False)
        ).update(
            {"is_read": True, "read_at": datetime.now(timezone.utc)},
            synchronize_session=False
        )
        db.commit()

        logger.info(f"Marked {updated} notification(s) read for {principal.id}")
        return updated

    @staticmethod
    def serialize(notification: Notification) -> Dict[str, Any]:
        return {
            "id": str(notification.id),
            "booking_id": str(notification.booking_id) if notification.booking_id else None,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "data": notification.data or {},
            "is_read": notification.is_read,
            "read_at": notification.read_at.isoformat() if notification.read_at else None,
            "created_at": notification.created_at.isoformat() if notification.created_at else None,
        }
