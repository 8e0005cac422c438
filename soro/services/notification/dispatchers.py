from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from soro.models.notification import Notification
from soro.services.notification.templates import render
from soro.tasks.email_tasks import send_notification_email

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """Delivers a rendered notification to one recipient"""

    @abstractmethod
    def notify(self, recipient_id: UUID, template_key: str, params: Dict[str, Any]) -> None:
        ...


class EmailNotificationDispatcher(NotificationDispatcher):
    """Hands delivery to the Celery email task so a slow SMTP server never blocks a transition"""

    def notify(self, recipient_id: UUID, template_key: str, params: Dict[str, Any]) -> None:
        send_notification_email.delay(str(recipient_id), template_key, params)
        logger.debug(f"Queued {template_key} email for {recipient_id}")


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Writes notifications to the log; used in development"""

    def notify(self, recipient_id: UUID, template_key: str, params: Dict[str, Any]) -> None:
        logger.info(f"Notification {template_key} -> {recipient_id}: {params}")


class InAppNotificationDispatcher(NotificationDispatcher):
    """
    Stores the notification for the recipient's inbox.

    Only the masked params and the text rendered from them are persisted.
    Runs after the transition commit, so it commits on its own.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(self, recipient_id: UUID, template_key: str, params: Dict[str, Any]) -> None:
        title, message = render(template_key, params)
        booking_id = params.get("booking_id")

        notification = Notification(
            recipient_id=recipient_id,
            booking_id=UUID(booking_id) if booking_id else None,
            type=template_key,
            title=title,
            message=message,
            data=dict(params),
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug(f"Stored {template_key} notification for {recipient_id}")


class CompositeNotificationDispatcher(NotificationDispatcher):
    """
    Fans one notification out to several channels.

    A failing channel is logged and does not stop the others; the call only
    fails when every channel failed.
    """

    def __init__(self, dispatchers: Sequence[NotificationDispatcher]):
        self.dispatchers = list(dispatchers)

    def notify(self, recipient_id: UUID, template_key: str, params: Dict[str, Any]) -> None:
        errors = []
        for dispatcher in self.dispatchers:
            try:
                dispatcher.notify(recipient_id, template_key, params)
            except Exception as e:
                errors.append(e)
                logger.warning(
                    f"{type(dispatcher).__name__} failed for {template_key} to {recipient_id}: {e}"
                )

        if errors and len(errors) == len(self.dispatchers):
            raise errors[-1]
