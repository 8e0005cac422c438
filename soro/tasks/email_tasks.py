# ===== soro/tasks/email_tasks.py =====
from typing import Any, Dict
from uuid import UUID
import logging

from soro.config.celery_config import celery_app
from soro.config.database import SessionLocal
from soro.models.user import User
from soro.services.notification.email_service import EmailService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_notification_email(
        self,
        recipient_id: str,
        template_key: str,
        params: Dict[str, Any]
):
    """
    Deliver one booking notification by email

    Args:
        recipient_id: User id of the recipient
        template_key: Notification template to render
        params: Masked booking parameters
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.id == UUID(recipient_id)).first()
        if not user or not user.email:
            logger.warning(f"No email address for recipient {recipient_id}, dropping {template_key}")
            return {"status": "skipped", "recipient_id": recipient_id}
        email = user.email
    finally:
        db.close()

    try:
        logger.info(f"Sending {template_key} email for booking {params.get('booking_id')}")
        EmailService.send_booking_notification(to_email=email, template_key=template_key, params=params)
        return {"status": "success", "recipient_id": recipient_id, "template": template_key}

    except Exception as exc:
        logger.error(f"Failed to send {template_key} email to {recipient_id}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
