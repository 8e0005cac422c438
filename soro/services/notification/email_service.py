# ===== soro/services/notification/email_service.py =====
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Dict
import logging

from soro.config.settings import settings
from soro.services.notification.templates import render

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Create and return SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(to_email: str, subject: str, plain_text: str) -> bool:
        """
        Send a plain-text email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            plain_text: Message body

        Returns:
            bool: True if email sent successfully
        """
        msg = MIMEMultipart()
        msg['Subject'] = subject
        msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg['To'] = to_email
        msg.attach(MIMEText(plain_text, 'plain'))

        server = EmailService._get_smtp_connection()
        try:
            server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())
        finally:
            server.quit()

        logger.info(f"Email sent successfully to {to_email}")
        return True

    @staticmethod
    def send_booking_notification(to_email: str, template_key: str, params: Dict[str, Any]) -> bool:
        """Render a booking notification template and mail it"""
        subject, body = render(template_key, params)
        return EmailService.send_email(to_email=to_email, subject=subject, plain_text=body)
