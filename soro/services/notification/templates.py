# ===== soro/services/notification/templates.py =====
"""Plain-text subjects and bodies for booking notifications"""
from typing import Any, Dict, Tuple


class TemplateKey:
    BOOKING_REQUESTED = "booking_requested"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_RESCHEDULED = "booking_rescheduled"
    BOOKING_AUTO_CANCELLED = "booking_auto_cancelled"
    SESSION_REMINDER = "session_reminder"


_TEMPLATES = {
    TemplateKey.BOOKING_REQUESTED: (
        "New session request",
        "{counterpart} requested a {modality} session on {date} from {start_time} to {end_time}.",
    ),
    TemplateKey.BOOKING_CONFIRMED: (
        "Your session is confirmed",
        "Your {modality} session with {counterpart} on {date} from {start_time} to {end_time} is confirmed.",
    ),
    TemplateKey.BOOKING_CANCELLED: (
        "Session cancelled",
        "Your session with {counterpart} on {date} from {start_time} to {end_time} was cancelled.",
    ),
    TemplateKey.BOOKING_COMPLETED: (
        "Session completed",
        "Your session with {counterpart} on {date} has been marked as completed.",
    ),
    TemplateKey.BOOKING_RESCHEDULED: (
        "Session rescheduled",
        "Your session with {counterpart} was moved to {date} from {start_time} to {end_time}. "
        "It will be confirmed shortly.",
    ),
    TemplateKey.BOOKING_AUTO_CANCELLED: (
        "Session request expired",
        "The session request with {counterpart} on {date} at {start_time} was not accepted "
        "before its start time and has been cancelled.",
    ),
    TemplateKey.SESSION_REMINDER: (
        "Upcoming session reminder",
        "Reminder: your {modality} session with {counterpart} starts on {date} at {start_time}.",
    ),
}


def render(template_key: str, params: Dict[str, Any]) -> Tuple[str, str]:
    """
    Render a notification into (subject, body)

    Raises:
        KeyError: unknown template key
    """
    subject, body = _TEMPLATES[template_key]
    body = body.format(**params)

    if params.get("meeting_link"):
        body += f"\n\nJoin link: {params['meeting_link']}"
        if params.get("meeting_password"):
            body += f"\nPassword: {params['meeting_password']}"
    if params.get("cancellation_reason"):
        body += f"\n\nReason: {params['cancellation_reason']}"

    return subject, body
