# ===== soro/services/meeting/jitsi_service.py =====
from datetime import datetime
from typing import Optional
import logging
import secrets

from soro.config.settings import get_settings
from soro.services.meeting.base import MeetingDetails, MeetingProvisioner

logger = logging.getLogger(__name__)

# No look-alike characters (0/O, 1/l/I)
PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
PASSWORD_LENGTH = 6
ROOM_ID_DIGITS = 11


class JitsiMeetingProvisioner(MeetingProvisioner):
    """Generates public Jitsi rooms locally; no network call involved"""

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or get_settings().JITSI_BASE_URL).rstrip("/")

    def provision(self, title: str, duration_minutes: int, start: datetime) -> MeetingDetails:
        room_id = self._room_id()
        details = MeetingDetails(
            join_url=f"{self.base_url}/soro-session-{room_id}",
            password=self._password(),
            meeting_id=room_id,
        )
        logger.info(f"Generated Jitsi room {room_id} for '{title}' at {start} ({duration_minutes} min)")
        return details

    @staticmethod
    def _room_id() -> str:
        # Leading digit never zero so the id keeps its length as an integer
        return str(secrets.randbelow(9 * 10 ** (ROOM_ID_DIGITS - 1)) + 10 ** (ROOM_ID_DIGITS - 1))

    @staticmethod
    def _password() -> str:
        return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(PASSWORD_LENGTH))
