# ===== soro/services/meeting/base.py =====
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence


@dataclass(frozen=True)
class MeetingDetails:
    join_url: str
    password: Optional[str]
    meeting_id: str


class MeetingProvisioner(ABC):
    """Creates the online meeting a confirmed session takes place in"""

    @abstractmethod
    def provision(self, title: str, duration_minutes: int, start: datetime) -> MeetingDetails:
        """
        Create a meeting.

        Raises:
            ProvisioningFailure: provider error or timeout
        """

    def add_participants(self, meeting_id: str, emails: Sequence[str]) -> None:
        """Best-effort follow-up; providers without participant lists do nothing"""
        return None

    def release(self, meeting_id: str) -> None:
        """Best-effort removal of a meeting that will not be used; rooms created on the fly need nothing"""
        return None
