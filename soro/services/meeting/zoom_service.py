# ===== soro/services/meeting/zoom_service.py =====
from datetime import datetime
from typing import Optional, Sequence
import logging

import httpx

from soro.config.settings import Settings, get_settings
from soro.core.exceptions import ProvisioningFailure
from soro.services.meeting.base import MeetingDetails, MeetingProvisioner

logger = logging.getLogger(__name__)

SCHEDULED_MEETING = 2


class ZoomMeetingProvisioner(MeetingProvisioner):
    """Zoom meetings through a Server-to-Server OAuth app"""

    def __init__(self, settings: Optional[Settings] = None, http_client: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self.http_client = http_client or httpx.Client(
            timeout=self.settings.MEETING_PROVISION_TIMEOUT_SECONDS
        )

    def _get_access_token(self) -> str:
        response = self.http_client.post(
            self.settings.ZOOM_OAUTH_URL,
            data={
                "grant_type": "account_credentials",
                "account_id": self.settings.ZOOM_ACCOUNT_ID,
            },
            auth=(self.settings.ZOOM_CLIENT_ID, self.settings.ZOOM_CLIENT_SECRET),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    def provision(self, title: str, duration_minutes: int, start: datetime) -> MeetingDetails:
        """
        Create a scheduled meeting participants can join before the host

        Args:
            title: Meeting topic
            duration_minutes: Session length
            start: Local wall-clock start of the session

        Returns:
            MeetingDetails: join url, password and Zoom meeting id

        Raises:
            ProvisioningFailure: token or meeting request failed or timed out
        """
        payload = {
            "topic": title,
            "type": SCHEDULED_MEETING,
            "duration": duration_minutes,
            "start_time": start.strftime("%Y-%m-%dT%H:%M:%S"),
            "timezone": self.settings.DEFAULT_TIMEZONE,
            "settings": {
                "join_before_host": True,
                "waiting_room": False,
                "host_video": False,
                "participant_video": False,
                "mute_upon_entry": True,
                "meeting_authentication": False,
                "auto_recording": "none",
                "join_from_desktop": True,
                "join_from_mobile": True,
                "alternative_hosts_email_notification": False,
                "encryption_type": "enhanced_encryption",
                "use_pmi": False,
            },
        }

        try:
            token = self._get_access_token()
            response = self.http_client.post(
                f"{self.settings.ZOOM_API_BASE_URL}/users/me/meetings",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            data = response.json()
            details = MeetingDetails(
                join_url=data["join_url"],
                password=data.get("password"),
                meeting_id=str(data["id"]),
            )
        except httpx.TimeoutException as e:
            logger.error(f"Zoom request timed out: {e}")
            raise ProvisioningFailure("Meeting provider timed out")
        except httpx.HTTPStatusError as e:
            logger.error(f"Zoom API error {e.response.status_code}: {e.response.text}")
            raise ProvisioningFailure(
                "Failed to create Zoom meeting",
                {"status_code": e.response.status_code}
            )
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Failed to create Zoom meeting: {e}")
            raise ProvisioningFailure("Failed to create Zoom meeting")

        logger.info(f"Created Zoom meeting {details.meeting_id} for '{title}'")
        return details

    def add_participants(self, meeting_id: str, emails: Sequence[str]) -> None:
        """Register both parties as alternative hosts; failures are only logged"""
        emails = [e for e in emails if e]
        if not emails:
            return

        try:
            token = self._get_access_token()
            response = self.http_client.patch(
                f"{self.settings.ZOOM_API_BASE_URL}/meetings/{meeting_id}",
                json={
                    "settings": {
                        "alternative_hosts": ",".join(emails),
                        "alternative_hosts_email_notification": True,
                    }
                },
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            logger.info(f"Added {len(emails)} alternative host(s) to Zoom meeting {meeting_id}")
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning(f"Failed to add alternative hosts to Zoom meeting {meeting_id}: {e}")

    def release(self, meeting_id: str) -> None:
        """Delete a meeting nobody will use; failures are only logged"""
        try:
            token = self._get_access_token()
            response = self.http_client.delete(
                f"{self.settings.ZOOM_API_BASE_URL}/meetings/{meeting_id}",
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            logger.info(f"Deleted unused Zoom meeting {meeting_id}")
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning(f"Failed to delete Zoom meeting {meeting_id}: {e}")
