# ===== soro/services/notification/notification_service.py =====
from typing import Iterable, List, Tuple
from uuid import UUID
import logging

from soro.models.booking import Booking
from soro.models.user import UserRole
from soro.services.identity.identity_mask import build_notification_params
from soro.services.notification.dispatchers import NotificationDispatcher

logger = logging.getLogger(__name__)

Recipient = Tuple[UUID, str]


def both_parties(booking: Booking) -> List[Recipient]:
    return [
        (booking.client_id, UserRole.CLIENT.value),
        (booking.professional_id, UserRole.PROFESSIONAL.value),
    ]


def professional_only(booking: Booking) -> List[Recipient]:
    return [(booking.professional_id, UserRole.PROFESSIONAL.value)]


class TransitionNotifier:
    """
    Single hook through which every booking transition reaches the dispatcher.

    Payloads are always produced by the identity mask for the recipient's
    role. Must only be called once the transition is committed; delivery
    failures are logged and never propagate.
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    def notify_transition(self, booking: Booking, template_key: str, recipients: Iterable[Recipient]) -> int:
        """
        Dispatch `template_key` to each (recipient_id, role)

        Returns:
            int: number of notifications handed to the dispatcher successfully
        """
        delivered = 0
        for recipient_id, role in recipients:
            try:
                params = build_notification_params(booking, role)
                self.dispatcher.notify(recipient_id, template_key, params)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Failed to dispatch {template_key} for booking {booking.id} to {recipient_id}: {e}"
                )
        return delivered
