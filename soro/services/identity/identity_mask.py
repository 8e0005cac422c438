# ============================================================================
# soro/services/identity/identity_mask.py
# Decides what each party of a booking may see of the other
# ============================================================================
"""
Identity masking for counseling sessions.

Peer counselors are never disclosed to clients: for any booking whose
professional is a peer counselor both sides only ever see pseudonymous ids,
whoever is looking. Every payload handed to a notification dispatcher is
built here, so a transition cannot reach a dispatcher with raw entities.
"""
from dataclasses import dataclass
from typing import Any, Dict

from soro.models.booking import Booking, BookingStatus
from soro.models.user import User, UserRole


@dataclass(frozen=True)
class DisplayIdentity:
    label: str
    identifier: str


def is_anonymous(booking: Booking) -> bool:
    return bool(booking.professional and booking.professional.is_peer_counselor)


def display_professional(professional: User) -> DisplayIdentity:
    if professional.is_peer_counselor:
        return DisplayIdentity(
            label=f"Peer Counselor (ID: {professional.counselor_id})",
            identifier=professional.counselor_id,
        )
    return DisplayIdentity(label=professional.full_name, identifier=professional.user_id)


def display_client(client: User, anonymous: bool) -> DisplayIdentity:
    if anonymous:
        return DisplayIdentity(label=f"Client (ID: {client.user_id})", identifier=client.user_id)
    return DisplayIdentity(label=client.full_name, identifier=client.user_id)


def resolve_display(booking: Booking, viewer_role: str) -> DisplayIdentity:
    """
    Identity of the counterpart as seen by `viewer_role`.

    A client (or the system acting for one) sees the professional; a
    professional sees the client.
    """
    if viewer_role == UserRole.PROFESSIONAL:
        return display_client(booking.client, is_anonymous(booking))
    return display_professional(booking.professional)


def build_notification_params(booking: Booking, viewer_role: str) -> Dict[str, Any]:
    """The only payload a notification dispatcher ever receives for a booking"""
    counterpart = resolve_display(booking, viewer_role)
    params = {
        "booking_id": str(booking.id),
        "viewer_role": UserRole(viewer_role).value,
        "counterpart": counterpart.label,
        "counterpart_id": counterpart.identifier,
        "anonymous": is_anonymous(booking),
        "date": booking.date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "modality": booking.modality,
        "status": booking.status,
    }
    if booking.status == BookingStatus.CONFIRMED and booking.meeting_link:
        params["meeting_link"] = booking.meeting_link
        params["meeting_password"] = booking.meeting_password
    if booking.cancellation_reason:
        params["cancellation_reason"] = booking.cancellation_reason
    return params
