from datetime import time

from soro.models import Booking, BookingStatus, UserRole
from soro.services.identity.identity_mask import (
    build_notification_params,
    is_anonymous,
    resolve_display,
)

from conftest import MONDAY


def _booking(db, client, professional, status=BookingStatus.CONFIRMED) -> Booking:
    booking = Booking(
        client_id=client.id,
        professional_id=professional.id,
        date=MONDAY,
        start_time=time(10, 0),
        end_time=time(10, 30),
        modality='video',
        concern='stress',
        status=status.value,
        meeting_link='https://meet.example.com/room-1',
        meeting_password='pw1234',
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def test_regular_booking_shows_real_names(db, client, professional) -> None:
    booking = _booking(db, client, professional)

    assert is_anonymous(booking) is False
    assert resolve_display(booking, UserRole.CLIENT).label == 'Dr. Ada Mensah'
    assert resolve_display(booking, UserRole.PROFESSIONAL).label == 'Esi Owusu'


def test_peer_booking_is_pseudonymous_from_both_sides(db, client, peer_professional) -> None:
    booking = _booking(db, client, peer_professional)

    as_client = resolve_display(booking, UserRole.CLIENT)
    as_counselor = resolve_display(booking, UserRole.PROFESSIONAL)

    assert is_anonymous(booking) is True
    assert as_client.label == f'Peer Counselor (ID: {peer_professional.counselor_id})'
    assert as_client.identifier == peer_professional.counselor_id
    assert as_counselor.label == f'Client (ID: {client.user_id})'
    assert as_counselor.identifier == client.user_id


def test_system_viewer_sees_the_professional_side(db, client, peer_professional) -> None:
    booking = _booking(db, client, peer_professional)

    assert resolve_display(booking, 'system').label.startswith('Peer Counselor')


def test_peer_notification_params_hold_no_true_names(db, client, peer_professional) -> None:
    booking = _booking(db, client, peer_professional)

    for role in (UserRole.CLIENT, UserRole.PROFESSIONAL):
        params = build_notification_params(booking, role)
        rendered = repr(params)
        assert 'Kwame Boateng' not in rendered
        assert 'Esi Owusu' not in rendered
        assert peer_professional.email not in rendered
        assert client.email not in rendered
        assert params['anonymous'] is True


def test_notification_params_contents(db, client, professional) -> None:
    booking = _booking(db, client, professional)

    params = build_notification_params(booking, UserRole.CLIENT)

    assert params['viewer_role'] == 'client'
    assert params['counterpart'] == 'Dr. Ada Mensah'
    assert params['date'] == '2026-10-26'
    assert params['start_time'] == '10:00'
    assert params['end_time'] == '10:30'
    assert params['meeting_link'] == 'https://meet.example.com/room-1'
    assert 'cancellation_reason' not in params


def test_meeting_link_only_for_confirmed_bookings(db, client, professional) -> None:
    booking = _booking(db, client, professional, status=BookingStatus.PENDING)

    assert 'meeting_link' not in build_notification_params(booking, UserRole.PROFESSIONAL)
