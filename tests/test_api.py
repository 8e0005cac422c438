from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from soro.api.dependencies import create_access_token, get_booking_service
from soro.config.database import get_db
from soro.main import app

from conftest import MONDAY


@pytest.fixture
def api(db, booking_service):
    def _db():
        yield db

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user, **kwargs) -> dict:
    return {'Authorization': f"Bearer {create_access_token({'sub': str(user.id)}, **kwargs)}"}


def _request(professional, start='10:00', end='10:30') -> dict:
    return {
        'professional_id': str(professional.id),
        'date': MONDAY.isoformat(),
        'start_time': start,
        'end_time': end,
        'modality': 'Video',
        'concern': 'exam stress',
    }


def test_requires_bearer_token(api) -> None:
    assert api.get('/api/v1/bookings').status_code in (401, 403)


def test_expired_token_is_rejected(api, client) -> None:
    response = api.get('/api/v1/bookings', headers=auth(client, expires_delta=timedelta(minutes=-1)))

    assert response.status_code == 401


def test_create_booking_returns_masked_detail(api, client, peer_professional, open_week) -> None:
    open_week(peer_professional)

    response = api.post('/api/v1/bookings', json=_request(peer_professional), headers=auth(client))

    assert response.status_code == 201
    body = response.json()
    assert body['status'] == 'pending'
    assert body['modality'] == 'video'
    assert body['anonymous'] is True
    assert body['counterpart'] == f'Peer Counselor (ID: {peer_professional.counselor_id})'
    assert 'Kwame' not in response.text
    assert body['meeting_link'] is None


def test_taken_slot_is_a_conflict(api, client, other_client, professional, open_week) -> None:
    open_week(professional)
    api.post('/api/v1/bookings', json=_request(professional), headers=auth(client))

    response = api.post('/api/v1/bookings', json=_request(professional), headers=auth(other_client))

    assert response.status_code == 409
    assert response.json()['error'] == 'slot_conflict'


def test_confirm_lifecycle_over_http(api, client, professional, open_week, provisioner) -> None:
    open_week(professional)
    booking_id = api.post('/api/v1/bookings', json=_request(professional), headers=auth(client)).json()['id']

    forbidden = api.post(f'/api/v1/bookings/{booking_id}/confirm', headers=auth(client))
    confirmed = api.post(f'/api/v1/bookings/{booking_id}/confirm', headers=auth(professional))
    again = api.post(f'/api/v1/bookings/{booking_id}/confirm', headers=auth(professional))

    assert forbidden.status_code == 403
    assert confirmed.status_code == 200
    assert confirmed.json()['status'] == 'confirmed'
    assert confirmed.json()['meeting_link'] == 'https://meet.example.com/room-1'
    assert again.status_code == 409
    assert again.json()['error'] == 'invalid_transition'
    assert len(provisioner.calls) == 1


def test_provisioning_failure_is_bad_gateway(api, client, professional, open_week, provisioner) -> None:
    from soro.core.exceptions import ProvisioningFailure

    open_week(professional)
    booking_id = api.post('/api/v1/bookings', json=_request(professional), headers=auth(client)).json()['id']
    provisioner.error = ProvisioningFailure('Meeting provider timed out')

    response = api.post(f'/api/v1/bookings/{booking_id}/confirm', headers=auth(professional))

    assert response.status_code == 502
    assert api.get(f'/api/v1/bookings/{booking_id}', headers=auth(client)).json()['status'] == 'pending'


def test_outsider_cannot_read_booking(api, client, other_client, professional, open_week) -> None:
    open_week(professional)
    booking_id = api.post('/api/v1/bookings', json=_request(professional), headers=auth(client)).json()['id']

    assert api.get(f'/api/v1/bookings/{booking_id}', headers=auth(other_client)).status_code == 403


def test_reschedule_and_list(api, client, professional, open_week) -> None:
    open_week(professional)
    booking_id = api.post('/api/v1/bookings', json=_request(professional), headers=auth(client)).json()['id']
    api.post(f'/api/v1/bookings/{booking_id}/confirm', headers=auth(professional))

    by_client = api.post(
        f'/api/v1/bookings/{booking_id}/reschedule',
        json={'date': '2026-10-27', 'start_time': '14:00', 'end_time': '15:00'},
        headers=auth(client),
    )
    response = api.post(
        f'/api/v1/bookings/{booking_id}/reschedule',
        json={'date': '2026-10-27', 'start_time': '14:00', 'end_time': '15:00'},
        headers=auth(professional),
    )
    listing = api.get('/api/v1/bookings', headers=auth(client)).json()
    rescheduled = api.get('/api/v1/bookings?status=rescheduled', headers=auth(client)).json()

    assert by_client.status_code == 403
    assert response.status_code == 201
    assert response.json()['rescheduled_from_id'] == booking_id
    assert listing['total_bookings'] == 2
    assert [b['status'] for b in rescheduled['bookings']] == ['rescheduled']


def test_unknown_status_filter_is_unprocessable(api, client) -> None:
    response = api.get('/api/v1/bookings?status=archived', headers=auth(client))

    assert response.status_code == 422
    assert response.json()['error'] == 'validation_error'


def test_professional_manages_availability(api, professional) -> None:
    initialized = api.post('/api/v1/availability/me/initialize', headers=auth(professional))
    updated = api.put(
        '/api/v1/availability/me/Monday',
        json={'slots': [{'start_time': '09:00', 'end_time': '10:00'}]},
        headers=auth(professional),
    )
    overlapping = api.put(
        '/api/v1/availability/me/Tuesday',
        json={'slots': [{'start_time': '09:00', 'end_time': '10:00'}, {'start_time': '09:30', 'end_time': '10:30'}]},
        headers=auth(professional),
    )

    assert initialized.status_code == 201
    assert initialized.json()['initialized'] is True
    assert len(initialized.json()['days']) == 7
    assert updated.status_code == 200
    assert updated.json()['slots'] == [{'start_time': '09:00:00', 'end_time': '10:00:00'}]
    assert overlapping.status_code == 422


def test_clients_cannot_edit_availability(api, client) -> None:
    assert api.post('/api/v1/availability/me/initialize', headers=auth(client)).status_code == 403


def test_open_slots_and_check(api, client, peer_professional, open_week) -> None:
    open_week(peer_professional)
    api.post('/api/v1/bookings', json=_request(peer_professional), headers=auth(client))

    slots = api.get('/api/v1/availability/slots?from_date=2026-10-25', headers=auth(client)).json()
    check = api.get(
        '/api/v1/availability/check',
        params={'professional_id': str(peer_professional.id), 'date': '2026-10-26',
                'start_time': '10:00', 'end_time': '10:30'},
        headers=auth(client),
    ).json()

    assert [(s['date'], s['start_time']) for s in slots] == [
        ('2026-10-26', '09:00:00'),
        ('2026-10-27', '14:00:00'),
    ]
    assert {s['professional_label'] for s in slots} == {f'Peer Counselor (ID: {peer_professional.counselor_id})'}
    assert check['is_available'] is False


def test_professional_sets_whole_week(api, professional) -> None:
    response = api.put(
        '/api/v1/availability/me',
        json={'days': [
            {'weekday': 'Monday', 'slots': [{'start_time': '09:00', 'end_time': '10:00'}]},
            {'weekday': 'Thursday', 'slots': [{'start_time': '16:00', 'end_time': '17:00'}]},
        ]},
        headers=auth(professional),
    )

    assert response.status_code == 200
    assert [d['weekday'] for d in response.json()['days']] == ['Monday', 'Thursday']


def test_whole_week_update_is_all_or_nothing(api, professional) -> None:
    response = api.put(
        '/api/v1/availability/me',
        json={'days': [
            {'weekday': 'Monday', 'slots': [{'start_time': '09:00', 'end_time': '10:00'}]},
            {'weekday': 'Friday', 'slots': [{'start_time': '10:00', 'end_time': '09:00'}]},
        ]},
        headers=auth(professional),
    )

    assert response.status_code == 422
    assert response.json()['details']['weekday'] == 'Friday'
    assert api.get('/api/v1/availability/me', headers=auth(professional)).json()['initialized'] is False


def test_notification_inbox_endpoints(api, db, client, peer_professional) -> None:
    from soro.services.notification.dispatchers import InAppNotificationDispatcher

    inbox = InAppNotificationDispatcher(db)
    inbox.notify(client.id, 'booking_cancelled', {
        'booking_id': None, 'counterpart': 'Peer Counselor (ID: SC-000002)',
        'date': '2026-10-26', 'start_time': '10:00', 'end_time': '10:30',
    })
    inbox.notify(client.id, 'booking_auto_cancelled', {
        'booking_id': None, 'counterpart': 'Peer Counselor (ID: SC-000002)',
        'date': '2026-10-27', 'start_time': '14:00', 'end_time': '15:00',
    })

    listing = api.get('/api/v1/notifications', headers=auth(client)).json()
    notification_id = listing['notifications'][0]['id']
    marked = api.post(f'/api/v1/notifications/{notification_id}/read', headers=auth(client))
    by_other = api.post(f'/api/v1/notifications/{notification_id}/read', headers=auth(peer_professional))
    count = api.get('/api/v1/notifications/unread-count', headers=auth(client)).json()
    read_all = api.post('/api/v1/notifications/read-all', headers=auth(client)).json()

    assert listing['total_notifications'] == 2
    assert listing['unread_count'] == 2
    assert marked.status_code == 200
    assert marked.json()['is_read'] is True
    assert by_other.status_code == 403
    assert count == {'count': 1}
    assert read_all == {'updated': 1}
    assert api.get('/api/v1/notifications?unread_only=true', headers=auth(client)).json()['notifications'] == []
