from datetime import datetime, time

import pytest

from soro.core.exceptions import InvalidTransitionError
from soro.core.principal import Principal
from soro.models import Booking, BookingStatus
from soro.services.booking.booking_service import AUTO_CANCEL_REASON
from soro.services.scheduler.lifecycle_scheduler import STALE_PENDING_PASS
from soro.services.scheduler.pass_lease import InProcessPassLease, RedisPassLease

from conftest import MONDAY


@pytest.fixture
def parties(professional, client, open_week):
    open_week(professional)
    return Principal.from_user(client), Principal.from_user(professional)


def _pending(booking_service, parties, professional, start=time(10, 0), end=time(10, 30)) -> Booking:
    client_principal, _ = parties
    return booking_service.create(client_principal, professional.id, MONDAY, start, end, 'video', 'stress')


def _confirmed(booking_service, parties, professional) -> Booking:
    booking = _pending(booking_service, parties, professional)
    return booking_service.confirm(booking.id, parties[1])


def _status(db, booking_id) -> str:
    db.expire_all()
    return db.query(Booking).filter(Booking.id == booking_id).one().status


# ---------------------------------------------------------------------------
# reminders
# ---------------------------------------------------------------------------

def test_reminder_sent_once_within_lookahead(db, scheduler, booking_service, dispatcher, parties, professional) -> None:
    booking = _confirmed(booking_service, parties, professional)
    now = datetime(2026, 10, 26, 9, 15)

    first = scheduler.run_reminder_pass(now)
    second = scheduler.run_reminder_pass(now)

    assert (first.processed, second.processed) == (1, 0)
    assert dispatcher.templates().count('session_reminder') == 2
    db.expire_all()
    assert db.query(Booking).filter(Booking.id == booking.id).one().reminder_sent is True


def test_reminder_claim_is_single_winner(scheduler, booking_service, dispatcher, parties, professional) -> None:
    booking = _confirmed(booking_service, parties, professional)

    assert scheduler.send_reminder(booking.id) is True
    assert scheduler.send_reminder(booking.id) is False
    assert dispatcher.templates().count('session_reminder') == 2


@pytest.mark.parametrize('now', [datetime(2026, 10, 26, 8, 59), datetime(2026, 10, 26, 10, 1)])
def test_no_reminder_outside_window(scheduler, booking_service, dispatcher, parties, professional, now) -> None:
    _confirmed(booking_service, parties, professional)

    result = scheduler.run_reminder_pass(now)

    assert result.processed == 0
    assert 'session_reminder' not in dispatcher.templates()


def test_pending_bookings_get_no_reminder(scheduler, booking_service, dispatcher, parties, professional) -> None:
    _pending(booking_service, parties, professional)

    scheduler.run_reminder_pass(datetime(2026, 10, 26, 9, 30))

    assert 'session_reminder' not in dispatcher.templates()


# ---------------------------------------------------------------------------
# completion
# ---------------------------------------------------------------------------

def test_completion_waits_for_grace_period(db, scheduler, booking_service, dispatcher, parties, professional) -> None:
    booking = _confirmed(booking_service, parties, professional)

    # Ends 10:30, grace 60 minutes
    assert scheduler.run_completion_pass(datetime(2026, 10, 26, 11, 30)).processed == 0
    assert _status(db, booking.id) == BookingStatus.CONFIRMED

    result = scheduler.run_completion_pass(datetime(2026, 10, 26, 11, 31))

    assert result.processed == 1
    assert _status(db, booking.id) == BookingStatus.COMPLETED
    assert dispatcher.templates()[-2:] == ['booking_completed', 'booking_completed']


def test_completion_ignores_cancelled(db, scheduler, booking_service, parties, professional) -> None:
    booking = _confirmed(booking_service, parties, professional)
    booking_service.cancel(booking.id, parties[0])

    result = scheduler.run_completion_pass(datetime(2026, 10, 27, 9, 0))

    assert result.processed == 0
    assert _status(db, booking.id) == BookingStatus.CANCELLED


# ---------------------------------------------------------------------------
# stale pending
# ---------------------------------------------------------------------------

def test_stale_pending_is_cancelled_at_start_time(db, scheduler, booking_service, dispatcher, parties, professional) -> None:
    booking = _pending(booking_service, parties, professional)

    assert scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 9, 59)).processed == 0

    result = scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 10, 0))

    db.expire_all()
    stored = db.query(Booking).filter(Booking.id == booking.id).one()
    assert result.processed == 1
    assert stored.status == BookingStatus.CANCELLED
    assert stored.cancellation_reason == AUTO_CANCEL_REASON
    assert dispatcher.templates()[-2:] == ['booking_auto_cancelled', 'booking_auto_cancelled']


def test_stale_pass_leaves_confirmed_alone(db, scheduler, booking_service, parties, professional) -> None:
    booking = _confirmed(booking_service, parties, professional)

    scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 10, 5))

    assert _status(db, booking.id) == BookingStatus.CONFIRMED


def test_one_failing_booking_does_not_stop_the_pass(
        db, scheduler, booking_service, parties, professional, monkeypatch
) -> None:
    first = _pending(booking_service, parties, professional, time(9, 0), time(10, 0))
    second = _pending(booking_service, parties, professional, time(10, 0), time(10, 30))
    original_auto_cancel = booking_service.auto_cancel

    def flaky(booking_id, principal):
        if booking_id == first.id:
            raise RuntimeError('database hiccup')
        return original_auto_cancel(booking_id, principal)

    monkeypatch.setattr(booking_service, 'auto_cancel', flaky)

    result = scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 11, 0))

    assert (result.processed, result.failed) == (1, 1)
    assert _status(db, first.id) == BookingStatus.PENDING
    assert _status(db, second.id) == BookingStatus.CANCELLED


def test_run_all_reports_each_pass(scheduler) -> None:
    results = scheduler.run_all(datetime(2026, 10, 26, 12, 0))

    assert [r.name for r in results] == ['reminders', 'completion', 'stale_pending']
    assert all(r.ran for r in results)


# ---------------------------------------------------------------------------
# confirm vs stale sweep
# ---------------------------------------------------------------------------

def test_sweep_during_confirm_wins_and_confirm_fails(
        db, scheduler, booking_service, provisioner, dispatcher, parties, professional
) -> None:
    booking = _pending(booking_service, parties, professional)
    dispatcher.sent.clear()
    provisioner.during_provision = lambda: scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 10, 1))

    with pytest.raises(InvalidTransitionError):
        booking_service.confirm(booking.id, parties[1])

    assert _status(db, booking.id) == BookingStatus.CANCELLED
    assert dispatcher.templates() == ['booking_auto_cancelled', 'booking_auto_cancelled']
    # The meeting made for the losing confirm is given back
    assert provisioner.released == ['room-1']


def test_confirm_before_sweep_makes_sweep_skip(db, scheduler, booking_service, dispatcher, parties, professional) -> None:
    booking = _pending(booking_service, parties, professional)
    now = datetime(2026, 10, 26, 10, 1)
    candidates = scheduler.stale_pending_ids(now)

    booking_service.confirm(booking.id, parties[1])

    assert candidates == [booking.id]
    assert scheduler.expire_pending(booking.id) is False
    assert _status(db, booking.id) == BookingStatus.CONFIRMED
    assert 'booking_auto_cancelled' not in dispatcher.templates()


# ---------------------------------------------------------------------------
# single flight
# ---------------------------------------------------------------------------

def test_pass_without_lease_returns_immediately(db, scheduler, booking_service, lease, parties, professional) -> None:
    booking = _pending(booking_service, parties, professional)
    token = lease.acquire(STALE_PENDING_PASS)

    result = scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 11, 0))

    assert result.ran is False
    assert _status(db, booking.id) == BookingStatus.PENDING

    lease.release(STALE_PENDING_PASS, token)
    assert scheduler.run_stale_pending_pass(datetime(2026, 10, 26, 11, 0)).processed == 1


def test_in_process_lease_is_per_pass() -> None:
    lease = InProcessPassLease()

    with lease.hold('reminders') as first:
        with lease.hold('reminders') as second, lease.hold('completion') as other:
            assert (first, second, other) == (True, False, True)

    with lease.hold('reminders') as again:
        assert again is True


class FakeRedis:
    """Just enough of SET NX EX and the token-checked release"""

    def __init__(self) -> None:
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


def test_redis_lease_single_flight_and_token_release() -> None:
    redis_client = FakeRedis()
    first = RedisPassLease(redis_client, ttl_seconds=60)
    second = RedisPassLease(redis_client, ttl_seconds=60)

    token = first.acquire('completion')
    assert token is not None
    assert second.acquire('completion') is None
    assert 'scheduler:pass:completion:lease' in redis_client.store

    # A stale token cannot release someone else's lease
    second.release('completion', 'not-the-token')
    assert second.acquire('completion') is None

    first.release('completion', token)
    assert second.acquire('completion') is not None
