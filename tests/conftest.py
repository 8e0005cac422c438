import itertools
import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SCHEDULER_LEASE_BACKEND', 'memory')
os.environ.setdefault('NOTIFICATION_BACKEND', 'log')
os.environ.setdefault('MEETING_PROVIDER', 'jitsi')

from soro.config.settings import Settings  # noqa: E402
from soro.models import Base, User, UserRole, Weekday  # noqa: E402
from soro.services.availability.availability_service import AvailabilityService, TimeRange  # noqa: E402
from soro.services.booking.booking_service import BookingService  # noqa: E402
from soro.services.meeting.base import MeetingDetails, MeetingProvisioner  # noqa: E402
from soro.services.notification.dispatchers import NotificationDispatcher  # noqa: E402
from soro.services.notification.notification_service import TransitionNotifier  # noqa: E402
from soro.services.scheduler.lifecycle_scheduler import LifecycleScheduler  # noqa: E402
from soro.services.scheduler.pass_lease import InProcessPassLease  # noqa: E402

# 2026-10-26 is a Monday
MONDAY = date(2026, 10, 26)
TUESDAY = date(2026, 10, 27)


class FakeProvisioner(MeetingProvisioner):
    def __init__(self) -> None:
        self.calls = []
        self.participants = []
        self.released = []
        self.error = None
        self.during_provision = None

    def provision(self, title, duration_minutes, start):
        self.calls.append((title, duration_minutes, start))
        if self.during_provision is not None:
            self.during_provision()
        if self.error is not None:
            raise self.error
        n = len(self.calls)
        return MeetingDetails(join_url=f'https://meet.example.com/room-{n}', password='pw1234', meeting_id=f'room-{n}')

    def add_participants(self, meeting_id, emails):
        self.participants.append((meeting_id, list(emails)))

    def release(self, meeting_id):
        self.released.append(meeting_id)


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self) -> None:
        self.sent = []
        self.fail_for = set()

    def notify(self, recipient_id, template_key, params):
        if recipient_id in self.fail_for:
            raise RuntimeError('mail server down')
        self.sent.append((recipient_id, template_key, params))

    def templates(self):
        return [template for _, template, _ in self.sent]


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role=UserRole.CLIENT, full_name=None, is_peer_counselor=False, is_active=True) -> User:
        n = next(counter)
        user = User(
            email=f'user{n}@example.com',
            full_name=full_name or f'User {n}',
            role=UserRole(role).value,
            user_id=f'SORO-{n:06d}',
            is_active=is_active,
        )
        if is_peer_counselor:
            user.is_peer_counselor = True
            user.counselor_id = f'SC-{n:06d}'
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def professional(make_user) -> User:
    return make_user(UserRole.PROFESSIONAL, full_name='Dr. Ada Mensah')


@pytest.fixture
def peer_professional(make_user) -> User:
    return make_user(UserRole.PROFESSIONAL, full_name='Kwame Boateng', is_peer_counselor=True)


@pytest.fixture
def client(make_user) -> User:
    return make_user(UserRole.CLIENT, full_name='Esi Owusu')


@pytest.fixture
def other_client(make_user) -> User:
    return make_user(UserRole.CLIENT, full_name='Yaw Darko')


@pytest.fixture
def open_week(db):
    """Monday 09:00-10:00 and 10:00-10:30, Tuesday 14:00-15:00"""

    def _open(professional: User) -> None:
        AvailabilityService.set_day(
            db, professional.id, Weekday.MONDAY,
            [TimeRange(time(9, 0), time(10, 0)), TimeRange(time(10, 0), time(10, 30))],
        )
        AvailabilityService.set_day(
            db, professional.id, Weekday.TUESDAY,
            [TimeRange(time(14, 0), time(15, 0))],
        )

    return _open


@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def booking_service(db, provisioner, dispatcher) -> BookingService:
    return BookingService(db, provisioner, TransitionNotifier(dispatcher))


@pytest.fixture
def lease() -> InProcessPassLease:
    return InProcessPassLease()


@pytest.fixture
def scheduler(db, booking_service, lease) -> LifecycleScheduler:
    settings = Settings(REMINDER_LOOKAHEAD_MINUTES=60, COMPLETION_GRACE_MINUTES=60)
    return LifecycleScheduler(db, booking_service, lease, settings=settings)
