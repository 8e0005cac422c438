# ===== soro/services/dependencies.py =====
"""Builds the booking engine's collaborators from settings"""
from typing import Optional

from sqlalchemy.orm import Session

from soro.config.redis import get_redis
from soro.config.settings import Settings, get_settings
from soro.services.booking.booking_service import BookingService
from soro.services.meeting.base import MeetingProvisioner
from soro.services.meeting.jitsi_service import JitsiMeetingProvisioner
from soro.services.meeting.zoom_service import ZoomMeetingProvisioner
from soro.services.notification.dispatchers import (
    CompositeNotificationDispatcher,
    EmailNotificationDispatcher,
    InAppNotificationDispatcher,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)
from soro.services.notification.notification_service import TransitionNotifier
from soro.services.scheduler.lifecycle_scheduler import LifecycleScheduler
from soro.services.scheduler.pass_lease import InProcessPassLease, PassLease, RedisPassLease

# Shared by every scheduler built in this process
_in_process_lease = InProcessPassLease()


def get_meeting_provisioner(settings: Optional[Settings] = None) -> MeetingProvisioner:
    settings = settings or get_settings()
    provider = settings.MEETING_PROVIDER.lower()
    if provider == "zoom":
        return ZoomMeetingProvisioner(settings)
    if provider == "jitsi":
        return JitsiMeetingProvisioner(settings.JITSI_BASE_URL)
    raise ValueError(f"Unsupported meeting provider: {settings.MEETING_PROVIDER}")


def get_notification_dispatcher(
        db: Optional[Session] = None,
        settings: Optional[Settings] = None
) -> NotificationDispatcher:
    """Delivery channel from NOTIFICATION_BACKEND, plus the in-app inbox when a session is given"""
    settings = settings or get_settings()
    backend = settings.NOTIFICATION_BACKEND.lower()
    if backend == "email":
        channel = EmailNotificationDispatcher()
    elif backend == "log":
        channel = LoggingNotificationDispatcher()
    else:
        raise ValueError(f"Unsupported notification backend: {settings.NOTIFICATION_BACKEND}")

    if db is not None and settings.NOTIFICATION_IN_APP:
        return CompositeNotificationDispatcher([InAppNotificationDispatcher(db), channel])
    return channel


def get_pass_lease(settings: Optional[Settings] = None) -> PassLease:
    settings = settings or get_settings()
    backend = settings.SCHEDULER_LEASE_BACKEND.lower()
    if backend == "redis":
        return RedisPassLease(get_redis(), ttl_seconds=settings.SCHEDULER_LEASE_TTL_SECONDS)
    if backend == "memory":
        return _in_process_lease
    raise ValueError(f"Unsupported scheduler lease backend: {settings.SCHEDULER_LEASE_BACKEND}")


def build_booking_service(db: Session) -> BookingService:
    return BookingService(
        db=db,
        provisioner=get_meeting_provisioner(),
        notifier=TransitionNotifier(get_notification_dispatcher(db)),
    )


def build_lifecycle_scheduler(db: Session) -> LifecycleScheduler:
    return LifecycleScheduler(
        db=db,
        booking_service=build_booking_service(db),
        lease=get_pass_lease(),
    )
