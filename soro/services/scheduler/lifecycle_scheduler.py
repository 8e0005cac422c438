# ============================================================================
# soro/services/scheduler/lifecycle_scheduler.py
# Time-driven booking transitions: reminders, completion, stale requests
# ============================================================================
"""
Periodic reconciliation of bookings against the wall clock.

Each pass selects candidates, then handles every booking on its own: a
booking that fails is logged and skipped, and a booking another actor
already moved is skipped silently. All transitions are made as the system
principal through the booking state machine, so they obey the same
conditional writes as user actions.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from soro.config.settings import Settings, get_settings
from soro.core.exceptions import InvalidTransitionError
from soro.core.principal import SYSTEM_PRINCIPAL
from soro.models.booking import Booking, BookingStatus
from soro.services.booking.booking_service import BookingService
from soro.services.notification.notification_service import both_parties
from soro.services.notification.templates import TemplateKey
from soro.services.scheduler.pass_lease import PassLease
from soro.utils.clock import local_now, session_start

logger = logging.getLogger(__name__)

REMINDER_PASS = "reminders"
COMPLETION_PASS = "completion"
STALE_PENDING_PASS = "stale_pending"


@dataclass
class PassResult:
    name: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    ran: bool = True


class LifecycleScheduler:
    """Runs the three lifecycle passes under per-pass single-flight leases"""

    def __init__(
            self,
            db: Session,
            booking_service: BookingService,
            lease: PassLease,
            settings: Optional[Settings] = None
    ):
        self.db = db
        self.booking_service = booking_service
        self.lease = lease
        self.settings = settings or get_settings()

    def run_all(self, now: Optional[datetime] = None) -> List[PassResult]:
        now = now or local_now()
        return [
            self.run_reminder_pass(now),
            self.run_completion_pass(now),
            self.run_stale_pending_pass(now),
        ]

    def run_reminder_pass(self, now: Optional[datetime] = None) -> PassResult:
        return self._run(REMINDER_PASS, self.reminder_candidate_ids, self.send_reminder, now)

    def run_completion_pass(self, now: Optional[datetime] = None) -> PassResult:
        return self._run(COMPLETION_PASS, self.completion_candidate_ids, self.complete_session, now)

    def run_stale_pending_pass(self, now: Optional[datetime] = None) -> PassResult:
        return self._run(STALE_PENDING_PASS, self.stale_pending_ids, self.expire_pending, now)

    # ------------------------------------------------------------------
    # Candidate selection
    # ------------------------------------------------------------------

    def reminder_candidate_ids(self, now: datetime) -> List[UUID]:
        """Confirmed, not yet reminded, starting within the lookahead window"""
        window_end = now + timedelta(minutes=self.settings.REMINDER_LOOKAHEAD_MINUTES)
        bookings = self.db.query(Booking).filter(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.reminder_sent.is_(False),
            Booking.date >= now.date(),
            Booking.date <= window_end.date()
        ).all()
        return [
            b.id for b in bookings
            if now <= session_start(b.date, b.start_time) <= window_end
        ]

    def completion_candidate_ids(self, now: datetime) -> List[UUID]:
        """Confirmed sessions whose end plus grace period lies in the past"""
        grace = timedelta(minutes=self.settings.COMPLETION_GRACE_MINUTES)
        bookings = self.db.query(Booking).filter(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.date <= now.date()
        ).all()
        return [
            b.id for b in bookings
            if session_start(b.date, b.end_time) + grace < now
        ]

    def stale_pending_ids(self, now: datetime) -> List[UUID]:
        """Pending requests whose start time has passed"""
        bookings = self.db.query(Booking).filter(
            Booking.status == BookingStatus.PENDING.value,
            Booking.date <= now.date()
        ).all()
        return [
            b.id for b in bookings
            if session_start(b.date, b.start_time) <= now
        ]

    # ------------------------------------------------------------------
    # Per-booking handlers; False means skipped
    # ------------------------------------------------------------------

    def send_reminder(self, booking_id: UUID) -> bool:
        """Claim the reminder flag; only the winning claim sends"""
        claimed = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.reminder_sent.is_(False)
        ).update({"reminder_sent": True}, synchronize_session=False)
        self.db.commit()

        if not claimed:
            return False

        booking = self.db.query(Booking).filter(Booking.id == booking_id).one()
        self.booking_service.notifier.notify_transition(
            booking, TemplateKey.SESSION_REMINDER, both_parties(booking)
        )
        logger.info(f"Reminder sent for booking {booking_id}")
        return True

    def complete_session(self, booking_id: UUID) -> bool:
        try:
            self.booking_service.complete(booking_id, SYSTEM_PRINCIPAL)
        except InvalidTransitionError:
            return False
        return True

    def expire_pending(self, booking_id: UUID) -> bool:
        try:
            self.booking_service.auto_cancel(booking_id, SYSTEM_PRINCIPAL)
        except InvalidTransitionError:
            return False
        return True

    # ------------------------------------------------------------------

    def _run(
            self,
            name: str,
            select: Callable[[datetime], List[UUID]],
            handle: Callable[[UUID], bool],
            now: Optional[datetime]
    ) -> PassResult:
        with self.lease.hold(name) as acquired:
            if not acquired:
                logger.info(f"Pass {name} already running elsewhere, skipping")
                return PassResult(name=name, ran=False)

            now = now or local_now()
            result = PassResult(name=name)

            for booking_id in select(now):
                try:
                    if handle(booking_id):
                        result.processed += 1
                    else:
                        result.skipped += 1
                except Exception as e:
                    self.db.rollback()
                    result.failed += 1
                    logger.error(f"Pass {name} failed on booking {booking_id}: {e}", exc_info=True)

            logger.info(
                f"Pass {name} done: processed={result.processed} "
                f"skipped={result.skipped} failed={result.failed}"
            )
            return result
