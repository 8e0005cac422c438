# ============================================================================
# soro/services/booking/booking_service.py
# ============================================================================
"""
Booking state machine.

Every status change is a conditional write guarded by the status the caller
observed, so of two concurrent actors on one booking exactly one wins and
the other gets InvalidTransitionError. Notifications go out only after the
transition is committed.
"""
from datetime import date, time
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from soro.config.settings import get_settings
from soro.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ProvisioningFailure,
    SlotConflictError,
    ValidationError,
)
from soro.core.principal import Principal
from soro.models.booking import Booking, BookingStatus, Modality, can_transition
from soro.models.user import User, UserRole
from soro.services.availability.slot_resolver import SLOT_ALREADY_BOOKED, SlotResolver
from soro.services.meeting.base import MeetingDetails, MeetingProvisioner
from soro.services.notification.notification_service import (
    TransitionNotifier,
    both_parties,
    professional_only,
)
from soro.services.notification.templates import TemplateKey
from soro.utils.clock import minutes_between, session_start

logger = logging.getLogger(__name__)

RESCHEDULED_REASON = "rescheduled"
AUTO_CANCEL_REASON = "Automatically cancelled - not accepted before session time"


class BookingService:
    """Creates bookings and drives them through their lifecycle"""

    def __init__(self, db: Session, provisioner: MeetingProvisioner, notifier: TransitionNotifier):
        self.db = db
        self.provisioner = provisioner
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(
            self,
            principal: Principal,
            professional_id: UUID,
            booking_date: date,
            start_time: time,
            end_time: time,
            modality: str,
            concern: str,
            notes: Optional[str] = None
    ) -> Booking:
        """
        Request a session in one of the professional's offered slots

        Raises:
            ForbiddenError: principal is not a client
            NotFoundError: professional does not exist
            ValidationError: bad modality, empty concern or inverted range
            SlotConflictError: slot not offered or already taken
        """
        if not principal.is_client:
            raise ForbiddenError("Only clients can book sessions")

        professional = self._lock_professional(professional_id)
        if not professional or professional.role != UserRole.PROFESSIONAL or not professional.is_active:
            raise NotFoundError("Professional not found", {"professional_id": str(professional_id)})

        modality = self._parse_modality(modality)
        if not concern or not concern.strip():
            raise ValidationError("A concern is required to book a session")
        self._validate_range(start_time, end_time)

        check = SlotResolver.check_slot(self.db, professional_id, booking_date, start_time, end_time)
        if not check.is_available:
            raise SlotConflictError(check.reason, self._slot_details(professional_id, booking_date, start_time, end_time))

        booking = Booking(
            client_id=principal.id,
            professional_id=professional_id,
            date=booking_date,
            start_time=start_time,
            end_time=end_time,
            modality=modality.value,
            concern=concern.strip(),
            notes=notes,
            status=BookingStatus.PENDING.value,
        )
        self._insert_exclusive(booking)
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} requested by {principal.id} with {professional_id} on {booking_date}")
        self.notifier.notify_transition(booking, TemplateKey.BOOKING_REQUESTED, professional_only(booking))
        return booking

    def confirm(self, booking_id: UUID, principal: Principal) -> Booking:
        """Accept a pending request; provisions the meeting first"""
        return self._confirm(booking_id, principal, BookingStatus.PENDING, TemplateKey.BOOKING_CONFIRMED)

    def confirm_rescheduled(self, booking_id: UUID, principal: Principal) -> Booking:
        """Bring a rescheduled booking live; provisions a fresh meeting"""
        return self._confirm(booking_id, principal, BookingStatus.RESCHEDULED, TemplateKey.BOOKING_CONFIRMED)

    def cancel(self, booking_id: UUID, principal: Principal, reason: Optional[str] = None) -> Booking:
        """Either party cancels a pending, confirmed or rescheduled booking"""
        booking = self._load(booking_id)
        self._authorize(booking, principal)
        self._ensure_transition(booking, BookingStatus.CANCELLED)

        self._transition(
            booking,
            expected=booking.status,
            values={"status": BookingStatus.CANCELLED.value, "cancellation_reason": reason},
        )
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} cancelled by {principal.role} {principal.id}")
        self.notifier.notify_transition(booking, TemplateKey.BOOKING_CANCELLED, both_parties(booking))
        return booking

    def complete(self, booking_id: UUID, principal: Principal) -> Booking:
        """Mark a confirmed session as held; the owning professional or the system may do this"""
        booking = self._load(booking_id)
        self._authorize(booking, principal, professional_only=True, allow_system=True)
        self._ensure_transition(booking, BookingStatus.COMPLETED, expected=BookingStatus.CONFIRMED)

        self._transition(
            booking,
            expected=BookingStatus.CONFIRMED,
            values={"status": BookingStatus.COMPLETED.value},
        )
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} completed by {principal.role}")
        self.notifier.notify_transition(booking, TemplateKey.BOOKING_COMPLETED, both_parties(booking))
        return booking

    def auto_cancel(self, booking_id: UUID, principal: Principal) -> Booking:
        """System-only cancellation of a request nobody accepted before its start"""
        booking = self._load(booking_id)
        if not principal.is_system:
            raise ForbiddenError("Only the system may expire pending bookings")
        self._ensure_transition(booking, BookingStatus.CANCELLED, expected=BookingStatus.PENDING)

        self._transition(
            booking,
            expected=BookingStatus.PENDING,
            values={"status": BookingStatus.CANCELLED.value, "cancellation_reason": AUTO_CANCEL_REASON},
        )
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} auto-cancelled, start {booking.date} {booking.start_time} passed")
        self.notifier.notify_transition(booking, TemplateKey.BOOKING_AUTO_CANCELLED, both_parties(booking))
        return booking

    def reschedule(
            self,
            booking_id: UUID,
            principal: Principal,
            new_date: date,
            new_start: time,
            new_end: time,
            reason: Optional[str] = None
    ) -> Booking:
        """
        Move a confirmed session to another offered slot

        The original is cancelled and a new booking in Rescheduled status is
        created in the same transaction. The new booking carries no meeting
        until confirm_rescheduled.

        Returns:
            Booking: the new booking

        Raises:
            NotFoundError, ForbiddenError, InvalidTransitionError
            ValidationError: inverted range
            SlotConflictError: target slot not offered or taken
        """
        original = self._load(booking_id)
        self._authorize(original, principal, professional_only=True)
        self._ensure_transition(original, BookingStatus.CANCELLED, expected=BookingStatus.CONFIRMED)
        self._validate_range(new_start, new_end)
        self._lock_professional(original.professional_id)

        check = SlotResolver.check_slot(
            self.db, original.professional_id, new_date, new_start, new_end,
            ignore_booking_id=original.id
        )
        if not check.is_available:
            raise SlotConflictError(
                check.reason,
                self._slot_details(original.professional_id, new_date, new_start, new_end)
            )

        self._transition(
            original,
            expected=BookingStatus.CONFIRMED,
            values={
                "status": BookingStatus.CANCELLED.value,
                "cancellation_reason": reason or RESCHEDULED_REASON,
            },
        )

        replacement = Booking(
            client_id=original.client_id,
            professional_id=original.professional_id,
            date=new_date,
            start_time=new_start,
            end_time=new_end,
            modality=original.modality,
            concern=original.concern,
            notes=original.notes,
            status=BookingStatus.RESCHEDULED.value,
            rescheduled_from_id=original.id,
        )
        self._insert_exclusive(replacement)
        self.db.refresh(replacement)

        logger.info(f"Booking {original.id} rescheduled to {replacement.id} on {new_date} {new_start}")
        self.notifier.notify_transition(replacement, TemplateKey.BOOKING_RESCHEDULED, both_parties(replacement))
        return replacement

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _confirm(
            self,
            booking_id: UUID,
            principal: Principal,
            expected: BookingStatus,
            template_key: str
    ) -> Booking:
        booking = self._load(booking_id)
        self._authorize(booking, principal, professional_only=True)
        self._ensure_transition(booking, BookingStatus.CONFIRMED, expected=expected)

        details = self._provision(booking)

        try:
            self._transition(
                booking,
                expected=expected,
                values={
                    "status": BookingStatus.CONFIRMED.value,
                    "meeting_link": details.join_url,
                    "meeting_password": details.password,
                    "meeting_id": details.meeting_id,
                },
            )
        except InvalidTransitionError:
            self._release_meeting(booking_id, details)
            raise
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} confirmed with meeting {details.meeting_id}")

        self._add_participants(booking, details)
        self.notifier.notify_transition(booking, template_key, both_parties(booking))
        return booking

    def _provision(self, booking: Booking) -> MeetingDetails:
        """Create the meeting; any provider error leaves the booking untouched"""
        title = get_settings().MEETING_DEFAULT_TITLE
        duration = minutes_between(booking.start_time, booking.end_time)
        start = session_start(booking.date, booking.start_time)
        try:
            return self.provisioner.provision(title, duration, start)
        except ProvisioningFailure:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Meeting provisioning failed for booking {booking.id}: {e}")
            raise ProvisioningFailure("Failed to create meeting", {"booking_id": str(booking.id)})

    def _add_participants(self, booking: Booking, details: MeetingDetails) -> None:
        emails = [booking.client.email, booking.professional.email]
        try:
            self.provisioner.add_participants(details.meeting_id, emails)
        except Exception as e:
            logger.warning(f"Could not add participants to meeting {details.meeting_id}: {e}")

    def _release_meeting(self, booking_id: UUID, details: MeetingDetails) -> None:
        """Give back a meeting whose booking was moved on by someone else during provisioning"""
        logger.warning(f"Booking {booking_id} changed during provisioning, releasing meeting {details.meeting_id}")
        try:
            self.provisioner.release(details.meeting_id)
        except Exception as e:
            logger.warning(f"Could not release meeting {details.meeting_id}: {e}")

    def _lock_professional(self, professional_id: UUID) -> Optional[User]:
        """Row lock that serializes slot claims of one professional until commit"""
        return self.db.query(User).filter(User.id == professional_id).with_for_update().first()

    def _insert_exclusive(self, booking: Booking) -> None:
        """
        Commit a slot-holding booking unless an overlapping active booking of
        the same professional exists by the time it is flushed

        Raises:
            SlotConflictError: overlap found, or the active-slot index rejected the row
        """
        details = self._slot_details(booking.professional_id, booking.date, booking.start_time, booking.end_time)
        try:
            self.db.add(booking)
            self.db.flush()
            clash = SlotResolver.find_conflict(
                self.db, booking.professional_id, booking.date, booking.start_time, booking.end_time,
                ignore_booking_id=booking.id
            )
            if clash is not None:
                self.db.rollback()
                raise SlotConflictError(SLOT_ALREADY_BOOKED, details)
            self.db.commit()
        except IntegrityError:
            # Lost the first-writer-wins race on the active-slot index or overlap constraint
            self.db.rollback()
            raise SlotConflictError(SLOT_ALREADY_BOOKED, details)

    def _load(self, booking_id: UUID) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found", {"booking_id": str(booking_id)})
        return booking

    @staticmethod
    def _authorize(
            booking: Booking,
            principal: Principal,
            professional_only: bool = False,
            allow_system: bool = False
    ) -> None:
        if principal.is_system:
            if allow_system:
                return
            raise ForbiddenError("System principal may not perform this action")

        if not booking.is_party(principal.id):
            raise ForbiddenError("Not a party to this booking", {"booking_id": str(booking.id)})

        if professional_only and principal.id != booking.professional_id:
            raise ForbiddenError(
                "Only the booking's professional can perform this action",
                {"booking_id": str(booking.id)}
            )

    @staticmethod
    def _ensure_transition(
            booking: Booking,
            target: BookingStatus,
            expected: Optional[BookingStatus] = None
    ) -> None:
        if (expected is not None and booking.status != expected) or not can_transition(booking.status, target):
            raise InvalidTransitionError(
                f"Cannot move booking from {booking.status} to {target.value}",
                {"booking_id": str(booking.id), "status": booking.status}
            )

    def _transition(self, booking: Booking, expected: str, values: Dict[str, Any]) -> None:
        """Conditional write; zero matched rows means another actor moved the booking first"""
        updated = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == BookingStatus(expected).value
        ).update(values, synchronize_session=False)

        if updated == 0:
            self.db.rollback()
            raise InvalidTransitionError(
                "Booking status changed concurrently",
                {"booking_id": str(booking.id), "expected": BookingStatus(expected).value}
            )

    @staticmethod
    def _parse_modality(value: Any) -> Modality:
        try:
            return Modality(str(getattr(value, "value", value)).lower())
        except ValueError:
            raise ValidationError(
                "Unsupported modality",
                {"modality": str(value), "allowed": [m.value for m in Modality]}
            )

    @staticmethod
    def _validate_range(start_time: time, end_time: time) -> None:
        if end_time <= start_time:
            raise ValidationError(
                "End time must be after start time",
                {"start_time": start_time.isoformat(), "end_time": end_time.isoformat()}
            )

    @staticmethod
    def _slot_details(professional_id: UUID, booking_date: date, start_time: time, end_time: time) -> dict:
        return {
            "professional_id": str(professional_id),
            "date": booking_date.isoformat(),
            "start_time": start_time.strftime("%H:%M"),
            "end_time": end_time.strftime("%H:%M"),
        }
