# ===== soro/services/availability/slot_resolver.py =====
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from soro.models.availability import AvailabilityDay, Weekday
from soro.models.booking import Booking, ACTIVE_STATUSES
from soro.models.user import User, UserRole
from soro.services.identity.identity_mask import display_professional
from soro.utils.clock import local_today
import logging

logger = logging.getLogger(__name__)

NOT_AVAILABLE_ON_DAY = "Professional not available on this day"
SLOT_NOT_OFFERED = "This time slot is not offered"
SLOT_ALREADY_BOOKED = "This time slot is already booked"


@dataclass(frozen=True)
class SlotCheck:
    is_available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class OpenSlot:
    professional_id: UUID
    professional_label: str
    weekday: Weekday
    date: date
    start_time: time
    end_time: time


class SlotResolver:
    """Maps recurring weekday slots to concrete dates and checks candidate bookings"""

    @staticmethod
    def next_occurrence(weekday: Weekday, from_date: date) -> date:
        """
        Next date strictly after `from_date` falling on `weekday`.

        When `from_date` is already that weekday the answer is a week later,
        never the same day.
        """
        days_ahead = (Weekday(weekday).position - from_date.weekday()) % 7
        return from_date + timedelta(days=days_ahead or 7)

    @staticmethod
    def check_slot(
            db: Session,
            professional_id: UUID,
            booking_date: date,
            start_time: time,
            end_time: time,
            ignore_booking_id: Optional[UUID] = None
    ) -> SlotCheck:
        """Exact-match check against the catalog, then overlap check against active bookings"""
        day = db.query(AvailabilityDay).filter(
            AvailabilityDay.professional_id == professional_id,
            AvailabilityDay.weekday == Weekday.of(booking_date).value,
            AvailabilityDay.available.is_(True)
        ).first()

        if not day:
            return SlotCheck(False, NOT_AVAILABLE_ON_DAY)

        if not day.has_slot(start_time, end_time):
            return SlotCheck(False, SLOT_NOT_OFFERED)

        if SlotResolver.find_conflict(db, professional_id, booking_date, start_time, end_time, ignore_booking_id):
            return SlotCheck(False, SLOT_ALREADY_BOOKED)

        return SlotCheck(True)

    @staticmethod
    def is_free(
            db: Session,
            professional_id: UUID,
            booking_date: date,
            start_time: time,
            end_time: time,
            ignore_booking_id: Optional[UUID] = None
    ) -> bool:
        return SlotResolver.check_slot(
            db, professional_id, booking_date, start_time, end_time, ignore_booking_id
        ).is_available

    @staticmethod
    def find_conflict(
            db: Session,
            professional_id: UUID,
            booking_date: date,
            start_time: time,
            end_time: time,
            ignore_booking_id: Optional[UUID] = None
    ) -> Optional[Booking]:
        """First active booking of the professional overlapping the range on that date"""
        query = db.query(Booking).filter(
            Booking.professional_id == professional_id,
            Booking.date == booking_date,
            Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
            Booking.start_time < end_time,
            Booking.end_time > start_time
        )
        if ignore_booking_id is not None:
            query = query.filter(Booking.id != ignore_booking_id)
        return query.first()

    @staticmethod
    def list_open_slots(
            db: Session,
            from_date: Optional[date] = None,
            professional_id: Optional[UUID] = None
    ) -> List[OpenSlot]:
        """Next occurrence of every offered and unbooked slot of active professionals"""
        from_date = from_date or local_today()

        query = db.query(AvailabilityDay, User).join(
            User, User.id == AvailabilityDay.professional_id
        ).filter(
            AvailabilityDay.available.is_(True),
            User.role == UserRole.PROFESSIONAL.value,
            User.is_active.is_(True)
        )
        if professional_id:
            query = query.filter(AvailabilityDay.professional_id == professional_id)

        rows = query.all()
        if not rows:
            return []

        horizon = from_date + timedelta(days=7)
        booked = db.query(Booking).filter(
            Booking.professional_id.in_({day.professional_id for day, _ in rows}),
            Booking.date > from_date,
            Booking.date <= horizon,
            Booking.status.in_([s.value for s in ACTIVE_STATUSES])
        ).all()

        open_slots = []
        for day, professional in rows:
            weekday = Weekday(day.weekday)
            slot_date = SlotResolver.next_occurrence(weekday, from_date)
            taken = [
                b for b in booked
                if b.professional_id == day.professional_id and b.date == slot_date
            ]
            for slot in day.slots:
                if any(b.start_time < slot.end_time and b.end_time > slot.start_time for b in taken):
                    continue
                open_slots.append(OpenSlot(
                    professional_id=professional.id,
                    professional_label=display_professional(professional).label,
                    weekday=weekday,
                    date=slot_date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                ))

        open_slots.sort(key=lambda s: (s.date, s.start_time))
        logger.debug(f"Resolved {len(open_slots)} open slot(s) from {from_date}")
        return open_slots
