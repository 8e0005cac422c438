# ===== soro/services/availability/availability_service.py =====
from typing import List, NamedTuple, Optional, Sequence
from datetime import time
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from soro.core.exceptions import NotFoundError, ValidationError
from soro.models.availability import AvailabilityDay, AvailabilitySlot, Weekday
from soro.models.user import User, UserRole
import logging

logger = logging.getLogger(__name__)


class TimeRange(NamedTuple):
    start_time: time
    end_time: time


class DayDefinition(NamedTuple):
    weekday: Weekday
    slots: Sequence[TimeRange]
    available: bool = True


class AvailabilityService:
    """Owns each professional's recurring weekly slot definitions"""

    @staticmethod
    def set_day(
            db: Session,
            professional_id: UUID,
            weekday: Weekday,
            slots: Sequence[TimeRange],
            available: bool = True
    ) -> AvailabilityDay:
        """
        Atomically replace the slot list and availability flag of one weekday.

        The day is only marked available when it has at least one slot.

        Raises:
            NotFoundError: professional_id is not a professional
            ValidationError: a slot is empty/inverted, has seconds, or overlaps another
        """
        AvailabilityService._require_professional(db, professional_id)
        ordered = AvailabilityService.validate_slots(slots)
        weekday = Weekday(weekday)

        try:
            day = AvailabilityService._get_or_create_day(db, professional_id, weekday)
            day.slots = [AvailabilitySlot(start_time=s.start_time, end_time=s.end_time) for s in ordered]
            day.available = bool(ordered) and bool(available)
            db.commit()
        except IntegrityError:
            # Concurrent first write of the same (professional, weekday) row
            db.rollback()
            day = AvailabilityService.get_day(db, professional_id, weekday)
            day.slots = [AvailabilitySlot(start_time=s.start_time, end_time=s.end_time) for s in ordered]
            day.available = bool(ordered) and bool(available)
            db.commit()

        db.refresh(day)
        logger.info(
            f"Availability for {professional_id} on {weekday.value} set to "
            f"{len(ordered)} slot(s), available={day.available}"
        )
        return day

    @staticmethod
    def set_week(db: Session, professional_id: UUID, days: Sequence[DayDefinition]) -> List[AvailabilityDay]:
        """
        Replace several weekdays at once, all or nothing.

        Every entry is validated before anything is written, and all days are
        committed together, so one bad slot leaves the stored week unchanged.
        Weekdays not listed keep their current slots.

        Raises:
            NotFoundError: professional_id is not a professional
            ValidationError: a weekday is listed twice, or any slot is invalid
        """
        AvailabilityService._require_professional(db, professional_id)

        validated = []
        seen = set()
        for entry in days:
            weekday = Weekday(entry.weekday)
            if weekday in seen:
                raise ValidationError("Weekday listed more than once", {"weekday": weekday.value})
            seen.add(weekday)
            try:
                ordered = AvailabilityService.validate_slots(entry.slots)
            except ValidationError as e:
                e.details = {"weekday": weekday.value, **e.details}
                raise
            validated.append((weekday, ordered, bool(ordered) and bool(entry.available)))

        try:
            for weekday, ordered, available in validated:
                day = AvailabilityService._get_or_create_day(db, professional_id, weekday)
                day.slots = [AvailabilitySlot(start_time=s.start_time, end_time=s.end_time) for s in ordered]
                day.available = available
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Availability for {professional_id} updated for {len(validated)} day(s)")
        return AvailabilityService.get_week(db, professional_id)

    @staticmethod
    def get_day(db: Session, professional_id: UUID, weekday: Weekday) -> Optional[AvailabilityDay]:
        return db.query(AvailabilityDay).filter(
            AvailabilityDay.professional_id == professional_id,
            AvailabilityDay.weekday == Weekday(weekday).value
        ).first()

    @staticmethod
    def get_week(db: Session, professional_id: UUID) -> List[AvailabilityDay]:
        """All defined days of a professional, Monday first"""
        days = db.query(AvailabilityDay).filter(
            AvailabilityDay.professional_id == professional_id
        ).all()
        return sorted(days, key=lambda d: Weekday(d.weekday).position)

    @staticmethod
    def is_initialized(db: Session, professional_id: UUID) -> bool:
        return db.query(AvailabilityDay).filter(
            AvailabilityDay.professional_id == professional_id
        ).count() > 0

    @staticmethod
    def initialize_week(db: Session, professional_id: UUID) -> List[AvailabilityDay]:
        """Create the seven empty, unavailable days of a new professional"""
        AvailabilityService._require_professional(db, professional_id)

        if AvailabilityService.is_initialized(db, professional_id):
            raise ValidationError("Availability already initialized for this professional")

        days = [
            AvailabilityDay(professional_id=professional_id, weekday=weekday.value, available=False)
            for weekday in Weekday
        ]
        db.add_all(days)
        db.commit()

        logger.info(f"Initialized weekly availability for professional {professional_id}")
        return AvailabilityService.get_week(db, professional_id)

    @staticmethod
    def validate_slots(slots: Sequence[TimeRange]) -> List[TimeRange]:
        """Return the slots ordered by start time, rejecting malformed or overlapping ones"""
        ordered = sorted((TimeRange(s.start_time, s.end_time) for s in slots), key=lambda s: s.start_time)

        for slot in ordered:
            for value in (slot.start_time, slot.end_time):
                if value.second or value.microsecond:
                    raise ValidationError(
                        "Slot times must have minute precision",
                        {"time": value.isoformat()}
                    )
            if slot.end_time <= slot.start_time:
                raise ValidationError(
                    "Slot end time must be after its start time",
                    {"start_time": slot.start_time.isoformat(), "end_time": slot.end_time.isoformat()}
                )

        for previous, current in zip(ordered, ordered[1:]):
            if current.start_time < previous.end_time:
                raise ValidationError(
                    "Slots overlap",
                    {
                        "first": f"{previous.start_time:%H:%M}-{previous.end_time:%H:%M}",
                        "second": f"{current.start_time:%H:%M}-{current.end_time:%H:%M}",
                    }
                )

        return ordered

    @staticmethod
    def _get_or_create_day(db: Session, professional_id: UUID, weekday: Weekday) -> AvailabilityDay:
        day = AvailabilityService.get_day(db, professional_id, weekday)
        if day is None:
            day = AvailabilityDay(professional_id=professional_id, weekday=weekday.value, available=False)
            db.add(day)
            db.flush()
        return day

    @staticmethod
    def _require_professional(db: Session, professional_id: UUID) -> User:
        professional = db.query(User).filter(User.id == professional_id).first()
        if not professional or professional.role != UserRole.PROFESSIONAL:
            raise NotFoundError("Professional not found", {"professional_id": str(professional_id)})
        return professional
