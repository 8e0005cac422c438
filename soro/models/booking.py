from sqlalchemy import Column, String, Boolean, Text, Date, Time, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid

from soro.models.base import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class Modality(str, enum.Enum):
    VIDEO = "video"
    AUDIO = "audio"


# Statuses that still occupy a slot
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.RESCHEDULED: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

_ACTIVE_SLOT_PREDICATE = text("status IN ('pending', 'confirmed', 'rescheduled')")


def can_transition(current: str, target: str) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # One active booking per exact slot; first writer wins
        Index(
            "uq_bookings_active_slot",
            "professional_id", "date", "start_time", "end_time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
        Index("ix_bookings_status_date", "status", "date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Parties
    client_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    professional_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Session details (local wall clock)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    modality = Column(String(10), nullable=False)
    concern = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    cancellation_reason = Column(Text, nullable=True)
    rescheduled_from_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), nullable=True)

    # Meeting details, set together with the confirmed status
    meeting_link = Column(String(500), nullable=True)
    meeting_password = Column(String(100), nullable=True)
    meeting_id = Column(String(100), nullable=True)

    # Reminders
    reminder_sent = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("User", foreign_keys=[client_id], lazy="joined")
    professional = relationship("User", foreign_keys=[professional_id], lazy="joined")
    rescheduled_from = relationship("Booking", remote_side=[id], foreign_keys=[rescheduled_from_id])

    def is_party(self, principal_id) -> bool:
        return principal_id in (self.client_id, self.professional_id)

    def __repr__(self):
        return f"<Booking(id={self.id}, status={self.status}, date={self.date}, {self.start_time}-{self.end_time})>"
