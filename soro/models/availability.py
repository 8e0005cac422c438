# ===== soro/models/availability.py =====
from datetime import date
import enum
import uuid

from sqlalchemy import Column, String, Boolean, Time, DateTime, ForeignKey, Integer, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from soro.models.base import Base


class Weekday(str, enum.Enum):
    """Closed set of weekdays; ordering follows date.weekday() (Monday = 0)"""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def position(self) -> int:
        return list(Weekday).index(self)

    @classmethod
    def of(cls, value: date) -> "Weekday":
        return list(cls)[value.weekday()]


class AvailabilityDay(Base):
    """Recurring availability of one professional on one weekday"""
    __tablename__ = "availability_days"
    __table_args__ = (
        UniqueConstraint("professional_id", "weekday", name="uq_availability_professional_weekday"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    professional_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    weekday = Column(String(10), nullable=False)  # Weekday value
    available = Column(Boolean, default=False, nullable=False)

    slots = relationship(
        "AvailabilitySlot",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="AvailabilitySlot.start_time",
        lazy="selectin",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def has_slot(self, start_time, end_time) -> bool:
        return any(s.start_time == start_time and s.end_time == end_time for s in self.slots)

    def __repr__(self):
        return f"<AvailabilityDay(professional={self.professional_id}, weekday={self.weekday}, slots={len(self.slots)})>"


class AvailabilitySlot(Base):
    """One contiguous recurring time range within a day"""
    __tablename__ = "availability_slots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day_id = Column(Uuid(as_uuid=True), ForeignKey("availability_days.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    day = relationship("AvailabilityDay", back_populates="slots")
