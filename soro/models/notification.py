from sqlalchemy import Column, String, Boolean, Text, DateTime, ForeignKey, Index, JSON, Uuid
from sqlalchemy.sql import func
import uuid

from soro.models.base import Base


class Notification(Base):
    """In-app copy of a booking notification, as the recipient is allowed to see it"""
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipient_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), nullable=True)

    type = Column(String(50), nullable=False)  # template key
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # Masked notification params; never holds real names of peer-counselor bookings
    data = Column(JSON, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient={self.recipient_id}, type={self.type}, read={self.is_read})>"
