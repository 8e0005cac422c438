# soro/models/__init__.py
from .base import Base
from .user import User, UserRole
from .availability import AvailabilityDay, AvailabilitySlot, Weekday
from .booking import Booking, BookingStatus, Modality, ACTIVE_STATUSES, ALLOWED_TRANSITIONS
from .notification import Notification

__all__ = [
    "Base",
    "User",
    "UserRole",
    "AvailabilityDay",
    "AvailabilitySlot",
    "Weekday",
    "Booking",
    "BookingStatus",
    "Modality",
    "ACTIVE_STATUSES",
    "ALLOWED_TRANSITIONS",
    "Notification",
]
