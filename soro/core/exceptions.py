# soro/core/exceptions.py
"""Booking engine error taxonomy.

Every error raised by the availability and booking services derives from
BookingEngineError and carries the HTTP status the API layer answers with.
"""
from typing import Optional


class BookingEngineError(Exception):
    """Base class for errors surfaced to callers of the booking engine"""

    status_code: int = 400
    error_code: str = "booking_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message, "details": self.details}


class NotFoundError(BookingEngineError):
    """Booking or professional does not exist"""
    status_code = 404
    error_code = "not_found"


class ForbiddenError(BookingEngineError):
    """Acting principal is not a party to the booking, or has the wrong role"""
    status_code = 403
    error_code = "forbidden"


class InvalidTransitionError(BookingEngineError):
    """Current status does not allow the requested operation (includes lost races)"""
    status_code = 409
    error_code = "invalid_transition"


class SlotConflictError(BookingEngineError):
    """Requested range is not offered or is already taken"""
    status_code = 409
    error_code = "slot_conflict"


class ValidationError(BookingEngineError):
    """Malformed availability definition or immutable field change"""
    status_code = 422
    error_code = "validation_error"


class ProvisioningFailure(BookingEngineError):
    """Meeting service failed or timed out; the booking stays retryable"""
    status_code = 502
    error_code = "provisioning_failure"
