# ============================================================================
# soro/services/booking/booking_query_service.py
# Read side of bookings; every payload goes through the identity mask
# ============================================================================
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from soro.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from soro.core.principal import Principal
from soro.models.booking import Booking, BookingStatus
from soro.services.identity.identity_mask import is_anonymous, resolve_display


class BookingQueryService:
    """Booking listings and details as seen by one party"""

    @staticmethod
    def list_bookings(
            db: Session,
            principal: Principal,
            status: Optional[str] = None,
            from_date: Optional[date] = None,
            to_date: Optional[date] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Paginated bookings where the principal is client or professional"""
        query = db.query(Booking)

        if principal.is_client:
            query = query.filter(Booking.client_id == principal.id)
        elif principal.is_professional:
            query = query.filter(Booking.professional_id == principal.id)
        else:
            raise ForbiddenError("Only clients and professionals have bookings")

        if status:
            try:
                query = query.filter(Booking.status == BookingStatus(status.lower()).value)
            except ValueError:
                raise ValidationError("Unknown booking status", {"status": status})
        if from_date:
            query = query.filter(Booking.date >= from_date)
        if to_date:
            query = query.filter(Booking.date <= to_date)

        query = query.order_by(Booking.date.desc(), Booking.start_time.desc())
        total = query.count()
        bookings = query.offset(skip).limit(limit).all()

        return {
            "total_bookings": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "bookings": [BookingQueryService.serialize(b, principal.role) for b in bookings]
        }

    @staticmethod
    def get_booking(db: Session, principal: Principal, booking_id: UUID) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: no such booking
            ForbiddenError: principal is not a party
        """
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking not found", {"booking_id": str(booking_id)})
        if not booking.is_party(principal.id):
            raise ForbiddenError("Not a party to this booking", {"booking_id": str(booking_id)})

        return BookingQueryService.serialize(booking, principal.role, detailed=True)

    @staticmethod
    def serialize(booking: Booking, viewer_role: str, detailed: bool = False) -> Dict[str, Any]:
        counterpart = resolve_display(booking, viewer_role)
        data = {
            "id": str(booking.id),
            "date": booking.date.isoformat(),
            "start_time": booking.start_time.strftime("%H:%M"),
            "end_time": booking.end_time.strftime("%H:%M"),
            "modality": booking.modality,
            "status": booking.status,
            "counterpart": counterpart.label,
            "counterpart_id": counterpart.identifier,
            "anonymous": is_anonymous(booking),
        }

        if booking.status == BookingStatus.CONFIRMED:
            data["meeting_link"] = booking.meeting_link
            data["meeting_password"] = booking.meeting_password

        if detailed:
            data.update({
                "concern": booking.concern,
                "notes": booking.notes,
                "cancellation_reason": booking.cancellation_reason,
                "rescheduled_from_id": str(booking.rescheduled_from_id) if booking.rescheduled_from_id else None,
                "reminder_sent": booking.reminder_sent,
                "created_at": booking.created_at.isoformat() if booking.created_at else None,
                "updated_at": booking.updated_at.isoformat() if booking.updated_at else None,
            })

        return data
