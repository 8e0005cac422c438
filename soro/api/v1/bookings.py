"""
Booking Routes
Thin HTTP layer over the booking state machine; responses are masked per viewer
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID
import logging

from soro.config.database import get_db
from soro.core.principal import Principal
from soro.api.dependencies import get_booking_service, get_current_principal
from soro.schemas.booking import (
    BookingCreateRequest,
    BookingDetailResponse,
    BookingListResponse,
    CancelRequest,
    RescheduleRequest,
)
from soro.services.booking.booking_query_service import BookingQueryService
from soro.services.booking.booking_service import BookingService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["bookings"])


@router.post("", response_model=BookingDetailResponse, status_code=201)
def create_booking(
        request: BookingCreateRequest,
        principal: Principal = Depends(get_current_principal),
        service: BookingService = Depends(get_booking_service)
):
    booking = service.create(
        principal,
        professional_id=request.professional_id,
        booking_date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        modality=request.modality,
        concern=request.concern,
        notes=request.notes,
    )
    return BookingQueryService.serialize(booking, principal.role, detailed=True)


@router.get("", response_model=BookingListResponse)
def list_bookings(
        status: Optional[str] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return BookingQueryService.list_bookings(
        db, principal, status=status, from_date=from_date, to_date=to_date, skip=skip, limit=limit
    )


@router.get("/{booking_id}", response_model=BookingDetailResponse)
def get_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return BookingQueryService.get_booking(db, principal, booking_id)


@router.post("/{booking_id}/confirm", response_model=BookingDetailResponse)
def confirm_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        service: BookingService = Depends(get_booking_service)
):
    booking = service.confirm(booking_id, principal)
    return BookingQueryService.serialize(booking, principal.role, detailed=True)


@router.post("/{booking_id}/confirm-rescheduled", response_model=BookingDetailResponse)
def confirm_rescheduled_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        service: BookingService = Depends(get_booking_service)
):
    booking = service.confirm_rescheduled(booking_id, principal)
    return BookingQueryService.serialize(booking, principal.role, detailed=True)


@router.post("/{booking_id}/cancel", response_model=BookingDetailResponse)
def cancel_booking(
        booking_id: UUID,
        request: CancelRequest,
        principal: Principal = Depends(get_current_principal),
        service: BookingService = Depends(get_booking_service)
):
    booking = service.cancel(booking_id, principal, reason=request.reason)
    return BookingQueryService.serialize(booking, principal.role, detailed=True)


@router.post("/{booking_id}/complete", response_model=BookingDetailResponse)
def complete_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        service: BookingService = Depends(get_booking_service)
):
    booking = service.complete(booking_id, principal)
    return BookingQueryService.serialize(booking, principal.role, detailed=True)


@router.post("/{booking_id}/reschedule", response_model=BookingDetailResponse, status_code=201)
def reschedule_booking(
        booking_id: UUID,
        request: RescheduleRequest,
        principal: Principal = Depends(get_current_principal),
        service: BookingService = Depends(get_booking_service)
):
    """Returns the new booking, which awaits confirm-rescheduled"""
    booking = service.reschedule(
        booking_id,
        principal,
        new_date=request.date,
        new_start=request.start_time,
        new_end=request.end_time,
        reason=request.reason,
    )
    return BookingQueryService.serialize(booking, principal.role, detailed=True)
