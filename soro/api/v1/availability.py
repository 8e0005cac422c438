"""
Availability Routes
Professionals manage their weekly slots; any signed-in user can browse open slots
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, time
from typing import List, Optional
from uuid import UUID
import logging

from soro.config.database import get_db
from soro.core.exceptions import ForbiddenError
from soro.core.principal import Principal
from soro.api.dependencies import get_current_principal
from soro.models.availability import Weekday
from soro.schemas.availability import (
    DayResponse,
    DayUpdateRequest,
    OpenSlotResponse,
    SlotCheckResponse,
    WeekResponse,
    WeekUpdateRequest,
)
from soro.services.availability.availability_service import AvailabilityService, DayDefinition, TimeRange
from soro.services.availability.slot_resolver import SlotResolver

logger = logging.getLogger(__name__)
router = APIRouter(tags=["availability"])


def _require_professional(principal: Principal) -> None:
    if not principal.is_professional:
        raise ForbiddenError("Only professionals manage availability")


def _week_response(db: Session, professional_id: UUID) -> WeekResponse:
    days = AvailabilityService.get_week(db, professional_id)
    return WeekResponse(
        professional_id=professional_id,
        initialized=bool(days),
        days=[DayResponse.model_validate(day) for day in days],
    )


@router.get("/me", response_model=WeekResponse)
def get_my_week(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    _require_professional(principal)
    return _week_response(db, principal.id)


@router.post("/me/initialize", response_model=WeekResponse, status_code=201)
def initialize_my_week(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    _require_professional(principal)
    AvailabilityService.initialize_week(db, principal.id)
    return _week_response(db, principal.id)


@router.put("/me", response_model=WeekResponse)
def set_my_week(
        request: WeekUpdateRequest,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Replace several weekdays in one go; nothing is saved if any day is invalid"""
    _require_professional(principal)
    AvailabilityService.set_week(
        db,
        principal.id,
        [
            DayDefinition(
                weekday=day.weekday,
                slots=[TimeRange(s.start_time, s.end_time) for s in day.slots],
                available=day.available,
            )
            for day in request.days
        ],
    )
    return _week_response(db, principal.id)


@router.put("/me/{weekday}", response_model=DayResponse)
def set_my_day(
        weekday: Weekday,
        request: DayUpdateRequest,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Replace all slots of one weekday"""
    _require_professional(principal)
    day = AvailabilityService.set_day(
        db,
        principal.id,
        weekday,
        [TimeRange(s.start_time, s.end_time) for s in request.slots],
        available=request.available,
    )
    return DayResponse.model_validate(day)


@router.get("/slots", response_model=List[OpenSlotResponse])
def list_open_slots(
        from_date: Optional[date] = Query(None),
        professional_id: Optional[UUID] = Query(None),
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Next occurrence of every open slot, professionals shown through the identity mask"""
    slots = SlotResolver.list_open_slots(db, from_date=from_date, professional_id=professional_id)
    return [OpenSlotResponse.model_validate(slot) for slot in slots]


@router.get("/check", response_model=SlotCheckResponse)
def check_slot(
        professional_id: UUID,
        date: date,
        start_time: time,
        end_time: time,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    result = SlotResolver.check_slot(db, professional_id, date, start_time, end_time)
    return SlotCheckResponse.model_validate(result)


@router.get("/professionals/{professional_id}", response_model=WeekResponse)
def get_professional_week(
        professional_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return _week_response(db, professional_id)
