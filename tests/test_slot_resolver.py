from datetime import date, time

import pytest

from soro.models import Booking, BookingStatus, Weekday
from soro.services.availability.availability_service import AvailabilityService, TimeRange
from soro.services.availability.slot_resolver import (
    NOT_AVAILABLE_ON_DAY,
    SLOT_ALREADY_BOOKED,
    SLOT_NOT_OFFERED,
    SlotResolver,
)

from conftest import MONDAY, TUESDAY


def _booking(db, client, professional, booking_date, start, end, status=BookingStatus.PENDING) -> Booking:
    booking = Booking(
        client_id=client.id,
        professional_id=professional.id,
        date=booking_date,
        start_time=start,
        end_time=end,
        modality='video',
        concern='stress',
        status=status.value,
    )
    db.add(booking)
    db.commit()
    return booking


@pytest.mark.parametrize(
    ('weekday', 'from_date', 'expected'),
    [
        (Weekday.TUESDAY, date(2026, 10, 26), date(2026, 10, 27)),
        (Weekday.SUNDAY, date(2026, 10, 26), date(2026, 11, 1)),
        (Weekday.MONDAY, date(2026, 10, 27), date(2026, 11, 2)),
        (Weekday.MONDAY, date(2026, 10, 26), date(2026, 11, 2)),
    ],
)
def test_next_occurrence(weekday, from_date, expected) -> None:
    assert SlotResolver.next_occurrence(weekday, from_date) == expected


def test_next_occurrence_never_returns_from_date() -> None:
    for offset in range(7):
        from_date = date(2026, 10, 19 + offset)
        result = SlotResolver.next_occurrence(Weekday.of(from_date), from_date)
        assert (result - from_date).days == 7


def test_weekday_of_date() -> None:
    assert Weekday.of(MONDAY) is Weekday.MONDAY
    assert Weekday.of(TUESDAY) is Weekday.TUESDAY
    assert Weekday.SUNDAY.position == 6


def test_offered_and_unbooked_slot_is_free(db, professional, open_week) -> None:
    open_week(professional)

    assert SlotResolver.is_free(db, professional.id, MONDAY, time(10, 0), time(10, 30)) is True


def test_check_slot_reasons(db, professional, client, open_week) -> None:
    open_week(professional)
    _booking(db, client, professional, MONDAY, time(9, 0), time(10, 0))

    wednesday = date(2026, 10, 28)
    assert SlotResolver.check_slot(db, professional.id, wednesday, time(9, 0), time(10, 0)).reason == NOT_AVAILABLE_ON_DAY
    assert SlotResolver.check_slot(db, professional.id, MONDAY, time(9, 0), time(9, 30)).reason == SLOT_NOT_OFFERED
    assert SlotResolver.check_slot(db, professional.id, MONDAY, time(9, 0), time(10, 0)).reason == SLOT_ALREADY_BOOKED


def test_slot_matching_is_exact(db, professional, open_week) -> None:
    open_week(professional)

    assert SlotResolver.is_free(db, professional.id, MONDAY, time(9, 0), time(10, 30)) is False
    assert SlotResolver.is_free(db, professional.id, MONDAY, time(9, 15), time(10, 0)) is False


def test_unavailable_day_offers_nothing(db, professional) -> None:
    AvailabilityService.set_day(
        db, professional.id, Weekday.MONDAY, [TimeRange(time(9, 0), time(10, 0))], available=False
    )

    assert SlotResolver.check_slot(db, professional.id, MONDAY, time(9, 0), time(10, 0)).reason == NOT_AVAILABLE_ON_DAY


@pytest.mark.parametrize('status', [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED])
def test_active_bookings_block_the_slot(db, professional, client, open_week, status) -> None:
    open_week(professional)
    _booking(db, client, professional, MONDAY, time(10, 0), time(10, 30), status=status)

    assert SlotResolver.is_free(db, professional.id, MONDAY, time(10, 0), time(10, 30)) is False


@pytest.mark.parametrize('status', [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
def test_finished_bookings_release_the_slot(db, professional, client, open_week, status) -> None:
    open_week(professional)
    _booking(db, client, professional, MONDAY, time(10, 0), time(10, 30), status=status)

    assert SlotResolver.is_free(db, professional.id, MONDAY, time(10, 0), time(10, 30)) is True


def test_booking_on_another_date_does_not_block(db, professional, client, open_week) -> None:
    open_week(professional)
    _booking(db, client, professional, date(2026, 11, 2), time(10, 0), time(10, 30))

    assert SlotResolver.is_free(db, professional.id, MONDAY, time(10, 0), time(10, 30)) is True


def test_ignore_booking_id_excludes_own_booking(db, professional, client, open_week) -> None:
    open_week(professional)
    booking = _booking(db, client, professional, MONDAY, time(10, 0), time(10, 30), status=BookingStatus.CONFIRMED)

    assert SlotResolver.is_free(
        db, professional.id, MONDAY, time(10, 0), time(10, 30), ignore_booking_id=booking.id
    ) is True


def test_list_open_slots_skips_booked_and_masks_peer_counselors(
        db, professional, peer_professional, client, open_week
) -> None:
    open_week(professional)
    open_week(peer_professional)
    _booking(db, client, professional, MONDAY, time(9, 0), time(10, 0))

    # Sunday before MONDAY
    slots = SlotResolver.list_open_slots(db, from_date=date(2026, 10, 25))

    regular = [(s.date, s.start_time) for s in slots if s.professional_id == professional.id]
    assert regular == [(MONDAY, time(10, 0)), (TUESDAY, time(14, 0))]

    peer_labels = {s.professional_label for s in slots if s.professional_id == peer_professional.id}
    assert peer_labels == {f'Peer Counselor (ID: {peer_professional.counselor_id})'}
    assert all(s.date >= MONDAY for s in slots)
    assert [s.date for s in slots] == sorted(s.date for s in slots)


def test_list_open_slots_for_one_professional(db, professional, peer_professional, open_week) -> None:
    open_week(professional)
    open_week(peer_professional)

    slots = SlotResolver.list_open_slots(db, from_date=date(2026, 10, 25), professional_id=professional.id)

    assert {s.professional_id for s in slots} == {professional.id}
    assert {s.professional_label for s in slots} == {'Dr. Ada Mensah'}
