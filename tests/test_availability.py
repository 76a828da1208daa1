import datetime

from app import models
from app.booking import availability
from app.booking.availability import (
    check_time_slot_availability,
    get_available_time_slots,
    get_day_availability_status,
)
from app.booking.day_query import get_bookings_for_date
from app.booking.timeranges import TimeRange
from app.errors import DataAccessError


def test_day_query_skips_cancelled_and_other_days(db, user, room, booking_day, add_booking):
    kept = add_booking(user, room, booking_day, "10:00", "12:00")
    done = add_booking(user, room, booking_day, "14:00", "16:00", status=models.BOOKING_COMPLETED)
    add_booking(user, room, booking_day, "16:00", "18:00", status=models.BOOKING_CANCELLED)
    add_booking(user, room, booking_day + datetime.timedelta(days=1))

    found = get_bookings_for_date(db, room.id, booking_day.isoformat())
    assert {b.id for b in found} == {kept.id, done.id}

    found = get_bookings_for_date(db, room.id, booking_day, exclude_booking_id=kept.id)
    assert [b.id for b in found] == [done.id]


def test_adjacent_slot_is_available(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "10:00", "12:00")

    result = check_time_slot_availability(db, room.id, booking_day.isoformat(), "12:00", "14:00")

    assert result.is_available
    assert result.type == "available"


def test_overlapping_slot_is_partially_booked(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "10:00", "12:00")

    result = check_time_slot_availability(db, room.id, booking_day.isoformat(), "09:00", "11:00")

    assert not result.is_available
    assert result.type == "partially_booked"
    assert result.booked_ranges == [TimeRange("10:00", "12:00")]
    assert result.message == "Time slot conflicts with existing bookings: 10:00-12:00"


def test_full_day_booking_blocks_every_range(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "08:00", "18:00", full_day=True)

    for start, end in [("08:00", "10:00"), ("16:00", "18:00"), ("19:00", "21:00")]:
        result = check_time_slot_availability(db, room.id, booking_day, start, end)
        assert not result.is_available
        assert result.type == "fully_booked"


def test_cancelled_bookings_do_not_conflict(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "08:00", "18:00", full_day=True, status=models.BOOKING_CANCELLED)

    result = check_time_slot_availability(db, room.id, booking_day, "10:00", "12:00")

    assert result.is_available


def test_excluded_booking_is_ignored(db, user, room, booking_day, add_booking):
    booking = add_booking(user, room, booking_day, "10:00", "12:00")

    result = check_time_slot_availability(
        db, room.id, booking_day, "11:00", "13:00", exclude_booking_id=booking.id
    )

    assert result.is_available


def test_day_status(db, user, room, booking_day, add_booking):
    result = get_day_availability_status(db, room.id, booking_day.isoformat())
    assert (result.is_available, result.type) == (True, "available")

    add_booking(user, room, booking_day, "14:00", "16:00")
    result = get_day_availability_status(db, room.id, booking_day.isoformat())
    # Partially booked days still report as available.
    assert (result.is_available, result.type) == (True, "partially_booked")
    assert result.booked_ranges == [TimeRange("14:00", "16:00")]
    assert result.message == "Some time slots are booked: 14:00-16:00"


def test_day_status_fully_booked(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "08:00", "18:00", full_day=True)

    result = get_day_availability_status(db, room.id, booking_day)

    assert (result.is_available, result.type) == (False, "fully_booked")


def test_malformed_request_reports_unavailable(db, room):
    result = check_time_slot_availability(db, room.id, "2025-02-30", "10:00", "12:00")
    assert (result.is_available, result.type) == (False, "unavailable")
    assert result.message.startswith("Error checking availability:")

    result = check_time_slot_availability(db, room.id, "2030-01-10", "10", "12:00")
    assert result.type == "unavailable"

    result = get_day_availability_status(db, room.id, "not-a-date")
    assert (result.is_available, result.type) == (False, "unavailable")


def test_store_failure_reports_unavailable(db, room, booking_day, monkeypatch):
    def broken(*args, **kwargs):
        raise DataAccessError("connection refused")

    monkeypatch.setattr(availability, "get_bookings_for_date", broken)

    result = check_time_slot_availability(db, room.id, booking_day, "10:00", "12:00")
    assert result.type == "unavailable"
    assert "connection refused" in result.message

    result = get_day_availability_status(db, room.id, booking_day)
    assert result.type == "unavailable"


def test_available_time_slots(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "09:00", "11:00")

    slots = get_available_time_slots(db, room.id, booking_day)

    assert [str(slot) for slot in slots] == ["12:00-14:00", "14:00-16:00", "16:00-18:00"]


def test_no_slots_on_fully_booked_day(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "08:00", "18:00", full_day=True)

    assert get_available_time_slots(db, room.id, booking_day) == []


def test_reversed_range_reports_unavailable(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "10:00", "12:00")

    for start, end in [("12:00", "10:00"), ("17:00", "09:00"), ("10:00", "10:00")]:
        result = check_time_slot_availability(db, room.id, booking_day, start, end)
        assert (result.is_available, result.type) == (False, "unavailable")
        assert result.message == "Error checking availability: End time must be after start time"
