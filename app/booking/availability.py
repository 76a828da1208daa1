"""
Availability of a room on a calendar day.

``check_time_slot_availability`` answers "can this range be booked?";
``get_day_availability_status`` summarizes the whole day. A day that has
some bookings but no full-day booking is reported as ``partially_booked``
and still ``is_available`` at day level, because free slots remain.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from .. import config
from ..errors import BookingError, ValidationError
from .day_query import get_bookings_for_date
from .timeranges import TimeRange, format_ranges, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

AVAILABLE = "available"
FULLY_BOOKED = "fully_booked"
PARTIALLY_BOOKED = "partially_booked"
UNAVAILABLE = "unavailable"

FULLY_BOOKED_MESSAGE = "This room is fully booked for the entire day."

SLOT_MINUTES = 120


@dataclass
class AvailabilityResult:
    is_available: bool
    type: str
    message: str
    booked_ranges: list[TimeRange] | None = field(default=None)


def _error_result(exc: BookingError) -> AvailabilityResult:
    return AvailabilityResult(
        is_available=False,
        type=UNAVAILABLE,
        message=f"Error checking availability: {exc.message}",
    )


def check_time_slot_availability(
    db: Session,
    room_id: int,
    booking_date,
    start_time: str,
    end_time: str,
    exclude_booking_id: int | None = None,
) -> AvailabilityResult:
    try:
        if time_to_minutes(start_time) >= time_to_minutes(end_time):
            raise ValidationError("End time must be after start time")
        requested = TimeRange(start_time, end_time)
        bookings = get_bookings_for_date(db, room_id, booking_date, exclude_booking_id)
    except BookingError as exc:
        logger.warning("Time slot check failed for room %s: %s", room_id, exc.message)
        return _error_result(exc)

    if any(b.is_full_day_booking for b in bookings):
        return AvailabilityResult(is_available=False, type=FULLY_BOOKED, message=FULLY_BOOKED_MESSAGE)

    conflicts = [TimeRange.of(b) for b in bookings if requested.overlaps(TimeRange.of(b))]
    if conflicts:
        return AvailabilityResult(
            is_available=False,
            type=PARTIALLY_BOOKED,
            booked_ranges=conflicts,
            message=f"Time slot conflicts with existing bookings: {format_ranges(conflicts)}",
        )

    return AvailabilityResult(is_available=True, type=AVAILABLE, message="Time slot is available.")


def get_day_availability_status(db: Session, room_id: int, booking_date) -> AvailabilityResult:
    try:
        bookings = get_bookings_for_date(db, room_id, booking_date)
    except BookingError as exc:
        logger.warning("Day status check failed for room %s: %s", room_id, exc.message)
        return _error_result(exc)

    if any(b.is_full_day_booking for b in bookings):
        return AvailabilityResult(is_available=False, type=FULLY_BOOKED, message=FULLY_BOOKED_MESSAGE)

    if bookings:
        ranges = [TimeRange.of(b) for b in bookings]
        return AvailabilityResult(
            is_available=True,
            type=PARTIALLY_BOOKED,
            booked_ranges=ranges,
            message=f"Some time slots are booked: {format_ranges(ranges)}",
        )

    return AvailabilityResult(is_available=True, type=AVAILABLE, message="The entire day is available.")


def business_day_slots() -> list[TimeRange]:
    """Consecutive two-hour slots covering the business window."""
    start = time_to_minutes(config.BUSINESS_OPEN)
    close = time_to_minutes(config.BUSINESS_CLOSE)
    slots = []
    while start + SLOT_MINUTES <= close:
        slots.append(TimeRange(minutes_to_time(start), minutes_to_time(start + SLOT_MINUTES)))
        start += SLOT_MINUTES
    return slots


def get_available_time_slots(db: Session, room_id: int, booking_date) -> list[TimeRange]:
    """Business-day slots that do not overlap any booking. Raises on store errors."""
    bookings = get_bookings_for_date(db, room_id, booking_date)
    if any(b.is_full_day_booking for b in bookings):
        return []
    booked = [TimeRange.of(b) for b in bookings]
    return [slot for slot in business_day_slots() if not any(slot.overlaps(r) for r in booked)]
