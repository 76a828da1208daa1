"""
The single definition of a booking "calendar day": UTC midnight to the next
UTC midnight. Both the day query and the booking writer normalize dates here.
"""
import datetime

from ..errors import ValidationError
from .timeranges import time_to_minutes


def parse_booking_date(value: str) -> datetime.date:
    """Parse ``YYYY-MM-DD`` by splitting on ``-``, never through locale-aware parsing."""
    parts = value.strip().split("-") if isinstance(value, str) else []
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD format")
    year, month, day = (int(part) for part in parts)
    try:
        return datetime.date(year, month, day)
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{value}': {exc}") from exc


def normalize_booking_date(value) -> datetime.date:
    """Reduce a string, date or datetime to its UTC calendar day.

    Naive datetimes are taken to be UTC already.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return parse_booking_date(value)
    raise ValidationError(f"Invalid booking date: {value!r}")


def day_bounds(day: datetime.date) -> tuple[datetime.date, datetime.date]:
    """``[start_of_day, end_of_day)`` for a calendar day."""
    return day, day + datetime.timedelta(days=1)


def utc_today() -> datetime.date:
    return datetime.datetime.now(datetime.timezone.utc).date()


def booking_start(day: datetime.date, start_time: str) -> datetime.datetime:
    """Naive UTC datetime at which a booking starts."""
    minutes = time_to_minutes(start_time)
    return datetime.datetime.combine(day, datetime.time(minutes // 60, minutes % 60))
