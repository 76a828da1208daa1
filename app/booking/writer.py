"""
Creates bookings.

Every entry point (user API, admin console) goes through ``create_booking``,
so format, business-hour and minimum-duration rules are enforced in one
place. The availability check and the insert run while the room/day lock
row is write-locked, which serializes concurrent writers for the same room
and day; the partial unique index on full-day bookings backs this up at the
storage layer.
"""
import datetime
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import config, models
from ..errors import BookingError, Conflict, DataAccessError, NotFound, ValidationError
from . import hours as ledger_ops
from .availability import FULLY_BOOKED, UNAVAILABLE, check_time_slot_availability
from .calendar import normalize_booking_date, utc_today
from .timeranges import TimeRange, time_to_minutes

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    room_id: int
    booking_date: object  # "YYYY-MM-DD", date or datetime
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_full_day_booking: bool = False
    notes: str = ""


def resolve_time_range(request: BookingRequest) -> TimeRange:
    if request.is_full_day_booking:
        return TimeRange(config.BUSINESS_OPEN, config.BUSINESS_CLOSE)
    if not request.start_time or not request.end_time:
        raise ValidationError("Please provide start time and end time for custom bookings")
    return TimeRange(request.start_time, request.end_time)


def validate_time_range(time_range: TimeRange, is_full_day: bool) -> None:
    start = time_to_minutes(time_range.start_time)
    end = time_to_minutes(time_range.end_time)
    if start >= end:
        raise ValidationError("End time must be after start time")

    if start < time_to_minutes(config.BUSINESS_OPEN) or end > time_to_minutes(config.BUSINESS_CLOSE):
        raise ValidationError(
            f"Bookings must be within business hours ({config.BUSINESS_OPEN} - {config.BUSINESS_CLOSE})"
        )

    if not is_full_day and end - start < config.MIN_BOOKING_MINUTES:
        raise ValidationError(f"Minimum booking duration is {config.MIN_BOOKING_MINUTES // 60} hours")


def _ensure_day_lock_row(db: Session, room_id: int, day: datetime.date) -> None:
    exists = (
        db.query(models.RoomDayLock.id)
        .filter(models.RoomDayLock.room_id == room_id, models.RoomDayLock.booking_date == day)
        .first()
    )
    if exists:
        return
    try:
        with db.begin_nested():
            db.add(models.RoomDayLock(room_id=room_id, booking_date=day, version=0))
    except IntegrityError:
        # Another writer created it first.
        pass


def acquire_day_lock(db: Session, room_id: int, day: datetime.date) -> None:
    """Write-lock the room/day row until the current transaction ends."""
    _ensure_day_lock_row(db, room_id, day)
    result = db.execute(
        update(models.RoomDayLock)
        .where(models.RoomDayLock.room_id == room_id, models.RoomDayLock.booking_date == day)
        .values(version=models.RoomDayLock.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise DataAccessError(f"Could not lock room {room_id} on {day.isoformat()}")


def create_booking(db: Session, request: BookingRequest, user_id: int) -> models.Booking:
    day = normalize_booking_date(request.booking_date)
    time_range = resolve_time_range(request)
    validate_time_range(time_range, request.is_full_day_booking)
    if day < utc_today():
        raise ValidationError("Cannot book a date in the past")

    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found")
    room = db.get(models.Room, request.room_id)
    if room is None:
        raise NotFound("Room not found")
    if not room.availability:
        raise ValidationError(f"Room '{room.name}' is not available for booking")

    try:
        acquire_day_lock(db, room.id, day)

        ledger = None
        if config.COMPANY_HOURS_ENABLED and user.company_name:
            ledger = ledger_ops.get_company_hours(db, user.company_name, active_only=True, for_update=True)
            if ledger is not None:
                ledger_ops.ensure_sufficient(ledger, time_range.hours)

        availability = check_time_slot_availability(
            db, room.id, day, time_range.start_time, time_range.end_time
        )
        if availability.type == UNAVAILABLE:
            raise DataAccessError(availability.message)
        if not availability.is_available:
            raise Conflict(availability.message, availability.type)

        booking = models.Booking(
            user_id=user.id,
            room_id=room.id,
            booking_date=day,
            start_time=time_range.start_time,
            end_time=time_range.end_time,
            is_full_day_booking=bool(request.is_full_day_booking),
            notes=request.notes or "",
            status=models.BOOKING_ACTIVE,
            is_hour_based_booking=ledger is not None,
            hours_used=time_range.hours if ledger is not None else 0.0,
            company_name=user.company_name or "",
        )
        db.add(booking)
        db.flush()
        if ledger is not None:
            ledger_ops.debit_booking(ledger, booking)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Booking insert rejected by constraint for room %s on %s: %s", request.room_id, day, exc)
        raise Conflict("This room is fully booked for the entire day.", FULLY_BOOKED) from exc
    except BookingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise DataAccessError(f"Failed to create booking: {exc}") from exc

    db.refresh(booking)
    logger.info(
        "Booking %s created: room=%s date=%s %s full_day=%s hours_used=%s",
        booking.id,
        booking.room_id,
        booking.booking_date,
        TimeRange.of(booking),
        booking.is_full_day_booking,
        booking.hours_used,
    )
    return booking
