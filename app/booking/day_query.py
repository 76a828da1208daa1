import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..errors import DataAccessError
from .calendar import day_bounds, normalize_booking_date

logger = logging.getLogger(__name__)


def get_bookings_for_date(
    db: Session, room_id: int, booking_date, exclude_booking_id: int | None = None
) -> list[models.Booking]:
    """
    Every active or completed booking of ``room_id`` on the calendar day of
    ``booking_date``. Results are unordered.

    Store failures surface as ``DataAccessError``; nothing is retried.
    """
    start_of_day, end_of_day = day_bounds(normalize_booking_date(booking_date))

    query = db.query(models.Booking).filter(
        models.Booking.room_id == room_id,
        models.Booking.booking_date >= start_of_day,
        models.Booking.booking_date < end_of_day,
        models.Booking.status.in_(models.OCCUPYING_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.filter(models.Booking.id != exclude_booking_id)

    try:
        return query.all()
    except SQLAlchemyError as exc:
        logger.error("Day query failed for room %s on %s: %s", room_id, start_of_day, exc)
        raise DataAccessError(f"Failed to load bookings: {exc}") from exc
