"""
Cancellation of bookings.

Only ``active`` bookings can be cancelled. Cancelling is allowed when the
booking starts more than ``CANCELLATION_NOTICE_HOURS`` from now, or when it
was created no more than ``CANCELLATION_GRACE_HOURS`` ago. Nothing here
touches the hour ledger; callers refund explicitly.
"""
import datetime
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import config, models
from ..errors import AlreadyCancelled, CancellationWindowExpired, NotFound, Unauthorized, ValidationError
from .calendar import booking_start

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


def _hours(delta: datetime.timedelta) -> float:
    return delta.total_seconds() / SECONDS_PER_HOUR


def cancellation_window(booking: models.Booking, now: datetime.datetime) -> tuple[float, float]:
    """``(hours_until_booking, hours_since_creation)`` at ``now`` (naive UTC)."""
    hours_until = _hours(booking_start(booking.booking_date, booking.start_time) - now)
    hours_since_creation = _hours(now - booking.created_at)
    return hours_until, hours_since_creation


def can_cancel(booking: models.Booking, now: datetime.datetime) -> bool:
    hours_until, hours_since_creation = cancellation_window(booking, now)
    return hours_until > config.CANCELLATION_NOTICE_HOURS or hours_since_creation <= config.CANCELLATION_GRACE_HOURS


def check_cancellable(booking: models.Booking, now: datetime.datetime) -> None:
    """Raise if ``booking`` may not be cancelled at ``now``."""
    if booking.status == models.BOOKING_CANCELLED:
        raise AlreadyCancelled("Booking is already cancelled")
    if booking.status != models.BOOKING_ACTIVE:
        raise ValidationError(f"A {booking.status} booking cannot be cancelled")

    hours_until, hours_since_creation = cancellation_window(booking, now)
    if not can_cancel(booking, now):
        raise CancellationWindowExpired(
            f"Bookings within {config.CANCELLATION_NOTICE_HOURS:g} hours can only be cancelled "
            f"within {config.CANCELLATION_GRACE_HOURS:g} hour of creation",
            details={
                "hoursUntilBooking": round(hours_until, 2),
                "hoursSinceCreation": round(hours_since_creation, 2),
                "cancellationDeadline": (
                    f"{config.CANCELLATION_NOTICE_HOURS:g} hours before booking "
                    f"or within {config.CANCELLATION_GRACE_HOURS:g} hour of creation"
                ),
            },
        )


def apply_cancellation(booking: models.Booking, now: datetime.datetime | None = None) -> models.Booking:
    """Move ``booking`` from active to cancelled, or raise without changing it."""
    now = now or models.utcnow()
    check_cancellable(booking, now)
    booking.status = models.BOOKING_CANCELLED
    booking.cancelled_at = now
    return booking


def cancel_booking(
    db: Session, booking_id: int, user_id: int, now: datetime.datetime | None = None
) -> models.Booking:
    """Cancel a booking owned by ``user_id``. The caller commits.

    The status change is a conditional UPDATE on ``status = active``, so of two
    concurrent cancellations only one claims the row; the other gets
    ``AlreadyCancelled`` and must not refund.
    """
    booking = db.get(models.Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    if booking.user_id != user_id:
        raise Unauthorized("Unauthorized to cancel this booking")

    now = now or models.utcnow()
    check_cancellable(booking, now)

    claimed = db.execute(
        update(models.Booking)
        .where(models.Booking.id == booking.id, models.Booking.status == models.BOOKING_ACTIVE)
        .values(status=models.BOOKING_CANCELLED, cancelled_at=now)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.refresh(booking)
    if claimed != 1:
        raise AlreadyCancelled("Booking is already cancelled")
    logger.info("Booking %s cancelled by user %s", booking.id, user_id)
    return booking
