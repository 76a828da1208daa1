import datetime
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from .. import config, models
from .calendar import utc_today

logger = logging.getLogger(__name__)


def retention_cutoff(today: datetime.date | None = None) -> datetime.date:
    """Bookings dated before this day are past the retention window."""
    return (today or utc_today()) - relativedelta(months=config.RETENTION_MONTHS)


def cleanup_old_bookings(db: Session, today: datetime.date | None = None) -> int:
    """Delete every booking older than the retention window. Returns the number deleted."""
    cutoff = retention_cutoff(today)
    old_ids = [row.id for row in db.query(models.Booking.id).filter(models.Booking.booking_date < cutoff)]
    if not old_ids:
        return 0

    # Ledger entries keep their amounts but lose the link to the deleted booking.
    db.query(models.HourTransaction).filter(models.HourTransaction.booking_id.in_(old_ids)).update(
        {models.HourTransaction.booking_id: None}, synchronize_session=False
    )
    deleted = (
        db.query(models.Booking)
        .filter(models.Booking.id.in_(old_ids))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Retention cleanup removed %s bookings dated before %s", deleted, cutoff)
    return deleted
