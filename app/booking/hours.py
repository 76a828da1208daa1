"""
Per-company hour allotments.

The ledger never commits; callers own the transaction so a debit or refund
lands together with the booking change it belongs to.
"""
import logging

from sqlalchemy.orm import Session

from .. import models
from ..errors import ValidationError

logger = logging.getLogger(__name__)

ADD = "add"
USE = "use"
REFUND = "refund"


def get_company_hours(
    db: Session, company_name: str, active_only: bool = False, for_update: bool = False
) -> models.CompanyHours | None:
    """Look up a company ledger.

    ``for_update`` row-locks the ledger until the transaction ends and reloads
    it from the database, so balance checks and arithmetic never run against
    a stale ``used_hours``.
    """
    query = db.query(models.CompanyHours).filter(models.CompanyHours.company_name == company_name)
    if active_only:
        query = query.filter(models.CompanyHours.is_active.is_(True))
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def _record(ledger: models.CompanyHours, kind: str, hours: float, description: str, booking_id=None):
    ledger.transactions.append(
        models.HourTransaction(type=kind, hours=hours, description=description, booking_id=booking_id)
    )


def add_hours(db: Session, company_name: str, hours: float, description: str | None = None) -> models.CompanyHours:
    if hours <= 0:
        raise ValidationError("Please provide valid company name and hours")

    ledger = get_company_hours(db, company_name, for_update=True)
    if ledger is None:
        ledger = models.CompanyHours(company_name=company_name, total_hours=0.0, used_hours=0.0)
        db.add(ledger)
        description = description or f"Initial {hours:g} hours"
    ledger.total_hours += hours
    _record(ledger, ADD, hours, description or f"Added {hours:g} hours")
    return ledger


def ensure_sufficient(ledger: models.CompanyHours, hours: float) -> None:
    if ledger.remaining_hours < hours:
        raise ValidationError(
            f"Insufficient hours. You need {hours:g}h but only have {ledger.remaining_hours:g}h remaining."
        )


def debit_booking(ledger: models.CompanyHours, booking: models.Booking) -> None:
    ensure_sufficient(ledger, booking.hours_used)
    ledger.used_hours += booking.hours_used
    _record(
        ledger,
        USE,
        booking.hours_used,
        f"Booking for {booking.booking_date.isoformat()} ({booking.start_time}-{booking.end_time})",
        booking_id=booking.id,
    )


def refund_booking(db: Session, booking: models.Booking) -> float:
    """Return the hours a cancelled hour-based booking consumed. Returns the hours refunded."""
    if not booking.is_hour_based_booking or booking.hours_used <= 0 or not booking.company_name:
        return 0.0

    ledger = get_company_hours(db, booking.company_name, for_update=True)
    if ledger is None:
        logger.warning("No hour ledger for company %r, booking %s not refunded", booking.company_name, booking.id)
        return 0.0

    ledger.used_hours = max(0.0, ledger.used_hours - booking.hours_used)
    _record(
        ledger,
        REFUND,
        booking.hours_used,
        f"Refund for cancelled booking on {booking.booking_date.isoformat()} "
        f"({booking.start_time}-{booking.end_time})",
        booking_id=booking.id,
    )
    logger.info(
        "Refunded %sh to %r for booking %s (remaining %sh)",
        booking.hours_used,
        booking.company_name,
        booking.id,
        ledger.remaining_hours,
    )
    return booking.hours_used
