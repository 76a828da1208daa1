import datetime
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app import config, models
from app.booking import BookingRequest, create_booking, get_day_availability_status
from app.booking import hours as ledger_ops
from app.booking.calendar import utc_today
from app.database.db import SessionLocal
from app.errors import Conflict, NotFound, ValidationError


def request_for(room, day, start="10:00", end="12:00", **kwargs):
    return BookingRequest(room_id=room.id, booking_date=day.isoformat(), start_time=start, end_time=end, **kwargs)


def test_create_booking_persists_active_booking(db, user, room, booking_day):
    booking = create_booking(db, request_for(room, booking_day, notes="Sprint review"), user_id=user.id)

    assert booking.id is not None
    assert booking.status == models.BOOKING_ACTIVE
    assert booking.booking_date == booking_day
    assert (booking.start_time, booking.end_time) == ("10:00", "12:00")
    assert booking.notes == "Sprint review"
    assert booking.room.name == "Boardroom"
    assert not booking.is_full_day_booking


def test_full_day_booking_uses_business_hours(db, user, room, booking_day):
    booking = create_booking(
        db,
        BookingRequest(room_id=room.id, booking_date=booking_day.isoformat(), start_time="00:00",
                       end_time="23:59", is_full_day_booking=True),
        user_id=user.id,
    )

    assert (booking.start_time, booking.end_time) == (config.BUSINESS_OPEN, config.BUSINESS_CLOSE)
    assert booking.is_full_day_booking


def test_conflicting_booking_is_rejected(db, user, room, booking_day):
    create_booking(db, request_for(room, booking_day, "10:00", "12:00"), user_id=user.id)

    with pytest.raises(Conflict) as excinfo:
        create_booking(db, request_for(room, booking_day, "11:00", "13:00"), user_id=user.id)

    assert excinfo.value.kind == "partially_booked"
    assert "10:00-12:00" in excinfo.value.message
    assert db.query(models.Booking).count() == 1


def test_full_day_booking_blocks_later_requests(db, user, room, booking_day):
    create_booking(db, BookingRequest(room_id=room.id, booking_date=booking_day, is_full_day_booking=True),
                   user_id=user.id)

    with pytest.raises(Conflict) as excinfo:
        create_booking(db, request_for(room, booking_day, "16:00", "18:00"), user_id=user.id)

    assert excinfo.value.kind == "fully_booked"


def test_full_day_booking_rejected_when_slot_taken(db, user, room, booking_day):
    create_booking(db, request_for(room, booking_day, "14:00", "16:00"), user_id=user.id)

    with pytest.raises(Conflict) as excinfo:
        create_booking(db, BookingRequest(room_id=room.id, booking_date=booking_day, is_full_day_booking=True),
                       user_id=user.id)

    assert excinfo.value.kind == "partially_booked"


def test_back_to_back_bookings_are_allowed(db, user, room, booking_day):
    create_booking(db, request_for(room, booking_day, "10:00", "12:00"), user_id=user.id)
    create_booking(db, request_for(room, booking_day, "12:00", "14:00"), user_id=user.id)

    assert db.query(models.Booking).count() == 2


def test_new_booking_visible_to_day_status(db, user, room, booking_day):
    assert get_day_availability_status(db, room.id, booking_day).type == "available"

    create_booking(db, request_for(room, booking_day, "08:00", "10:00"), user_id=user.id)

    status = get_day_availability_status(db, room.id, booking_day.isoformat())
    assert status.type == "partially_booked"
    assert [str(r) for r in status.booked_ranges] == ["08:00-10:00"]


@pytest.mark.parametrize(
    "start, end, message",
    [
        ("10:00", "11:00", "Minimum booking duration"),
        ("12:00", "10:00", "End time must be after start time"),
        ("07:00", "09:00", "business hours"),
        ("17:00", "19:00", "business hours"),
        ("10:00", "noon", "Invalid time"),
    ],
)
def test_invalid_ranges_are_rejected(db, user, room, booking_day, start, end, message):
    with pytest.raises(ValidationError) as excinfo:
        create_booking(db, request_for(room, booking_day, start, end), user_id=user.id)

    assert message in excinfo.value.message
    assert db.query(models.Booking).count() == 0


def test_missing_times_rejected(db, user, room, booking_day):
    with pytest.raises(ValidationError):
        create_booking(db, BookingRequest(room_id=room.id, booking_date=booking_day), user_id=user.id)


def test_past_date_rejected(db, user, room):
    yesterday = utc_today() - datetime.timedelta(days=1)

    with pytest.raises(ValidationError, match="past"):
        create_booking(db, request_for(room, yesterday), user_id=user.id)


def test_unknown_room_and_user(db, user, room, booking_day):
    with pytest.raises(NotFound):
        create_booking(db, BookingRequest(room_id=999, booking_date=booking_day, start_time="10:00",
                                          end_time="12:00"), user_id=user.id)
    with pytest.raises(NotFound):
        create_booking(db, request_for(room, booking_day), user_id=999)


def test_room_switched_off_rejected(db, user, room, booking_day):
    room.availability = False
    db.commit()

    with pytest.raises(ValidationError, match="not available"):
        create_booking(db, request_for(room, booking_day), user_id=user.id)


def test_company_hours_are_debited(db, user, room, booking_day):
    ledger_ops.add_hours(db, user.company_name, 10)
    db.commit()

    booking = create_booking(db, request_for(room, booking_day, "10:00", "13:00"), user_id=user.id)

    ledger = ledger_ops.get_company_hours(db, user.company_name)
    assert booking.is_hour_based_booking
    assert booking.hours_used == 3
    assert ledger.used_hours == 3
    assert ledger.remaining_hours == 7
    assert [(t.type, t.hours, t.booking_id) for t in ledger.transactions] == [
        ("add", 10, None),
        ("use", 3, booking.id),
    ]


def test_insufficient_company_hours(db, user, room, booking_day):
    ledger_ops.add_hours(db, user.company_name, 1)
    db.commit()

    with pytest.raises(ValidationError, match="Insufficient hours"):
        create_booking(db, request_for(room, booking_day), user_id=user.id)

    assert db.query(models.Booking).count() == 0


def test_company_hours_can_be_switched_off(db, user, room, booking_day, monkeypatch):
    monkeypatch.setattr(config, "COMPANY_HOURS_ENABLED", False)
    ledger_ops.add_hours(db, user.company_name, 1)
    db.commit()

    booking = create_booking(db, request_for(room, booking_day), user_id=user.id)

    assert not booking.is_hour_based_booking
    assert ledger_ops.get_company_hours(db, user.company_name).used_hours == 0


def test_concurrent_overlapping_requests_yield_one_booking(user, room, booking_day):
    user_id, room_id = user.id, room.id
    barrier = threading.Barrier(2)

    def attempt(start, end):
        session = SessionLocal()
        try:
            barrier.wait()
            request = BookingRequest(room_id=room_id, booking_date=booking_day.isoformat(),
                                     start_time=start, end_time=end)
            booking = create_booking(session, request, user_id=user_id)
            return booking.id
        except Conflict as exc:
            return exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda args: attempt(*args), [("10:00", "12:00"), ("11:00", "13:00")]))

    successes = [r for r in results if isinstance(r, int)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(successes) == 1
    assert len(conflicts) == 1

    session = SessionLocal()
    try:
        assert session.query(models.Booking).count() == 1
    finally:
        session.close()


def test_ledger_is_reread_before_debit(db, user, room, booking_day):
    ledger_ops.add_hours(db, user.company_name, 4)
    db.commit()
    annex = models.Room(name="Annex", capacity=4, floor=2)
    db.add(annex)
    db.commit()
    annex_id = annex.id

    other = SessionLocal()
    try:
        # Loaded while all four hours are still free.
        assert ledger_ops.get_company_hours(other, user.company_name).remaining_hours == 4

        create_booking(db, request_for(room, booking_day, "10:00", "13:00"), user_id=user.id)

        with pytest.raises(ValidationError, match="Insufficient hours"):
            create_booking(
                other,
                BookingRequest(room_id=annex_id, booking_date=booking_day, start_time="10:00", end_time="13:00"),
                user_id=user.id,
            )
    finally:
        other.close()

    db.expire_all()
    assert ledger_ops.get_company_hours(db, user.company_name).used_hours == 3


def test_day_lock_does_not_commit_pending_work(db, user, room, booking_day, add_booking):
    add_booking(user, room, booking_day, "10:00", "12:00")
    db.add(models.Room(name="Scratch", capacity=1, floor=0))

    with pytest.raises(Conflict):
        create_booking(db, request_for(room, booking_day, "11:00", "13:00"), user_id=user.id)

    assert db.query(models.Room).filter_by(name="Scratch").count() == 0
    assert db.query(models.RoomDayLock).count() == 0
