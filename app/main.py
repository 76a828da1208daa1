import logging
import os
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query
from sqlalchemy.orm import Session

from . import models, schemas
from .admin import router as admin_router
from .auth import create_access_token, get_current_user_id, hash_password, verify_password
from .booking import (
    BookingRequest,
    cancel_booking,
    check_time_slot_availability,
    create_booking,
    get_available_time_slots,
    get_day_availability_status,
)
from .booking import hours as ledger_ops
from .booking.calendar import normalize_booking_date
from .config import configure_logging, load_environment
from .database.db import Base, SessionLocal, engine, get_db
from .errors import NotFound, Unauthenticated, ValidationError, register_exception_handlers
from .notifications import booking_email_context, send_booking_email

load_environment()
configure_logging()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App FastAPI
# ---------------------------------------------------------------------------
app = FastAPI(title="Meeting Room Booking")
register_exception_handlers(app)
app.include_router(admin_router)


@app.on_event("startup")
def startup_db_seed():
    """Create tables, default rooms and the default admin if missing."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(models.Room).count() == 0:
            db.add_all(
                [
                    models.Room(name="Boardroom", description="Screen and video conferencing", capacity=12, floor=1),
                    models.Room(name="Focus Room", description="Quiet room for small meetings", capacity=4, floor=2),
                ]
            )
            db.commit()

        admin_username = os.getenv("ADMIN_USERNAME", "admin")
        admin_password = os.getenv("ADMIN_PASSWORD")
        if admin_password and db.query(models.AdminUser).filter_by(username=admin_username).first() is None:
            db.add(models.AdminUser(username=admin_username, hashed_password=hash_password(admin_password)))
            db.commit()
            logger.info("Admin user '%s' created", admin_username)
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

@app.post("/auth/register", response_model=schemas.AuthResponse, status_code=201)
def register(payload: schemas.UserRegister, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(models.User).filter(models.User.email == email).first() is not None:
        raise ValidationError("User already exists with this email")

    user = models.User(
        name=payload.name,
        email=email,
        hashed_password=hash_password(payload.password),
        company_name=payload.company_name,
        phone_number=payload.phone_number,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s registered for company %r", user.id, user.company_name)
    return {"message": "User registered successfully", "token": create_access_token(user.id), "user": user}


@app.post("/auth/login", response_model=schemas.AuthResponse)
def login(payload: schemas.UserLogin, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.email == payload.email.lower()).first()
    if user is None or not verify_password(payload.password, user.hashed_password):
        raise Unauthenticated("Invalid email or password")
    return {"message": "Login successful", "token": create_access_token(user.id), "user": user}


@app.get("/user/company-hours", response_model=schemas.CompanyHours)
def get_my_company_hours(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found")
    ledger = ledger_ops.get_company_hours(db, user.company_name)
    if ledger is None:
        raise NotFound("No hour allotment for this company")
    return ledger


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------

@app.get("/rooms/list", response_model=List[schemas.Room])
def list_rooms(db: Session = Depends(get_db)):
    return (
        db.query(models.Room)
        .filter(models.Room.availability.is_(True))
        .order_by(models.Room.floor, models.Room.name)
        .all()
    )


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

@app.post(
    "/bookings/check-availability",
    response_model=schemas.Availability,
    response_model_exclude_none=True,
)
def check_availability(
    payload: schemas.AvailabilityCheck,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    check_type = payload.check_type
    if check_type is None:
        check_type = "timeSlot" if payload.start_time and payload.end_time else "day"

    if check_type == "day":
        return get_day_availability_status(db, payload.room_id, payload.booking_date)

    if check_type == "timeSlot":
        if not payload.start_time or not payload.end_time:
            raise ValidationError("Please provide start and end times")
        return check_time_slot_availability(
            db, payload.room_id, payload.booking_date, payload.start_time, payload.end_time
        )

    raise ValidationError("Invalid check type")


@app.get("/bookings/available-slots", response_model=schemas.AvailableSlots)
def available_slots(
    room_id: int = Query(alias="roomId"),
    booking_date: str = Query(alias="bookingDate"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return {
        "room_id": room_id,
        "booking_date": normalize_booking_date(booking_date),
        "slots": get_available_time_slots(db, room_id, booking_date),
    }


@app.post("/bookings/create", response_model=schemas.BookingCreated, status_code=201)
def create_booking_route(
    payload: schemas.BookingCreate,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    booking = create_booking(
        db,
        BookingRequest(
            room_id=payload.room_id,
            booking_date=payload.booking_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            is_full_day_booking=payload.is_full_day_booking,
            notes=payload.notes,
        ),
        user_id=user_id,
    )

    remaining: Optional[float] = None
    if booking.is_hour_based_booking:
        remaining = ledger_ops.get_company_hours(db, booking.company_name).remaining_hours

    background_tasks.add_task(
        send_booking_email,
        booking_email_context(booking, booking.user, booking.room),
        booking.user.email,
    )

    return {
        "message": "Booking created successfully",
        "booking": booking,
        "hours_deducted": booking.hours_used,
        "remaining_hours": remaining,
    }


@app.put("/bookings/cancel", response_model=schemas.BookingCancelled)
def cancel_booking_route(
    payload: schemas.BookingCancel,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    booking = cancel_booking(db, payload.booking_id, user_id)
    hours_refunded = ledger_ops.refund_booking(db, booking)
    db.commit()
    db.refresh(booking)
    return {"message": "Booking cancelled successfully", "booking": booking, "hours_refunded": hours_refunded}


@app.get("/bookings/user-bookings", response_model=schemas.BookingList)
def user_bookings(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    bookings = (
        db.query(models.Booking)
        .filter(
            models.Booking.user_id == user_id,
            models.Booking.status.in_(models.OCCUPYING_STATUSES),
        )
        .order_by(models.Booking.booking_date.desc(), models.Booking.start_time)
        .all()
    )
    return {"bookings": bookings}
