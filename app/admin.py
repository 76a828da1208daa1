"""
Admin console API. Every route except login requires the signed
``admin_session`` cookie.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from . import config, models, schemas
from .auth import create_session_token, get_current_admin, verify_password
from .booking import BookingRequest, create_booking
from .booking import hours as ledger_ops
from .booking.calendar import normalize_booking_date
from .booking.retention import cleanup_old_bookings
from .database.db import get_db
from .errors import NotFound, Unauthenticated, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminBookingCreate(schemas.BookingCreate):
    user_id: int


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@router.post("/login")
def admin_login(payload: schemas.AdminLogin, db: Session = Depends(get_db)):
    user = db.query(models.AdminUser).filter_by(username=payload.username, is_active=True).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise Unauthenticated("Invalid username or password")
    response = JSONResponse({"message": "Login successful", "username": user.username})
    response.set_cookie(
        key="admin_session",
        value=create_session_token(user.username),
        httponly=True,
        samesite="lax",
        max_age=config.ADMIN_SESSION_MAX_AGE_SECONDS,
    )
    return response


@router.get("/logout")
def admin_logout():
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie("admin_session")
    return response


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------

@router.get("/rooms", response_model=List[schemas.Room])
def list_rooms(db: Session = Depends(get_db), current_admin: str = Depends(get_current_admin)):
    return db.query(models.Room).order_by(models.Room.floor, models.Room.name).all()


@router.post("/rooms", response_model=schemas.Room, status_code=201)
def create_room(
    payload: schemas.RoomCreate,
    db: Session = Depends(get_db),
    current_admin: str = Depends(get_current_admin),
):
    room = models.Room(**payload.model_dump(exclude_none=True))
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Room %s (%s) created by %s", room.id, room.name, current_admin)
    return room


@router.put("/rooms/{room_id}", response_model=schemas.Room)
def update_room(
    room_id: int,
    payload: schemas.RoomUpdate,
    db: Session = Depends(get_db),
    current_admin: str = Depends(get_current_admin),
):
    room = db.get(models.Room, room_id)
    if room is None:
        raise NotFound("Room not found")
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(room, field, value)
    db.commit()
    db.refresh(room)
    return room


# ---------------------------------------------------------------------------
# Users and bookings
# ---------------------------------------------------------------------------

@router.get("/users", response_model=List[schemas.User])
def list_users(db: Session = Depends(get_db), current_admin: str = Depends(get_current_admin)):
    return db.query(models.User).order_by(models.User.created_at.desc()).all()


@router.get("/bookings", response_model=schemas.BookingList)
def list_bookings(
    room_id: Optional[int] = Query(default=None, alias="roomId"),
    booking_date: Optional[str] = Query(default=None, alias="bookingDate"),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_admin: str = Depends(get_current_admin),
):
    query = db.query(models.Booking)
    if room_id:
        query = query.filter(models.Booking.room_id == room_id)
    if booking_date:
        query = query.filter(models.Booking.booking_date == normalize_booking_date(booking_date))
    if status:
        query = query.filter(models.Booking.status == status)
    bookings = query.order_by(models.Booking.booking_date.desc(), models.Booking.start_time).all()
    return {"bookings": bookings}


@router.post("/bookings", response_model=schemas.Booking, status_code=201)
def admin_create_booking(
    payload: AdminBookingCreate,
    db: Session = Depends(get_db),
    current_admin: str = Depends(get_current_admin),
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
        user_id=payload.user_id,
    )
    logger.info("Booking %s created by admin %s for user %s", booking.id, current_admin, payload.user_id)
    return booking


@router.delete("/bookings/cleanup", response_model=schemas.CleanupResult)
def cleanup_bookings(db: Session = Depends(get_db), current_admin: str = Depends(get_current_admin)):
    deleted = cleanup_old_bookings(db)
    return {"message": "Old bookings cleaned up successfully", "deleted_count": deleted}


# ---------------------------------------------------------------------------
# Company hours
# ---------------------------------------------------------------------------

@router.get("/companies", response_model=schemas.CompanyList)
def list_companies(db: Session = Depends(get_db), current_admin: str = Depends(get_current_admin)):
    rows = (
        db.query(models.User.company_name, func.count(models.User.id))
        .group_by(models.User.company_name)
        .order_by(models.User.company_name)
        .all()
    )
    return {"companies": [{"company_name": name, "user_count": count} for name, count in rows]}


@router.get("/company-hours", response_model=List[schemas.CompanyHours])
def list_company_hours(db: Session = Depends(get_db), current_admin: str = Depends(get_current_admin)):
    return db.query(models.CompanyHours).order_by(models.CompanyHours.created_at.desc()).all()


@router.post("/company-hours", response_model=schemas.CompanyHours)
def add_company_hours(
    payload: schemas.HoursAdd,
    db: Session = Depends(get_db),
    current_admin: str = Depends(get_current_admin),
):
    if not payload.company_name or payload.hours <= 0:
        raise ValidationError("Please provide valid company name and hours")
    if db.query(models.User).filter(models.User.company_name == payload.company_name).first() is None:
        raise NotFound("Company not found in users database")

    ledger = ledger_ops.add_hours(db, payload.company_name, payload.hours, payload.description)
    db.commit()
    db.refresh(ledger)
    logger.info("%s added %sh to %r", current_admin, payload.hours, payload.company_name)
    return ledger
