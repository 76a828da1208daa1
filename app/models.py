from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from .database.db import Base
import datetime

BOOKING_ACTIVE = "active"
BOOKING_CANCELLED = "cancelled"
BOOKING_COMPLETED = "completed"

# Statuses that occupy a room; cancelled bookings never block anything.
OCCUPYING_STATUSES = (BOOKING_ACTIVE, BOOKING_COMPLETED)


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, default="")
    capacity = Column(Integer, nullable=False, default=1)
    floor = Column(Integer, nullable=False, default=0)
    image = Column(String, default="/room-placeholder.jpg")
    availability = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    bookings = relationship("Booking", back_populates="room")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    company_name = Column(String, index=True, nullable=False)
    phone_number = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    bookings = relationship("Booking", back_populates="user")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_room_date", "room_id", "booking_date"),
        Index("ix_bookings_user_date", "user_id", "booking_date"),
        # At most one occupying full-day booking per room and day.
        Index(
            "uq_bookings_full_day",
            "room_id",
            "booking_date",
            unique=True,
            sqlite_where=text("is_full_day_booking = 1 AND status != 'cancelled'"),
            postgresql_where=text("is_full_day_booking AND status != 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:MM", 24-hour
    end_time = Column(String(5), nullable=False)
    is_full_day_booking = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=BOOKING_ACTIVE, nullable=False, index=True)
    notes = Column(String, default="")

    is_hour_based_booking = Column(Boolean, default=False, nullable=False)
    hours_used = Column(Float, default=0.0, nullable=False)
    company_name = Column(String, default="")

    created_at = Column(DateTime, default=utcnow, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")


class RoomDayLock(Base):
    """Row locked for the duration of a booking write on one room and day."""

    __tablename__ = "room_day_locks"
    __table_args__ = (UniqueConstraint("room_id", "booking_date", name="uq_room_day_lock"),)

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    version = Column(Integer, default=0, nullable=False)


class CompanyHours(Base):
    __tablename__ = "company_hours"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String, unique=True, index=True, nullable=False)
    total_hours = Column(Float, default=0.0, nullable=False)
    used_hours = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    transactions = relationship(
        "HourTransaction",
        back_populates="company_hours",
        order_by="HourTransaction.id",
    )

    @property
    def remaining_hours(self) -> float:
        return self.total_hours - self.used_hours


class HourTransaction(Base):
    __tablename__ = "hour_transactions"

    id = Column(Integer, primary_key=True, index=True)
    company_hours_id = Column(Integer, ForeignKey("company_hours.id"), nullable=False)
    type = Column(String, nullable=False)  # add | use | refund
    hours = Column(Float, nullable=False)
    description = Column(String, default="")
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    company_hours = relationship("CompanyHours", back_populates="transactions")


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
