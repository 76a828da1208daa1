from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Optional, List


class CamelModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ----- Rooms -----
class RoomBase(CamelModel):
    name: str
    description: str = ""
    capacity: int = Field(ge=1)
    floor: int
    image: Optional[str] = None
    availability: bool = True


class RoomCreate(RoomBase):
    pass


class RoomUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    floor: Optional[int] = None
    image: Optional[str] = None
    availability: Optional[bool] = None


class Room(RoomBase):
    id: int


# ----- Users -----
class UserRegister(CamelModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=6)
    company_name: str
    phone_number: str


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class User(CamelModel):
    id: int
    name: str
    email: str
    company_name: str
    phone_number: str
    created_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    message: str
    token: str
    user: User


class AdminLogin(CamelModel):
    username: str
    password: str


# ----- Availability -----
class TimeRange(CamelModel):
    start_time: str
    end_time: str


class AvailabilityCheck(CamelModel):
    room_id: int
    booking_date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    check_type: Optional[str] = None


class Availability(CamelModel):
    is_available: bool
    type: str
    booked_ranges: Optional[List[TimeRange]] = None
    message: str


class AvailableSlots(CamelModel):
    room_id: int
    booking_date: date
    slots: List[TimeRange]


# ----- Bookings -----
class BookingCreate(CamelModel):
    room_id: int
    booking_date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_full_day_booking: bool = False
    notes: str = ""


class BookingCancel(CamelModel):
    booking_id: int


class Booking(CamelModel):
    id: int
    user_id: int
    room_id: int
    room: Optional[Room] = None
    booking_date: date
    start_time: str
    end_time: str
    is_full_day_booking: bool
    status: str
    notes: str = ""
    is_hour_based_booking: bool = False
    hours_used: float = 0.0
    company_name: str = ""
    created_at: datetime
    cancelled_at: Optional[datetime] = None


class BookingCreated(CamelModel):
    message: str
    booking: Booking
    hours_deducted: float
    remaining_hours: Optional[float] = None


class BookingCancelled(CamelModel):
    message: str
    booking: Booking
    hours_refunded: float


class BookingList(CamelModel):
    bookings: List[Booking]


class CleanupResult(CamelModel):
    message: str
    deleted_count: int


# ----- Company hours -----
class CompanySummary(CamelModel):
    company_name: str
    user_count: int


class CompanyList(CamelModel):
    companies: List[CompanySummary]


class HoursAdd(CamelModel):
    company_name: str
    hours: float
    description: Optional[str] = None


class HourTransaction(CamelModel):
    id: int
    type: str
    hours: float
    description: str = ""
    booking_id: Optional[int] = None
    created_at: Optional[datetime] = None


class CompanyHours(CamelModel):
    id: int
    company_name: str
    total_hours: float
    used_hours: float
    remaining_hours: float
    is_active: bool
    transactions: List[HourTransaction] = []
