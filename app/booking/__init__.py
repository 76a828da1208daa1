from .availability import (
    AvailabilityResult,
    check_time_slot_availability,
    get_available_time_slots,
    get_day_availability_status,
)
from .cancellation import apply_cancellation, can_cancel, cancel_booking
from .day_query import get_bookings_for_date
from .timeranges import TimeRange, ranges_overlap
from .writer import BookingRequest, create_booking
