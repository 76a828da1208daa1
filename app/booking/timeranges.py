"""
Time-of-day ranges.

Times are ``"HH:MM"`` strings in 24-hour format and are compared as integer
minutes since midnight. Ranges are half-open, ``[start, end)``: a range
ending at 10:00 and one starting at 10:00 do not overlap.
"""
import re
from dataclasses import dataclass

from ..errors import ValidationError

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def is_valid_time(value) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def time_to_minutes(value: str) -> int:
    match = TIME_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM format")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def ranges_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """True when ``[start1, end1)`` and ``[start2, end2)`` share any minute."""
    return time_to_minutes(start1) < time_to_minutes(end2) and time_to_minutes(
        start2
    ) < time_to_minutes(end1)


@dataclass(frozen=True)
class TimeRange:
    start_time: str
    end_time: str

    @classmethod
    def of(cls, booking) -> "TimeRange":
        return cls(booking.start_time, booking.end_time)

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end_time) - time_to_minutes(self.start_time)

    @property
    def hours(self) -> float:
        return self.duration_minutes / 60

    def overlaps(self, other: "TimeRange") -> bool:
        return ranges_overlap(self.start_time, self.end_time, other.start_time, other.end_time)

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


def format_ranges(ranges) -> str:
    return ", ".join(str(r) for r in ranges)
