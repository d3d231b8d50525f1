"""Time slot value type and the date/time parsing used by the scheduler.

Slots are naive: every date and time is read in the shop's local clock.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Union

from autoshop.scheduling.errors import ValidationError

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])(?::[0-5][0-9])?$")


def parse_date(value: Union[date, datetime, str]) -> date:
    """Parse a calendar date from a ``date``, ``datetime`` or ISO string.

    Strings must be a bare ``YYYY-MM-DD`` date or a complete ISO datetime;
    trailing text after the date is rejected.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValidationError(f"Invalid date: {value!r}")


def parse_time(value: Union[time, str]) -> time:
    """Parse a 24-hour time of day (``H:MM`` or ``HH:MM``), minute precision."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, str):
        match = _TIME_RE.match(value.strip())
        if match:
            return time(int(match.group(1)), int(match.group(2)))
    raise ValidationError(f"Invalid time: {value!r} (expected HH:MM)")


def validate_duration(minutes: Any) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError(f"Duration must be a whole number of minutes, got {minutes!r}")
    if not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
        raise ValidationError(
            f"Duration must be between {MIN_DURATION_MINUTES} and "
            f"{MAX_DURATION_MINUTES} minutes"
        )
    return minutes


def format_time_12h(value: Union[time, str]) -> str:
    """Render a time of day as ``9:05 AM``."""
    t = parse_time(value)
    suffix = "PM" if t.hour >= 12 else "AM"
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d} {suffix}"


@dataclass(frozen=True)
class TimeSlot:
    date: date
    start_time: time
    duration_minutes: int

    @classmethod
    def from_values(cls, slot_date: Any, slot_time: Any, duration: Any) -> "TimeSlot":
        return cls(parse_date(slot_date), parse_time(slot_time), validate_duration(duration))

    @classmethod
    def for_appointment(cls, appointment: Any) -> "TimeSlot":
        """Build the slot occupied by an appointment record."""
        return cls.from_values(
            appointment.scheduled_date,
            appointment.scheduled_time,
            appointment.estimated_duration,
        )

    @property
    def start(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def overlaps(self, other: "TimeSlot") -> bool:
        return overlaps(self, other)

    def __str__(self) -> str:
        return (
            f"{self.date.isoformat()} {format_time_12h(self.start_time)}"
            f" ({self.duration_minutes}min)"
        )


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """Half-open interval overlap; slots that only touch do not overlap."""
    return a.start < b.end and b.start < a.end
