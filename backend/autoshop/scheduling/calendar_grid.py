"""Month / week / day calendar grids.

Weeks start on Sunday. Appointments land in the bucket whose date equals
their ``scheduled_date``; within a bucket they keep the order they were
given in. Day and week buckets also break down into 24 hour buckets keyed
on the hour of ``scheduled_time`` only.
"""

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from autoshop.scheduling.time_slot import format_time_12h, parse_date, parse_time


class ViewMode(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


@dataclass
class HourBucket:
    hour: int
    appointments: List[Any] = field(default_factory=list)

    @property
    def label(self) -> str:
        return format_time_12h(time(self.hour, 0))


@dataclass
class DayBucket:
    date: date
    is_current_month: bool
    is_today: bool
    appointments: List[Any] = field(default_factory=list)
    hours: List[HourBucket] = field(default_factory=list)


def sunday_offset(day: date) -> int:
    """Days since the preceding Sunday (0 for a Sunday)."""
    return (day.weekday() + 1) % 7


def grid_range(reference_date: date, view_mode: ViewMode) -> Tuple[date, date]:
    """First and last date shown by a view, inclusive."""
    reference_date = parse_date(reference_date)
    view_mode = ViewMode(view_mode)

    if view_mode == ViewMode.MONTH:
        first = reference_date.replace(day=1)
        last = reference_date.replace(day=calendar.monthrange(reference_date.year, reference_date.month)[1])
        return first - timedelta(days=sunday_offset(first)), last + timedelta(days=6 - sunday_offset(last))
    if view_mode == ViewMode.WEEK:
        start = reference_date - timedelta(days=sunday_offset(reference_date))
        return start, start + timedelta(days=6)
    return reference_date, reference_date


def shift_reference(reference_date: date, view_mode: ViewMode, step: int) -> date:
    """Move the reference date ``step`` views forward (negative for back).

    Month steps keep the day of month, clamped to the target month's length.
    """
    reference_date = parse_date(reference_date)
    view_mode = ViewMode(view_mode)

    if view_mode == ViewMode.MONTH:
        month_index = reference_date.year * 12 + (reference_date.month - 1) + step
        year, month = divmod(month_index, 12)
        month += 1
        day = min(reference_date.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)
    if view_mode == ViewMode.WEEK:
        return reference_date + timedelta(days=7 * step)
    return reference_date + timedelta(days=step)


def _hour_buckets(appointments: List[Any]) -> List[HourBucket]:
    hours = [HourBucket(hour) for hour in range(24)]
    for appointment in appointments:
        hours[parse_time(appointment.scheduled_time).hour].appointments.append(appointment)
    return hours


def build_grid(
    reference_date: date,
    view_mode: ViewMode,
    appointments: Iterable[Any],
    today: Optional[date] = None,
) -> List[DayBucket]:
    """Partition ``appointments`` into the day buckets of the requested view.

    ``today`` defaults to the wall-clock date and only drives ``is_today``.
    """
    reference_date = parse_date(reference_date)
    view_mode = ViewMode(view_mode)
    today = today or date.today()

    # One pass over a private copy; the caller's collection may change underneath.
    by_day: Dict[date, List[Any]] = defaultdict(list)
    for appointment in list(appointments):
        by_day[parse_date(appointment.scheduled_date)].append(appointment)

    start, end = grid_range(reference_date, view_mode)
    buckets: List[DayBucket] = []
    day = start
    while day <= end:
        day_appointments = list(by_day.get(day, ()))
        buckets.append(
            DayBucket(
                date=day,
                is_current_month=(day.year, day.month) == (reference_date.year, reference_date.month),
                is_today=day == today,
                appointments=day_appointments,
                hours=_hour_buckets(day_appointments) if view_mode != ViewMode.MONTH else [],
            )
        )
        day += timedelta(days=1)
    return buckets
