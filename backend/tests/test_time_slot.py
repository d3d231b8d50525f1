from datetime import date, datetime, time

import pytest

from autoshop.scheduling.errors import ValidationError
from autoshop.scheduling.time_slot import (
    TimeSlot,
    format_time_12h,
    overlaps,
    parse_date,
    parse_time,
    validate_duration,
)

DAY = date(2024, 6, 10)


def slot(hh_mm: str, minutes: int, day: date = DAY) -> TimeSlot:
    return TimeSlot.from_values(day, hh_mm, minutes)


def test_overlapping_slots_are_detected():
    assert overlaps(slot("09:00", 60), slot("09:30", 30))
    assert overlaps(slot("09:00", 120), slot("09:30", 15))


def test_touching_slots_do_not_overlap():
    assert not overlaps(slot("09:00", 60), slot("10:00", 30))
    assert not overlaps(slot("10:00", 30), slot("09:00", 60))


def test_same_time_on_different_days_does_not_overlap():
    assert not overlaps(slot("09:00", 60), slot("09:00", 60, date(2024, 6, 11)))


def test_slot_crossing_midnight_overlaps_next_morning():
    late = slot("23:30", 60)
    early = slot("00:00", 15, date(2024, 6, 11))
    assert overlaps(late, early)


@pytest.mark.parametrize(
    "a, b",
    [
        (("09:00", 60), ("09:30", 30)),
        (("09:00", 60), ("10:00", 30)),
        (("08:00", 480), ("12:00", 15)),
        (("14:15", 15), ("14:00", 15)),
        (("14:15", 15), ("14:29", 15)),
    ],
)
def test_overlap_is_symmetric(a, b):
    assert overlaps(slot(*a), slot(*b)) == overlaps(slot(*b), slot(*a))


def test_slot_start_and_end():
    s = slot("09:45", 30)
    assert s.start == datetime(2024, 6, 10, 9, 45)
    assert s.end == datetime(2024, 6, 10, 10, 15)


@pytest.mark.parametrize("value, expected", [("9:05", time(9, 5)), ("09:05", time(9, 5)), ("23:59", time(23, 59)), ("07:30:00", time(7, 30))])
def test_parse_time_accepts_24h_strings(value, expected):
    assert parse_time(value) == expected


@pytest.mark.parametrize("value", ["24:00", "9:5", "noon", "", "12:60", None, 930])
def test_parse_time_rejects_malformed_input(value):
    with pytest.raises(ValidationError):
        parse_time(value)


def test_parse_date_accepts_iso_strings_and_datetimes():
    assert parse_date("2024-06-10") == DAY
    assert parse_date("2024-06-10T09:00:00") == DAY
    assert parse_date(datetime(2024, 6, 10, 17, 0)) == DAY


def test_parse_date_has_no_silent_fallback():
    with pytest.raises(ValidationError):
        parse_date("tomorrow")


@pytest.mark.parametrize("value", ["2024-06-10xyz", "2024-06-10 junk", "2024-06-10T25:00"])
def test_parse_date_rejects_trailing_text(value):
    with pytest.raises(ValidationError):
        parse_date(value)


@pytest.mark.parametrize("minutes", [15, 60, 480])
def test_duration_bounds_are_inclusive(minutes):
    assert validate_duration(minutes) == minutes


@pytest.mark.parametrize("minutes", [0, 14, 481, 60.5, "60", True])
def test_duration_out_of_range_is_rejected(minutes):
    with pytest.raises(ValidationError):
        validate_duration(minutes)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        TimeSlot.from_values(DAY, "25:00", 30)


@pytest.mark.parametrize(
    "value, expected",
    [("00:00", "12:00 AM"), ("00:30", "12:30 AM"), ("09:05", "9:05 AM"), ("12:00", "12:00 PM"), ("17:45", "5:45 PM")],
)
def test_format_time_12h(value, expected):
    assert format_time_12h(value) == expected
