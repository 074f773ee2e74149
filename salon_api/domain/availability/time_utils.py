"""Wall-clock time helpers for slot computation"""

import re
from datetime import date, datetime, time, timedelta

# Leading HH:MM[:SS]; anything after (Z, +01, +01:00) is a timezone suffix
_TIME_PREFIX_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?")


def parse_time_of_day(value: str) -> time:
    """
    Parse an opening-hours time, dropping any timezone suffix.
    Opening hours are tenant-local wall-clock, never converted from UTC.

    Raises:
        ValueError: If the value does not start with HH:MM
    """
    match = _TIME_PREFIX_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


def combine_date_and_time(day: date, value: str) -> datetime:
    return datetime.combine(day, parse_time_of_day(value))


def weekday_sunday_first(day: date) -> int:
    """0=Sunday .. 6=Saturday"""
    return (day.weekday() + 1) % 7


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap"""
    return a_start < b_end and a_end > b_start


def iter_slot_starts(day_start: datetime, day_end: datetime, duration: timedelta, step: timedelta):
    cursor = day_start
    while cursor + duration <= day_end:
        yield cursor
        cursor += step


def format_hhmm(value: datetime) -> str:
    return value.strftime("%H:%M")
