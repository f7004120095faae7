"""Time-zone-naive calendar arithmetic for appointment intervals."""

import re
from datetime import date, datetime, time, timedelta

from firstcare.core.exceptions import InvalidTimeException
from firstcare.schemas.appointments import TIME_PATTERN

_TIME_RE = re.compile(TIME_PATTERN)

SLOT_MINUTES = (0, 30)


def parse_time(value: str) -> time:
    """
    Parse an ``HH:MM`` 24-hour time of day.

    Raises:
        InvalidTimeException: If the value is not a valid time of day
    """
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise InvalidTimeException("Invalid time format. Please use HH:MM format (24-hour)")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def format_time(value: time | datetime) -> str:
    """Render a time of day as zero-padded ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def is_slot_aligned(value: str) -> bool:
    """Whether the time starts on the half-hour grid."""
    return parse_time(value).minute in SLOT_MINUTES


def combine(day: date, value: str) -> datetime:
    """Combine a calendar date and an ``HH:MM`` string into a naive instant."""
    return datetime.combine(day, parse_time(value))


def add_minutes(instant: datetime, minutes: int) -> datetime:
    return instant + timedelta(minutes=minutes)


def interval(day: date, value: str, duration_minutes: int) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` interval of a booking."""
    start = combine(day, value)
    return start, add_minutes(start, duration_minutes)


def end_time(value: str, duration_minutes: int) -> str:
    """End time of day of a booking; wraps past midnight."""
    start = datetime.combine(date.min, parse_time(value))
    return format_time(add_minutes(start, duration_minutes))


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """
    Half-open interval overlap.

    Back-to-back intervals (``end_a == start_b``) do not overlap.
    """
    return start_a < end_b and start_b < end_a


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from ``start`` to ``end``."""
    return (end - start).total_seconds() / 3600


def days_between(start: datetime, end: datetime) -> float:
    """Signed fractional number of days from ``start`` to ``end``."""
    return (end - start).total_seconds() / 86400
