"""Wall-clock source for naive appointment times."""

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def wall_clock(timezone: str) -> Clock:
    """
    Build a clock returning the naive local time of ``timezone``.

    Appointment dates and times carry no zone, so "now" has to be read
    off the same wall clock the facilities use.
    """
    zone = ZoneInfo(timezone)

    def now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None)

    return now
