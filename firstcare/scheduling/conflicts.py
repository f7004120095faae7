"""Provider double-booking detection."""

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from firstcare.scheduling import calendar
from firstcare.scheduling.ports import AppointmentStore
from firstcare.schemas.appointments import ACTIVE_STATUSES, BookedInterval


def first_overlap(
    bookings: Iterable[BookedInterval],
    day: date,
    time: str,
    duration_minutes: int,
    exclude_id: UUID | None = None,
) -> BookedInterval | None:
    """
    Return the first active booking overlapping the candidate interval.

    Args:
        bookings: Bookings of one provider on ``day``
        day: Candidate date
        time: Candidate start time (``HH:MM``)
        duration_minutes: Candidate duration
        exclude_id: Booking to ignore, used when moving an existing one

    Returns:
        The conflicting booking, or None
    """
    start, end = calendar.interval(day, time, duration_minutes)

    for booking in bookings:
        if exclude_id is not None and booking.id == exclude_id:
            continue
        if booking.status not in ACTIVE_STATUSES:
            continue

        booked_start, booked_end = calendar.interval(day, booking.time, booking.duration_minutes)
        if calendar.overlaps(start, end, booked_start, booked_end):
            return booking

    return None


class ConflictDetector:
    """Checks a candidate slot against a provider's active bookings."""

    def __init__(self, store: AppointmentStore):
        """Initialize detector with the appointment store."""
        self.store = store

    async def find_conflict(
        self,
        provider_id: str,
        day: date,
        time: str,
        duration_minutes: int,
        exclude_id: UUID | None = None,
    ) -> BookedInterval | None:
        """
        Find an active booking of ``provider_id`` overlapping the candidate.

        Conflicts are scoped to a single calendar date.
        """
        bookings = await self.store.find_active_bookings(provider_id, day)
        return first_overlap(bookings, day, time, duration_minutes, exclude_id)
