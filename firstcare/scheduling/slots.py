"""Daily slot availability for a provider."""

from collections.abc import Sequence
from datetime import date, datetime

from firstcare.config import DEFAULT_SLOT_GRID
from firstcare.scheduling import calendar
from firstcare.scheduling.clock import Clock
from firstcare.scheduling.conflicts import first_overlap
from firstcare.scheduling.ports import AppointmentStore
from firstcare.schemas.appointments import BookedInterval


def filter_slots(
    grid: Sequence[str],
    bookings: Sequence[BookedInterval],
    day: date,
    duration_minutes: int,
    now: datetime,
) -> list[str]:
    """Grid slots that start after ``now`` and overlap no booking, in grid order."""
    available = []
    for slot in grid:
        if calendar.combine(day, slot) <= now:
            continue
        if first_overlap(bookings, day, slot, duration_minutes) is not None:
            continue
        available.append(slot)
    return available


class SlotGenerator:
    """Enumerates the open slots of a provider's fixed daily grid."""

    def __init__(
        self,
        store: AppointmentStore,
        clock: Clock,
        grid: Sequence[str] | None = None,
    ):
        self.store = store
        self.clock = clock
        self.grid = list(grid) if grid is not None else list(DEFAULT_SLOT_GRID)

    async def available_slots(
        self,
        provider_id: str,
        day: date,
        duration_minutes: int,
    ) -> list[str]:
        """
        List free slot start times of a provider on a date.

        Args:
            provider_id: Provider identifier
            day: Target date
            duration_minutes: Length of the desired appointment

        Returns:
            Slot start times (``HH:MM``) in chronological grid order
        """
        bookings = await self.store.find_active_bookings(provider_id, day)
        return filter_slots(self.grid, bookings, day, duration_minutes, self.clock())
