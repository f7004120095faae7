"""Collaborator contracts consumed by the scheduling engine."""

from collections.abc import Sequence
from datetime import date
from typing import Protocol
from uuid import UUID

from firstcare.schemas.appointments import ActorRole, Appointment, BookedInterval, District


class AppointmentStore(Protocol):
    """Persistence operations the engine relies on."""

    async def find_active_bookings(self, provider_id: str, day: date) -> Sequence[BookedInterval]:
        """Pending or confirmed bookings of a provider on a date."""
        ...

    async def find_patient_booking(
        self,
        patient_id: str,
        day: date,
        time: str,
        exclude_id: UUID | None = None,
    ) -> Appointment | None:
        """Active booking of a patient at an exact date and time."""
        ...

    async def list_for_provider(self, provider_id: str, day: date) -> Sequence[Appointment]:
        """All appointments of a provider on a date."""
        ...

    async def get(self, appointment_id: UUID) -> Appointment | None:
        """Load an appointment by ID."""
        ...

    async def persist(self, appointment: Appointment) -> Appointment:
        """
        Insert or update an appointment atomically.

        Must raise ``ProviderUnavailableException`` when the store's
        uniqueness constraint on active provider slots rejects the write,
        and ``StaleAppointmentException`` when a stored appointment's
        ``version`` no longer matches.
        """
        ...

    async def persist_reschedule(
        self,
        source: Appointment,
        replacement: Appointment,
    ) -> tuple[Appointment, Appointment]:
        """Update the closed source and insert its replacement in one atomic write."""
        ...


class ActorDirectory(Protocol):
    """Lookup of the acting user's registration details."""

    async def get_actor_district(self, actor_id: str) -> District | None:
        ...

    async def get_actor_roles(self, actor_id: str) -> frozenset[ActorRole]:
        ...
