import asyncio
from collections.abc import AsyncGenerator, Callable, Sequence
from datetime import date, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file
load_dotenv()

from firstcare.core.exceptions import (
    NotFoundException,
    ProviderUnavailableException,
    StaleAppointmentException,
)
from firstcare.core.redis_client import get_redis_client
from firstcare.core.security import create_access_token
from firstcare.dependencies import get_scheduling_service
from firstcare.main import app
from firstcare.scheduling.service import ProviderLocks, SchedulingService
from firstcare.schemas.appointments import (
    ActorContext,
    ActorRole,
    Appointment,
    AppointmentCreate,
    BookedInterval,
    District,
)

# Monday 9 June 2025, 10:00 on the facility wall clock
FROZEN_NOW = datetime(2025, 6, 9, 10, 0)
TOMORROW = date(2025, 6, 10)

PATIENT_ID = "patient-001"
OTHER_PATIENT_ID = "patient-002"
HEALTH_WORKER_ID = "worker-001"
ADMIN_ID = "admin-001"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryAppointmentStore:
    """Appointment store kept in a dict, with the database's slot uniqueness rule."""

    def __init__(self) -> None:
        self.rows: dict[UUID, Appointment] = {}
        self.writes = 0
        self.fail_writes: Exception | None = None

    async def find_active_bookings(self, provider_id: str, day: date) -> Sequence[BookedInterval]:
        # Yield so concurrent bookings interleave here
        await asyncio.sleep(0)
        return [
            row.as_interval()
            for row in self.rows.values()
            if row.doctor_id == provider_id and row.date == day and row.is_active
        ]

    async def find_patient_booking(
        self,
        patient_id: str,
        day: date,
        time: str,
        exclude_id: UUID | None = None,
    ) -> Appointment | None:
        for row in self.rows.values():
            if row.id == exclude_id:
                continue
            if row.patient_id == patient_id and row.date == day and row.time == time and row.is_active:
                return row
        return None

    async def list_for_provider(self, provider_id: str, day: date) -> Sequence[Appointment]:
        return [row for row in self.rows.values() if row.doctor_id == provider_id and row.date == day]

    async def get(self, appointment_id: UUID) -> Appointment | None:
        return self.rows.get(appointment_id)

    def _check(self, appointment: Appointment, released: UUID | None = None) -> None:
        if appointment.version:
            stored = self.rows.get(appointment.id)
            if stored is None:
                raise NotFoundException("Appointment not found")
            if stored.version != appointment.version:
                raise StaleAppointmentException()

        if appointment.is_active:
            for row in self.rows.values():
                if (
                    row.id not in (appointment.id, released)
                    and row.is_active
                    and (row.doctor_id, row.date, row.time)
                    == (appointment.doctor_id, appointment.date, appointment.time)
                ):
                    raise ProviderUnavailableException()

    def _store(self, appointment: Appointment) -> Appointment:
        stored = appointment.model_copy(
            update={"id": appointment.id or uuid4(), "version": appointment.version + 1}
        )
        self.rows[stored.id] = stored
        self.writes += 1
        return stored

    async def persist(self, appointment: Appointment) -> Appointment:
        await asyncio.sleep(0)
        if self.fail_writes is not None:
            raise self.fail_writes
        self._check(appointment)
        return self._store(appointment)

    async def persist_reschedule(
        self,
        source: Appointment,
        replacement: Appointment,
    ) -> tuple[Appointment, Appointment]:
        await asyncio.sleep(0)
        if self.fail_writes is not None:
            raise self.fail_writes
        # Both rows are checked before either is written
        self._check(source)
        self._check(replacement, released=source.id)
        return self._store(source), self._store(replacement)


class FakeActorDirectory:
    """Actor registrations held in memory."""

    def __init__(self, actors: dict[str, tuple[District | None, frozenset[ActorRole]]]):
        self.actors = actors

    async def get_actor_district(self, actor_id: str) -> District | None:
        return self.actors[actor_id][0]

    async def get_actor_roles(self, actor_id: str) -> frozenset[ActorRole]:
        return self.actors[actor_id][1]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryAppointmentStore:
    return InMemoryAppointmentStore()


@pytest.fixture
def directory() -> FakeActorDirectory:
    return FakeActorDirectory(
        {
            PATIENT_ID: (District.ETHEKWINI, frozenset({ActorRole.PATIENT})),
            OTHER_PATIENT_ID: (District.ETHEKWINI, frozenset({ActorRole.PATIENT})),
            HEALTH_WORKER_ID: (District.UGU, frozenset({ActorRole.HEALTH_WORKER})),
            ADMIN_ID: (None, frozenset({ActorRole.ADMIN})),
        }
    )


@pytest.fixture
def service(
    store: InMemoryAppointmentStore,
    directory: FakeActorDirectory,
    clock: FrozenClock,
) -> SchedulingService:
    return SchedulingService(store, directory, clock=clock, locks=ProviderLocks())


@pytest.fixture
def patient() -> ActorContext:
    return ActorContext(
        actor_id=PATIENT_ID,
        registered_district=District.ETHEKWINI,
        roles=frozenset({ActorRole.PATIENT}),
    )


@pytest.fixture
def other_patient() -> ActorContext:
    return ActorContext(
        actor_id=OTHER_PATIENT_ID,
        registered_district=District.ETHEKWINI,
        roles=frozenset({ActorRole.PATIENT}),
    )


@pytest.fixture
def health_worker() -> ActorContext:
    return ActorContext(
        actor_id=HEALTH_WORKER_ID,
        registered_district=District.UGU,
        roles=frozenset({ActorRole.HEALTH_WORKER}),
    )


@pytest.fixture
def sample_booking_data() -> dict:
    """Sample booking request for a routine clinic visit tomorrow."""
    return {
        "doctor_id": "dr-naidoo",
        "doctor_name": "Dr. P. Naidoo",
        "facility_id": "fac-umlazi",
        "facility_name": "Umlazi Clinic",
        "facility_type": "public-clinic",
        "district": "ethekwini",
        "sub_location": "Umlazi",
        "date": TOMORROW.isoformat(),
        "time": "09:00",
        "duration_minutes": 30,
        "reason": "Persistent cough for two weeks",
        "category": "General Practitioner",
        "urgency": "routine",
    }


@pytest.fixture
def make_request(sample_booking_data: dict) -> Callable[..., AppointmentCreate]:
    """Build a booking request, overriding sample fields."""

    def build(**overrides: Any) -> AppointmentCreate:
        return AppointmentCreate.model_validate({**sample_booking_data, **overrides})

    return build


@pytest.fixture
def mock_redis() -> MagicMock:
    redis_client = MagicMock()
    redis_client.get.return_value = None
    return redis_client


@pytest_asyncio.fixture
async def client(
    service: SchedulingService,
    mock_redis: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the in-memory scheduling service."""
    app.dependency_overrides[get_scheduling_service] = lambda: service
    app.dependency_overrides[get_redis_client] = lambda: mock_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers_for(actor_id: str) -> dict:
    token = create_access_token(actor_id, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> dict:
    """Authentication headers of the default patient."""
    return auth_headers_for(PATIENT_ID)


@pytest.fixture
def worker_headers() -> dict:
    return auth_headers_for(HEALTH_WORKER_ID)


def build_appointment(**overrides: Any) -> Appointment:
    """Stored appointment for tomorrow 09:00 at a public clinic."""
    values = {
        "id": uuid4(),
        "patient_id": PATIENT_ID,
        "doctor_id": "dr-naidoo",
        "doctor_name": "Dr. P. Naidoo",
        "facility_name": "Umlazi Clinic",
        "facility_type": "public-clinic",
        "district": "ethekwini",
        "sub_location": "Umlazi",
        "date": TOMORROW,
        "time": "09:00",
        "duration_minutes": 30,
        "reason": "Persistent cough for two weeks",
        "category": "General Practitioner",
        "urgency": "routine",
    }
    values.update(overrides)
    return Appointment.model_validate(values)
