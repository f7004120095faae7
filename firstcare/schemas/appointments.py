"""Appointment schemas for the scheduling engine and its API."""

from collections.abc import Iterator
from datetime import date as date_type
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 240
DEFAULT_DURATION_MINUTES = 30


class District(str, Enum):
    """KwaZulu-Natal health districts."""

    AMAJUBA = "amajuba"
    ETHEKWINI = "ethekwini"
    ILEMBE = "ilembe"
    KING_CETSHWAYO = "king-cetshwayo"
    UMGUNGUNDLOVU = "umgungundlovu"
    UMKHANYAKUDE = "umkhanyakude"
    UGU = "ugu"
    UMZINYATHI = "umzinyathi"
    UTHUKELA = "uthukela"
    ZULULAND = "zululand"


class FacilityType(str, Enum):
    """Healthcare facility type enumeration."""

    PUBLIC_CLINIC = "public-clinic"
    PUBLIC_HOSPITAL = "public-hospital"
    UNJANI_CLINIC = "unjani-clinic"
    PRIVATE_PRACTICE = "private-practice"
    PRIVATE_HOSPITAL = "private-hospital"
    SPECIALIST_CENTER = "specialist-center"

    @property
    def is_hospital_capable(self) -> bool:
        """Whether the facility can take emergency appointments."""
        return self in (FacilityType.PUBLIC_HOSPITAL, FacilityType.PRIVATE_HOSPITAL)

    @property
    def is_public(self) -> bool:
        """Whether the facility is government-run."""
        return self in (FacilityType.PUBLIC_CLINIC, FacilityType.PUBLIC_HOSPITAL)


class Urgency(str, Enum):
    """Medical urgency classification."""

    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"
    RESCHEDULED = "rescheduled"


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset(
    {
        AppointmentStatus.CANCELLED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.RESCHEDULED,
    }
)


class MedicalCategory(str, Enum):
    """Medical specialty used to route an appointment."""

    CARDIOLOGIST = "Cardiologist"
    DENTIST = "Dentist"
    GENERAL_PRACTITIONER = "General Practitioner"
    OBSTETRICIAN_GYNECOLOGIST = "Obstetrician-Gynecologist"
    OPHTHALMOLOGIST = "Ophthalmologist"
    PSYCHOLOGIST = "Psychologist"
    PEDIATRICIAN = "Pediatrician"
    DERMATOLOGIST = "Dermatologist"
    ORTHOPEDIC_SURGEON = "Orthopedic Surgeon"
    PHYSIOTHERAPIST = "Physiotherapist"
    EMERGENCY_CARE = "Emergency Care"


class SymptomSeverity(str, Enum):
    """Symptom severity enumeration."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class ActorRole(str, Enum):
    """Roles an acting user may hold."""

    PATIENT = "patient"
    HEALTH_WORKER = "health-worker"
    ADMIN = "admin"


ELEVATED_ROLES = frozenset({ActorRole.ADMIN, ActorRole.HEALTH_WORKER})


# ============================================================================
# Value objects
# ============================================================================


class Symptom(BaseModel):
    """Structured symptom reported with a booking."""

    description: str = Field(..., min_length=1, max_length=500)
    severity: SymptomSeverity = SymptomSeverity.MODERATE
    duration: str = Field(..., min_length=1, max_length=50)
    onset_date: datetime | None = None


class StatusHistoryEntry(BaseModel):
    """A single audit entry of the status log."""

    model_config = {"frozen": True}

    status: AppointmentStatus
    actor_id: str
    reason: str = Field(default="", max_length=500)
    timestamp: datetime


class StatusHistory(RootModel[tuple[StatusHistoryEntry, ...]]):
    """Append-only status log; the last entry mirrors the current status."""

    root: tuple[StatusHistoryEntry, ...] = ()

    def __iter__(self) -> Iterator[StatusHistoryEntry]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index: int) -> StatusHistoryEntry:
        return self.root[index]

    @property
    def last(self) -> StatusHistoryEntry | None:
        """Most recent entry, if any."""
        return self.root[-1] if self.root else None

    def append(self, entry: StatusHistoryEntry) -> "StatusHistory":
        """Return a new log with ``entry`` appended."""
        return StatusHistory(self.root + (entry,))


class BookedInterval(BaseModel):
    """Minimal view of an active booking used for overlap checks."""

    id: UUID | None = None
    time: str
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    status: AppointmentStatus = AppointmentStatus.PENDING


class ActorContext(BaseModel):
    """Who is performing a scheduling operation."""

    actor_id: str
    registered_district: District | None = None
    roles: frozenset[ActorRole] = frozenset({ActorRole.PATIENT})

    @property
    def is_elevated(self) -> bool:
        """Admins and health workers bypass district and ownership checks."""
        return bool(self.roles & ELEVATED_ROLES)


# ============================================================================
# Appointment entity
# ============================================================================


class Appointment(BaseModel):
    """Appointment as held by the scheduling engine."""

    model_config = {"from_attributes": True, "validate_assignment": False}

    id: UUID | None = None
    patient_id: str
    doctor_id: str = Field(..., min_length=2, max_length=50)
    doctor_name: str = Field(..., min_length=2, max_length=100)
    facility_id: str | None = None
    facility_name: str = Field(..., min_length=2, max_length=200)
    facility_type: FacilityType
    district: District
    sub_location: str = Field(..., min_length=1, max_length=200)
    date: date_type
    time: str = Field(..., pattern=TIME_PATTERN)
    duration_minutes: int = Field(
        default=DEFAULT_DURATION_MINUTES,
        ge=MIN_DURATION_MINUTES,
        le=MAX_DURATION_MINUTES,
    )
    reason: str = Field(..., min_length=1, max_length=1000)
    category: MedicalCategory
    urgency: Urgency = Urgency.ROUTINE
    symptoms: list[Symptom] = Field(default_factory=list)
    notes: str = Field(default="", max_length=2000)
    status: AppointmentStatus = AppointmentStatus.PENDING
    status_history: StatusHistory = Field(default_factory=StatusHistory)
    rescheduled_from: UUID | None = None
    rescheduled_to: UUID | None = None
    reminder_sent: bool = False
    created_by: str | None = None
    last_modified_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # 0 until stored; bumped by every write
    version: int = Field(default=0, ge=0)

    @field_validator("sub_location", "reason")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        """Reject whitespace-only text."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be blank")
        return stripped

    @model_validator(mode="after")
    def check_history_matches_status(self) -> "Appointment":
        """The last history entry must agree with the status field."""
        last = self.status_history.last
        if last is not None and last.status != self.status:
            raise ValueError(
                f"Status history ends with '{last.status.value}' "
                f"but status is '{self.status.value}'"
            )
        return self

    @property
    def is_active(self) -> bool:
        """Whether the appointment counts toward conflict detection."""
        return self.status in ACTIVE_STATUSES

    def as_interval(self) -> BookedInterval:
        """Project the appointment to its booked interval."""
        return BookedInterval(
            id=self.id,
            time=self.time,
            duration_minutes=self.duration_minutes,
            status=self.status,
        )


# ============================================================================
# Requests
# ============================================================================


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    patient_id: str | None = Field(
        None,
        description="Patient to book for; defaults to the acting user",
    )
    doctor_id: str = Field(..., min_length=2, max_length=50)
    doctor_name: str = Field(..., min_length=2, max_length=100)
    facility_id: str | None = None
    facility_name: str = Field(..., min_length=2, max_length=200)
    facility_type: FacilityType
    district: District
    sub_location: str = Field(..., min_length=1, max_length=200)
    date: date_type
    time: str
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    reason: str = Field(..., min_length=1, max_length=1000)
    category: MedicalCategory
    urgency: Urgency = Urgency.ROUTINE
    symptoms: list[Symptom] = Field(default_factory=list)
    notes: str = Field(default="", max_length=2000)


class AppointmentPatch(BaseModel):
    """
    Partial update of an appointment.

    Only fields present in ``model_fields_set`` are applied, so an omitted
    field and a field sent as ``null`` are distinguished.
    """

    date: date_type | None = None
    time: str | None = None
    duration_minutes: int | None = None
    reason: str | None = Field(None, min_length=1, max_length=1000)
    category: MedicalCategory | None = None
    urgency: Urgency | None = None
    facility_type: FacilityType | None = None
    facility_name: str | None = Field(None, min_length=2, max_length=200)
    doctor_id: str | None = Field(None, min_length=2, max_length=50)
    doctor_name: str | None = Field(None, min_length=2, max_length=100)
    sub_location: str | None = Field(None, min_length=1, max_length=200)
    district: District | None = None
    symptoms: list[Symptom] | None = None
    notes: str | None = Field(None, max_length=2000)
    status: AppointmentStatus | None = None
    status_reason: str | None = Field(None, max_length=500)

    def changes(self) -> dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def touches(self, *fields: str) -> bool:
        """Whether any of ``fields`` was provided."""
        return any(name in self.model_fields_set for name in fields)


class StatusChange(BaseModel):
    """Schema for a lifecycle transition request."""

    reason: str = Field(default="", max_length=500)


class RescheduleRequest(BaseModel):
    """Schema for moving an appointment to a new slot."""

    date: date_type
    time: str
    duration_minutes: int | None = None
    reason: str = Field(default="", max_length=500)


# ============================================================================
# Responses
# ============================================================================


class AppointmentResponse(BaseModel):
    """Appointment annotated with values derived at read time."""

    model_config = {"from_attributes": True}

    id: UUID | None
    patient_id: str
    doctor_id: str
    doctor_name: str
    facility_id: str | None = None
    facility_name: str
    facility_type: FacilityType
    district: District
    sub_location: str
    date: date_type
    time: str
    end_time: str
    duration_minutes: int
    reason: str
    category: MedicalCategory
    urgency: Urgency
    symptoms: list[Symptom]
    notes: str
    status: AppointmentStatus
    status_history: list[StatusHistoryEntry]
    rescheduled_from: UUID | None = None
    rescheduled_to: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    priority_score: int
    can_be_cancelled: bool
    can_be_rescheduled: bool
    is_today: bool
    is_past: bool


class AvailableSlotsResponse(BaseModel):
    """Open slots of a provider for one day."""

    doctor_id: str
    date: date_type
    duration_minutes: int
    slots: list[str]


class PriorityResponse(BaseModel):
    """Priority score of an appointment at request time."""

    id: UUID
    priority_score: int
