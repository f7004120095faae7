"""Scheduling facade orchestrating validation, scoring and persistence."""

import asyncio
import weakref
from datetime import date
from typing import Any
from uuid import UUID, uuid4

import structlog
from pydantic import ValidationError as PydanticValidationError

from firstcare.config import Settings, settings
from firstcare.core.exceptions import (
    CancellationNotAllowedException,
    ConflictException,
    DistrictAccessDeniedException,
    ForbiddenException,
    NotFoundException,
    PatientDoubleBookingException,
    ProviderUnavailableException,
    ValidationException,
)
from firstcare.scheduling import lifecycle, policy
from firstcare.scheduling.calendar import end_time
from firstcare.scheduling.clock import Clock, wall_clock
from firstcare.scheduling.conflicts import ConflictDetector
from firstcare.scheduling.ports import ActorDirectory, AppointmentStore
from firstcare.scheduling.priority import priority_score, rank
from firstcare.scheduling.slots import SlotGenerator
from firstcare.schemas.appointments import (
    ActorContext,
    Appointment,
    AppointmentCreate,
    AppointmentPatch,
    AppointmentResponse,
    AppointmentStatus,
    RescheduleRequest,
)

logger = structlog.get_logger()

# Fields whose change moves the booked interval
INTERVAL_FIELDS = ("date", "time", "duration_minutes", "doctor_id")

_INTERNAL_FIELDS = {"status_history", "reminder_sent", "created_by", "last_modified_by", "version"}


class ProviderLocks:
    """
    Registry of per-provider booking locks for this process.

    Locks are held weakly: an entry lives only while a booking holds or
    waits on it, so the registry is bounded by the bookings in flight
    rather than by the number of providers ever seen.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def for_provider(self, provider_id: str) -> asyncio.Lock:
        lock = self._locks.get(provider_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[provider_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


provider_locks = ProviderLocks()


def _build(**values: Any) -> Appointment:
    """Validate an appointment, reporting field errors as a ValidationException."""
    try:
        return Appointment.model_validate(values)
    except PydanticValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise ValidationException(f"Invalid appointment: {messages}") from e


class SchedulingService:
    """Service for booking and managing appointments."""

    def __init__(
        self,
        store: AppointmentStore,
        directory: ActorDirectory | None = None,
        clock: Clock | None = None,
        config: Settings = settings,
        locks: ProviderLocks = provider_locks,
    ):
        """Initialize service with its collaborators."""
        self.store = store
        self.directory = directory
        self.config = config
        self.clock = clock or wall_clock(config.scheduling_timezone)
        self.locks = locks
        self.conflicts = ConflictDetector(store)
        self.slots = SlotGenerator(store, self.clock, config.slot_grid)

    # ------------------------------------------------------------------
    # Actors
    # ------------------------------------------------------------------

    async def resolve_actor(self, actor_id: str) -> ActorContext:
        """
        Build the actor context from the directory.

        Raises:
            RuntimeError: If the service was created without a directory
        """
        if self.directory is None:
            raise RuntimeError("SchedulingService needs an ActorDirectory to resolve actors")

        district = await self.directory.get_actor_district(actor_id)
        roles = await self.directory.get_actor_roles(actor_id)
        return ActorContext(actor_id=actor_id, registered_district=district, roles=roles)

    @staticmethod
    def _check_ownership(appointment: Appointment, actor: ActorContext) -> None:
        if not actor.is_elevated and appointment.patient_id != actor.actor_id:
            raise ForbiddenException("Access denied to this appointment")

    async def _load(self, appointment_id: UUID, actor: ActorContext) -> Appointment:
        appointment = await self.store.get(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        self._check_ownership(appointment, actor)
        return appointment

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def to_response(self, appointment: Appointment) -> AppointmentResponse:
        """Annotate an appointment with values computed at read time."""
        now = self.clock()
        return AppointmentResponse(
            **appointment.model_dump(exclude=_INTERNAL_FIELDS),
            end_time=end_time(appointment.time, appointment.duration_minutes),
            status_history=list(appointment.status_history),
            priority_score=priority_score(appointment, now, self.config.rural_districts),
            can_be_cancelled=policy.can_cancel(appointment, now),
            can_be_rescheduled=policy.can_reschedule(appointment, now),
            is_today=policy.is_today(appointment, now),
            is_past=policy.is_past(appointment, now),
        )

    # ------------------------------------------------------------------
    # Validation shared by booking, updating and rescheduling
    # ------------------------------------------------------------------

    def _validate_slot(self, day: date, time: str, duration_minutes: int) -> None:
        now = self.clock()
        policy.check_booking_window(day, time, now, self.config.max_advance_booking_days)
        policy.check_booking_time(
            time,
            self.config.business_hours_start,
            self.config.business_hours_end,
        )
        policy.check_duration(duration_minutes)

    async def _check_conflicts(
        self,
        candidate: Appointment,
        exclude_id: UUID | None = None,
        provider_exclude_id: UUID | None = None,
    ) -> None:
        existing = await self.store.find_patient_booking(
            candidate.patient_id,
            candidate.date,
            candidate.time,
            exclude_id=exclude_id,
        )
        if existing is not None:
            raise PatientDoubleBookingException()

        conflict = await self.conflicts.find_conflict(
            candidate.doctor_id,
            candidate.date,
            candidate.time,
            candidate.duration_minutes,
            exclude_id=provider_exclude_id or exclude_id,
        )
        if conflict is not None:
            logger.info(
                "provider_conflict_detected",
                doctor_id=candidate.doctor_id,
                date=str(candidate.date),
                time=candidate.time,
                conflicting_id=str(conflict.id) if conflict.id else None,
            )
            raise ProviderUnavailableException()

    async def _commit(self, appointment: Appointment) -> Appointment:
        # Checked again right before the write
        policy.check_facility_compatibility(appointment.urgency, appointment.facility_type)
        return await self.store.persist(appointment)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def book_appointment(
        self,
        data: AppointmentCreate,
        actor: ActorContext,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            data: Booking request
            actor: Acting user

        Returns:
            Persisted appointment annotated with its priority and policy flags

        Raises:
            DistrictAccessDeniedException: Actor may not book in the district
            InvalidDateException: Date not in the future or beyond the horizon
            InvalidTimeException: Malformed, misaligned or out-of-hours time
            InvalidDurationException: Duration out of bounds
            IncompatibleFacilityException: Emergency at a non-hospital facility
            PatientDoubleBookingException: Patient already booked at that time
            ProviderUnavailableException: Provider has an overlapping booking
        """
        try:
            appointment = await self._book(data, actor)
        except (ValidationException, ForbiddenException, ConflictException) as e:
            logger.info(
                "booking_rejected",
                actor_id=actor.actor_id,
                doctor_id=data.doctor_id,
                code=e.code,
                reason=e.message,
            )
            raise

        logger.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            district=appointment.district.value,
            facility_type=appointment.facility_type.value,
            urgency=appointment.urgency.value,
        )
        return self.to_response(appointment)

    async def _book(self, data: AppointmentCreate, actor: ActorContext) -> Appointment:
        candidate = self._prepare_booking(data, actor)

        async with self.locks.for_provider(candidate.doctor_id):
            await self._check_conflicts(candidate)
            return await self._commit(candidate)

    def _prepare_booking(
        self,
        data: AppointmentCreate,
        actor: ActorContext,
        rescheduled_from: Appointment | None = None,
    ) -> Appointment:
        """Validate a booking request and build the pending appointment."""
        patient_id = data.patient_id or actor.actor_id
        if patient_id != actor.actor_id and not actor.is_elevated:
            raise ForbiddenException("You can only book appointments for yourself")

        if not policy.can_access_district(actor, data.district):
            raise DistrictAccessDeniedException()

        self._validate_slot(data.date, data.time, data.duration_minutes)
        policy.check_facility_compatibility(data.urgency, data.facility_type)

        now = self.clock()
        history_reason = "Appointment created"
        source_id = None
        if rescheduled_from is not None:
            source_id = rescheduled_from.id
            history_reason = f"Rescheduled from appointment {source_id}"

        return _build(
            **data.model_dump(exclude={"patient_id"}),
            patient_id=patient_id,
            status=AppointmentStatus.PENDING,
            status_history=lifecycle.start_history(actor.actor_id, now, history_reason),
            rescheduled_from=source_id,
            created_by=actor.actor_id,
            last_modified_by=actor.actor_id,
            created_at=now,
            updated_at=now,
        )

    async def get_appointment(self, appointment_id: UUID, actor: ActorContext) -> AppointmentResponse:
        """Get appointment by ID."""
        return self.to_response(await self._load(appointment_id, actor))

    async def update_appointment(
        self,
        appointment_id: UUID,
        patch: AppointmentPatch,
        actor: ActorContext,
    ) -> AppointmentResponse:
        """
        Apply a partial update to an appointment.

        Changing the date, time, duration or provider re-runs the booking
        checks against the new interval. A status change is routed through
        the lifecycle and recorded in the history.

        Raises:
            ConflictException: If the appointment is in a terminal status
            ValidationException: If the district or a read-only value is changed
            CancellationNotAllowedException: If cancelling outside the window
            InvalidTransitionException: If the status change is not allowed
        """
        existing = await self._load(appointment_id, actor)
        changes = patch.changes()
        target_status = changes.pop("status", None)
        status_reason = changes.pop("status_reason", None) or "Appointment updated"

        if lifecycle.is_terminal(existing.status) and changes:
            raise ConflictException(
                f"Appointment is {existing.status.value} and can no longer be modified"
            )

        district = changes.pop("district", None)
        if district is not None and district != existing.district:
            raise ValidationException("Appointment district cannot be changed")

        for name, value in list(changes.items()):
            if value is None:
                if name == "symptoms":
                    changes[name] = []
                elif name == "notes":
                    changes[name] = ""
                else:
                    raise ValidationException(f"Field '{name}' cannot be cleared")

        moved = any(
            name in changes and changes[name] != getattr(existing, name) for name in INTERVAL_FIELDS
        )
        now = self.clock()

        if moved:
            if policy.is_past(existing, now):
                raise ValidationException("Past appointments cannot be moved")
            self._validate_slot(
                changes.get("date", existing.date),
                changes.get("time", existing.time),
                changes.get("duration_minutes", existing.duration_minutes),
            )

        merged = _build(
            **{
                **existing.model_dump(),
                **changes,
                "last_modified_by": actor.actor_id,
                "updated_at": now,
            }
        )

        if target_status is not None and target_status != existing.status:
            merged = self._apply_status(merged, target_status, actor, status_reason)

        policy.check_facility_compatibility(merged.urgency, merged.facility_type)

        async with self.locks.for_provider(merged.doctor_id):
            if moved and merged.is_active:
                await self._check_conflicts(merged, exclude_id=existing.id)
            updated = await self._commit(merged)

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(patch.model_fields_set),
        )
        return self.to_response(updated)

    def _apply_status(
        self,
        appointment: Appointment,
        target: AppointmentStatus,
        actor: ActorContext,
        reason: str,
    ) -> Appointment:
        now = self.clock()

        if target == AppointmentStatus.RESCHEDULED:
            raise ValidationException("Use the reschedule operation to move an appointment")

        if target == AppointmentStatus.CANCELLED:
            if not policy.can_cancel(appointment, now):
                raise CancellationNotAllowedException()
        elif not actor.is_elevated:
            raise ForbiddenException("Only facility staff can change this appointment status")

        updated = lifecycle.transition(appointment, target, actor.actor_id, now, reason)
        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment.id),
            old_status=appointment.status.value,
            new_status=target.value,
            actor_id=actor.actor_id,
        )
        return updated

    async def _change_status(
        self,
        appointment_id: UUID,
        target: AppointmentStatus,
        actor: ActorContext,
        reason: str,
    ) -> AppointmentResponse:
        existing = await self._load(appointment_id, actor)
        updated = self._apply_status(existing, target, actor, reason)
        return self.to_response(await self.store.persist(updated))

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AppointmentResponse:
        """
        Cancel an appointment if the facility's cancellation policy allows it.

        Raises:
            CancellationNotAllowedException: If the appointment is past,
                cancelled, completed, or inside the facility's notice window
            InvalidTransitionException: If its status cannot become cancelled
            StaleAppointmentException: If it changed since it was loaded
        """
        return await self._change_status(
            appointment_id,
            AppointmentStatus.CANCELLED,
            actor,
            reason or "Cancelled by user",
        )

    async def confirm_appointment(
        self,
        appointment_id: UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AppointmentResponse:
        return await self._change_status(
            appointment_id,
            AppointmentStatus.CONFIRMED,
            actor,
            reason or "Confirmed by provider",
        )

    async def complete_appointment(
        self,
        appointment_id: UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AppointmentResponse:
        return await self._change_status(appointment_id, AppointmentStatus.COMPLETED, actor, reason)

    async def mark_no_show(
        self,
        appointment_id: UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AppointmentResponse:
        return await self._change_status(appointment_id, AppointmentStatus.NO_SHOW, actor, reason)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        data: RescheduleRequest,
        actor: ActorContext,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new slot.

        A new pending appointment is validated through the regular booking
        checks and the source is closed as ``rescheduled`` with a link to
        it. Both rows are written in one store operation, so a rejected
        reschedule leaves the source untouched and creates nothing.

        Returns:
            The replacement appointment

        Raises:
            CancellationNotAllowedException: If the source can no longer be rescheduled
            InvalidTransitionException: If the source status cannot become rescheduled
            ProviderUnavailableException: If the new slot overlaps another booking
            StaleAppointmentException: If the source changed while rescheduling
        """
        source = await self._load(appointment_id, actor)
        now = self.clock()

        if not policy.can_reschedule(source, now):
            raise CancellationNotAllowedException(
                "This appointment can no longer be rescheduled. "
                "Please contact the healthcare facility directly."
            )

        request = AppointmentCreate(
            **source.model_dump(
                include=set(AppointmentCreate.model_fields) - {"date", "time", "duration_minutes"}
            ),
            date=data.date,
            time=data.time,
            duration_minutes=data.duration_minutes or source.duration_minutes,
        )
        replacement_id = uuid4()
        candidate = self._prepare_booking(request, actor, rescheduled_from=source).model_copy(
            update={"id": replacement_id}
        )
        closed = lifecycle.transition(
            source,
            AppointmentStatus.RESCHEDULED,
            actor.actor_id,
            now,
            data.reason or f"Rescheduled to appointment {replacement_id}",
        ).model_copy(update={"rescheduled_to": replacement_id})

        async with self.locks.for_provider(candidate.doctor_id):
            # A replacement may overlap its own source, but not the patient's exact slot
            await self._check_conflicts(candidate, provider_exclude_id=source.id)
            policy.check_facility_compatibility(candidate.urgency, candidate.facility_type)
            _, replacement = await self.store.persist_reschedule(closed, candidate)

        logger.info(
            "appointment_rescheduled",
            source_id=str(source.id),
            replacement_id=str(replacement.id),
        )
        return self.to_response(replacement)

    async def available_slots(self, provider_id: str, day: date, duration_minutes: int) -> list[str]:
        """Open slot start times of a provider on a date."""
        policy.check_duration(duration_minutes)
        return await self.slots.available_slots(provider_id, day, duration_minutes)

    async def provider_queue(
        self,
        provider_id: str,
        day: date,
        actor: ActorContext,
    ) -> list[AppointmentResponse]:
        """
        Active appointments of a provider on a date, highest priority first.

        Raises:
            ForbiddenException: If the actor is not facility staff
        """
        if not actor.is_elevated:
            raise ForbiddenException("Only facility staff can view a provider's queue")

        booked = [item for item in await self.store.list_for_provider(provider_id, day) if item.is_active]
        ranked = rank(booked, self.clock(), self.config.rural_districts)
        return [self.to_response(item) for item in ranked]

    async def priority_score(self, appointment_id: UUID, actor: ActorContext) -> int:
        """Current priority score of an appointment."""
        appointment = await self._load(appointment_id, actor)
        return priority_score(appointment, self.clock(), self.config.rural_districts)
