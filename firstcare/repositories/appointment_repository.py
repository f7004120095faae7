"""Appointment persistence using SQLAlchemy Core."""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import date
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from firstcare.core.exceptions import (
    AppException,
    IncompatibleFacilityException,
    NotFoundException,
    PersistenceFailureException,
    ProviderUnavailableException,
    StaleAppointmentException,
)
from firstcare.models.appointments import appointments
from firstcare.schemas.appointments import ACTIVE_STATUSES, Appointment, BookedInterval

logger = structlog.get_logger()

ACTIVE_STATUS_VALUES = sorted(status.value for status in ACTIVE_STATUSES)

# Constraint names mapped to the scheduling error they stand for
CONSTRAINT_ERRORS = {
    "uq_appointments_active_provider_slot": ProviderUnavailableException,
    "appointments_emergency_facility_check": IncompatibleFacilityException,
}


def _to_row(appointment: Appointment) -> dict[str, Any]:
    """Convert an appointment to column values."""
    values = appointment.model_dump(mode="json", exclude={"id", "created_at", "updated_at", "version"})
    values["date"] = appointment.date
    values["rescheduled_from"] = appointment.rescheduled_from
    values["rescheduled_to"] = appointment.rescheduled_to
    if appointment.created_at is not None:
        values["created_at"] = appointment.created_at
    if appointment.updated_at is not None:
        values["updated_at"] = appointment.updated_at
    return values


def _from_row(row: Any) -> Appointment:
    return Appointment.model_validate(dict(row._mapping))


class AppointmentRepository:
    """Repository implementing the scheduling engine's appointment store."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def find_active_bookings(self, provider_id: str, day: date) -> Sequence[BookedInterval]:
        """
        Get pending and confirmed bookings of a provider on a date.

        Args:
            provider_id: Provider identifier
            day: Calendar date

        Returns:
            Booked intervals ordered by start time
        """
        stmt = (
            select(
                appointments.c.id,
                appointments.c.time,
                appointments.c.duration_minutes,
                appointments.c.status,
            )
            .where(
                and_(
                    appointments.c.doctor_id == provider_id,
                    appointments.c.date == day,
                    appointments.c.status.in_(ACTIVE_STATUS_VALUES),
                )
            )
            .order_by(appointments.c.time)
        )

        result = await self.db.execute(stmt)
        return [BookedInterval.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def find_patient_booking(
        self,
        patient_id: str,
        day: date,
        time: str,
        exclude_id: UUID | None = None,
    ) -> Appointment | None:
        """Get a patient's active booking at an exact date and time."""
        conditions = [
            appointments.c.patient_id == patient_id,
            appointments.c.date == day,
            appointments.c.time == time,
            appointments.c.status.in_(ACTIVE_STATUS_VALUES),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        result = await self.db.execute(select(appointments).where(and_(*conditions)).limit(1))
        row = result.fetchone()
        return _from_row(row) if row else None

    async def get(self, appointment_id: UUID) -> Appointment | None:
        """Get appointment by ID."""
        result = await self.db.execute(select(appointments).where(appointments.c.id == appointment_id))
        row = result.fetchone()
        return _from_row(row) if row else None

    async def list_for_provider(self, provider_id: str, day: date) -> list[Appointment]:
        """Get all appointments of a provider on a date, in start order."""
        stmt = (
            select(appointments)
            .where(and_(appointments.c.doctor_id == provider_id, appointments.c.date == day))
            .order_by(appointments.c.time)
        )
        result = await self.db.execute(stmt)
        return [_from_row(row) for row in result.fetchall()]

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        """Commit the writes made inside the block, or roll all of them back."""
        try:
            yield
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            for constraint, error in CONSTRAINT_ERRORS.items():
                if constraint in str(e.orig):
                    raise error() from e
            logger.error("appointment_persist_failed", error=str(e))
            raise PersistenceFailureException() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_persist_failed", error=str(e))
            raise PersistenceFailureException() from e
        except AppException:
            await self.db.rollback()
            raise

    async def _write(self, appointment: Appointment) -> Appointment:
        values = _to_row(appointment)

        if appointment.version == 0:
            if appointment.id is not None:
                values["id"] = appointment.id
            stmt = insert(appointments).values(**values, version=1).returning(appointments)
        else:
            stmt = (
                update(appointments)
                .where(
                    and_(
                        appointments.c.id == appointment.id,
                        appointments.c.version == appointment.version,
                    )
                )
                .values(**values, version=appointment.version + 1)
                .returning(appointments)
            )

        row = (await self.db.execute(stmt)).fetchone()
        if row is not None:
            return _from_row(row)

        if appointment.id is None or await self.get(appointment.id) is None:
            raise NotFoundException("Appointment not found")
        logger.info(
            "appointment_write_conflict",
            appointment_id=str(appointment.id),
            expected_version=appointment.version,
        )
        raise StaleAppointmentException()

    async def persist(self, appointment: Appointment) -> Appointment:
        """
        Insert a new appointment or update an existing one.

        An appointment with version 0 is inserted. Any other version must
        still match the stored row, otherwise the update is refused.

        Raises:
            ProviderUnavailableException: If an active booking holds the same provider slot
            IncompatibleFacilityException: If the emergency routing constraint rejects the row
            StaleAppointmentException: If the row changed since it was loaded
            NotFoundException: If the appointment to update no longer exists
            PersistenceFailureException: On any other storage error
        """
        async with self._transaction():
            stored = await self._write(appointment)
        return stored

    async def persist_reschedule(
        self,
        source: Appointment,
        replacement: Appointment,
    ) -> tuple[Appointment, Appointment]:
        """
        Close a rescheduled appointment and insert its replacement together.

        The source is written first so its slot is released before the
        replacement claims one. Either both rows are committed or neither.

        Returns:
            Stored source and replacement
        """
        async with self._transaction():
            stored_source = await self._write(source)
            stored_replacement = await self._write(replacement)
        return stored_source, stored_replacement
