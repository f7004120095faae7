"""Appointment status lifecycle and audit trail."""

from datetime import datetime

from firstcare.core.exceptions import InvalidTransitionException
from firstcare.schemas.appointments import (
    Appointment,
    AppointmentStatus,
    StatusHistory,
    StatusHistoryEntry,
)

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.RESCHEDULED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.CANCELLED,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.RESCHEDULED,
        }
    ),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
    AppointmentStatus.RESCHEDULED: frozenset(),
}


def can_transition(source: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS.get(source, frozenset())


def is_terminal(status: AppointmentStatus) -> bool:
    return not TRANSITIONS.get(status)


def start_history(actor_id: str, now: datetime, reason: str = "Appointment created") -> StatusHistory:
    """History of a freshly booked appointment."""
    return StatusHistory().append(
        StatusHistoryEntry(
            status=AppointmentStatus.PENDING,
            actor_id=actor_id,
            reason=reason,
            timestamp=now,
        )
    )


def transition(
    appointment: Appointment,
    target: AppointmentStatus,
    actor_id: str,
    now: datetime,
    reason: str = "",
) -> Appointment:
    """
    Move an appointment to ``target`` and record the change.

    The status field and the appended history entry are produced together
    on a copy; the input appointment is left untouched.

    Raises:
        InvalidTransitionException: If the lifecycle has no such edge
    """
    source = AppointmentStatus(appointment.status)
    target = AppointmentStatus(target)

    if not can_transition(source, target):
        raise InvalidTransitionException(source.value, target.value)

    entry = StatusHistoryEntry(status=target, actor_id=actor_id, reason=reason, timestamp=now)
    return appointment.model_copy(
        update={
            "status": target,
            "status_history": appointment.status_history.append(entry),
            "last_modified_by": actor_id,
            "updated_at": now,
        }
    )
