"""Facility policies: cancellation windows, emergency routing, district access."""

from datetime import date, datetime, timedelta

from firstcare.core.exceptions import (
    IncompatibleFacilityException,
    InvalidDateException,
    InvalidDurationException,
    InvalidTimeException,
)
from firstcare.scheduling import calendar
from firstcare.schemas.appointments import (
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    ActorContext,
    Appointment,
    AppointmentStatus,
    District,
    FacilityType,
    Urgency,
)

# Minimum notice, in hours, before a booking may still be cancelled
CANCELLATION_WINDOW_HOURS: dict[FacilityType, int] = {
    FacilityType.PUBLIC_HOSPITAL: 4,
    FacilityType.PUBLIC_CLINIC: 4,
    FacilityType.UNJANI_CLINIC: 6,
    FacilityType.PRIVATE_PRACTICE: 24,
    FacilityType.PRIVATE_HOSPITAL: 24,
    FacilityType.SPECIALIST_CENTER: 24,
}
DEFAULT_CANCELLATION_WINDOW_HOURS = 12

# Other closed statuses pass here and are refused by the lifecycle
NON_CANCELLABLE_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

REMINDER_LEAD_HOURS = 24


def cancellation_window_hours(facility_type: FacilityType | str | None) -> int:
    """Notice period required by a facility type."""
    try:
        key = FacilityType(facility_type)
    except ValueError:
        return DEFAULT_CANCELLATION_WINDOW_HOURS
    return CANCELLATION_WINDOW_HOURS.get(key, DEFAULT_CANCELLATION_WINDOW_HOURS)


def appointment_instant(appointment: Appointment) -> datetime:
    return calendar.combine(appointment.date, appointment.time)


def is_past(appointment: Appointment, now: datetime) -> bool:
    """Whether the appointment start has been reached."""
    return now >= appointment_instant(appointment)


def is_today(appointment: Appointment, now: datetime) -> bool:
    return appointment.date == now.date()


def hours_until(appointment: Appointment, now: datetime) -> float:
    return calendar.hours_between(now, appointment_instant(appointment))


def can_cancel(appointment: Appointment, now: datetime) -> bool:
    """
    Check if an appointment can still be cancelled.

    Past, cancelled and completed appointments cannot be cancelled.
    Otherwise the remaining notice must exceed the facility's
    cancellation window.
    """
    if is_past(appointment, now):
        return False

    if appointment.status in NON_CANCELLABLE_STATUSES:
        return False

    remaining = hours_until(appointment, now)
    if remaining <= 0:
        return False

    return remaining > cancellation_window_hours(appointment.facility_type)


def can_reschedule(appointment: Appointment, now: datetime) -> bool:
    return can_cancel(appointment, now) and appointment.status != AppointmentStatus.RESCHEDULED


def should_send_reminder(appointment: Appointment, now: datetime) -> bool:
    """Confirmed appointments get one reminder within a day of the visit."""
    if appointment.reminder_sent or appointment.status != AppointmentStatus.CONFIRMED:
        return False
    if is_past(appointment, now):
        return False
    return 0 < hours_until(appointment, now) <= REMINDER_LEAD_HOURS


def check_facility_compatibility(urgency: Urgency, facility_type: FacilityType) -> None:
    """
    Enforce emergency routing to hospital facilities.

    Raises:
        IncompatibleFacilityException: If an emergency targets a non-hospital facility
    """
    if urgency == Urgency.EMERGENCY and not FacilityType(facility_type).is_hospital_capable:
        raise IncompatibleFacilityException(
            "Emergency appointments must be booked at hospital facilities"
        )


def can_access_district(actor: ActorContext, district: District) -> bool:
    """Elevated actors may book anywhere; others only in their own district."""
    if actor.is_elevated:
        return True
    return actor.registered_district is not None and actor.registered_district == district


def check_duration(duration_minutes: int) -> None:
    if not isinstance(duration_minutes, int) or isinstance(duration_minutes, bool):
        raise InvalidDurationException("Duration must be a whole number of minutes")
    if not MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES:
        raise InvalidDurationException()


def check_booking_time(time: str, business_start: int, business_end: int) -> None:
    """
    Validate a new booking's start time.

    The time must parse as ``HH:MM``, sit on the half-hour grid and fall
    inside business hours.

    Raises:
        InvalidTimeException: If any of the checks fail
    """
    start = calendar.parse_time(time)
    if not calendar.is_slot_aligned(time):
        raise InvalidTimeException("Appointments must start at :00 or :30 past the hour")
    if not business_start <= start.hour < business_end:
        raise InvalidTimeException(
            f"Appointments must be between {business_start:02d}:00 and {business_end:02d}:00"
        )


def check_booking_window(day: date, time: str, now: datetime, max_advance_days: int) -> None:
    """
    Validate that a booking lies in the future and within the booking horizon.

    Raises:
        InvalidDateException: If the slot is not strictly in the future or too far out
    """
    try:
        instant = calendar.combine(day, time)
    except InvalidTimeException:
        # Malformed times are reported by the time check
        instant = None

    if day < now.date() or (instant is not None and instant <= now):
        raise InvalidDateException("Appointment date must be in the future")

    if day > now.date() + timedelta(days=max_advance_days):
        raise InvalidDateException(
            f"Appointments can only be booked up to {max_advance_days} days in advance"
        )
