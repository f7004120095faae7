"""Tests for facility policies."""

from datetime import date, datetime, timedelta

import pytest

from firstcare.core.exceptions import (
    IncompatibleFacilityException,
    InvalidDateException,
    InvalidDurationException,
    InvalidTimeException,
)
from firstcare.scheduling import policy
from firstcare.schemas.appointments import (
    ActorContext,
    ActorRole,
    AppointmentStatus,
    District,
    FacilityType,
    StatusHistory,
    StatusHistoryEntry,
    Urgency,
)

from conftest import FROZEN_NOW, TOMORROW, build_appointment


def with_status(status: AppointmentStatus, **overrides):
    history = StatusHistory(
        (StatusHistoryEntry(status=status, actor_id="worker-001", timestamp=FROZEN_NOW),)
    )
    return build_appointment(status=status, status_history=history, **overrides)


@pytest.mark.parametrize(
    "facility_type, hours",
    [
        (FacilityType.PUBLIC_HOSPITAL, 4),
        (FacilityType.PUBLIC_CLINIC, 4),
        (FacilityType.UNJANI_CLINIC, 6),
        (FacilityType.PRIVATE_PRACTICE, 24),
        (FacilityType.PRIVATE_HOSPITAL, 24),
        (FacilityType.SPECIALIST_CENTER, 24),
        ("mobile-clinic", 12),
    ],
)
def test_cancellation_windows(facility_type, hours: int) -> None:
    assert policy.cancellation_window_hours(facility_type) == hours


def test_public_clinic_can_cancel_with_enough_notice() -> None:
    # Tomorrow 09:00 is 23 hours away
    appointment = build_appointment(facility_type="public-clinic")
    assert policy.can_cancel(appointment, FROZEN_NOW)


def test_private_practice_cannot_cancel_inside_24_hours() -> None:
    appointment = build_appointment(facility_type="private-practice")
    assert not policy.can_cancel(appointment, FROZEN_NOW)


def test_window_boundary_is_exclusive() -> None:
    appointment = build_appointment(facility_type="public-clinic", date=FROZEN_NOW.date(), time="14:00")
    assert not policy.can_cancel(appointment, FROZEN_NOW)
    assert policy.can_cancel(appointment, FROZEN_NOW - timedelta(minutes=1))


def test_cancellation_is_monotonic_in_time() -> None:
    appointment = build_appointment(facility_type="unjani-clinic")
    allowed = [
        policy.can_cancel(appointment, FROZEN_NOW + timedelta(hours=step)) for step in range(0, 30)
    ]
    # Once disallowed it never becomes allowed again
    first_denied = allowed.index(False)
    assert not any(allowed[first_denied:])


def test_past_appointment_cannot_be_cancelled() -> None:
    appointment = build_appointment(date=date(2025, 6, 1))
    assert policy.is_past(appointment, FROZEN_NOW)
    assert not policy.can_cancel(appointment, FROZEN_NOW)


@pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED])
def test_cancelled_and_completed_cannot_be_cancelled(status: AppointmentStatus) -> None:
    appointment = with_status(status, date=TOMORROW + timedelta(days=7))
    assert not policy.can_cancel(appointment, FROZEN_NOW)
    assert not policy.can_reschedule(appointment, FROZEN_NOW)


def test_rescheduled_appointment_passes_cancel_window_only() -> None:
    appointment = with_status(AppointmentStatus.RESCHEDULED, date=TOMORROW + timedelta(days=7))
    assert policy.can_cancel(appointment, FROZEN_NOW)
    assert not policy.can_reschedule(appointment, FROZEN_NOW)


def test_no_show_is_left_to_the_lifecycle() -> None:
    appointment = with_status(AppointmentStatus.NO_SHOW, date=TOMORROW + timedelta(days=7))
    assert policy.can_cancel(appointment, FROZEN_NOW)
    assert policy.can_reschedule(appointment, FROZEN_NOW)


def test_confirmed_appointment_can_be_rescheduled() -> None:
    appointment = with_status(AppointmentStatus.CONFIRMED, date=TOMORROW + timedelta(days=7))
    assert policy.can_reschedule(appointment, FROZEN_NOW)


def test_today_and_past_flags() -> None:
    appointment = build_appointment(date=FROZEN_NOW.date(), time="10:00")
    assert policy.is_today(appointment, FROZEN_NOW)
    assert policy.is_past(appointment, FROZEN_NOW)
    assert not policy.is_past(appointment, FROZEN_NOW - timedelta(seconds=1))


def test_reminder_sent_once_for_confirmed_within_a_day() -> None:
    confirmed = with_status(AppointmentStatus.CONFIRMED)
    assert policy.should_send_reminder(confirmed, FROZEN_NOW)
    assert not policy.should_send_reminder(
        confirmed.model_copy(update={"reminder_sent": True}), FROZEN_NOW
    )
    assert not policy.should_send_reminder(build_appointment(), FROZEN_NOW)
    assert not policy.should_send_reminder(
        with_status(AppointmentStatus.CONFIRMED, date=TOMORROW + timedelta(days=2)),
        FROZEN_NOW,
    )


@pytest.mark.parametrize("facility_type", list(FacilityType))
def test_emergency_needs_hospital(facility_type: FacilityType) -> None:
    if facility_type.is_hospital_capable:
        policy.check_facility_compatibility(Urgency.EMERGENCY, facility_type)
    else:
        with pytest.raises(IncompatibleFacilityException):
            policy.check_facility_compatibility(Urgency.EMERGENCY, facility_type)


def test_non_emergencies_go_anywhere() -> None:
    for facility_type in FacilityType:
        policy.check_facility_compatibility(Urgency.URGENT, facility_type)
        policy.check_facility_compatibility(Urgency.ROUTINE, facility_type)


def test_district_access() -> None:
    patient = ActorContext(actor_id="p", registered_district=District.ETHEKWINI)
    unregistered = ActorContext(actor_id="u")
    worker = ActorContext(actor_id="w", roles=frozenset({ActorRole.HEALTH_WORKER}))

    assert policy.can_access_district(patient, District.ETHEKWINI)
    assert not policy.can_access_district(patient, District.UGU)
    assert not policy.can_access_district(unregistered, District.ETHEKWINI)
    assert policy.can_access_district(worker, District.ZULULAND)


@pytest.mark.parametrize("duration", [15, 30, 240])
def test_duration_bounds_accept(duration: int) -> None:
    policy.check_duration(duration)


@pytest.mark.parametrize("duration", [0, 14, 241, True, 30.5])
def test_duration_bounds_reject(duration) -> None:
    with pytest.raises(InvalidDurationException):
        policy.check_duration(duration)


@pytest.mark.parametrize("time", ["08:00", "12:30", "16:30"])
def test_booking_time_accepts_business_hours(time: str) -> None:
    policy.check_booking_time(time, 8, 17)


@pytest.mark.parametrize("time", ["9:15", "07:30", "17:00", "25:00", "noon"])
def test_booking_time_rejects(time: str) -> None:
    with pytest.raises(InvalidTimeException):
        policy.check_booking_time(time, 8, 17)


def test_booking_window() -> None:
    policy.check_booking_window(TOMORROW, "09:00", FROZEN_NOW, 90)
    policy.check_booking_window(FROZEN_NOW.date(), "10:30", FROZEN_NOW, 90)
    policy.check_booking_window(FROZEN_NOW.date() + timedelta(days=90), "09:00", FROZEN_NOW, 90)

    for day, time in [
        (date(2025, 6, 8), "09:00"),
        (FROZEN_NOW.date(), "10:00"),
        (FROZEN_NOW.date() + timedelta(days=91), "09:00"),
    ]:
        with pytest.raises(InvalidDateException):
            policy.check_booking_window(day, time, FROZEN_NOW, 90)


def test_booking_window_leaves_malformed_time_to_time_check() -> None:
    policy.check_booking_window(TOMORROW, "not-a-time", FROZEN_NOW, 90)


def test_appointment_instant() -> None:
    assert policy.appointment_instant(build_appointment()) == datetime(2025, 6, 10, 9, 0)
