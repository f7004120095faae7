"""Tests for provider conflict detection."""

from datetime import date
from uuid import uuid4

from firstcare.scheduling.conflicts import ConflictDetector, first_overlap
from firstcare.schemas.appointments import AppointmentStatus, BookedInterval

DAY = date(2025, 6, 10)


def booking(time: str, duration: int = 30, status: str = "pending") -> BookedInterval:
    return BookedInterval(id=uuid4(), time=time, duration_minutes=duration, status=status)


def test_overlapping_booking_is_reported() -> None:
    existing = booking("09:00", 60)
    assert first_overlap([existing], DAY, "09:30", 30) == existing


def test_adjacent_bookings_do_not_conflict() -> None:
    bookings = [booking("09:00", 30), booking("10:00", 30)]
    assert first_overlap(bookings, DAY, "09:30", 30) is None


def test_longer_candidate_spanning_a_booking_conflicts() -> None:
    existing = booking("10:00", 15)
    assert first_overlap([existing], DAY, "09:30", 60) == existing


def test_inactive_bookings_are_ignored() -> None:
    bookings = [
        booking("09:00", status=AppointmentStatus.CANCELLED),
        booking("09:00", status=AppointmentStatus.COMPLETED),
        booking("09:00", status=AppointmentStatus.RESCHEDULED),
    ]
    assert first_overlap(bookings, DAY, "09:00", 30) is None


def test_confirmed_bookings_block_the_slot() -> None:
    existing = booking("09:00", status=AppointmentStatus.CONFIRMED)
    assert first_overlap([existing], DAY, "09:00", 30) == existing


def test_excluded_booking_is_skipped() -> None:
    existing = booking("09:00")
    assert first_overlap([existing], DAY, "09:00", 30, exclude_id=existing.id) is None


async def test_detector_reads_provider_bookings(service, make_request, patient) -> None:
    await service.book_appointment(make_request(time="09:00", duration_minutes=60), patient)

    detector = ConflictDetector(service.store)

    assert await detector.find_conflict("dr-naidoo", DAY, "09:30", 30) is not None
    assert await detector.find_conflict("dr-naidoo", DAY, "10:00", 30) is None
    assert await detector.find_conflict("dr-mkhize", DAY, "09:30", 30) is None
    # Same time on another day is a separate calendar
    assert await detector.find_conflict("dr-naidoo", date(2025, 6, 11), "09:30", 30) is None


def test_quarter_past_start_overlaps_booking_on_the_hour() -> None:
    # 09:00-09:30 against 09:15-09:45
    existing = booking("09:00", 30)
    assert first_overlap([existing], DAY, "09:15", 30) == existing
