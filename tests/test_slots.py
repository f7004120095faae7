"""Tests for slot availability."""

from datetime import date, datetime

from firstcare.config import DEFAULT_SLOT_GRID
from firstcare.scheduling.slots import SlotGenerator, filter_slots
from firstcare.schemas.appointments import AppointmentStatus, BookedInterval

from conftest import FROZEN_NOW, TOMORROW


def test_empty_day_offers_the_full_grid() -> None:
    slots = filter_slots(DEFAULT_SLOT_GRID, [], TOMORROW, 30, FROZEN_NOW)
    assert slots == DEFAULT_SLOT_GRID
    assert len(slots) == 14


def test_booked_slot_is_removed() -> None:
    booked = [BookedInterval(time="09:00", duration_minutes=30)]
    slots = filter_slots(DEFAULT_SLOT_GRID, booked, TOMORROW, 30, FROZEN_NOW)
    assert len(slots) == 13
    assert "09:00" not in slots
    assert slots == sorted(slots)


def test_longer_requests_drop_slots_running_into_a_booking() -> None:
    booked = [BookedInterval(time="10:00", duration_minutes=30)]
    slots = filter_slots(DEFAULT_SLOT_GRID, booked, TOMORROW, 60, FROZEN_NOW)
    assert "09:30" not in slots
    assert "10:00" not in slots
    assert "09:00" in slots
    assert "10:30" in slots


def test_cancelled_bookings_free_their_slot() -> None:
    booked = [
        BookedInterval(time="09:00", duration_minutes=30, status=AppointmentStatus.CANCELLED)
    ]
    assert "09:00" in filter_slots(DEFAULT_SLOT_GRID, booked, TOMORROW, 30, FROZEN_NOW)


def test_slots_already_started_today_are_hidden() -> None:
    today = FROZEN_NOW.date()
    slots = filter_slots(DEFAULT_SLOT_GRID, [], today, 30, FROZEN_NOW)
    assert slots[0] == "10:30"
    assert "10:00" not in slots


def test_past_day_has_no_slots() -> None:
    assert filter_slots(DEFAULT_SLOT_GRID, [], date(2025, 6, 8), 30, FROZEN_NOW) == []


async def test_generator_uses_store_bookings(service, make_request, patient, clock) -> None:
    await service.book_appointment(make_request(time="09:00"), patient)

    generator = SlotGenerator(service.store, clock)
    slots = await generator.available_slots("dr-naidoo", TOMORROW, 30)

    assert len(slots) == 13
    assert "09:00" not in slots


async def test_generator_accepts_a_custom_grid(store) -> None:
    generator = SlotGenerator(store, lambda: datetime(2025, 6, 9, 8, 0), grid=["12:00", "12:30"])
    assert await generator.available_slots("dr-naidoo", TOMORROW, 30) == ["12:00", "12:30"]
