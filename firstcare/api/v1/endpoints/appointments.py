"""Appointment scheduling endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from firstcare.dependencies import BookingRateLimit, CurrentActor, Scheduling
from firstcare.schemas.appointments import (
    DEFAULT_DURATION_MINUTES,
    AppointmentCreate,
    AppointmentPatch,
    AppointmentResponse,
    AvailableSlotsResponse,
    PriorityResponse,
    RescheduleRequest,
    StatusChange,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book appointment",
    dependencies=[BookingRateLimit],
)
async def book_appointment(
    data: AppointmentCreate,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    """
    Book a new appointment for the authenticated user.

    Args:
        data: Booking request
        actor: Authenticated actor
        service: Scheduling service

    Returns:
        Booked appointment with priority score and policy flags
    """
    return await service.book_appointment(data, actor)


@router.get(
    "/providers/{provider_id}/slots",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    summary="List available slots",
)
async def list_available_slots(
    provider_id: str,
    actor: CurrentActor,
    service: Scheduling,
    day: date = Query(..., alias="date"),
    duration_minutes: int = Query(DEFAULT_DURATION_MINUTES, alias="duration"),
) -> AvailableSlotsResponse:
    """
    List the open slots of a provider on a date.

    Args:
        provider_id: Provider identifier
        actor: Authenticated actor
        service: Scheduling service
        day: Target date
        duration_minutes: Desired appointment length

    Returns:
        Available start times in chronological order
    """
    slots = await service.available_slots(provider_id, day, duration_minutes)
    return AvailableSlotsResponse(
        doctor_id=provider_id,
        date=day,
        duration_minutes=duration_minutes,
        slots=slots,
    )


@router.get(
    "/providers/{provider_id}/queue",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Provider queue by priority",
)
async def provider_queue(
    provider_id: str,
    actor: CurrentActor,
    service: Scheduling,
    day: date = Query(..., alias="date"),
) -> list[AppointmentResponse]:
    """Active appointments of a provider on a date, highest priority first."""
    return await service.provider_queue(provider_id, day, actor)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await service.get_appointment(appointment_id, actor)


@router.get(
    "/{appointment_id}/priority",
    response_model=PriorityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment priority",
)
async def get_priority(
    appointment_id: UUID,
    actor: CurrentActor,
    service: Scheduling,
) -> PriorityResponse:
    """Current priority score of an appointment."""
    score = await service.priority_score(appointment_id, actor)
    return PriorityResponse(id=appointment_id, priority_score=score)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    patch: AppointmentPatch,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    """
    Partially update an appointment.

    Only the fields present in the request body are changed.
    """
    return await service.update_appointment(appointment_id, patch, actor)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    data: StatusChange,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    """Cancel an appointment within the facility's cancellation policy."""
    return await service.cancel_appointment(appointment_id, actor, data.reason)


@router.post(
    "/{appointment_id}/confirm",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Confirm appointment",
)
async def confirm_appointment(
    appointment_id: UUID,
    data: StatusChange,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    return await service.confirm_appointment(appointment_id, actor, data.reason)


@router.post(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: UUID,
    data: StatusChange,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    return await service.complete_appointment(appointment_id, actor, data.reason)


@router.post(
    "/{appointment_id}/no-show",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark appointment as no-show",
)
async def mark_no_show(
    appointment_id: UUID,
    data: StatusChange,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    return await service.mark_no_show(appointment_id, actor, data.reason)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reschedule appointment",
    dependencies=[BookingRateLimit],
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: RescheduleRequest,
    actor: CurrentActor,
    service: Scheduling,
) -> AppointmentResponse:
    """
    Move an appointment to a new slot.

    Returns:
        The replacement appointment; the original is closed as rescheduled
    """
    return await service.reschedule_appointment(appointment_id, data, actor)
