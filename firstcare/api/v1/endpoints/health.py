"""Liveness and readiness probes for the scheduling API."""

from typing import Literal

from fastapi import APIRouter, status
from pydantic import BaseModel

from firstcare.config import settings
from firstcare.core.redis_client import check_redis_connection
from firstcare.database import check_database_connection

router = APIRouter()

ProbeState = Literal["healthy", "degraded", "unhealthy"]


class HealthResponse(BaseModel):
    """Service identity and the wall clock appointments are booked against."""

    status: ProbeState
    version: str
    environment: str
    timezone: str


class DependencyHealthResponse(HealthResponse):
    database: ProbeState
    redis: ProbeState


def _identity(state: ProbeState) -> dict:
    return {
        "status": state,
        "version": settings.app_version,
        "environment": settings.environment,
        "timezone": settings.scheduling_timezone,
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def health_check() -> HealthResponse:
    return HealthResponse(**_identity("healthy"))


@router.get(
    "/health/detailed",
    response_model=DependencyHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
)
async def detailed_health_check() -> DependencyHealthResponse:
    """
    Probe the appointments database and Redis.

    Bookings cannot be stored without the database, which makes the
    service unhealthy. Without Redis only the actor cache and the booking
    throttle are lost, so the service reports itself degraded.
    """
    database: ProbeState = "healthy" if await check_database_connection() else "unhealthy"
    redis: ProbeState = "healthy" if await check_redis_connection() else "unhealthy"

    overall: ProbeState = "healthy"
    if database == "unhealthy":
        overall = "unhealthy"
    elif redis == "unhealthy":
        overall = "degraded"

    return DependencyHealthResponse(**_identity(overall), database=database, redis=redis)
