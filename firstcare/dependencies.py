"""FastAPI dependencies."""

from typing import Annotated

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from firstcare.config import settings
from firstcare.core.exceptions import RateLimitException
from firstcare.core.redis_client import CacheManager, RateLimiter, get_redis_client
from firstcare.core.security import actor_id_from_token
from firstcare.database import get_db
from firstcare.repositories.appointment_repository import AppointmentRepository
from firstcare.scheduling.service import SchedulingService
from firstcare.schemas.appointments import ActorContext
from firstcare.services.actor_directory import UserActorDirectory

# Security
security = HTTPBearer()


async def get_current_actor_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """
    Extract and validate the acting user's ID from a JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Actor ID from the token subject

    Raises:
        HTTPException: If token is invalid or expired
    """
    actor_id = actor_id_from_token(credentials.credentials)

    if actor_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor_id


def get_scheduling_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> SchedulingService:
    """Wire the scheduling engine to the database and the actor cache."""
    return SchedulingService(
        store=AppointmentRepository(db),
        directory=UserActorDirectory(db, CacheManager(redis_client)),
    )


async def get_current_actor(
    actor_id: Annotated[str, Depends(get_current_actor_id)],
    service: Annotated[SchedulingService, Depends(get_scheduling_service)],
) -> ActorContext:
    """Resolve the acting user's district and roles."""
    return await service.resolve_actor(actor_id)


def enforce_booking_rate_limit(
    actor_id: Annotated[str, Depends(get_current_actor_id)],
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> None:
    """
    Throttle booking attempts per actor.

    Raises:
        RateLimitException: If the actor exceeded the per-minute booking limit
    """
    limiter = RateLimiter(redis_client)
    if not limiter.check_rate_limit(
        f"rate:booking:{actor_id}",
        limit=settings.booking_rate_limit_per_minute,
        window=60,
    ):
        raise RateLimitException("Too many booking attempts. Please try again in a minute.")


# Type aliases for dependency injection
Scheduling = Annotated[SchedulingService, Depends(get_scheduling_service)]
CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]
BookingRateLimit = Depends(enforce_booking_rate_limit)
