"""FastAPI application for the FirstCare scheduling engine."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from firstcare.api.v1.router import api_router
from firstcare.config import settings
from firstcare.core.redis_client import check_redis_connection, close_redis_connection
from firstcare.database import check_database_connection, engine
from firstcare.middleware.error_handler import register_exception_handlers
from firstcare.middleware.logging import LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Probe backing stores on startup and release them on shutdown."""
    logger.info(
        "application_startup",
        version=settings.app_version,
        max_advance_booking_days=settings.max_advance_booking_days,
        business_hours=f"{settings.business_hours_start:02d}:00-{settings.business_hours_end:02d}:00",
    )

    if not await check_database_connection():
        logger.error("database_unreachable", note="Bookings will fail until it recovers")
    if not await check_redis_connection():
        logger.warning("redis_unreachable", note="Actor cache and booking throttle disabled")

    yield

    await engine.dispose()
    close_redis_connection()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """Assemble the scheduling API with middleware, handlers and metrics."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Appointment scheduling and conflict resolution for KZN health districts",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    application.add_middleware(LoggingMiddleware)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.api_v1_prefix)

    Instrumentator(
        should_group_status_codes=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
        inprogress_labels=True,
    ).instrument(application).expose(application, endpoint="/metrics", include_in_schema=False)

    @application.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "timezone": settings.scheduling_timezone,
            "docs": "/docs",
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "firstcare.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
