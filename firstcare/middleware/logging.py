"""Structured logging setup and per-request log context."""

import logging
import sys
import time
from collections.abc import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.types import EventDict, Processor, WrappedLogger

from firstcare.config import settings

# Probes and scrapes are not logged per request
QUIET_PATHS = frozenset({"/metrics", f"{settings.api_v1_prefix}/health"})


def add_service_context(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Stamp every event with the service and its scheduling time zone."""
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    event_dict.setdefault("scheduling_tz", settings.scheduling_timezone)
    return event_dict


def configure_logging() -> None:
    """Route structlog through stdlib logging with JSON or console output."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(settings.log_level.upper()),
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request context for scheduling log events.

    Booking, conflict and lifecycle events logged while a request is
    handled carry its ``request_id``, which is echoed back in the
    ``X-Request-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger = structlog.get_logger()
        request_id = request.headers.get("X-Request-ID") or uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise

        elapsed = _elapsed_ms(started)
        if request.url.path not in QUIET_PATHS:
            logger.info("request_completed", status_code=response.status_code, duration_ms=elapsed)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-Ms"] = str(elapsed)
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
