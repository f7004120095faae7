"""Translation of exceptions into JSON error bodies.

Every error body carries ``error``, ``code``, ``message`` and ``path``.
``code`` is the stable kind a client switches on, e.g. telling a
provider conflict apart from a patient double booking.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from firstcare.core.exceptions import AppException, InvalidTransitionException

logger = structlog.get_logger()


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    code: str,
    message: Any,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    body = {"error": error, "code": code, "message": message, "path": request.url.path, **extra}
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Scheduling and access errors raised by the engine."""
    extra = {}
    if isinstance(exc, InvalidTransitionException):
        extra = {"source": exc.source, "target": exc.target}

    logger.info("request_rejected", code=exc.code, status_code=exc.status_code)
    return _error_response(
        request,
        exc.status_code,
        exc.__class__.__name__,
        exc.code,
        exc.message,
        **extra,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    return _error_response(
        request,
        exc.status_code,
        "HTTPException",
        "HTTP_ERROR",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed booking payloads, unknown districts and bad query values."""
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "VALIDATION_ERROR",
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "INTERNAL_ERROR",
        "An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on ``app``."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
