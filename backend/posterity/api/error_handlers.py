"""Error Handlers - map engine failures onto HTTP responses for the Posterity API.

Invariants:
    - Status comes from the error's category (CATEGORY_STATUS): a rejected
      admission over the emission budget is 429, a stale epoch or a racing
      writer is 409, a lost database is 503
    - 429 responses carry Retry-After: whole seconds until the emission budget
      covers the rejected admission
    - Every envelope names the community the request addressed, even when the
      raising layer had no community in scope
    - Exception (catch-all) -> never leaks internal details

Design Decisions:
    - Log level chosen by category: exhausted capacity is routine traffic
      (INFO), rule rejections are WARNING, database and internal failures ERROR
    - Extracted from main.py (ADR: import fan-out < 10)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from posterity.core.errors import (
    EmissionCapacityExceededError, ErrorCategory, ErrorSeverity, PosterityError,
)
from posterity.core.fixed_point import WAD

logger = logging.getLogger(__name__)

_LOG_LEVEL: dict[ErrorCategory, int] = {
    ErrorCategory.CAPACITY: logging.INFO,
    ErrorCategory.DATABASE: logging.ERROR,
    ErrorCategory.INTERNAL: logging.ERROR,
}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PosterityError, posterity_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)


def retry_after_seconds(exc: EmissionCapacityExceededError) -> int:
    """Seconds until `available` emission-seconds reach `requested` (both wad)."""
    return max(-((exc.available - exc.requested) // WAD), 1)


async def posterity_error_handler(request: Request, exc: PosterityError):
    community_id = request.path_params.get("community_id")
    if exc.context.community_id is None and community_id is not None:
        exc.context.community_id = community_id

    logger.log(
        _LOG_LEVEL.get(exc.category, logging.WARNING),
        f"{exc.code} on {request.url.path}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path,
               "community_id": exc.context.community_id,
               "address": exc.context.address},
    )
    headers = None
    if isinstance(exc, EmissionCapacityExceededError):
        headers = {"Retry-After": str(retry_after_seconds(exc))}
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(
        f"Validation error on {request.url.path}: {exc.errors()}",
        extra={"path": request.url.path,
               "community_id": request.path_params.get("community_id")},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.ERROR.value,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                        "type": e["type"],
                    }
                    for e in exc.errors()
                ],
            },
        },
    )


async def generic_error_handler(request: Request, exc: Exception):
    """Catch-all: never leaks internal details."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )
