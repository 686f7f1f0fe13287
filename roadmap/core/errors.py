"""
Error types for the Road Map analytics API.

Rule: every error has a machine-readable `code` string so clients can
branch on it without parsing English messages.

The analytics core raises `AnalyticsError` subclasses tagged with an
`ErrorKind`. It knows nothing about HTTP; the kind → status mapping lives
only in the FastAPI handlers at the bottom of this module.
"""
from __future__ import annotations

import enum
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from roadmap.core.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Error kinds and exception classes
# ---------------------------------------------------------------------------

class ErrorKind(str, enum.Enum):
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"


class AnalyticsError(Exception):
    """Base class for all errors raised by the analytics core."""
    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidDateRangeError(AnalyticsError):
    kind = ErrorKind.INVALID_DATE_RANGE

    def __init__(self, start: date, end: date):
        super().__init__(
            message=f"start_date {start} is after end_date {end}.",
            details={"start_date": str(start), "end_date": str(end)},
        )


class UpstreamFailureError(AnalyticsError):
    kind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, operation: str, reason: str | None = None):
        super().__init__(
            message=f"Record source failed during {operation}.",
            details={"operation": operation, "reason": reason} if reason else {"operation": operation},
        )


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_DATE_RANGE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPSTREAM_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def analytics_exception_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    http_status = HTTP_STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if http_status >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message,
            extra={"error_code": exc.code, "status_code": http_status},
        )
    return JSONResponse(status_code=http_status, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path,
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR"},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
