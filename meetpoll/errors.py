"""Standardized error handling for the API.

This module provides:
1. Custom exception classes for domain-specific errors
2. The exception handler registered on the FastAPI app
3. The standard error response model

Every error renders as ``{"error": "<human readable message>"}`` so that
clients can show the message as-is.

Usage:
    from meetpoll.errors import ScheduleNotFoundError

    if schedule is None:
        raise ScheduleNotFoundError()

    # Register handlers in main.py:
    from meetpoll.errors import register_exception_handlers
    register_exception_handlers(app)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    context: dict[str, Any] | None = None


class APIError(Exception):
    """Base class for API errors."""

    status_code: int = 500
    code: str = "internal_error"
    detail: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None, **context: Any) -> None:
        self.detail = detail or self.__class__.detail
        self.context = context if context else None
        super().__init__(self.detail)

    def to_response(self) -> ErrorResponse:
        """Convert exception to error response model."""
        return ErrorResponse(error=self.detail, context=self.context)


class NotFoundError(APIError):
    """Resource not found error (404)."""

    status_code = 404
    code = "not_found"
    detail = "Resource not found"


class BadRequestError(APIError):
    """Bad request error (400)."""

    status_code = 400
    code = "bad_request"
    detail = "Invalid request"


class ServiceUnavailableError(APIError):
    """Service unavailable error (503)."""

    status_code = 503
    code = "service_unavailable"
    detail = "Service temporarily unavailable"


class DatabaseError(APIError):
    """Database error (500)."""

    status_code = 500
    code = "database_error"
    detail = "Database operation failed"


# Schedule domain errors


class ScheduleValidationError(BadRequestError):
    code = "validation_error"


class MissingTitleError(ScheduleValidationError):
    detail = "Title is required"


class InvalidCandidateError(ScheduleValidationError):
    detail = "Invalid candidate date"

    def __init__(self, literal: str) -> None:
        super().__init__(f"Invalid candidate date: {literal}")
        self.literal = literal


class NoCandidatesError(ScheduleValidationError):
    detail = "Provide at least one candidate date/time"


class MissingNameError(ScheduleValidationError):
    detail = "Participant name is required"


class ScheduleNotFoundError(NotFoundError):
    detail = "Schedule not found"


class StoreError(DatabaseError):
    """The record store reported one or more errors."""

    code = "store_error"
    detail = "Data store request failed"

    @classmethod
    def from_messages(cls, messages: list[str | None]) -> "StoreError":
        joined = ", ".join(m for m in messages if m)
        return cls(joined or None)


class StoreNotConfiguredError(ServiceUnavailableError):
    code = "store_not_configured"
    detail = "Data store is not configured"


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors."""
    logger.warning(
        "API error: %s (status=%d, code=%s, path=%s)",
        exc.detail,
        exc.status_code,
        exc.code,
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return BadRequestError.detail
    first = errors[0]
    message = first.get("msg") or BadRequestError.detail
    if first.get("type") == "json_invalid":
        return message
    path = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{path}: {message}" if path else message


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies as 400 with the first problem."""
    return await api_error_handler(request, BadRequestError(_validation_message(exc)))


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
