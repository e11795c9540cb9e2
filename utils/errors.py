"""Translate service failures into HTTP errors."""

from __future__ import annotations

from typing import TypeVar

from werkzeug.exceptions import (
    BadRequest,
    Conflict,
    Forbidden,
    HTTPException,
    InternalServerError,
    NotFound,
    TooManyRequests,
    Unauthorized,
)

from services.results import ErrorKind, Result
from utils.request_validation import ValidationFailed

T = TypeVar("T")

_EXCEPTIONS: dict[ErrorKind, type[HTTPException]] = {
    ErrorKind.CONFLICT: Conflict,
    ErrorKind.UNAUTHENTICATED: Unauthorized,
    ErrorKind.INVALID_CREDENTIALS: Unauthorized,
    ErrorKind.NOT_VERIFIED: Forbidden,
    ErrorKind.ALREADY_VERIFIED: BadRequest,
    ErrorKind.INVALID_OR_EXPIRED: BadRequest,
    ErrorKind.FORBIDDEN: Forbidden,
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.RATE_LIMITED: TooManyRequests,
    ErrorKind.INTERNAL: InternalServerError,
}


def to_http_exception(result: Result) -> HTTPException:
    """Build the HTTP exception matching a failed ``result``."""

    if result.error is ErrorKind.VALIDATION:
        errors = result.details.get("errors") or [result.message]
        return ValidationFailed(errors, description=result.message or "Validation failed")

    exc_class = _EXCEPTIONS.get(result.error, InternalServerError)
    error = exc_class(result.message)
    details = dict(result.details)
    if details:
        error.payload = details
    if result.error is ErrorKind.RATE_LIMITED and "retry_after" in details:
        error.retry_after = details["retry_after"]
    return error


def unwrap(result: Result[T]) -> T:
    """Return the success value of ``result`` or raise its HTTP error."""

    if not result.ok:
        raise to_http_exception(result)
    return result.value
