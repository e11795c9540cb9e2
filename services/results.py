"""Explicit success/failure values returned by the domain services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories understood by the HTTP boundary."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_VERIFIED = "not_verified"
    ALREADY_VERIFIED = "already_verified"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation.

    Exactly one of ``value`` or ``error`` is meaningful: ``error`` is ``None``
    on success. ``details`` carries extra fields the boundary exposes to the
    client, e.g. ``retry_after`` for rate limiting.
    """

    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None, message: str = "") -> "Result[T]":
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **details: Any) -> "Result[T]":
        return cls(error=kind, message=message, details=details)
