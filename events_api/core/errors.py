"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. Each error carries the
HTTP status it maps to, so the exception handlers stay a thin translation
layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


SERVER_ERROR_MESSAGE = "the server encountered a problem and could not process your request"
NOT_FOUND_MESSAGE = "the requested resource could not be found"
RATE_LIMIT_MESSAGE = "rate limit exceeded"
EDIT_CONFLICT_MESSAGE = "unable to update the record due to an edit conflict, please try again"


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable message, or a field -> message mapping.
        details: Optional structured details for logs (never sent to clients).
    """

    code: str
    message: str | dict[str, str]
    details: dict[str, Any] | None = None

    status_code: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class BadRequestAppError(AppError):
    """Raised when the request body cannot be understood."""


class ValidationAppError(AppError):
    """Raised when input fails validation; message maps field to problem."""

    status_code: ClassVar[int] = 422


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist."""

    status_code: ClassVar[int] = 404

    @classmethod
    def default(cls) -> "NotFoundAppError":
        return cls(code="not_found", message=NOT_FOUND_MESSAGE)


class EditConflictAppError(AppError):
    """Raised when an update races another update of the same record."""

    status_code: ClassVar[int] = 409


class PayloadTooLargeAppError(AppError):
    """Raised when the request body exceeds the configured limit."""

    status_code: ClassVar[int] = 413


@dataclass
class IdentityExtractionError(AppError):
    """Raised when the transport peer address cannot yield a client identity.

    This is a server fault, not a client one: the peer address comes from the
    server stack, so the client sees the generic 500 message.
    """

    code: str = "identity_extraction_failed"
    message: str | dict[str, str] = SERVER_ERROR_MESSAGE
    peer: Any = field(default=None)

    status_code: ClassVar[int] = 500


@dataclass
class RateLimitExceeded(AppError):
    """Raised when a client has no tokens left in its bucket."""

    code: str = "rate_limit_exceeded"
    message: str | dict[str, str] = RATE_LIMIT_MESSAGE

    status_code: ClassVar[int] = 429
