"""Application-level exception types.

Domain errors raised by the HTTP layer and mapped to JSON responses by the
global exception handlers. The limiter itself never raises; a denial only
becomes a ``RateLimitAppError`` once a route decides to reject the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    bucket: str
    limit: int
    remaining: int
    retry_after_ms: int
    retry_after: int


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a referenced resource (e.g., bucket) does not exist."""


class RateLimitAppError(AppError):
    """Raised by the HTTP layer when a limiter denies a request."""
