# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error hierarchy for marketplace operations.

Every error raised by the domain services belongs to one kind:
- NotFoundError: referenced entity absent
- ForbiddenError: actor lacks ownership or role for the action
- ConflictError: duplicate pending request, duplicate enrollment, full session
- ValidationError: missing or invalid input (checked before any mutation)
- AlreadyResolvedError: attempt to re-resolve a terminal approval request
- UnavailableError: persistence layer failure

The API layer translates kinds into HTTP status codes; nothing here is
process-fatal.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Caller-facing error categories."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    ALREADY_RESOLVED = "already_resolved"
    UNAVAILABLE = "unavailable"


class LivetrainError(Exception):
    """Base exception for all marketplace errors.

    Attributes:
        kind: Error category used for HTTP translation.
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    kind: ErrorKind = ErrorKind.UNAVAILABLE

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class NotFoundError(LivetrainError):
    """Raised when a referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(LivetrainError):
    """Raised when the actor may not perform the action."""

    kind = ErrorKind.FORBIDDEN


class ConflictError(LivetrainError):
    """Raised when the action conflicts with current state."""

    kind = ErrorKind.CONFLICT


class ValidationError(LivetrainError):
    """Raised when required input is missing or invalid."""

    kind = ErrorKind.VALIDATION


class AlreadyResolvedError(LivetrainError):
    """Raised when an approval request is no longer pending."""

    kind = ErrorKind.ALREADY_RESOLVED


class UnavailableError(LivetrainError):
    """Raised when the datastore cannot serve the request."""

    kind = ErrorKind.UNAVAILABLE


class DuplicatePendingRequestError(ConflictError):
    """Raised when a subject already has a pending approval request."""


class MissingReasonError(ValidationError):
    """Raised when a rejection is attempted without notes."""


class AlreadyEnrolledError(ConflictError):
    """Raised when the learner already holds a seat in the session."""


class SessionFullError(ConflictError):
    """Raised when the session has no remaining capacity."""


class SessionNotBookableError(ConflictError):
    """Raised when the session or its course is not listed."""


__all__ = [
    "ErrorKind",
    "LivetrainError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "ValidationError",
    "AlreadyResolvedError",
    "UnavailableError",
    "DuplicatePendingRequestError",
    "MissingReasonError",
    "AlreadyEnrolledError",
    "SessionFullError",
    "SessionNotBookableError",
]
