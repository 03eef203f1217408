"""Error taxonomy shared by the Q&A services.

Validation and policy failures are *returned* as ``ValidationError`` values so
callers can render the exact rule that was violated. Infrastructure failures
are *raised* so they can never be mistaken for a rejected submission.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    SESSION_ENDED = "session_ended"
    SESSION_NOT_STARTED = "session_not_started"
    SUBMISSIONS_DISABLED = "submissions_disabled"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class ValidationError:
    kind: ErrorKind
    error: str
    valid: bool = False


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "ValidationResult":
        return cls(valid=False, error=error, kind=kind)

    def as_error(self) -> ValidationError:
        return ValidationError(kind=self.kind, error=self.error)


class InfrastructureError(Exception):
    """A backing service failed; the request may be retried."""


class RateLimiterUnavailable(InfrastructureError):
    """The rate-limit store could not be reached within its timeout."""


class DatabaseUnavailable(InfrastructureError):
    """The database could not be reached or dropped the connection."""
