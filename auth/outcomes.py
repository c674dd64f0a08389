"""
auth/outcomes.py -- Typed results for expected business outcomes.

A wrong password, a stale code or a duplicate e-mail are normal answers, not
faults. Flows return an Outcome carrying either a value or an ErrorKind; only
genuine dependency failures (database down, bug) are raised as exceptions
and reach the catch-all 500 handler in api/main.py.

Each ErrorKind has exactly one HTTP status, so the route layer never picks
status codes by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    validation_error = "validation_error"
    unauthenticated = "unauthenticated"
    invalid_token = "invalid_token"
    user_not_found = "user_not_found"
    forbidden = "forbidden"
    not_found = "not_found"
    conflict = "conflict"
    invalid_or_expired_code = "invalid_or_expired_code"
    invalid_credentials = "invalid_credentials"
    internal_error = "internal_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.validation_error: 400,
    ErrorKind.unauthenticated: 401,
    ErrorKind.invalid_token: 401,
    ErrorKind.user_not_found: 401,
    ErrorKind.forbidden: 403,
    ErrorKind.not_found: 404,
    ErrorKind.conflict: 409,
    ErrorKind.invalid_or_expired_code: 400,
    ErrorKind.invalid_credentials: 400,
    ErrorKind.internal_error: 500,
}


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either value (error is None) or error + message.

    Build with Outcome.success(...) / Outcome.failure(...) rather than the
    constructor so the two states cannot be mixed.
    """

    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None, message: str = "") -> Outcome[T]:
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> Outcome[T]:
        return cls(error=error, message=message)
