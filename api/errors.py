"""
api/errors.py -- Turn failed Outcomes into HTTP errors.

Route handlers call raise_for(outcome) right after a flow returns. The
HTTPException detail is a {"code", "message"} dict; api/main.py's handler
wraps it into the ErrorResponse envelope.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException

from auth.outcomes import ErrorKind, Outcome

T = TypeVar("T")


def http_error(kind: ErrorKind, message: str) -> HTTPException:
    return HTTPException(status_code=kind.status_code, detail={"code": kind.value, "message": message})


def raise_for(outcome: Outcome[T]) -> T:
    """Return the outcome's value, or raise the HTTPException for its ErrorKind."""
    if not outcome.ok:
        raise http_error(outcome.error, outcome.message)
    return outcome.value
