"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in portal/models.py -- dataclasses own domain shape; stores and flows do the
work.

Layer rule: no imports from api/, notify/ or portal/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    student = "student"
    admin = "admin"


class CodePurpose(str, Enum):
    """What a one-time code proves. A code is only ever consumed for its own purpose."""

    verify = "verify"
    reset = "reset"


@dataclass
class User:
    """Represents an account in InternHub.

    email is stored normalized (trimmed, lower-case) and is the login name.
    program is "" when the user has not picked one yet.

    hashed_password is the bcrypt digest. It never leaves the process: every
    outward view is built from the other fields (see api/models.Profile).
    """

    email: str
    name: str
    hashed_password: str
    id: int | None = None
    phone: str | None = None
    program: str = ""
    role: str = Role.student.value
    is_verified: bool = False
    created_at: str | None = None


@dataclass
class OneTimeCode:
    """A short-lived proof of control over an e-mail address.

    code_hash is HMAC-SHA256(SECRET_KEY, code). The 6-digit code itself is
    only ever held in memory long enough to e-mail it.
    created_at is epoch seconds; expiry is created_at + OTP_TTL_SECONDS.
    """

    email: str
    purpose: str
    code_hash: str
    created_at: float
    id: int | None = None
