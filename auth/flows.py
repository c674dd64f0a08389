"""
auth/flows.py -- Account lifecycle: registration, login, e-mail verification,
password reset, profile and password changes.

Every flow takes its collaborators explicitly (store, mailer, settings) and
returns an Outcome. Expected failures -- duplicate e-mail, wrong password,
stale code -- come back as Outcome.failure(ErrorKind...). Store exceptions are
not caught here; they surface as 500s through the API's catch-all handler.

One-time code state machine, per (email, purpose):

    no code --issue--> pending --correct code within TTL--> consumed
                        |  ^
                        |  +-- wrong code: unchanged
                        +----- reissue: old code deleted, timer restarts
                        +----- TTL passes: behaves as "no code"

Verification codes (purpose=verify) and reset codes (purpose=reset) live in
the same table but never satisfy each other.

E-mail is a side channel: it is sent after the store write commits, through
send_best_effort(), and a delivery failure never changes the Outcome.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from auth.models import CodePurpose, OneTimeCode, Role, User
from auth.outcomes import ErrorKind, Outcome
from auth.store import UserStore
from auth.tokens import (
    BCRYPT_MAX_BYTES,
    authenticate_user,
    create_access_token,
    generate_code,
    hash_code,
    hash_password,
    password_too_long,
    verify_password,
)
from core.config import Settings
from core.models import normalize_email
from notify import templates
from notify.mailer import Mailer, send_best_effort

logger = logging.getLogger("internhub.auth")

_INVALID_CODE = "Invalid or expired OTP"


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


def _password_rejected(password: str, settings: Settings) -> Outcome | None:
    if len(password or "") < settings.min_password_length:
        return Outcome.failure(
            ErrorKind.validation_error,
            f"Password must be at least {settings.min_password_length} characters",
        )
    if password_too_long(password):
        return Outcome.failure(ErrorKind.validation_error, f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return None


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


def register(
    store: UserStore,
    mailer: Mailer,
    settings: Settings,
    *,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
    program: str = "",
) -> Outcome[User]:
    """Create an unverified student account and send a welcome e-mail."""
    email = normalize_email(email)
    name = (name or "").strip()
    if not name or not email or not password:
        return Outcome.failure(ErrorKind.validation_error, "Name, email, and password are required")
    rejected = _password_rejected(password, settings)
    if rejected:
        return rejected
    if store.get_by_email(email) is not None:
        return Outcome.failure(ErrorKind.conflict, "User with this email already exists")

    user = User(
        email=email,
        name=name,
        hashed_password=hash_password(password, settings),
        phone=phone,
        program=program or "",
        role=Role.student.value,
        is_verified=False,
    )
    try:
        user_id = store.create_user(user)
    except IntegrityError:
        # Lost the race against a concurrent registration for the same address.
        return Outcome.failure(ErrorKind.conflict, "User with this email already exists")

    created = store.get_by_id(user_id)
    logger.info("Registered user id=%s", user_id)
    send_best_effort(mailer, email, templates.welcome(name, settings.client_url))
    return Outcome.success(created, "User registered successfully! You can now login.")


def login(store: UserStore, settings: Settings, *, email: str, password: str) -> Outcome[LoginResult]:
    """Check credentials and issue a session token.

    Unknown e-mail and wrong password produce the same failure. Unverified
    accounts may log in.
    """
    email = normalize_email(email)
    if not email or not password:
        return Outcome.failure(ErrorKind.validation_error, "Email and password are required")
    user = authenticate_user(store, email, password, settings)
    if user is None:
        logger.info("Failed login attempt")
        return Outcome.failure(ErrorKind.invalid_credentials, "Invalid email or password")
    token = create_access_token(user.id, user.email, user.role, settings)
    return Outcome.success(LoginResult(token=token, user=user), "Login successful")


# ---------------------------------------------------------------------------
# One-time codes
# ---------------------------------------------------------------------------


def _issue_code(store: UserStore, settings: Settings, email: str, purpose: CodePurpose, now: float | None) -> str:
    code = generate_code()
    store.replace_code(
        OneTimeCode(
            email=email,
            purpose=purpose.value,
            code_hash=hash_code(code, settings),
            created_at=time.time() if now is None else now,
        )
    )
    logger.info("Issued %s code for %s", purpose.value, email)
    return code


def _consume_code(
    store: UserStore, settings: Settings, email: str, code: str, purpose: CodePurpose, now: float | None
) -> bool:
    now = time.time() if now is None else now
    return store.consume_code(
        email,
        purpose.value,
        hash_code(code, settings),
        issued_after=now - settings.otp_ttl_seconds,
    )


def send_verification_code(
    store: UserStore, mailer: Mailer, settings: Settings, *, email: str, now: float | None = None
) -> Outcome[str]:
    """Issue a verification code for an address and e-mail it.

    The Outcome value is the plain code. Routes expose it only in debug mode.
    """
    email = normalize_email(email)
    if not email:
        return Outcome.failure(ErrorKind.validation_error, "Email is required")
    code = _issue_code(store, settings, email, CodePurpose.verify, now)
    send_best_effort(mailer, email, templates.verification_code(code, settings.otp_ttl_seconds))
    return Outcome.success(code, "OTP sent to your email successfully")


def verify_code(
    store: UserStore, settings: Settings, *, email: str, code: str, now: float | None = None
) -> Outcome[None]:
    """Consume a verification code and mark the account verified."""
    email = normalize_email(email)
    code = (code or "").strip()
    if not email or not code:
        return Outcome.failure(ErrorKind.validation_error, "Email and OTP are required")
    if not _consume_code(store, settings, email, code, CodePurpose.verify, now):
        return Outcome.failure(ErrorKind.invalid_or_expired_code, _INVALID_CODE)
    store.mark_verified(email)
    logger.info("Verified e-mail for %s", email)
    return Outcome.success(None, "Email verified successfully")


def request_password_reset(
    store: UserStore, mailer: Mailer, settings: Settings, *, email: str, now: float | None = None
) -> Outcome[str]:
    """Issue a reset code for an existing account and e-mail it."""
    email = normalize_email(email)
    if not email:
        return Outcome.failure(ErrorKind.validation_error, "Email is required")
    user = store.get_by_email(email)
    if user is None:
        return Outcome.failure(ErrorKind.not_found, "No account found with this email")
    code = _issue_code(store, settings, email, CodePurpose.reset, now)
    send_best_effort(mailer, email, templates.password_reset_code(user.name, code, settings.otp_ttl_seconds))
    return Outcome.success(code, "OTP sent to your email successfully")


def reset_password(
    store: UserStore,
    settings: Settings,
    *,
    email: str,
    code: str,
    new_password: str,
    now: float | None = None,
) -> Outcome[None]:
    """Replace the password of the account that proves control of its e-mail."""
    email = normalize_email(email)
    code = (code or "").strip()
    if not email or not code or not new_password:
        return Outcome.failure(ErrorKind.validation_error, "Email, OTP, and new password are required")
    rejected = _password_rejected(new_password, settings)
    if rejected:
        return rejected
    if not _consume_code(store, settings, email, code, CodePurpose.reset, now):
        return Outcome.failure(ErrorKind.invalid_or_expired_code, _INVALID_CODE)
    user = store.get_by_email(email)
    if user is None:
        return Outcome.failure(ErrorKind.not_found, "User not found")
    store.update_user(user.id, hashed_password=hash_password(new_password, settings))
    logger.info("Password reset for user id=%s", user.id)
    return Outcome.success(None, "Password reset successful! You can now login.")


# ---------------------------------------------------------------------------
# Authenticated self-service
# ---------------------------------------------------------------------------


def update_profile(
    store: UserStore,
    user: User,
    *,
    name: str | None = None,
    phone: str | None = None,
    program: str | None = None,
) -> Outcome[User]:
    """Update name, phone and program. E-mail and role are not editable here."""
    updates: dict = {}
    if name is not None:
        name = name.strip()
        if not name:
            return Outcome.failure(ErrorKind.validation_error, "Name cannot be empty")
        updates["name"] = name
    if phone is not None:
        updates["phone"] = phone.strip() or None
    if program is not None:
        updates["program"] = program
    if not store.update_user(user.id, **updates):
        return Outcome.failure(ErrorKind.not_found, "User not found")
    return Outcome.success(store.get_by_id(user.id), "Profile updated successfully")


def change_password(
    store: UserStore,
    settings: Settings,
    user: User,
    *,
    current_password: str,
    new_password: str,
) -> Outcome[None]:
    """Replace the password after re-checking the current one."""
    rejected = _password_rejected(new_password, settings)
    if rejected:
        return rejected
    # Re-read: the Auth Gate's copy may predate a concurrent password change.
    fresh = store.get_by_id(user.id)
    if fresh is None:
        return Outcome.failure(ErrorKind.not_found, "User not found")
    if not verify_password(current_password or "", fresh.hashed_password):
        return Outcome.failure(ErrorKind.invalid_credentials, "Current password is incorrect")
    store.update_user(fresh.id, hashed_password=hash_password(new_password, settings))
    logger.info("Password changed for user id=%s", fresh.id)
    return Outcome.success(None, "Password changed successfully")
