"""
auth/tokens.py -- JWT, password hashing, and one-time code utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the user id (sub), email, role, issue time and expiry. Verification
       returns None on any failure -- the Auth Gate turns that into a 401.
       There is no refresh: logging in again is the only way to get a token.

  Passwords: bcrypt with a fresh salt per hash at BCRYPT_ROUNDS cost. The
       dummy hash enables timing equalization in authenticate_user() so
       response time does not reveal whether an e-mail is registered.

  One-time codes: six digits from the secrets module. We store
       HMAC-SHA256(SECRET_KEY, code) so a leaked table does not hand out live
       codes, and lookups stay exact-match.

Every function that needs a secret or a cost factor takes the immutable
Settings object; when omitted, the process-wide get_settings() singleton is
used.

Layer rule: no imports from api/, notify/ or portal/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import Settings, get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("internhub.auth")

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("sub", "email", "role", "exp")

# bcrypt hashes at most 72 bytes of input; bcrypt>=5 raises beyond that.
BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, settings: Settings | None = None) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Callers must reject passwords longer than BCRYPT_MAX_BYTES once encoded
    (see password_too_long); bcrypt raises ValueError for them.
    """
    settings = settings or get_settings()
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed digest is a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def password_too_long(plain: str) -> bool:
    """True if bcrypt cannot hash this password (more than 72 UTF-8 bytes)."""
    return len(plain.encode("utf-8")) > BCRYPT_MAX_BYTES


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    # Same cost as real hashes so a miss costs as much as a wrong password.
    return bcrypt.hashpw(b"internhub_timing_dummy", bcrypt.gensalt(rounds=rounds)).decode("utf-8")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, email: str, role: str, settings: Settings | None = None) -> str:
    """Encode a signed JWT carrying identity and role.

    Args:
        user_id:  Numeric user ID, stored as the string subject claim.
        email:    Normalized e-mail address.
        role:     "student" or "admin". Advisory only -- the Auth Gate
                  re-reads the role from the store on every request.
        settings: Secret and lifetime source (TOKEN_EXPIRE_SECONDS, 7 days).
    """
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=settings.token_expire_seconds),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, settings: Settings | None = None) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure.

    None covers a bad signature, a malformed token, missing claims, a
    non-numeric subject and an expired token. Expiry is compared strictly
    (no leeway).
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if any(claim not in payload for claim in _REQUIRED_CLAIMS):
        return None
    if not str(payload["sub"]).isdigit():
        return None
    payload["user_id"] = int(payload["sub"])
    return payload


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str, settings: Settings | None = None) -> User | None:
    """Authenticate an e-mail/password login with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown e-mail: bcrypt runs against a dummy hash of the same cost
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    settings = settings or get_settings()
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _dummy_hash(settings.bcrypt_rounds))
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# One-time codes
# ---------------------------------------------------------------------------


def generate_code() -> str:
    """Return a 6-digit numeric code in the range 100000-999999."""
    return str(100_000 + secrets.randbelow(900_000))


def hash_code(code: str, settings: Settings | None = None) -> str:
    """Return HMAC-SHA256(SECRET_KEY, code) as a hex string.

    Deterministic, so the store can match a submitted code with an equality
    lookup. Without SECRET_KEY the 10^6 code space cannot be precomputed.
    """
    settings = settings or get_settings()
    return hmac.new(
        settings.secret_key.encode(),
        code.strip().encode(),
        hashlib.sha256,
    ).hexdigest()
