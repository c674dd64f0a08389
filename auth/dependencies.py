"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two gates, always composed in this order:
  1. get_current_user() -- the Auth Gate. Reads `Authorization: Bearer <token>`,
     verifies the JWT, and re-reads the user from the store. A token for a
     deleted account is rejected even though its signature is still valid.
  2. require_role(role) -- the Role Gate. Depends on get_current_user() and
     compares the store's role (never the token's role claim).

The resolved user is also attached to request.state.user for middleware and
handlers that only have the request.

Layer rule: auth/dependencies.py may import from fastapi (for Depends/
HTTPException/Request) because it is part of the FastAPI dependency
injection system. No imports from api/ or portal/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request

from auth.models import Role, User
from auth.outcomes import ErrorKind
from auth.store import UserStore
from auth.tokens import decode_access_token


def _reject(kind: ErrorKind, message: str) -> HTTPException:
    return HTTPException(status_code=kind.status_code, detail={"code": kind.value, "message": message})


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(request: Request) -> User:
    """Require a valid bearer token for an existing account.

    Raises HTTP 401 with code:
      unauthenticated -- no Authorization header, or not a Bearer token
      invalid_token   -- bad signature, malformed, or expired
      user_not_found  -- the account was deleted after the token was issued

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise _reject(ErrorKind.unauthenticated, "Authentication required")

    payload = decode_access_token(token, request.app.state.settings)
    if payload is None:
        raise _reject(ErrorKind.invalid_token, "Invalid or expired token")

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(payload["user_id"])
    if user is None:
        raise _reject(ErrorKind.user_not_found, "User not found")

    request.state.user = user
    return user


def require_role(role: Role) -> Callable[..., User]:
    """Build a dependency that admits only authenticated users holding `role`.

    Raises HTTP 401 (via get_current_user) if unauthenticated, HTTP 403 if
    the stored role differs.
    """

    def role_gate(user: User = Depends(get_current_user)) -> User:
        if user.role != role.value:
            raise _reject(ErrorKind.forbidden, f"{role.value.capitalize()} access required")
        return user

    return role_gate


require_admin = require_role(Role.admin)
