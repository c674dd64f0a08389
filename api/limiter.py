"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route modules
(to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store.

Per-route limit strings come from the Settings object the app runs with:
lifespan calls configure_limits(app.state.settings), and slowapi evaluates
login_limit()/otp_limit() on every request, so the bound values apply
without re-decorating the routes.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import Settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

_limits: dict[str, str] = {}


def configure_limits(settings: Settings) -> None:
    _limits["login"] = settings.login_rate_limit
    _limits["otp"] = settings.otp_rate_limit


def login_limit() -> str:
    return _limits["login"]


def otp_limit() -> str:
    return _limits["otp"]
