"""
tests/conftest.py -- Shared test fixtures for InternHub tests.

This module provides:
  - test_settings: an explicit Settings object for unit tests (low bcrypt cost)
  - user_store / application_store / chat_store: fresh in-memory stores per test
  - api: ApiHarness wrapping a TestClient on the real app with isolated
    stores, a MagicMock mailer and an admin account + token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the API harness because TestClient runs route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

DEBUG, BCRYPT_ROUNDS and ALLOWED_HOSTS must be set before any app import so
get_settings() auto-generates SECRET_KEY, hashes cheaply and admits the
TestClient's "testserver" host.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from unittest.mock import MagicMock

# CRITICAL: Set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.limiter import configure_limits, limiter
from api.main import app
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from core.config import Settings, get_settings
from portal.store import ApplicationStore
from support.store import ChatStore

ADMIN_EMAIL = "admin@internhub.test"
ADMIN_PASSWORD = "adminpass123"

# Rate limits are exercised by slowapi itself; keep them out of functional tests.
limiter.enabled = False


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    return Settings(secret_key="k" * 40, bcrypt_rounds=4, debug=False)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def application_store() -> Generator[ApplicationStore, None, None]:
    store = ApplicationStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def chat_store() -> Generator[ChatStore, None, None]:
    store = ChatStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# API harness
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    user_store: UserStore
    applications: ApplicationStore
    chats: ChatStore
    mailer: MagicMock
    admin_token: str
    admin_id: int

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def register(self, email: str, password: str = "secret1", name: str = "Student") -> dict:
        resp = self.client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        return resp.json()

    def login(self, email: str, password: str = "secret1") -> str:
        resp = self.client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()["token"]


def _patch_lifespan(user_store: UserStore, applications: ApplicationStore, chats: ChatStore, mailer: MagicMock):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and a mock mailer into app.state so
    TestClient routes never touch the real database or an SMTP server.

    The purge_task is a long-sleeping coroutine (a real asyncio.Task is
    required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        configure_limits(app.state.settings)
        app.state.user_store = user_store
        app.state.applications = applications
        app.state.chats = chats
        app.state.mailer = mailer
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture(scope="module")
def api(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for API integration tests.

    One TestClient per test module for speed; each module gets its own
    named in-memory database. Tests use distinct e-mail addresses so they
    do not interfere with each other inside a module.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    db_url = f"sqlite:///file:test_{suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    applications = ApplicationStore(db_url)
    chats = ChatStore(db_url)
    mailer = MagicMock()

    admin_id = user_store.create_user(
        User(
            email=ADMIN_EMAIL,
            name="Test Admin",
            hashed_password=hash_password(ADMIN_PASSWORD),
            role=Role.admin.value,
            is_verified=True,
        )
    )
    admin_token = create_access_token(admin_id, ADMIN_EMAIL, Role.admin.value)

    app.router.lifespan_context = _patch_lifespan(user_store, applications, chats, mailer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            user_store=user_store,
            applications=applications,
            chats=chats,
            mailer=mailer,
            admin_token=admin_token,
            admin_id=admin_id,
        )

    chats.close()
    applications.close()
    user_store.close()
