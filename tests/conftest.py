"""
tests/conftest.py -- Shared test fixtures for the Conduit identity service.

This module provides:
  - FakeClock: a settable clock injected into TokenService for expiry tests
  - store / hasher / tokens / service: unit-level collaborators over an
    in-memory SQLite database
  - api_client: TestClient over a real create_app() with isolated storage
  - register_user: helper fixture that POSTs /api/users and returns the body

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the API client because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

bcrypt runs at cost 4 in tests; the production default (10) is asserted in
test_config.py and test_passwords.py.

JWT_SECRET must be set before any app module import so get_settings() does
not raise when a test falls back to environment-driven configuration.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator

# CRITICAL: Set JWT_SECRET before any api/core import.
TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
os.environ.setdefault("JWT_SECRET", TEST_SECRET)

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.credentials import CredentialService
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings

START = 1_700_000_000  # 2023-11-14T22:13:20Z


class FakeClock:
    """Callable clock returning a settable Unix timestamp."""

    def __init__(self, now: int = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens(clock: FakeClock) -> TokenService:
    return TokenService(TEST_SECRET, clock=clock)


@pytest.fixture
def service(store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> CredentialService:
    return CredentialService(store, hasher, tokens)


# ---------------------------------------------------------------------------
# API fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def make_settings(db_name: str, **overrides) -> Settings:
    """Settings for an isolated app instance backed by a named in-memory DB."""
    values = {
        "jwt_secret": TEST_SECRET,
        "database_url": f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true",
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[TestClient, None, None]:
    """Yield a TestClient for the real app with an isolated in-memory store.

    The database name is derived from the test module so modules never share
    rows. The lifespan runs on entering the context manager, so
    app.state.credentials and app.state.user_store are ready inside tests.
    """
    db_name = "test_users_" + request.module.__name__.replace(".", "_")
    app = create_app(make_settings(db_name))
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def register_user(api_client: TestClient) -> Callable[..., dict]:
    """Return a helper that registers a user via the API and returns the "user" payload."""

    def _register(email: str, username: str, password: str = "password123") -> dict:
        resp = api_client.post(
            "/api/users",
            json={"user": {"email": email, "username": username, "password": password}},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["user"]

    return _register
