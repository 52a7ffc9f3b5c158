"""
tests/conftest.py -- Shared test fixtures for AuthEngine.

This module provides:
  - FakeClock / clock: a settable UTC clock for TTL boundary tests
  - store: isolated in-memory CredentialStore per test
  - service: AccountService over that store, driven by the fake clock
  - register_and_login(): helper returning a live token for a fresh account
  - api_client: TestClient with a patched lifespan and an isolated store

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

BCRYPT_ROUNDS must be set before any auth module import -- auth/hashing.py
reads it once at module load and computes DUMMY_HASH with it.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any auth/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AccountService
from auth.store import CredentialStore
from core.config import get_settings

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock returning a fixed aware UTC datetime until advanced."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 2, 16, 17, 58, 23, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Store / service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: CredentialStore, clock: FakeClock) -> AccountService:
    return AccountService(store, settings=get_settings(), clock=clock)


def register_and_login(
    service: AccountService,
    username: str,
    password: str = "pw1",
    is_admin: bool = False,
) -> str:
    """Register an account and return a freshly issued token for it."""
    assert service.register(username, password, username.title(), "Tester", is_admin=is_admin).ok
    outcome = service.authenticate(username, password)
    assert outcome.ok, outcome.error
    return outcome.value.token


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.credential_store = store
        app.state.accounts = AccountService(store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a per-module shared-memory store."""
    db_name = request.module.__name__.replace(".", "_")
    store = CredentialStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    store.close()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
