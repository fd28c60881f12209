"""
tests/conftest.py -- Shared test fixtures for CredGate.

This module provides:
  - store / clock / notifier / flows: unit-level fixtures over an in-memory DB
    with a controllable clock and a notifier that records instead of mailing
  - api_client: TestClient over the real FastAPI app with an isolated DB

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import:
get_settings() needs DEBUG to auto-generate SECRET_KEY, and auth/hashing.py
reads the bcrypt cost once at import. Cost 4 keeps the suite fast.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
# TestClient sends Host: testserver; TrustedHostMiddleware reads this at import.
os.environ.setdefault("ALLOWED_HOSTS", '["localhost", "testserver"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import CredentialStore
from auth.flows import AuthFlows
from auth.otp import OtpManager
from auth.store import AuthStore
from auth.tokens import TokenIssuer
from core.config import get_settings
from notify.messages import Notification
from notify.notifier import Notifier

TEST_SECRET_KEY = "test-secret-key-with-at-least-32-chars!"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class RecordingNotifier(Notifier):
    """Notifier that keeps every enqueued message in a list.

    Set fail=True to make enqueue() raise, simulating a broken queue.
    """

    def __init__(self) -> None:
        super().__init__(app_name="CredGate", reset_expire_minutes=15)
        self.sent: list[Notification] = []
        self.fail = False

    def enqueue(self, notification: Notification) -> None:
        if self.fail:
            raise RuntimeError("queue unavailable")
        self.sent.append(notification)

    def last_otp(self, email: str) -> str:
        """Return the code from the newest reset mail sent to email."""
        for notification in reversed(self.sent):
            if notification.kind == "reset_otp" and notification.recipient == email:
                for line in notification.body.splitlines():
                    if line.strip().isdigit() and len(line.strip()) == 6:
                        return line.strip()
        raise AssertionError(f"No reset OTP was sent to {email}")


class FakeClock:
    """Callable clock for OtpManager that only moves when told to."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AuthStore, None, None]:
    s = AuthStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def tokens(store: AuthStore) -> TokenIssuer:
    return TokenIssuer(store, TEST_SECRET_KEY)


@pytest.fixture
def otps(store: AuthStore, clock: FakeClock) -> OtpManager:
    return OtpManager(store, expire_minutes=15, clock=clock)


@pytest.fixture
def credentials(store: AuthStore) -> CredentialStore:
    return CredentialStore(store)


@pytest.fixture
def flows(
    credentials: CredentialStore,
    tokens: TokenIssuer,
    otps: OtpManager,
    notifier: RecordingNotifier,
) -> AuthFlows:
    return AuthFlows(credentials, tokens, otps, notifier)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AuthStore, notifier: RecordingNotifier):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and recording notifier into app.state so routes see
    an isolated DB and no mail worker is started. The sweep task is a
    long-sleeping coroutine so shutdown can cancel a real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.notifier = notifier
        app.state.flows = AuthFlows.from_settings(store, notifier, get_settings())
        app.state.sweep_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.sweep_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, RecordingNotifier, AuthStore], None, None]:
    """Yield (client, notifier, store) over the real app with a fresh database."""
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = AuthStore(db_url)
    notifier = RecordingNotifier()

    app.router.lifespan_context = _patch_lifespan(store, notifier)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, notifier, store

    store.close()
