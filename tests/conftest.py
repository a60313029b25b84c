"""
tests/conftest.py -- Shared test fixtures for Gatekeeper.

This module provides:
  - FakeMailer: records outgoing email; can be told to fail
  - store: isolated in-memory UserStore for unit tests
  - token_service: TokenService with a fixed test secret
  - make_user: factory that inserts a user with a known password
  - api: TestClient wired to isolated stores through a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process. A uuid suffix keeps tests apart.

DEBUG and RATE_LIMIT_ENABLED must be set before any app import so
get_settings() auto-generates SECRET_KEY and the limiter is built disabled.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenService
from notify.mailer import MailerError

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"
TEST_PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


@dataclass
class SentEmail:
    to: str
    subject: str
    body: str


@dataclass
class FakeMailer:
    """Stand-in for notify.mailer.Mailer that keeps messages in memory."""

    fail: bool = False
    sent: list[SentEmail] = field(default_factory=list)
    backend: str = "fake"

    def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise MailerError(f"Could not send email to {to}")
        self.sent.append(SentEmail(to=to, subject=subject, body=body))


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TokenConfig(secret_key=TEST_SECRET, expire_seconds=3600))


def _insert_user(store: UserStore, email: str, role: str, name: str, password: str) -> User:
    user_id = store.create_user(User(name=name, email=email, role=role, hashed_password=hash_password(password)))
    return store.get_by_id(user_id)


@pytest.fixture
def make_user(store: UserStore) -> Callable[..., User]:
    """Return a factory: make_user(email, role="user", name="Test User", password=TEST_PASSWORD)."""

    def _make(email: str, role: str = Role.user.value, name: str = "Test User", password: str = TEST_PASSWORD) -> User:
        return _insert_user(store, email, role, name, password)

    return _make


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    store: UserStore
    tokens: TokenService
    mailer: FakeMailer

    def add_user(
        self, email: str, role: str = Role.user.value, name: str = "Test User", password: str = TEST_PASSWORD
    ) -> User:
        return _insert_user(self.store, email, role, name, password)

    def auth_header(self, user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens.issue(user.id)}"}


def _patch_lifespan(user_store: UserStore, token_service: TokenService, mailer: FakeMailer):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test collaborators into app.state so routes see an
    isolated DB, a known signing secret, and a mailer that never touches SMTP.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_service = token_service
        app.state.mailer = mailer
        yield

    return test_lifespan


@pytest.fixture
def api(token_service: TokenService) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness around the real FastAPI app with isolated collaborators."""
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=db_url)
    mailer = FakeMailer()

    app.router.lifespan_context = _patch_lifespan(user_store, token_service, mailer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, store=user_store, tokens=token_service, mailer=mailer)

    user_store.close()
