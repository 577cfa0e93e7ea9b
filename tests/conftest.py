"""
tests/conftest.py -- Shared test fixtures for verifier integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + verifications
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a session token for API integration tests
  - web_client: TestClient with follow_redirects=False for page route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import LoginRateLimiter
from api.main import app
from auth.store import UserStore
from auth.tokens import create_session_token, hash_password
from verifications.store import VerificationStore

# Mount the page router once; the include is skipped when asgi has already
# been imported and done it.
if not any(getattr(route, "path", None) == "/verifier" for route in app.routes):
    from web.routes import router as web_router

    app.include_router(web_router, tags=["Web UI"])

TEST_USERNAME = "testuser"
TEST_PASSWORD = "Testpass123!"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, VerificationStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    logs_url = f"sqlite:///file:test_logs_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), VerificationStore(db_url=logs_url)


def _patch_lifespan(user_store: UserStore, verification_store: VerificationStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.verification_store = verification_store
        app.state.login_limiter = LoginRateLimiter(limit=10, window_seconds=300)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for API integration tests.

    The user TEST_USERNAME / TEST_PASSWORD exists before the client starts.
    The token is a valid session JWT for that user, passed per request as the
    session cookie.
    """
    user_store, verification_store = _make_test_stores(f"api_{request.module.__name__}")
    user_store.create_user(TEST_USERNAME, hash_password(TEST_PASSWORD))
    token = create_session_token(TEST_USERNAME)

    app.router.lifespan_context = _patch_lifespan(user_store, verification_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token

    user_store.close()
    verification_store.close()


@pytest.fixture(scope="module")
def web_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for page route tests.

    follow_redirects=False is essential: we assert on redirect locations,
    which are invisible once the client follows the redirect.
    """
    user_store, verification_store = _make_test_stores(f"web_{request.module.__name__}")
    user_store.create_user(TEST_USERNAME, hash_password(TEST_PASSWORD))
    token = create_session_token(TEST_USERNAME)

    app.router.lifespan_context = _patch_lifespan(user_store, verification_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, token

    user_store.close()
    verification_store.close()


@pytest.fixture
def fresh_client(api_client: tuple[TestClient, str]) -> Generator[tuple[TestClient, str], None, None]:
    """api_client with an empty cookie jar and reset login counters.

    Login responses set the session cookie on the shared client; clearing the
    jar keeps later tests anonymous unless they pass a cookie explicitly.
    """
    client, token = api_client
    client.cookies.clear()
    app.state.login_limiter.reset()
    yield client, token
    client.cookies.clear()
