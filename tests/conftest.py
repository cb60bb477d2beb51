"""
tests/conftest.py -- Shared test fixtures for User Login API tests.

This module provides:
  - make_stores(): isolated in-memory UserStore + TokenStore on one database
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - stores: fresh stores per test, for unit tests of the session layer
  - api_client: TestClient plus a registered user's credentials

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate SECRET_KEY instead of raising ValueError. ACCESS_LOG_PATH is
emptied so test runs do not write logs/access.log.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ACCESS_LOG_PATH", "")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.cleanup import TokenCleanup
from auth.models import User
from auth.store import TokenStore, UserStore
from auth.tokens import hash_password

TEST_EMAIL = "ada@example.com"
TEST_PASSWORD = "Secret123"

_db_counter = itertools.count()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_stores(name: str) -> tuple[UserStore, TokenStore]:
    """Create a UserStore and TokenStore sharing one named in-memory database.

    A counter suffix keeps every call isolated, even for the same name.
    """
    url = f"sqlite:///file:test_{name}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), TokenStore(db_url=url)


def make_user(email: str = TEST_EMAIL, password: str = TEST_PASSWORD, **fields) -> User:
    """Build a User with a hashed password and sensible defaults."""
    fields.setdefault("firstname", "Ada")
    fields.setdefault("lastname", "Lovelace")
    return User(email=email, password=hash_password(password), **fields)


def _patch_lifespan(user_store: UserStore, token_store: TokenStore):
    """Return an async context manager that replaces the real lifespan.

    The cleanup schedule is attached but never started, so no background
    task sleeps until midnight during the test run.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_store = token_store
        app.state.token_cleanup = TokenCleanup(token_store)
        yield
        await app.state.token_cleanup.stop()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[tuple[UserStore, TokenStore], None, None]:
    """Yield (user_store, token_store) on a fresh database."""
    user_store, token_store = make_stores("unit")
    yield user_store, token_store
    token_store.close()
    user_store.close()


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, UserStore, TokenStore], None, None]:
    """Yield (client, user_store, token_store) with TEST_EMAIL already registered.

    Function-scoped: each test gets its own database, so logins and deletes
    in one test cannot leak into another.
    """
    user_store, token_store = make_stores("api")
    user_store.create_user(make_user())

    app.router.lifespan_context = _patch_lifespan(user_store, token_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store, token_store

    token_store.close()
    user_store.close()


@pytest.fixture
def user_factory():
    """Expose make_user() to tests that need extra accounts."""
    return make_user
