"""
tests/conftest.py -- Shared test fixtures for Inkpost.

This module provides:
  - _make_state(): builds isolated stores, services and an upload dir
  - _patch_lifespan(): wires that state into app.state, bypassing real startup
  - api_client: TestClient running the real app against the isolated state
  - make_user: registers + logs in a user through the API, returns auth headers
  - hasher / tokens: fast unit-test instances (bcrypt cost 4)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process, which
also lets UserStore and PostStore see the same database.

The DEBUG env var must be set before any api import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService
from blog.covers import CoverStorage
from blog.store import PostStore

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"

# ---------------------------------------------------------------------------
# State helpers
# ---------------------------------------------------------------------------


def _make_state(db_suffix: str, upload_dir: Path) -> dict:
    """Create isolated services for one test module.

    Args:
        db_suffix:  Unique string appended to the DB name so test modules
                    don't share rows.
        upload_dir: Temporary directory for cover images.
    """
    db_url = f"sqlite:///file:test_inkpost_{db_suffix}?mode=memory&cache=shared&uri=true"
    return {
        "tokens": TokenService(TEST_SECRET, expire_seconds=86400),
        "hasher": PasswordHasher(rounds=4),
        "user_store": UserStore(db_url),
        "post_store": PostStore(db_url),
        "covers": CoverStorage(upload_dir, max_bytes=64 * 1024),
        "store_timeout": 5.0,
        "post_list_limit": 20,
    }


def _patch_lifespan(state: dict):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        for name, value in state.items():
            setattr(app.state, name, value)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request, tmp_path_factory) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with isolated in-memory stores."""
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    state = _make_state(suffix, tmp_path_factory.mktemp(f"uploads_{suffix}"))

    app.router.lifespan_context = _patch_lifespan(state)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    state["post_store"].close()
    state["user_store"].close()


@pytest.fixture(scope="module")
def make_user(api_client: TestClient) -> Callable[..., tuple[int, dict[str, str]]]:
    """Return a helper that registers and logs in a user via the API.

    Usage:
        user_id, headers = make_user("alice", "pw1")
        client.post("/api/v1/posts", headers=headers, ...)
    """

    def _make(username: str, password: str = "pw1") -> tuple[int, dict[str, str]]:
        resp = api_client.post("/api/v1/auth/register", json={"username": username, "password": password})
        assert resp.status_code == 201, resp.text
        resp = api_client.post("/api/v1/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        return data["user_id"], {"Authorization": f"Bearer {data['access_token']}"}

    return _make


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_secret() -> str:
    return TEST_SECRET


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, expire_seconds=86400)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def post_store() -> Generator[PostStore, None, None]:
    store = PostStore("sqlite:///:memory:")
    yield store
    store.close()
