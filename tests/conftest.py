"""
tests/conftest.py -- Shared test fixtures for TaskTracker unit and integration tests.

This module provides:
  - auth_config / user_store / task_store: unit-level building blocks on
    private in-memory SQLite databases
  - _make_test_stores(): creates isolated named shared-memory DBs for the app
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - client: TestClient against the real FastAPI app
  - register: fixture returning a helper that signs a user up through the API

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixtures because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DEBUG and BCRYPT_ROUNDS must be set before any project import so
get_settings() auto-generates SECRET_KEY and bcrypt stays fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any core/auth import so get_settings() picks it up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, init_state
from auth.models import AuthContext
from auth.store import UserStore
from core.config import AuthConfig
from tasks.store import TaskStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(secret_key=TEST_SECRET, token_expire_seconds=3600, bcrypt_rounds=4)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def task_store() -> Generator[TaskStore, None, None]:
    store = TaskStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def ann() -> AuthContext:
    return AuthContext(user_id="a" * 32, name="Ann", email="ann@x.com")


@pytest.fixture
def bob() -> AuthContext:
    return AuthContext(user_id="b" * 32, name="Bob", email="bob@y.com")


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _make_test_stores() -> tuple[UserStore, TaskStore]:
    """Create isolated named shared-memory SQLite stores for one test.

    A fresh random name per call keeps tests from seeing each other's rows.
    """
    name = uuid.uuid4().hex
    url = f"sqlite:///file:test_{name}?mode=memory&cache=shared&uri=true"
    return UserStore(url), TaskStore(url)


def _patch_lifespan(user_store: UserStore, task_store: TaskStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app, user_store, task_store)
        yield

    return test_lifespan


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Yield a TestClient wired to fresh in-memory stores.

    Rate limiting is switched off so tests can log in as often as they like.
    """
    user_store, task_store = _make_test_stores()
    app.router.lifespan_context = _patch_lifespan(user_store, task_store)
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c

    limiter.enabled = True
    user_store.close()
    task_store.close()


@pytest.fixture
def register(client: TestClient):
    """Return a helper that registers through the API and yields (token, user dict)."""

    def _register(name: str, email: str, password: str = "secret1") -> tuple[str, dict]:
        resp = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return data["token"], data["user"]

    return _register
