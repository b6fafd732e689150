"""
tests/conftest.py -- Shared test fixtures for BookStore integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for auth + catalog
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus Administrator and Customer tokens
  - user_store / catalog: plain in-memory stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Environment must be set before any core/auth/api import: get_settings() is
cached on first use and api/main.py builds its middleware at import time.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set env before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Identity, Role
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from catalog.store import CatalogStore

ADMIN_LOGIN = "a@b.com"
ADMIN_PASSWORD = "Secret123"
CUSTOMER_LOGIN = "reader@example.com"
CUSTOMER_PASSWORD = "Reader123"


@dataclass
class ApiContext:
    client: TestClient
    user_store: UserStore
    catalog: CatalogStore
    admin_token: str
    customer_token: str
    admin_id: str
    customer_id: str

    def admin(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.admin_token}"}

    def customer(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.customer_token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, CatalogStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   using different fixtures don't share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    catalog_url = f"sqlite:///file:test_catalog_{db_suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=auth_url)
    user_store.ensure_roles(r.value for r in Role)
    return user_store, CatalogStore(db_url=catalog_url)


def _seed_user(store: UserStore, login: str, password: str, roles: list[str]) -> str:
    user_id = store.create_user(Identity(username=login, hashed_password=hash_password(password)))
    store.add_to_roles(user_id, roles)
    return user_id


def _patch_lifespan(user_store: UserStore, catalog: CatalogStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.catalog = catalog
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    One Administrator (a@b.com / Secret123) and one Customer are created
    before the client starts. Each test module gets its own databases.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, catalog = _make_test_stores(suffix)
    admin_id = _seed_user(user_store, ADMIN_LOGIN, ADMIN_PASSWORD, [Role.administrator.value])
    customer_id = _seed_user(user_store, CUSTOMER_LOGIN, CUSTOMER_PASSWORD, [Role.customer.value])

    admin_token = create_access_token(admin_id, ADMIN_LOGIN, [Role.administrator.value], expire_minutes=60)
    customer_token = create_access_token(customer_id, CUSTOMER_LOGIN, [Role.customer.value], expire_minutes=60)

    app.router.lifespan_context = _patch_lifespan(user_store, catalog)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            user_store=user_store,
            catalog=catalog,
            admin_token=admin_token,
            customer_token=customer_token,
            admin_id=admin_id,
            customer_id=customer_id,
        )

    user_store.close()
    catalog.close()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """In-memory UserStore with the standard roles seeded."""
    store = UserStore("sqlite:///:memory:")
    store.ensure_roles(r.value for r in Role)
    yield store
    store.close()


@pytest.fixture
def catalog() -> Generator[CatalogStore, None, None]:
    """Empty in-memory CatalogStore."""
    store = CatalogStore("sqlite:///:memory:")
    yield store
    store.close()
