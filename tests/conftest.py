"""
tests/conftest.py -- Shared test fixtures for coffee catalog integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for products + credentials
  - _patch_lifespan(): wires test stores into app.state via wire_services()
  - running_app(): context manager yielding a TestClient for given Settings
  - api_client: TestClient (default settings) with a seeded user and a token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG must be set before any api/auth/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
LOGIN_RATE_LIMIT is raised because the limiter's counters are shared by
every test module in the session.
"""

from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from contextlib import asynccontextmanager, contextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.models import Credential
from auth.store import CredentialStore
from auth.tokens import hash_password
from catalog.store import ProductStore
from core.config import Settings, get_settings

TEST_USERNAME = "testuser"
TEST_PASSWORD = "testpass123"


def _make_test_stores(db_suffix: str) -> tuple[ProductStore, CredentialStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    product_url = f"sqlite:///file:test_products_{db_suffix}?mode=memory&cache=shared&uri=true"
    credential_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    return ProductStore(product_url), CredentialStore(credential_url)


def _patch_lifespan(settings: Settings, product_store: ProductStore, credential_store: CredentialStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, settings, product_store, credential_store)
        yield

    return test_lifespan


@contextmanager
def running_app(settings: Settings, db_suffix: str, raise_server_exceptions: bool = True) -> Iterator[TestClient]:
    """Start the real app against fresh in-memory stores and a seeded user.

    Pass raise_server_exceptions=False to see the 500 response the catch-all
    handler sends instead of the re-raised exception.
    """
    product_store, credential_store = _make_test_stores(db_suffix)
    credential_store.create_credential(Credential(username=TEST_USERNAME, hashed_password=hash_password(TEST_PASSWORD)))

    app.router.lifespan_context = _patch_lifespan(settings, product_store, credential_store)
    try:
        with TestClient(app, raise_server_exceptions=raise_server_exceptions) as client:
            yield client
    finally:
        product_store.close()
        credential_store.close()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) using the environment's default settings.

    token is a valid bearer token for TEST_USERNAME, issued by the app's own
    TokenCodec after startup.
    """
    suffix = request.module.__name__.replace(".", "_")
    with running_app(get_settings(), suffix) as client:
        token = client.app.state.token_codec.issue(TEST_USERNAME)
        yield client, token
