"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from api.auth import get_current_user_id
from api.plaid import get_plaid_client
from integrations.cache_store import get_cache_store
from main import app
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    USER_ID,
    chase_item,
    clock,
    linked_registry,
    mock_plaid_client,
    registry,
    santander_item,
    snapshot_cache,
    store,
)


def _override_dependencies(store, plaid_client, user_id=USER_ID):
    app.dependency_overrides[get_cache_store] = lambda: store
    app.dependency_overrides[get_plaid_client] = lambda: plaid_client
    app.dependency_overrides[get_current_user_id] = lambda: user_id


@pytest.fixture(name="client")
def client_fixture(store, mock_plaid_client):
    """Create a test client signed in as USER_ID with a mocked Plaid client."""
    _override_dependencies(store, mock_plaid_client)
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client_with_items")
def client_with_items_fixture(store, mock_plaid_client, linked_registry):
    """Create a test client for a user with Chase and Santander linked."""
    _override_dependencies(store, mock_plaid_client)
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="anonymous_client")
def anonymous_client_fixture(store, mock_plaid_client):
    """Create a test client without an authenticated user."""
    app.dependency_overrides[get_cache_store] = lambda: store
    app.dependency_overrides[get_plaid_client] = lambda: mock_plaid_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
