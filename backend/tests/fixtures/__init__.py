"""Test fixtures and sample data."""
from datetime import datetime, timezone

import pytest

from integrations.cache_store import InMemoryCacheStore
from schemas.plaid import LinkedItem
from services.item_registry import ItemRegistry
from services.snapshot_cache import SnapshotCache
from tests.fixtures.mocks import MockPlaidClient, make_account, make_pages, make_transaction

USER_ID = "user_123"


def make_item(
    item_id: str,
    institution_id: str,
    institution_name: str,
    access_token: str | None = None,
) -> LinkedItem:
    return LinkedItem(
        item_id=item_id,
        access_token=access_token or f"access-{item_id}",
        institution_id=institution_id,
        institution_name=institution_name,
        date_connected=datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc),
    )


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-process cache store driven by a fake clock."""
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def chase_item():
    return make_item("item_chase", "ins_3", "Chase")


@pytest.fixture
def santander_item():
    return make_item("item_santander", "ins_109508", "Santander")


@pytest.fixture
def mock_plaid_client(chase_item, santander_item):
    """Mock Plaid client with two Items: Chase (2 accounts) and Santander (1 account)."""
    return MockPlaidClient(
        pages={
            chase_item.access_token: make_pages([
                make_transaction("txn_c1", "acc_chase_chk", 25.0),
                make_transaction("txn_c2", "acc_chase_sav", -1000.0, pending=True),
            ]),
            santander_item.access_token: make_pages([
                make_transaction("txn_s1", "acc_santander", 9.99),
            ]),
        },
        accounts={
            chase_item.access_token: [
                make_account("acc_chase_chk", 1200.50, "Chase Checking"),
                make_account("acc_chase_sav", 5000.0, "Chase Savings"),
            ],
            santander_item.access_token: [
                make_account("acc_santander", 300.0, "Cuenta Online", iso_currency_code="EUR"),
            ],
        },
        institutions={"ins_3": "Chase", "ins_109508": "Santander"},
    )


@pytest.fixture
def registry(store, mock_plaid_client):
    return ItemRegistry(store, mock_plaid_client)


@pytest.fixture
def snapshot_cache(store):
    return SnapshotCache(store, ttl_seconds=3600)


@pytest.fixture
def linked_registry(registry, chase_item, santander_item):
    """Registry for USER_ID with Chase linked first, then Santander."""
    registry.upsert_item(USER_ID, chase_item)
    registry.upsert_item(USER_ID, santander_item)
    return registry
