"""Unit tests for SyncService."""

from integrations.aggregator_protocol import ErrorCategory
from schemas.plaid import InstitutionTag, TransactionsPage
from services.sync_service import SyncService
from tests.fixtures import make_item
from tests.fixtures.mocks import MockPlaidClient, make_account, make_pages, make_transaction


def _transactions(count: int, prefix: str = "txn") -> list:
    return [make_transaction(f"{prefix}_{i}") for i in range(count)]


def test_fetch_transactions_follows_cursor_until_done():
    """90 transactions at page size 30 take three calls, chained by cursor."""
    pages = make_pages(_transactions(90), page_size=30)
    client = MockPlaidClient(pages={"access-1": pages})
    service = SyncService(client, page_size=30, max_transactions=500)

    transactions = service.fetch_transactions("access-1")

    assert len(transactions) == 90
    assert [t.transaction_id for t in transactions] == [f"txn_{i}" for i in range(90)]
    assert [call[2] for call in client.sync_calls()] == [None, "cursor-1", "cursor-2"]
    assert all(call[3] == 30 for call in client.sync_calls())


def test_fetch_transactions_uneven_pages_ending_without_cursor():
    """Pages of 40, 40 and 10 where the last page carries no next cursor."""
    txns = _transactions(90)
    pages = [
        TransactionsPage(added=txns[:40], next_cursor="c1", has_more=True),
        TransactionsPage(added=txns[40:80], next_cursor="c2", has_more=True),
        TransactionsPage(added=txns[80:], next_cursor=None, has_more=False),
    ]
    client = MockPlaidClient(pages={"access-1": pages})
    service = SyncService(client, page_size=100, max_transactions=500)

    transactions = service.fetch_transactions("access-1")

    assert len(transactions) == 90
    assert [call[2] for call in client.sync_calls()] == [None, "c1", "c2"]


def test_fetch_transactions_always_starts_without_cursor():
    """Every run is a full re-sync from the beginning."""
    client = MockPlaidClient(pages={"access-1": make_pages(_transactions(10))})
    service = SyncService(client, page_size=100, max_transactions=500)

    service.fetch_transactions("access-1")
    service.fetch_transactions("access-1")

    assert [call[2] for call in client.sync_calls()] == [None, None]


def test_fetch_transactions_stops_after_exceeding_cap():
    """The cap is checked after each page; the overshooting page is kept."""
    pages = make_pages(_transactions(1000), page_size=100)
    client = MockPlaidClient(pages={"access-1": pages})
    service = SyncService(client, page_size=100, max_transactions=500)

    transactions = service.fetch_transactions("access-1")

    assert len(client.sync_calls()) == 6
    assert len(transactions) == 600


def test_fetch_transactions_exactly_at_cap_is_complete():
    """An Item with exactly the cap of transactions is fetched to the end."""
    pages = make_pages(_transactions(500), page_size=100)
    client = MockPlaidClient(pages={"access-1": pages})
    service = SyncService(client, page_size=100, max_transactions=500)

    transactions = service.fetch_transactions("access-1")

    assert len(client.sync_calls()) == 5
    assert len(transactions) == 500


def test_fetch_transactions_empty_item():
    client = MockPlaidClient(pages={"access-1": [TransactionsPage(next_cursor="c", has_more=False)]})
    service = SyncService(client, page_size=100, max_transactions=500)

    assert service.fetch_transactions("access-1") == []
    assert len(client.sync_calls()) == 1


def test_defaults_come_from_settings():
    service = SyncService(MockPlaidClient())
    assert service._page_size == 100
    assert service._max_transactions == 500


def test_sync_item_tags_accounts_with_institution():
    item = make_item("item_1", "ins_3", "Chase")
    client = MockPlaidClient(
        pages={item.access_token: make_pages([make_transaction("txn_1", "acc_1")])},
        accounts={item.access_token: [make_account("acc_1"), make_account("acc_2")]},
    )

    result = SyncService(client).sync_item(item)

    assert [t.transaction_id for t in result.transactions] == ["txn_1"]
    assert all(
        account.institution == InstitutionTag(name="Chase", institution_id="ins_3")
        for account in result.accounts
    )
    assert all(account.item_id == "item_1" for account in result.accounts)


def test_sync_items_merges_in_registry_order():
    first = make_item("item_1", "ins_1", "First Bank")
    second = make_item("item_2", "ins_2", "Second Bank")
    client = MockPlaidClient(
        pages={
            first.access_token: make_pages([make_transaction("t1", "a1"), make_transaction("t2", "a1")]),
            second.access_token: make_pages([make_transaction("t3", "a2")]),
        },
        accounts={
            first.access_token: [make_account("a1")],
            second.access_token: [make_account("a2")],
        },
    )

    result = SyncService(client).sync_items([first, second])

    snapshot = result.snapshot
    assert [t.transaction_id for t in snapshot.transactions] == ["t1", "t2", "t3"]
    assert [a.account_id for a in snapshot.accounts] == ["a1", "a2"]
    assert [i.institution_id for i in snapshot.institutions] == ["ins_1", "ins_2"]
    assert result.errors == []


def test_sync_items_isolates_failing_item():
    """A failing Item is skipped; the other Items still contribute."""
    good = make_item("item_good", "ins_good", "Good Bank")
    bad = make_item("item_bad", "ins_bad", "Bad Bank")
    client = MockPlaidClient(
        pages={good.access_token: make_pages([make_transaction("t1", "a1")])},
        accounts={good.access_token: [make_account("a1")]},
        failures={bad.access_token: "login_required"},
    )

    result = SyncService(client).sync_items([bad, good])

    assert [t.transaction_id for t in result.snapshot.transactions] == ["t1"]
    assert [i.institution_id for i in result.snapshot.institutions] == ["ins_good"]
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.item_id == "item_bad"
    assert error.institution_name == "Bad Bank"
    assert error.category == ErrorCategory.AUTH
    assert error.error_code == "ITEM_LOGIN_REQUIRED"


def test_sync_items_failed_accounts_fetch_drops_whole_item():
    """Transactions from an Item whose accounts fetch fails are not included."""
    item = make_item("item_1", "ins_1", "Bank")

    class AccountsFailClient(MockPlaidClient):
        def get_accounts(self, access_token):
            raise RuntimeError("boom")

    client = AccountsFailClient(pages={item.access_token: make_pages([make_transaction("t1")])})

    result = SyncService(client).sync_items([item])

    assert result.snapshot.transactions == []
    assert result.snapshot.accounts == []
    assert result.errors[0].category == ErrorCategory.UNKNOWN
    assert "boom" in result.errors[0].message


def test_sync_items_classifies_errors():
    items = [
        make_item("item_conn", "ins_1", "A"),
        make_item("item_rate", "ins_2", "B"),
        make_item("item_token", "ins_3", "C"),
    ]
    client = MockPlaidClient(failures={
        "access-item_conn": "connection",
        "access-item_rate": "rate_limit",
        "access-item_token": "invalid_token",
    })

    result = SyncService(client).sync_items(items)

    assert [e.category for e in result.errors] == [
        ErrorCategory.CONNECTION,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.AUTH,
    ]
    assert result.errors[2].error_code == "INVALID_ACCESS_TOKEN"
    assert result.snapshot.is_empty


def test_sync_items_with_no_items():
    result = SyncService(MockPlaidClient()).sync_items([])
    assert result.snapshot.is_empty
    assert result.errors == []
