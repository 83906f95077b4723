#!/usr/bin/env python
"""Manual sync script for troubleshooting a user's linked Items.

Runs the sync pipeline for one user with debug output, bypassing the
snapshot cache. Dry-run by default (fetch + display only); pass
--write-cache to store the merged snapshot like the API would.

Usage:
    python -m scripts.debug_sync user_123
    python -m scripts.debug_sync user_123 --verbose
    python -m scripts.debug_sync user_123 --debug --write-cache
"""

import argparse
import json
import sys
import time
from collections import Counter

from integrations.aggregator_protocol import ItemSyncError
from integrations.cache_store import get_cache_store
from integrations.plaid_client import PlaidClient
from schemas.plaid import Account, Transaction
from services.item_registry import ItemRegistry
from services.snapshot_cache import SnapshotCache
from services.sync_service import SyncService

# Verbosity levels
SUMMARY = 0
VERBOSE = 1
DEBUG = 2


def print_section(title: str) -> None:
    """Print a section header."""
    print(f"\n=== {title} ===")


def print_errors(errors: list[ItemSyncError]) -> None:
    """Print per-item errors (always shown)."""
    if not errors:
        return
    print_section(f"Item Errors ({len(errors)})")
    for i, err in enumerate(errors, 1):
        code = f" [{err.error_code}]" if err.error_code else ""
        print(f"  [{i}] {err.item_id} ({err.category.value}){code}: {err.message}")


def _fmt_money(value: float | None, currency: str | None = None) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.2f} {currency or ''}".rstrip()


def print_accounts(accounts: list[Account], verbosity: int) -> None:
    """Print account information at the given verbosity level."""
    print_section(f"Accounts ({len(accounts)})")
    if verbosity == SUMMARY:
        return

    for i, acct in enumerate(accounts, 1):
        institution = acct.institution.name if acct.institution else "?"
        if verbosity == VERBOSE:
            mask = f" (...{acct.mask})" if acct.mask else ""
            balance = _fmt_money(acct.balances.current, acct.balances.iso_currency_code)
            print(f"  [{i}] {institution} | {acct.name}{mask} | {acct.type} | {balance}")
        elif verbosity == DEBUG:
            print(f"  Account {i}:")
            print(json.dumps(acct.model_dump(mode="json"), indent=4))


def print_transactions(transactions: list[Transaction], verbosity: int) -> None:
    """Print transactions with a per-account breakdown at the given verbosity level."""
    account_counts = Counter(t.account_id for t in transactions)
    pending = sum(1 for t in transactions if t.pending)

    print_section(f"Transactions ({len(transactions)}, {pending} pending)")
    for account_id, count in account_counts.most_common():
        print(f"  {account_id}: {count}")

    if verbosity == SUMMARY:
        return

    for i, t in enumerate(transactions, 1):
        if verbosity == VERBOSE:
            flag = " (pending)" if t.pending else ""
            print(
                f"  [{i}] {t.date.isoformat()} | {t.name:<32} | "
                f"{_fmt_money(t.amount, t.iso_currency_code)}{flag}"
            )
        elif verbosity == DEBUG:
            print(f"  Transaction {i}:")
            print(json.dumps(t.model_dump(mode="json"), indent=4))


def main(argv: list[str] | None = None) -> None:
    """Entry point: parse args and run the sync."""
    parser = argparse.ArgumentParser(
        description="Debug sync script - fetch and inspect a user's Plaid data.",
    )
    parser.add_argument("user_id", help="User whose linked Items should be synced")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show one-line-per-record summaries",
    )
    parser.add_argument(
        "--debug",
        "-d",
        action="store_true",
        help="Full detail: every field of every record as JSON",
    )
    parser.add_argument(
        "--write-cache",
        action="store_true",
        help="Store the merged snapshot in the cache like the API does",
    )

    args = parser.parse_args(argv)

    if args.debug:
        verbosity = DEBUG
    elif args.verbose:
        verbosity = VERBOSE
    else:
        verbosity = SUMMARY

    client = PlaidClient()
    if not client.is_configured():
        print("Error: Plaid is not configured.")
        print("Run scripts/setup_plaid.py or check your .env file.")
        sys.exit(1)

    store = get_cache_store()
    registry = ItemRegistry(store, client)
    items = registry.list_items(args.user_id)
    if not items:
        print(f"Error: No linked items for user '{args.user_id}'.")
        sys.exit(1)

    print(f"User: {args.user_id}")
    print(f"Mode: {'write-cache' if args.write_cache else 'dry-run'}")
    for item in items:
        print(f"  {item.institution_name} ({item.institution_id}) item={item.item_id}")
    print("-" * 60)

    print("Fetching data from Plaid...")
    start = time.time()
    result = SyncService(client).sync_items(items)
    elapsed = time.time() - start
    print(f"Fetched in {elapsed:.2f}s")

    snapshot = result.snapshot
    print_errors(result.errors)
    print_accounts(snapshot.accounts, verbosity)
    print_transactions(snapshot.transactions, verbosity)

    cache = SnapshotCache(store)
    written = False
    if args.write_cache:
        written = cache.write(args.user_id, snapshot)
    expires_in = cache.expires_in(args.user_id)

    print_section("Summary")
    print(f"  Items: {len(items) - len(result.errors)}/{len(items)} synced")
    print(f"  Accounts: {len(snapshot.accounts)}")
    print(f"  Transactions: {len(snapshot.transactions)}")
    print(f"  Institutions: {len(snapshot.institutions)}")
    print(f"  Fetch time: {elapsed:.2f}s")
    if args.write_cache:
        print(f"  Cache: {'written' if written else 'skipped (empty snapshot)'}")
    else:
        print("  (Dry-run - cache untouched. Use --write-cache to store the snapshot.)")
    if expires_in is None:
        print("  Cached snapshot: none")
    else:
        print(f"  Cached snapshot expires in {expires_in:.0f}s")


if __name__ == "__main__":
    main()
