"""Sync service - merges transactions and accounts across a user's linked Items."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from config import settings
from integrations.aggregator_protocol import AggregatorClient, ErrorCategory, ItemSyncError
from integrations.exceptions import (
    AggregatorAPIError,
    AggregatorAuthError,
    AggregatorConnectionError,
    AggregatorDataError,
    AggregatorError,
)
from schemas.plaid import Account, Institution, InstitutionTag, LinkedItem, Snapshot, Transaction

logger = logging.getLogger(__name__)


@dataclass
class ItemSyncResult:
    """Transactions and tagged accounts fetched for one Item."""

    item: LinkedItem
    transactions: list[Transaction]
    accounts: list[Account]


@dataclass
class SyncResult:
    """Merged snapshot plus the errors of any Items that failed."""

    snapshot: Snapshot
    errors: list[ItemSyncError] = field(default_factory=list)


class SyncService:
    """Runs the synchronization pipeline for a user's linked Items.

    Items are processed one after another in registry order. A failure
    for one Item is logged and recorded, and the remaining Items are
    still synced, so the snapshot is the union of whatever succeeded.
    Transactions and accounts keep the aggregator's order within an
    Item and are concatenated in registry order; institutions keep
    first-seen order.
    """

    def __init__(
        self,
        client: AggregatorClient,
        page_size: Optional[int] = None,
        max_transactions: Optional[int] = None,
    ):
        self._client = client
        self._page_size = page_size or settings.SYNC_PAGE_SIZE
        self._max_transactions = max_transactions or settings.SYNC_MAX_TRANSACTIONS_PER_ITEM

    def fetch_transactions(self, access_token: str) -> list[Transaction]:
        """Page through an Item's transactions starting from no cursor.

        Stops when the aggregator reports no more pages, or once more than
        ``max_transactions`` have been accumulated. In the latter case the
        accumulation is returned as-is and no further page is requested,
        so callers must not assume the history is complete.
        """
        transactions: list[Transaction] = []
        cursor: str | None = None
        has_more = True
        pages = 0

        while has_more:
            page = self._client.sync_transactions(
                access_token, cursor=cursor, count=self._page_size
            )
            pages += 1
            transactions.extend(page.added)
            cursor = page.next_cursor
            has_more = page.has_more

            if len(transactions) > self._max_transactions:
                logger.info(
                    "Stopping transaction sync after %d pages: %d transactions exceeds cap of %d",
                    pages,
                    len(transactions),
                    self._max_transactions,
                )
                break

        return transactions

    def sync_item(self, item: LinkedItem) -> ItemSyncResult:
        """Fetch transactions and accounts for one Item and tag the accounts."""
        transactions = self.fetch_transactions(item.access_token)
        accounts = self._client.get_accounts(item.access_token)

        tag = InstitutionTag(name=item.institution_name, institution_id=item.institution_id)
        tagged = [
            account.model_copy(update={"institution": tag, "item_id": item.item_id})
            for account in accounts
        ]
        return ItemSyncResult(item=item, transactions=transactions, accounts=tagged)

    def sync_items(self, items: list[LinkedItem]) -> SyncResult:
        """Sync every Item and merge the results into one snapshot."""
        all_transactions: list[Transaction] = []
        all_accounts: list[Account] = []
        institutions: dict[str, Institution] = {}
        errors: list[ItemSyncError] = []

        for item in items:
            try:
                result = self.sync_item(item)
            except AggregatorError as e:
                logger.warning(
                    "Failed to sync item %s (%s): %s",
                    item.item_id, item.institution_name, e,
                )
                errors.append(self._to_sync_error(item, e))
                continue
            except Exception as e:
                logger.warning(
                    "Unexpected error syncing item %s (%s)",
                    item.item_id, item.institution_name, exc_info=True,
                )
                errors.append(ItemSyncError(
                    item_id=item.item_id,
                    message=f"Failed to sync {item.institution_name}: {e}",
                    institution_name=item.institution_name,
                ))
                continue

            institutions[item.institution_id] = Institution(
                institution_id=item.institution_id,
                name=item.institution_name,
            )
            all_accounts.extend(result.accounts)
            all_transactions.extend(result.transactions)

        logger.info(
            "Synced %d/%d items: %d transactions, %d accounts",
            len(items) - len(errors),
            len(items),
            len(all_transactions),
            len(all_accounts),
        )

        return SyncResult(
            snapshot=Snapshot(
                transactions=all_transactions,
                accounts=all_accounts,
                institutions=list(institutions.values()),
            ),
            errors=errors,
        )

    @staticmethod
    def _to_sync_error(item: LinkedItem, exc: AggregatorError) -> ItemSyncError:
        """Classify an aggregator failure for one Item."""
        if isinstance(exc, AggregatorAuthError):
            category = ErrorCategory.AUTH
        elif isinstance(exc, AggregatorConnectionError):
            category = ErrorCategory.CONNECTION
        elif isinstance(exc, AggregatorDataError):
            category = ErrorCategory.DATA
        elif isinstance(exc, AggregatorAPIError) and exc.status_code == 429:
            category = ErrorCategory.RATE_LIMIT
        elif isinstance(exc, AggregatorAPIError) and exc.retriable:
            category = ErrorCategory.CONNECTION
        else:
            category = ErrorCategory.UNKNOWN

        return ItemSyncError(
            item_id=item.item_id,
            message=str(exc),
            category=category,
            institution_name=item.institution_name,
            error_code=exc.error_code,
        )
