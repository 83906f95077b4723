"""Time-limited cache of each user's merged snapshot."""

import json
import logging

from pydantic import TypeAdapter, ValidationError

from config import settings
from integrations.cache_store import CacheStore, user_key
from schemas.plaid import Account, Institution, Snapshot, Transaction

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "transactions"
ACCOUNTS_KEY = "accounts"
INSTITUTIONS_KEY = "institutions"

_transactions_adapter = TypeAdapter(list[Transaction])
_accounts_adapter = TypeAdapter(list[Account])
_institutions_adapter = TypeAdapter(list[Institution])


class SnapshotCache:
    """Reads and writes the three parts of a Snapshot under separate keys.

    A read only hits when all three parts are present and both the
    transactions and accounts lists are non-empty. Empty snapshots are
    never written.
    """

    def __init__(self, store: CacheStore, ttl_seconds: int | None = None):
        self._store = store
        self._ttl_seconds = ttl_seconds or settings.SNAPSHOT_TTL_SECONDS

    def read(self, user_id: str) -> Snapshot | None:
        """Return the cached snapshot, or None on a miss."""
        raw_transactions = self._store.get(user_key(user_id, TRANSACTIONS_KEY))
        raw_accounts = self._store.get(user_key(user_id, ACCOUNTS_KEY))
        raw_institutions = self._store.get(user_key(user_id, INSTITUTIONS_KEY))
        if raw_transactions is None or raw_accounts is None or raw_institutions is None:
            return None

        try:
            snapshot = Snapshot(
                transactions=_transactions_adapter.validate_json(raw_transactions),
                accounts=_accounts_adapter.validate_json(raw_accounts),
                institutions=_institutions_adapter.validate_json(raw_institutions),
            )
        except ValidationError:
            logger.warning("Discarding unreadable cached snapshot for user %s", user_id)
            return None

        if snapshot.is_empty:
            return None
        return snapshot

    def write(self, user_id: str, snapshot: Snapshot) -> bool:
        """Cache ``snapshot`` unless it is empty.

        Returns:
            True if the snapshot was written.
        """
        if snapshot.is_empty:
            logger.debug("Not caching empty snapshot for user %s", user_id)
            return False

        parts = {
            TRANSACTIONS_KEY: [t.model_dump(mode="json") for t in snapshot.transactions],
            ACCOUNTS_KEY: [a.model_dump(mode="json") for a in snapshot.accounts],
            INSTITUTIONS_KEY: [i.model_dump(mode="json") for i in snapshot.institutions],
        }
        for name, payload in parts.items():
            self._store.set(user_key(user_id, name), json.dumps(payload), self._ttl_seconds)
        logger.info(
            "Cached snapshot for user %s (%d transactions, %d accounts, ttl=%ds)",
            user_id,
            len(snapshot.transactions),
            len(snapshot.accounts),
            self._ttl_seconds,
        )
        return True

    def invalidate(self, user_id: str) -> None:
        """Drop the cached snapshot so the next read is a miss."""
        self._store.delete(
            user_key(user_id, TRANSACTIONS_KEY),
            user_key(user_id, ACCOUNTS_KEY),
            user_key(user_id, INSTITUTIONS_KEY),
        )

    def expires_in(self, user_id: str) -> float | None:
        """Seconds until the cached transactions expire, or None if not cached."""
        return self._store.ttl(user_key(user_id, TRANSACTIONS_KEY))
