"""Serves a user's merged snapshot, from cache when possible."""

import logging

from integrations.aggregator_protocol import ItemSyncError
from integrations.exceptions import (
    INVALID_ACCESS_TOKEN,
    ITEM_LOGIN_REQUIRED,
    InvalidAccessTokenError,
    ItemLoginRequiredError,
)
from schemas.plaid import Snapshot
from services.exceptions import NoLinkedItemsError
from services.item_registry import ItemRegistry
from services.snapshot_cache import SnapshotCache
from services.sync_service import SyncService

logger = logging.getLogger(__name__)


class FinancialDataService:
    """Fetch flow for the dashboard.

    Without ``refresh`` the snapshot cache is consulted first. On a miss
    (or when ``refresh`` is requested) the sync pipeline runs over the
    user's linked Items and a non-empty result overwrites the cache.
    """

    def __init__(
        self,
        registry: ItemRegistry,
        cache: SnapshotCache,
        sync_service: SyncService,
    ):
        self._registry = registry
        self._cache = cache
        self._sync_service = sync_service

    def get_snapshot(self, user_id: str, refresh: bool = False) -> Snapshot:
        """Return the user's merged snapshot.

        Raises:
            NoLinkedItemsError: The user has no linked Items.
            ItemLoginRequiredError: Nothing could be synced and at least
                one Item needs the user to re-authenticate.
            InvalidAccessTokenError: Nothing could be synced and at least
                one Item's access token is no longer valid.
        """
        if refresh:
            logger.info("Cache refresh requested for user %s", user_id)
        else:
            cached = self._cache.read(user_id)
            if cached is not None:
                logger.debug("Returning cached snapshot for user %s", user_id)
                return cached

        items = self._registry.list_items(user_id)
        if not items:
            raise NoLinkedItemsError(user_id)

        result = self._sync_service.sync_items(items)
        snapshot = result.snapshot

        if snapshot.is_empty:
            self._raise_for_auth_errors(result.errors)
            return snapshot

        self._cache.write(user_id, snapshot)
        return snapshot

    @staticmethod
    def _raise_for_auth_errors(errors: list[ItemSyncError]) -> None:
        """Surface a re-authentication condition when nothing else was synced."""
        for error in errors:
            if error.error_code == ITEM_LOGIN_REQUIRED:
                raise ItemLoginRequiredError(error.message)
        for error in errors:
            if error.error_code == INVALID_ACCESS_TOKEN:
                raise InvalidAccessTokenError(error.message)
