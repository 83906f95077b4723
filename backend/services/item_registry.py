"""Per-user registry of linked Items, persisted in the cache store."""

import json
import logging

from integrations.aggregator_protocol import AggregatorClient
from integrations.cache_store import CacheStore, user_key
from schemas.plaid import LinkedItem

logger = logging.getLogger(__name__)

ITEMS_KEY = "items"
# Single-connection fields kept for readers that predate multi-item support
LEGACY_ACCESS_TOKEN_KEY = "access_token"
LEGACY_ITEM_ID_KEY = "item_id"


class ItemRegistry:
    """Stores the list of LinkedItems for each user.

    Items are unique per ``institution_id`` within a user's list: linking
    the same institution again replaces the existing record in place.
    The list is stored without expiry.
    """

    def __init__(self, store: CacheStore, client: AggregatorClient):
        self._store = store
        self._client = client

    def list_items(self, user_id: str) -> list[LinkedItem]:
        """Return the user's linked Items (empty if none are stored)."""
        raw = self._store.get(user_key(user_id, ITEMS_KEY))
        if not raw:
            return []
        return [LinkedItem.model_validate(item) for item in json.loads(raw)]

    def _save(self, user_id: str, items: list[LinkedItem]) -> None:
        payload = json.dumps([item.model_dump(mode="json") for item in items])
        self._store.set(user_key(user_id, ITEMS_KEY), payload)

    def upsert_item(self, user_id: str, item: LinkedItem) -> None:
        """Add ``item``, replacing any Item for the same institution."""
        items = self.list_items(user_id)
        for index, existing in enumerate(items):
            if existing.institution_id == item.institution_id:
                items[index] = item
                logger.info(
                    "Replaced linked item for %s (%s -> %s)",
                    item.institution_name,
                    existing.item_id,
                    item.item_id,
                )
                break
        else:
            items.append(item)
            logger.info("Linked item %s for %s", item.item_id, item.institution_name)
        self._save(user_id, items)

    def remove_item(self, user_id: str, item_id: str) -> bool:
        """Revoke and remove one Item.

        The access token is revoked with the aggregator first; a revocation
        failure is logged and the Item is removed locally anyway.

        Returns:
            ``False`` if the user has no Item with ``item_id`` (nothing is
            changed), ``True`` once the Item has been removed.
        """
        items = self.list_items(user_id)
        match = next((item for item in items if item.item_id == item_id), None)
        if match is None:
            return False

        try:
            self._client.remove_item(match.access_token)
        except Exception as e:
            logger.warning(
                "Failed to remove item %s remotely (removing locally anyway): %s",
                item_id,
                e,
            )

        remaining = [item for item in items if item.item_id != item_id]
        self._save(user_id, remaining)
        if not remaining:
            self.clear_legacy_token(user_id)
        logger.info("Removed linked item %s", item_id)
        return True

    def set_legacy_token(self, user_id: str, access_token: str, item_id: str) -> None:
        """Record the most recently linked Item in the single-connection fields."""
        self._store.set(user_key(user_id, LEGACY_ACCESS_TOKEN_KEY), access_token)
        self._store.set(user_key(user_id, LEGACY_ITEM_ID_KEY), item_id)

    def clear_legacy_token(self, user_id: str) -> None:
        self._store.delete(
            user_key(user_id, LEGACY_ACCESS_TOKEN_KEY),
            user_key(user_id, LEGACY_ITEM_ID_KEY),
        )
