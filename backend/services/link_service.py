"""Onboarding flow: Link tokens and public token exchange."""

import logging
from datetime import datetime, timezone

from integrations.aggregator_protocol import AggregatorClient
from schemas.plaid import LinkedItem
from services.item_registry import ItemRegistry
from services.snapshot_cache import SnapshotCache

logger = logging.getLogger(__name__)


class LinkService:
    """Turns a completed Plaid Link session into a registered LinkedItem."""

    def __init__(
        self,
        client: AggregatorClient,
        registry: ItemRegistry,
        cache: SnapshotCache,
    ):
        self._client = client
        self._registry = registry
        self._cache = cache

    def create_link_token(self, user_id: str) -> str:
        return self._client.create_link_token(user_id)

    def exchange_public_token(self, user_id: str, public_token: str) -> tuple[LinkedItem, int]:
        """Exchange ``public_token`` and register the resulting Item.

        Linking an institution the user already has replaces the earlier
        Item. The user's cached snapshot is dropped so the next fetch
        includes the new connection.

        Returns:
            The stored LinkedItem and the number of accounts it exposes.
        """
        exchanged = self._client.exchange_public_token(public_token)
        access_token = exchanged["access_token"]
        item_id = exchanged["item_id"]

        institution_id = self._client.get_item_institution_id(access_token)
        institution_name = self._client.get_institution_name(institution_id)
        accounts = self._client.get_accounts(access_token)

        item = LinkedItem(
            item_id=item_id,
            access_token=access_token,
            institution_id=institution_id,
            institution_name=institution_name,
            date_connected=datetime.now(timezone.utc),
        )
        self._registry.upsert_item(user_id, item)
        self._registry.set_legacy_token(user_id, access_token, item_id)
        self._cache.invalidate(user_id)

        logger.info(
            "User %s linked %s (%d accounts)", user_id, institution_name, len(accounts)
        )
        return item, len(accounts)
