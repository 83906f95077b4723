"""Plaid API endpoints.

Provides the server-side endpoints for the Plaid Link flow (link tokens,
public token exchange), the merged transactions/accounts snapshot the
dashboard renders, and management of linked institutions.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Form, HTTPException, Query
from pydantic import BaseModel

from api.auth import get_current_user_id
from integrations.aggregator_protocol import AggregatorClient
from integrations.cache_store import CacheStore, get_cache_store
from integrations.exceptions import AggregatorAuthError, INVALID_ACCESS_TOKEN, ITEM_LOGIN_REQUIRED
from integrations.plaid_client import PlaidClient
from schemas.plaid import Snapshot
from services.exceptions import NoLinkedItemsError
from services.financial_data_service import FinancialDataService
from services.item_registry import ItemRegistry
from services.link_service import LinkService
from services.snapshot_cache import SnapshotCache
from services.sync_service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])

_AUTH_ERROR_MESSAGES = {
    ITEM_LOGIN_REQUIRED: "Your bank connection needs to be updated. Please reconnect your account.",
    INVALID_ACCESS_TOKEN: "Your bank connection is invalid. Please reconnect your account.",
}


# ------------------------------------------------------------------
# Dependencies (overridable in tests)
# ------------------------------------------------------------------


def get_plaid_client() -> AggregatorClient:
    return PlaidClient()


def get_item_registry(
    store: CacheStore = Depends(get_cache_store),
    client: AggregatorClient = Depends(get_plaid_client),
) -> ItemRegistry:
    return ItemRegistry(store, client)


def get_snapshot_cache(store: CacheStore = Depends(get_cache_store)) -> SnapshotCache:
    return SnapshotCache(store)


def get_financial_data_service(
    client: AggregatorClient = Depends(get_plaid_client),
    registry: ItemRegistry = Depends(get_item_registry),
    cache: SnapshotCache = Depends(get_snapshot_cache),
) -> FinancialDataService:
    return FinancialDataService(registry, cache, SyncService(client))


def get_link_service(
    client: AggregatorClient = Depends(get_plaid_client),
    registry: ItemRegistry = Depends(get_item_registry),
    cache: SnapshotCache = Depends(get_snapshot_cache),
) -> LinkService:
    return LinkService(client, registry, cache)


def load_snapshot(
    user_id: str,
    refresh: bool,
    service: FinancialDataService,
) -> Snapshot:
    """Fetch the user's snapshot, translating failures into HTTP errors."""
    try:
        return service.get_snapshot(user_id, refresh=refresh)
    except NoLinkedItemsError:
        raise HTTPException(status_code=404, detail="No linked bank accounts found")
    except AggregatorAuthError as e:
        logger.warning("Bank connection needs attention for user %s: %s", user_id, e.error_code)
        raise HTTPException(
            status_code=400,
            detail={
                "error": _AUTH_ERROR_MESSAGES.get(
                    e.error_code, "There was an issue with your bank connection."
                ),
                "error_code": e.error_code,
            },
        )
    except Exception:
        logger.error("Error fetching transactions for user %s", user_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Could not retrieve your transactions")


# ------------------------------------------------------------------
# Request / Response schemas
# ------------------------------------------------------------------


class LinkTokenResponse(BaseModel):
    link_token: str


class SetAccessTokenResponse(BaseModel):
    success: bool
    institution_name: str
    accounts: int


class RemoveItemRequest(BaseModel):
    item_id: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool


class LinkedItemResponse(BaseModel):
    item_id: str
    institution_id: str
    institution_name: str
    date_connected: str


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@router.post("/create-link-token", response_model=LinkTokenResponse)
def create_link_token(
    user_id: str = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
):
    """Create a Plaid Link token for the signed-in user."""
    try:
        return LinkTokenResponse(link_token=service.create_link_token(user_id))
    except Exception as e:
        logger.error("Failed to create Plaid link token: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create link token")


@router.post("/set-access-token", response_model=SetAccessTokenResponse)
def set_access_token(
    public_token: Optional[str] = Form(default=None),
    user_id: str = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
):
    """Exchange a Plaid Link public_token and register the linked institution."""
    if not public_token:
        raise HTTPException(status_code=400, detail="public_token is required")

    try:
        item, account_count = service.exchange_public_token(user_id, public_token)
    except Exception as e:
        logger.error("Failed to exchange Plaid public token: %s", e)
        raise HTTPException(status_code=500, detail="Failed to exchange public token")

    return SetAccessTokenResponse(
        success=True,
        institution_name=item.institution_name,
        accounts=account_count,
    )


@router.get("/get-transactions", response_model=Snapshot)
def get_transactions(
    refresh: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    service: FinancialDataService = Depends(get_financial_data_service),
):
    """Return the merged transactions, accounts and institutions.

    Served from cache unless ``refresh=true`` or the cache has expired.
    """
    return load_snapshot(user_id, refresh == "true", service)


@router.get("/items", response_model=list[LinkedItemResponse])
def list_items(
    user_id: str = Depends(get_current_user_id),
    registry: ItemRegistry = Depends(get_item_registry),
):
    """List the user's linked institutions (access tokens are never returned)."""
    return [
        LinkedItemResponse(
            item_id=item.item_id,
            institution_id=item.institution_id,
            institution_name=item.institution_name,
            date_connected=item.date_connected.isoformat(),
        )
        for item in registry.list_items(user_id)
    ]


@router.post("/remove-item", response_model=SuccessResponse)
def remove_item(
    body: Optional[RemoveItemRequest] = Body(default=None),
    user_id: str = Depends(get_current_user_id),
    registry: ItemRegistry = Depends(get_item_registry),
    cache: SnapshotCache = Depends(get_snapshot_cache),
):
    """Remove a linked institution (revokes the token with Plaid, then deletes locally)."""
    if body is None or not body.item_id:
        raise HTTPException(status_code=400, detail="Item ID is required")

    try:
        removed = registry.remove_item(user_id, body.item_id)
    except Exception:
        logger.error("Failed to remove item %s", body.item_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove item")

    if not removed:
        raise HTTPException(status_code=404, detail="Item not found")

    cache.invalidate(user_id)
    return SuccessResponse(success=True)
