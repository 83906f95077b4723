"""Plaid API client.

This module implements the AggregatorClient protocol via the
plaid-python SDK: Link token creation, public token exchange, Item and
institution lookup, account fetches, cursor-based transaction sync and
Item removal.

Every SDK response is converted to a plain dict and validated into the
pydantic types from :mod:`schemas.plaid` before it leaves this module.
SDK and transport exceptions are mapped onto
:mod:`integrations.exceptions`.
"""

import json
import logging
from typing import Any, Callable

from plaid import ApiException, Environment
from plaid.api.plaid_api import PlaidApi
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest
from plaid.model.transactions_sync_request_options import TransactionsSyncRequestOptions
from pydantic import ValidationError
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from config import settings
from integrations.exceptions import (
    INVALID_ACCESS_TOKEN,
    ITEM_LOGIN_REQUIRED,
    AggregatorAPIError,
    AggregatorConnectionError,
    AggregatorDataError,
    AggregatorError,
    InvalidAccessTokenError,
    ItemLoginRequiredError,
)
from schemas.plaid import Account, TransactionsPage

logger = logging.getLogger(__name__)

# Map PLAID_ENVIRONMENT setting to SDK host URLs.
# Plaid's Development environment is deprecated; only sandbox and production
# are supported.
_ENVIRONMENT_MAP: dict[str, str] = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}


def _as_dict(response: Any) -> dict:
    """Return an SDK response model as a plain dict."""
    if isinstance(response, dict):
        return response
    return response.to_dict()


class PlaidClient:
    """Wrapper around the Plaid API.

    Implements the AggregatorClient protocol.
    """

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
    ):
        self._client_id = client_id or settings.PLAID_CLIENT_ID
        self._secret = secret or settings.PLAID_SECRET
        self._environment = environment or settings.PLAID_ENVIRONMENT

        # Lazily created on first use
        self._api: PlaidApi | None = None

    def _get_api(self) -> PlaidApi:
        """Return (and cache) a PlaidApi instance."""
        if self._api is None:
            env_key = self._environment.lower()
            host = _ENVIRONMENT_MAP.get(env_key)
            if host is None:
                logger.warning(
                    "Unknown PLAID_ENVIRONMENT=%r, falling back to sandbox. "
                    "Valid values: sandbox, production",
                    self._environment,
                )
                host = Environment.Sandbox
            logger.info(
                "Plaid API client: environment=%s, host=%s, client_id=<configured>",
                env_key,
                host,
            )
            configuration = Configuration(
                host=host,
                api_key={
                    "clientId": self._client_id,
                    "secret": self._secret,
                },
            )
            api_client = ApiClient(configuration)
            self._api = PlaidApi(api_client)
        return self._api

    def is_configured(self) -> bool:
        """Check if Plaid credentials are configured."""
        return bool(self._client_id) and bool(self._secret)

    def _call(self, operation: str, fn: Callable[[Any], Any], request: Any) -> dict:
        """Invoke one SDK operation, mapping failures to AggregatorError."""
        try:
            return _as_dict(fn(request))
        except ApiException as e:
            raise self._map_plaid_error(e) from e
        except Urllib3HTTPError as e:
            raise AggregatorConnectionError(
                f"Plaid {operation} failed: {e.__class__.__name__}"
            ) from e

    # ------------------------------------------------------------------
    # Link Token & Token Exchange
    # ------------------------------------------------------------------

    def create_link_token(self, user_id: str) -> str:
        """Create a Plaid Link token for the browser-based auth flow.

        Args:
            user_id: The authenticated user's id, sent as client_user_id.

        Returns:
            The link_token string to be passed to Plaid Link.
        """
        api = self._get_api()
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=user_id),
            client_name=settings.PLAID_CLIENT_NAME,
            products=[Products(p) for p in settings.plaid_products],
            country_codes=[CountryCode(c) for c in settings.plaid_country_codes],
            language=settings.PLAID_LANGUAGE,
        )
        response = self._call("link_token_create", api.link_token_create, request)
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> dict:
        """Exchange a Plaid Link public_token for a permanent access_token.

        Returns:
            Dict with ``access_token`` and ``item_id``.
        """
        api = self._get_api()
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call(
            "item_public_token_exchange", api.item_public_token_exchange, request
        )
        return {
            "access_token": response["access_token"],
            "item_id": response["item_id"],
        }

    def get_item_institution_id(self, access_token: str) -> str:
        """Return the institution_id of the Item (empty string if unknown)."""
        api = self._get_api()
        response = self._call(
            "item_get", api.item_get, ItemGetRequest(access_token=access_token)
        )
        item = response.get("item") or {}
        return item.get("institution_id") or ""

    def get_institution_name(self, institution_id: str) -> str:
        """Look up an institution's display name."""
        api = self._get_api()
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode(c) for c in settings.plaid_country_codes],
        )
        response = self._call(
            "institutions_get_by_id", api.institutions_get_by_id, request
        )
        institution = response.get("institution") or {}
        name = institution.get("name")
        if not name:
            raise AggregatorDataError(
                f"Institution {institution_id} has no name in Plaid response"
            )
        return name

    def remove_item(self, access_token: str) -> None:
        """Revoke an access token by calling Plaid's /item/remove endpoint."""
        api = self._get_api()
        self._call("item_remove", api.item_remove, ItemRemoveRequest(access_token=access_token))

    # ------------------------------------------------------------------
    # Accounts & transactions
    # ------------------------------------------------------------------

    def get_accounts(self, access_token: str) -> list[Account]:
        """Fetch the Item's accounts with current balances."""
        api = self._get_api()
        response = self._call(
            "accounts_get", api.accounts_get, AccountsGetRequest(access_token=access_token)
        )
        try:
            return [
                Account.model_validate(acct)
                for acct in response.get("accounts", []) or []
            ]
        except ValidationError as e:
            raise AggregatorDataError(f"Malformed accounts in Plaid response: {e}") from e

    def sync_transactions(
        self,
        access_token: str,
        cursor: str | None = None,
        count: int = 100,
    ) -> TransactionsPage:
        """Fetch one page of ``/transactions/sync``.

        The cursor is omitted on an Item's first page; in that case the
        configured ``PLAID_DAYS_REQUESTED`` (if any) controls how much
        history Plaid backfills.
        """
        api = self._get_api()
        params: dict[str, Any] = {"access_token": access_token, "count": count}
        if cursor:
            params["cursor"] = cursor
        elif settings.PLAID_DAYS_REQUESTED:
            params["options"] = TransactionsSyncRequestOptions(
                days_requested=settings.PLAID_DAYS_REQUESTED,
            )

        response = self._call(
            "transactions_sync", api.transactions_sync, TransactionsSyncRequest(**params)
        )
        try:
            return TransactionsPage.model_validate(response)
        except ValidationError as e:
            raise AggregatorDataError(
                f"Malformed transactions page in Plaid response: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _map_plaid_error(exc: ApiException) -> AggregatorError:
        """Map a Plaid ApiException to a typed AggregatorError."""
        status = exc.status or 0
        message = str(exc)

        # Try to extract error_code from the body
        error_code = ""
        try:
            body = json.loads(exc.body) if exc.body else {}
            error_code = body.get("error_code", "") or ""
            error_message = body.get("error_message", "")
            if error_message:
                message = f"Plaid error ({error_code}): {error_message}"
        except (TypeError, ValueError, AttributeError):
            pass

        if error_code == ITEM_LOGIN_REQUIRED:
            return ItemLoginRequiredError(message, status_code=status)
        if error_code == INVALID_ACCESS_TOKEN:
            return InvalidAccessTokenError(message, status_code=status)
        return AggregatorAPIError(message, error_code=error_code, status_code=status or None)
