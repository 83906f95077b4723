"""Aggregator protocol definitions.

This module defines the interface the synchronization pipeline and the
onboarding flow use to talk to the bank-data aggregator, plus the
structured error record produced when a single Item fails to sync.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from schemas.plaid import Account, TransactionsPage


class ErrorCategory(str, Enum):
    """Category of a per-Item sync error."""

    CONNECTION = "connection"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    DATA = "data"
    UNKNOWN = "unknown"


@dataclass
class ItemSyncError:
    """Structured error from syncing one linked Item.

    Recorded instead of failing the whole snapshot.
    """

    item_id: str
    message: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    institution_name: str | None = None
    error_code: str = ""

    def __str__(self) -> str:
        return self.message


class AggregatorClient(Protocol):
    """Protocol for the bank-data aggregator client.

    Every method is a blocking network call. Failures are raised as
    :class:`~integrations.exceptions.AggregatorError` subclasses.
    """

    def is_configured(self) -> bool:
        """Check if the aggregator credentials are present."""
        ...

    def create_link_token(self, user_id: str) -> str:
        """Create a short-lived Link session token for ``user_id``."""
        ...

    def exchange_public_token(self, public_token: str) -> dict:
        """Exchange a public token; returns ``access_token`` and ``item_id``."""
        ...

    def get_item_institution_id(self, access_token: str) -> str:
        """Return the institution_id of the Item behind ``access_token``."""
        ...

    def get_institution_name(self, institution_id: str) -> str:
        """Return the display name of an institution."""
        ...

    def get_accounts(self, access_token: str) -> list[Account]:
        """Return the Item's current accounts and balances."""
        ...

    def sync_transactions(
        self,
        access_token: str,
        cursor: str | None = None,
        count: int = 100,
    ) -> TransactionsPage:
        """Return one page of added transactions after ``cursor``."""
        ...

    def remove_item(self, access_token: str) -> None:
        """Revoke the access token with the aggregator."""
        ...
