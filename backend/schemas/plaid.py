"""Pydantic schemas for aggregator data and the cached snapshot.

Aggregator payloads are validated into these types at the client
boundary; everything downstream (pipeline, cache, API) works with them
instead of raw dicts.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _unwrap_enum(value: Any) -> Any:
    """Return the plain value of SDK enum-like objects (``AccountType`` etc.)."""
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "value", str(value))


class LinkedItem(BaseModel):
    """A linked bank connection for one user and one institution."""

    model_config = ConfigDict(extra="ignore")

    item_id: str
    access_token: str
    institution_id: str
    institution_name: str
    date_connected: datetime


class InstitutionTag(BaseModel):
    """Institution metadata attached to accounts at merge time."""

    name: str
    institution_id: str


class Institution(BaseModel):
    """An institution the user has linked, derived from LinkedItems."""

    institution_id: str
    name: str


class AccountBalances(BaseModel):
    model_config = ConfigDict(extra="ignore")

    available: Optional[float] = None
    current: Optional[float] = None
    iso_currency_code: Optional[str] = None
    limit: Optional[float] = None


class Account(BaseModel):
    """An account as reported by the aggregator.

    ``item_id`` and ``institution`` are filled in by the sync pipeline.
    """

    model_config = ConfigDict(extra="ignore")

    account_id: str
    balances: AccountBalances = Field(default_factory=AccountBalances)
    mask: Optional[str] = None
    name: str
    official_name: Optional[str] = None
    type: str
    subtype: Optional[str] = None
    item_id: Optional[str] = None
    institution: Optional[InstitutionTag] = None

    @field_validator("type", "subtype", mode="before")
    @classmethod
    def unwrap_enum(cls, v: Any) -> Any:
        return _unwrap_enum(v)


class Transaction(BaseModel):
    """A transaction as reported by the aggregator.

    Sign convention is the aggregator's: positive amounts are money out,
    negative amounts are money in.
    """

    model_config = ConfigDict(extra="ignore")

    transaction_id: str
    account_id: str
    amount: float
    date: date
    name: str
    merchant_name: Optional[str] = None
    category: list[str] = Field(default_factory=list)
    pending: bool = False
    payment_channel: Optional[str] = None
    iso_currency_code: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> Any:
        return v or []

    @field_validator("payment_channel", mode="before")
    @classmethod
    def unwrap_enum(cls, v: Any) -> Any:
        return _unwrap_enum(v)


class TransactionsPage(BaseModel):
    """One page of an incremental transactions sync."""

    model_config = ConfigDict(extra="ignore")

    added: list[Transaction] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class Snapshot(BaseModel):
    """The merged view of a user's transactions, accounts and institutions."""

    transactions: list[Transaction] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    institutions: list[Institution] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True unless both transactions and accounts are present."""
        return not (self.transactions and self.accounts)
