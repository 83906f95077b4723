"""Pydantic schemas for the dashboard summary endpoint."""

from decimal import Decimal

from pydantic import BaseModel

from schemas.plaid import Account


class InstitutionSummary(BaseModel):
    """Accounts of one institution with their combined current balance."""

    institution_id: str
    name: str
    item_id: str | None = None
    total_balance: Decimal
    accounts: list[Account]


class DashboardSummary(BaseModel):
    """Totals across the (optionally filtered) set of linked accounts."""

    total_balance: Decimal
    currency: str
    account_count: int
    transaction_count: int
    pending_count: int
    institutions: list[InstitutionSummary]
