"""API route handlers."""
from . import dashboard, plaid

__all__ = ["dashboard", "plaid"]
