"""Dashboard service - per-institution balances and activity counts."""

from decimal import Decimal

from schemas.dashboard import DashboardSummary, InstitutionSummary
from schemas.plaid import Account, Snapshot

UNKNOWN_INSTITUTION_ID = "unknown"
DEFAULT_CURRENCY = "USD"


def _current_balance(account: Account) -> Decimal:
    current = account.balances.current
    return Decimal(str(current)) if current is not None else Decimal("0")


class DashboardService:
    """Builds the dashboard summary from a merged snapshot."""

    def summarize(
        self,
        snapshot: Snapshot,
        institution_ids: list[str] | None = None,
    ) -> DashboardSummary:
        """Group accounts by institution and total their current balances.

        Args:
            snapshot: The user's merged snapshot.
            institution_ids: If given, only accounts (and their
                transactions) at these institutions are included.

        Returns:
            Summary with institutions sorted by name. The currency is
            taken from the first included account.
        """
        accounts = snapshot.accounts
        if institution_ids:
            selected = set(institution_ids)
            accounts = [
                a for a in accounts
                if a.institution is not None and a.institution.institution_id in selected
            ]

        account_ids = {a.account_id for a in accounts}
        transactions = [t for t in snapshot.transactions if t.account_id in account_ids]

        names = {i.institution_id: i.name for i in snapshot.institutions}
        grouped: dict[str, list[Account]] = {}
        for account in accounts:
            inst_id = (
                account.institution.institution_id
                if account.institution is not None
                else UNKNOWN_INSTITUTION_ID
            )
            grouped.setdefault(inst_id, []).append(account)
            if account.institution is not None:
                names.setdefault(inst_id, account.institution.name)

        institutions = [
            InstitutionSummary(
                institution_id=inst_id,
                name=names.get(inst_id, "Unknown Institution"),
                item_id=next((a.item_id for a in inst_accounts if a.item_id), None),
                total_balance=sum((_current_balance(a) for a in inst_accounts), Decimal("0")),
                accounts=inst_accounts,
            )
            for inst_id, inst_accounts in grouped.items()
        ]
        institutions.sort(key=lambda i: i.name.lower())

        currency = DEFAULT_CURRENCY
        if accounts and accounts[0].balances.iso_currency_code:
            currency = accounts[0].balances.iso_currency_code

        return DashboardSummary(
            total_balance=sum((_current_balance(a) for a in accounts), Decimal("0")),
            currency=currency,
            account_count=len(accounts),
            transaction_count=len(transactions),
            pending_count=sum(1 for t in transactions if t.pending),
            institutions=institutions,
        )
