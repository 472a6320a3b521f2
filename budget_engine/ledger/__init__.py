"""Balance propagation ledger package."""

from budget_engine.ledger.balances import (
    BalanceLedger,
    LedgerError,
    LockNotAllowedError,
    MonthDeletionError,
    UnknownAccountError,
    account_flows,
    closing_balance,
    ensure_month,
    first_month_with_data,
)

__all__ = [
    "BalanceLedger",
    # Exceptions
    "LedgerError",
    "LockNotAllowedError",
    "MonthDeletionError",
    "UnknownAccountError",
    # Helpers
    "account_flows",
    "closing_balance",
    "ensure_month",
    "first_month_with_data",
]
