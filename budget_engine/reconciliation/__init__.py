"""
Reconciliation package - matches transactions against the budget.
"""

from budget_engine.reconciliation.matcher import (
    TransactionMatcher,
    bank_balance_check,
    effective_amount,
    internal_transfer_summary,
    is_cost,
    is_savings_contribution,
    latest_bank_balance,
    transactions_for_period,
)

__all__ = [
    "TransactionMatcher",
    "bank_balance_check",
    "effective_amount",
    "internal_transfer_summary",
    "is_cost",
    "is_savings_contribution",
    "latest_bank_balance",
    "transactions_for_period",
]
