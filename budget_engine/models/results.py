"""
Derived Result Models

Everything the engine computes is returned as one of these models. They are
plain values: the persistence layer may store them, the UI may render them,
but the engine never reads them back as input.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from budget_engine.models.budget import (
    BudgetPeriod,
    Holiday,
    LedgerSnapshot,
    PeriodTiming,
)


class SignConvention(str, Enum):
    """
    Which sign convention a reconciliation total follows.

    Cost and account totals keep their sign (spending stays negative).
    Savings totals are summed magnitudes and are never negative.
    """
    SIGNED = "signed"
    MAGNITUDE = "magnitude"


class AnomalyKind(str, Enum):
    """Kinds of missing-reference anomalies."""
    UNKNOWN_CATEGORY = "unknown_category"
    UNKNOWN_SUBCATEGORY = "unknown_subcategory"
    UNKNOWN_ACCOUNT = "unknown_account"
    UNKNOWN_SAVINGS_TARGET = "unknown_savings_target"
    UNKNOWN_INCOME_TARGET = "unknown_income_target"
    COMPUTATION_FAILED = "computation_failed"


class Anomaly(BaseModel):
    """
    A non-fatal data-integrity problem.

    Anomalies are returned alongside computed totals, never instead of them.
    """
    model_config = ConfigDict(frozen=True)

    kind: AnomalyKind
    entity_id: str = Field(..., description="Transaction, item or account that carries the reference")
    reference_id: Optional[str] = Field(default=None, description="The id that could not be resolved")
    month_key: Optional[str] = None
    message: str


class DailyBudgetResult(BaseModel):
    """Daily allowance figures for one budget period."""
    model_config = ConfigDict(frozen=True)

    month_key: str
    period: BudgetPeriod
    timing: PeriodTiming
    total_budget: int
    remaining_budget: int
    holiday_budget: int
    weekday_count: int
    friday_count: int
    remaining_weekday_count: int
    remaining_friday_count: int
    holidays_in_period: list[Holiday] = Field(default_factory=list)
    upcoming_holidays: list[Holiday] = Field(default_factory=list)


class ReconciliationTotal(BaseModel):
    """A reconciled total with its sign convention made explicit."""
    model_config = ConfigDict(frozen=True)

    amount: int = 0
    convention: SignConvention
    transaction_ids: tuple[str, ...] = Field(default_factory=tuple)

    def __int__(self) -> int:
        return self.amount

    @property
    def transaction_count(self) -> int:
        return len(self.transaction_ids)


class ReconciliationReport(BaseModel):
    """Actual totals for every category, subcategory, account and target."""

    by_category: dict[str, ReconciliationTotal] = Field(default_factory=dict)
    by_subcategory: dict[str, ReconciliationTotal] = Field(default_factory=dict)
    by_account: dict[str, ReconciliationTotal] = Field(default_factory=dict)
    by_savings_target: dict[str, ReconciliationTotal] = Field(default_factory=dict)
    by_income_target: dict[str, ReconciliationTotal] = Field(default_factory=dict)
    savings_total: ReconciliationTotal
    anomalies: list[Anomaly] = Field(default_factory=list)


class BankBalance(BaseModel):
    """The most recent bank-reported balance for an account within a period."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    balance: int
    date: date
    transaction_id: str


class BankBalanceCheck(BaseModel):
    """Ledger closing balance compared with the bank's own figure."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    ledger_closing: int
    bank_balance: Optional[BankBalance] = None

    @property
    def difference(self) -> Optional[int]:
        if self.bank_balance is None:
            return None
        return self.bank_balance.balance - self.ledger_closing

    @property
    def matches(self) -> bool:
        return self.difference == 0


class TransferSummary(BaseModel):
    """Internal transfers in and out of one account."""

    account_id: str
    account_name: str = ""
    total_in: int = 0
    total_out: int = 0
    incoming_transaction_ids: list[str] = Field(default_factory=list)
    outgoing_transaction_ids: list[str] = Field(default_factory=list)
    unlinked_count: int = 0


class AccountMonthResult(BaseModel):
    """Opening and closing figures for one account in one month."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    opening: int
    closing: int
    savings_deposits: int = 0
    recurring_costs: int = 0
    all_costs: int = 0
    actual: Optional[int] = None
    is_set: bool = False

    @property
    def carried_balance(self) -> int:
        """What the next month opens with."""
        return self.actual if self.is_set else self.closing

    @property
    def diff(self) -> Optional[int]:
        if not self.is_set:
            return None
        return self.actual - self.closing


class RecomputeResult(BaseModel):
    """One step of a ledger recompute."""

    month_key: str
    snapshot: LedgerSnapshot
    accounts: dict[str, AccountMonthResult] = Field(default_factory=dict)
    anomalies: list[Anomaly] = Field(default_factory=list)

    @property
    def carried_balances(self) -> dict[str, int]:
        return {account_id: result.carried_balance for account_id, result in self.accounts.items()}


class BudgetSummary(BaseModel):
    """Everything the UI needs for one month."""

    month_key: str
    period: BudgetPeriod
    locked: bool
    daily_budget: DailyBudgetResult
    accounts: list[AccountMonthResult] = Field(default_factory=list)
    total_budgeted_costs: int = 0
    total_budgeted_savings: int = 0
    savings_goal_contributions: int = 0
    reconciliation: ReconciliationReport
    bank_checks: list[BankBalanceCheck] = Field(default_factory=list)
    anomalies: list[Anomaly] = Field(default_factory=list)
