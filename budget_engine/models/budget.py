"""
Core Data Models for the Budget Engine

These models define the strict schemas for every snapshot the engine
consumes. They are designed to:
1. Enforce invariants at construction time (fail the call, never default)
2. Keep all money as integer minor units (öre)
3. Be immutable where the ledger hands out new snapshots

DESIGN DECISION: Identifiers are opaque strings. Names are display labels
only and never used for matching; legacy name-based data must be migrated
before it reaches the engine.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Iterator, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)

from budget_engine.models.month import parse_month_key, validate_month_key


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Transaction types as classified by the import/categorization layer.

    Only TRANSACTION and EXPENSE_CLAIM count as spending.
    """
    TRANSACTION = "Transaction"
    INTERNAL_TRANSFER = "InternalTransfer"
    SAVINGS = "Savings"
    COST_COVERAGE = "CostCoverage"
    EXPENSE_CLAIM = "ExpenseClaim"
    INCOME = "Income"


COST_TRANSACTION_TYPES = frozenset({
    TransactionType.TRANSACTION,
    TransactionType.EXPENSE_CLAIM,
})


class FinancedFrom(str, Enum):
    """How a cost item is funded."""
    RECURRING = "recurring"   # Budgeted transfer covers it; balance-neutral
    ONE_TIME = "one-time"     # Paid out of the account balance


class TransferType(str, Enum):
    """How a budget item's monthly amount is determined."""
    MONTHLY = "monthly"
    DAILY = "daily"


class DayKind(str, Enum):
    """Classification of a calendar day for allowance purposes."""
    HOLIDAY = "holiday"
    FRIDAY = "friday"
    WEEKDAY = "weekday"
    WEEKEND = "weekend"


class PeriodTiming(str, Enum):
    """Where a budget period sits relative to the evaluation date."""
    PAST = "past"
    CURRENT = "current"
    FUTURE = "future"


# =============================================================================
# ACCOUNTS, CATEGORIES, CALENDAR
# =============================================================================

class Account(BaseModel):
    """
    A bank account.

    Identity is `id`. The name may change or even collide with another
    account's former name; all monetary linkage uses the id.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="", max_length=200)


class MainCategory(BaseModel):
    """A main budget category and the ids of its subcategories."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    sub_category_ids: tuple[str, ...] = Field(default_factory=tuple)


class CategoryGraph(BaseModel):
    """
    Main/sub category graph supplied by the external category resolver.

    Ids are opaque; a subcategory id belongs to at most one main category.
    """
    model_config = ConfigDict(frozen=True)

    main_categories: tuple[MainCategory, ...] = Field(default_factory=tuple)

    _parent_of: dict[str, str] = PrivateAttr(default_factory=dict)
    _children_of: dict[str, frozenset[str]] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        for category in self.main_categories:
            self._children_of[category.id] = frozenset(category.sub_category_ids)
            for sub_id in category.sub_category_ids:
                if sub_id in self._parent_of and self._parent_of[sub_id] != category.id:
                    raise ValueError(
                        f"Subcategory {sub_id} belongs to both "
                        f"{self._parent_of[sub_id]} and {category.id}"
                    )
                self._parent_of[sub_id] = category.id

    def has_category(self, category_id: str) -> bool:
        return category_id in self._children_of

    def has_subcategory(self, sub_category_id: str) -> bool:
        return sub_category_id in self._parent_of

    def main_category_of(self, sub_category_id: str) -> Optional[str]:
        return self._parent_of.get(sub_category_id)

    def subcategories_of(self, category_id: str) -> frozenset[str]:
        return self._children_of.get(category_id, frozenset())


class CustomHoliday(BaseModel):
    """A user-supplied holiday."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    date: date
    name: str = Field(..., min_length=1, max_length=100)


class Holiday(BaseModel):
    """A resolved holiday, official or custom."""
    model_config = ConfigDict(frozen=True)

    date: date
    name: str
    is_custom: bool = False


class BudgetPeriod(BaseModel):
    """
    The budget period for a month key: payday of the prior month through the
    day before payday in the target month, both inclusive.
    """
    model_config = ConfigDict(frozen=True)

    month_key: str
    start: date
    end: date

    @model_validator(mode='after')
    def validate_bounds(self) -> 'BudgetPeriod':
        if self.end < self.start:
            raise ValueError("Budget period end cannot be before start")
        return self

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1


# =============================================================================
# BUDGET ITEMS AND GOALS
# =============================================================================

class BudgetItem(BaseModel):
    """
    A budgeted cost or savings post for one month.

    For daily transfers the monthly amount is derived from `daily_amount`
    and the number of matching weekdays in the budget period; it is never
    stored. Weekday numbers run 0-6 with 0 = Sunday.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    description: str = Field(default="", max_length=200)
    main_category_id: Optional[str] = None
    sub_category_id: Optional[str] = None
    account_id: Optional[str] = None
    amount: int = 0
    financed_from: FinancedFrom = FinancedFrom.RECURRING
    transfer_type: TransferType = TransferType.MONTHLY
    daily_amount: Optional[int] = None
    transfer_days: Optional[frozenset[int]] = None

    @field_validator('transfer_days')
    @classmethod
    def validate_transfer_days(cls, v: Optional[frozenset[int]]) -> Optional[frozenset[int]]:
        if v is None:
            return v
        invalid = sorted(day for day in v if not 0 <= day <= 6)
        if invalid:
            raise ValueError(f"Transfer days must be between 0 and 6, got {invalid}")
        return v

    @model_validator(mode='after')
    def validate_daily_transfer(self) -> 'BudgetItem':
        if self.transfer_type == TransferType.DAILY:
            if self.daily_amount is None:
                raise ValueError("Daily transfer requires daily_amount")
            if not self.transfer_days:
                raise ValueError("Daily transfer requires transfer_days")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.financed_from == FinancedFrom.RECURRING


class SavingsGoal(BaseModel):
    """
    A savings goal amortized over an inclusive month range.

    DESIGN DECISION: start_month and end_month are month keys, not dates.
    A goal ending in March includes all of March.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="", max_length=200)
    account_id: str = Field(..., min_length=1)
    target_amount: int = Field(..., ge=0)
    start_month: str
    end_month: str
    linked_category_id: Optional[str] = None

    @field_validator('start_month', 'end_month')
    @classmethod
    def validate_month(cls, v: str) -> str:
        return validate_month_key(v)

    @model_validator(mode='after')
    def validate_range(self) -> 'SavingsGoal':
        if parse_month_key(self.start_month) > parse_month_key(self.end_month):
            raise ValueError(
                f"Savings goal start month {self.start_month} is after end month {self.end_month}"
            )
        return self


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A bank transaction.

    `amount` is what the bank reported. `corrected_amount`, when present and
    different, is authoritative for all reconciliation math.
    Negative = outflow/cost, positive = inflow/income or savings deposit.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    date: date
    amount: int
    corrected_amount: Optional[int] = None
    type: TransactionType = TransactionType.TRANSACTION
    description: str = ""
    app_category_id: Optional[str] = None
    app_sub_category_id: Optional[str] = None
    savings_target_id: Optional[str] = None
    income_target_id: Optional[str] = None
    linked_transaction_id: Optional[str] = None
    balance_after: Optional[int] = Field(
        default=None,
        description="Bank-reported running balance after this transaction"
    )

    @property
    def effective_amount(self) -> int:
        if self.corrected_amount is not None and self.corrected_amount != self.amount:
            return self.corrected_amount
        return self.amount


# =============================================================================
# LEDGER STATE
# =============================================================================

class MonthAccountBalance(BaseModel):
    """
    Balance state for one account in one month.

    `actual` is the user-entered closing balance; when `is_set` is False the
    estimate is used wherever the actual would be.
    """
    model_config = ConfigDict(frozen=True)

    actual: Optional[int] = None
    is_set: bool = False
    estimated_opening: int = 0
    estimated_closing: int = 0

    @model_validator(mode='after')
    def validate_actual(self) -> 'MonthAccountBalance':
        if self.is_set and self.actual is None:
            raise ValueError("A set balance must carry an actual value")
        return self

    @property
    def effective_closing(self) -> int:
        return self.actual if self.is_set else self.estimated_closing

    @property
    def diff(self) -> Optional[int]:
        """Actual minus estimated closing. Diagnostic only."""
        if not self.is_set:
            return None
        return self.actual - self.estimated_closing


class MonthRecord(BaseModel):
    """Everything the ledger stores for one month key."""
    model_config = ConfigDict(frozen=True)

    month_key: str
    balances: dict[str, MonthAccountBalance] = Field(default_factory=dict)
    cost_items: tuple[BudgetItem, ...] = Field(default_factory=tuple)
    savings_items: tuple[BudgetItem, ...] = Field(default_factory=tuple)
    daily_transfer: int = Field(default=0, ge=0)
    weekend_transfer: int = Field(default=0, ge=0)
    custom_holidays: tuple[CustomHoliday, ...] = Field(default_factory=tuple)
    locked: bool = False

    @field_validator('month_key')
    @classmethod
    def validate_month(cls, v: str) -> str:
        return validate_month_key(v)

    @property
    def has_data(self) -> bool:
        return bool(
            any(balance.is_set for balance in self.balances.values())
            or self.cost_items
            or self.savings_items
            or self.daily_transfer
            or self.weekend_transfer
        )

    def balance_for(self, account_id: str) -> MonthAccountBalance:
        return self.balances.get(account_id) or MonthAccountBalance()


class LedgerSnapshot(BaseModel):
    """
    Immutable snapshot of ledger state.

    The engine never mutates a snapshot; every ledger operation that changes
    state returns a new one.
    """
    model_config = ConfigDict(frozen=True)

    accounts: tuple[Account, ...] = Field(default_factory=tuple)
    months: dict[str, MonthRecord] = Field(default_factory=dict)
    savings_goals: tuple[SavingsGoal, ...] = Field(default_factory=tuple)

    @model_validator(mode='after')
    def validate_month_keys(self) -> 'LedgerSnapshot':
        for key, record in self.months.items():
            if key != record.month_key:
                raise ValueError(f"Month record {record.month_key} stored under key {key}")
        return self

    def month_keys(self) -> list[str]:
        return sorted(self.months)

    def get_month(self, month_key: str) -> Optional[MonthRecord]:
        return self.months.get(month_key)

    def account_ids(self) -> list[str]:
        return [account.id for account in self.accounts]

    def has_account(self, account_id: str) -> bool:
        return any(account.id == account_id for account in self.accounts)

    def with_month(self, record: MonthRecord) -> 'LedgerSnapshot':
        months = dict(self.months)
        months[record.month_key] = record
        return self.model_copy(update={"months": months})

    def with_months(self, records: dict[str, MonthRecord]) -> 'LedgerSnapshot':
        return self.model_copy(update={"months": dict(records)})
