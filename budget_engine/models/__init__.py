"""
Data Models Package

This package contains all Pydantic models used by the budget engine.
All data flowing through the engine must conform to these schemas.
"""

from budget_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budget_engine.models.budget import (
    COST_TRANSACTION_TYPES,
    Account,
    BudgetItem,
    BudgetPeriod,
    CategoryGraph,
    CustomHoliday,
    DayKind,
    FinancedFrom,
    Holiday,
    LedgerSnapshot,
    MainCategory,
    MonthAccountBalance,
    MonthRecord,
    PeriodTiming,
    SavingsGoal,
    Transaction,
    TransactionType,
    TransferType,
)
from budget_engine.models.month import (
    InvalidMonthKeyError,
    format_month_key,
    iter_month_keys,
    month_key_for_date,
    month_span,
    next_month_key,
    parse_month_key,
    previous_month_key,
    shift_month_key,
    validate_month_key,
)
from budget_engine.models.results import (
    AccountMonthResult,
    Anomaly,
    AnomalyKind,
    BankBalance,
    BankBalanceCheck,
    BudgetSummary,
    DailyBudgetResult,
    ReconciliationReport,
    ReconciliationTotal,
    RecomputeResult,
    SignConvention,
    TransferSummary,
)
from budget_engine.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Ledger models
    "COST_TRANSACTION_TYPES",
    "Account",
    "BudgetItem",
    "BudgetPeriod",
    "CategoryGraph",
    "CustomHoliday",
    "DayKind",
    "FinancedFrom",
    "Holiday",
    "LedgerSnapshot",
    "MainCategory",
    "MonthAccountBalance",
    "MonthRecord",
    "PeriodTiming",
    "SavingsGoal",
    "Transaction",
    "TransactionType",
    "TransferType",
    # Month keys
    "InvalidMonthKeyError",
    "format_month_key",
    "iter_month_keys",
    "month_key_for_date",
    "month_span",
    "next_month_key",
    "parse_month_key",
    "previous_month_key",
    "shift_month_key",
    "validate_month_key",
    # Results
    "AccountMonthResult",
    "Anomaly",
    "AnomalyKind",
    "BankBalance",
    "BankBalanceCheck",
    "BudgetSummary",
    "DailyBudgetResult",
    "ReconciliationReport",
    "ReconciliationTotal",
    "RecomputeResult",
    "SignConvention",
    "TransferSummary",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
