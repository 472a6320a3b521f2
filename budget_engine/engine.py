"""
Budget Engine Facade

Ties the components together into the per-month summary the UI renders:
1. Period and daily allowance (periods)
2. Opening and closing balances per account (ledger)
3. Budgeted totals and savings goal contributions (periods, savings)
4. Actual spending and bank balance checks (reconciliation)

DESIGN DECISION: The engine reads snapshots, never writes them. Edits go
through `BalanceLedger`; the engine only assembles derived values. Anything
odd in the input is reported as an anomaly in the summary rather than
raised, so one bad reference never hides a whole month.
"""

from datetime import date
from typing import Iterable, Iterator, Optional

from budget_engine.audit import AuditLogger, get_logger
from budget_engine.config import EngineSettings, get_settings
from budget_engine.ledger import BalanceLedger
from budget_engine.models.budget import (
    CategoryGraph,
    LedgerSnapshot,
    MonthRecord,
    Transaction,
)
from budget_engine.models.month import validate_month_key
from budget_engine.models.results import (
    Anomaly,
    BudgetSummary,
    RecomputeResult,
    TransferSummary,
)
from budget_engine.models.validation import ValidationResult
from budget_engine.periods import (
    HolidayCalendar,
    budget_period,
    compute_daily_budget,
    total_budgeted,
)
from budget_engine.reconciliation import (
    TransactionMatcher,
    bank_balance_check,
    internal_transfer_summary,
    transactions_for_period,
)
from budget_engine.savings import total_contributions
from budget_engine.validation import SnapshotValidator


class BudgetEngine:
    """
    Read-side entry point over ledger snapshots.

    Usage:
        engine = BudgetEngine()
        snapshot, anomalies = engine.recompute_all(snapshot)
        summary = engine.summarize_month(snapshot, "2025-03", transactions, categories)
    """

    def __init__(
        self,
        ledger: Optional[BalanceLedger] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._settings = settings or get_settings()
        self._audit_logger = audit_logger or AuditLogger()
        self._ledger = ledger or BalanceLedger(
            audit_logger=self._audit_logger,
            payday=self._settings.payday,
        )
        self._logger = get_logger("budget_engine.engine")

    @property
    def ledger(self) -> BalanceLedger:
        return self._ledger

    def summarize_month(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        transactions: Iterable[Transaction],
        categories: CategoryGraph,
        today: Optional[date] = None,
    ) -> BudgetSummary:
        """
        Everything the UI needs for one month.

        Balances are derived from the snapshot as given, using its stored
        estimates; the snapshot itself is not modified and nothing is audited.

        Raises:
            InvalidMonthKeyError: malformed month key
        """
        month_key = validate_month_key(month_key)
        transactions = list(transactions)
        payday = self._settings.payday
        record = snapshot.get_month(month_key) or MonthRecord(month_key=month_key)

        daily_budget = compute_daily_budget(
            month_key,
            record.daily_transfer,
            record.weekend_transfer,
            calendar=HolidayCalendar(record.custom_holidays),
            today=today,
            payday=payday,
            upcoming_limit=self._settings.upcoming_holiday_limit,
        )
        period = daily_budget.period

        results, balance_anomalies = self._ledger.month_balances(snapshot, month_key)
        accounts = [
            results[account_id]
            for account_id in snapshot.account_ids()
            if account_id in results
        ]

        matcher = TransactionMatcher(
            categories,
            accounts=snapshot.accounts,
            savings_target_ids=self._savings_target_ids(snapshot, record),
        )
        period_transactions = transactions_for_period(transactions, period)
        reconciliation = matcher.reconcile(period_transactions)

        bank_checks = [
            bank_balance_check(result.account_id, result.closing, transactions, period)
            for result in accounts
        ]

        anomalies: list[Anomaly] = [*balance_anomalies, *reconciliation.anomalies]

        self._logger.debug(
            "month_summarized",
            month_key=month_key,
            transactions=len(period_transactions),
            anomalies=len(anomalies),
        )

        return BudgetSummary(
            month_key=month_key,
            period=period,
            locked=record.locked,
            daily_budget=daily_budget,
            accounts=accounts,
            total_budgeted_costs=total_budgeted(record.cost_items, month_key, payday),
            total_budgeted_savings=total_budgeted(record.savings_items, month_key, payday),
            savings_goal_contributions=total_contributions(snapshot.savings_goals, month_key),
            reconciliation=reconciliation,
            bank_checks=bank_checks,
            anomalies=anomalies,
        )

    def transfer_summary(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        transactions: Iterable[Transaction],
    ) -> list[TransferSummary]:
        """Internal transfers per account within a month's budget period."""
        period = budget_period(month_key, self._settings.payday)
        return internal_transfer_summary(
            transactions_for_period(transactions, period),
            snapshot.accounts,
        )

    def recompute_all(self, snapshot: LedgerSnapshot) -> tuple[LedgerSnapshot, list[Anomaly]]:
        return self._ledger.recompute_all(snapshot)

    def iter_recompute(
        self,
        snapshot: LedgerSnapshot,
        start_month: Optional[str] = None,
    ) -> Iterator[RecomputeResult]:
        return self._ledger.iter_recompute(snapshot, start_month)

    def validate(
        self,
        snapshot: LedgerSnapshot,
        categories: Optional[CategoryGraph] = None,
    ) -> ValidationResult:
        return SnapshotValidator(categories).validate(snapshot)

    @staticmethod
    def _savings_target_ids(snapshot: LedgerSnapshot, record: MonthRecord) -> list[str]:
        """Goals plus the month's savings items can both be saved toward."""
        ids = [goal.id for goal in snapshot.savings_goals]
        ids.extend(item.id for item in record.savings_items)
        return list(dict.fromkeys(ids))
