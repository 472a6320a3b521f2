"""
Transaction Reconciliation Matcher

Matches bank transactions against budget categories, accounts and savings
or income targets to produce actual-vs-budget figures.

DESIGN DECISIONS:
1. The effective amount (corrected_amount when it differs from amount) is
   used for every sum. The bank's figure is only ever a fallback.
2. Sign conventions are explicit in the result type:
   - cost and account totals are SIGNED (spending stays negative)
   - savings totals are MAGNITUDE (sum of absolute values, never negative)
3. Only ids are matched. A transaction whose category, account or target id
   cannot be resolved is left out of the totals and reported as an anomaly
   next to them.
4. Results depend only on the transaction list, never on iteration order.
   Transaction ids in results keep the source list's order for display.
"""

from typing import Iterable, Optional

from budget_engine.audit import get_logger
from budget_engine.models.budget import (
    COST_TRANSACTION_TYPES,
    Account,
    BudgetPeriod,
    CategoryGraph,
    Transaction,
    TransactionType,
)
from budget_engine.models.results import (
    Anomaly,
    AnomalyKind,
    BankBalance,
    BankBalanceCheck,
    ReconciliationReport,
    ReconciliationTotal,
    SignConvention,
    TransferSummary,
)


def effective_amount(transaction: Transaction) -> int:
    return transaction.effective_amount


def is_cost(transaction: Transaction) -> bool:
    """Spending: a cost-type transaction with a negative effective amount."""
    return transaction.type in COST_TRANSACTION_TYPES and transaction.effective_amount < 0


def is_savings_contribution(transaction: Transaction) -> bool:
    return transaction.type == TransactionType.SAVINGS or transaction.savings_target_id is not None


def _signed_total(transactions: Iterable[Transaction]) -> ReconciliationTotal:
    matched = list(transactions)
    return ReconciliationTotal(
        amount=sum(t.effective_amount for t in matched),
        convention=SignConvention.SIGNED,
        transaction_ids=tuple(t.id for t in matched),
    )


def _magnitude_total(transactions: Iterable[Transaction]) -> ReconciliationTotal:
    matched = list(transactions)
    return ReconciliationTotal(
        amount=sum(abs(t.effective_amount) for t in matched),
        convention=SignConvention.MAGNITUDE,
        transaction_ids=tuple(t.id for t in matched),
    )


class TransactionMatcher:
    """
    Reconciles transactions against a category graph.

    `accounts`, `savings_target_ids` and `income_target_ids` are optional;
    when given, references outside them are reported as anomalies.
    """

    def __init__(
        self,
        categories: CategoryGraph,
        accounts: Optional[Iterable[Account]] = None,
        savings_target_ids: Optional[Iterable[str]] = None,
        income_target_ids: Optional[Iterable[str]] = None,
    ):
        self._categories = categories
        self._accounts = list(accounts) if accounts is not None else None
        self._savings_target_ids = list(savings_target_ids) if savings_target_ids is not None else None
        self._income_target_ids = list(income_target_ids) if income_target_ids is not None else None
        self._logger = get_logger("budget_engine.reconciliation")

    # -------------------------------------------------------------------------
    # Single totals
    # -------------------------------------------------------------------------

    def matches_category(self, transaction: Transaction, category_id: str) -> bool:
        """Direct main-category match or a subcategory of that category."""
        if transaction.app_category_id == category_id:
            return True
        sub_id = transaction.app_sub_category_id
        return sub_id is not None and sub_id in self._categories.subcategories_of(category_id)

    def actual_for_category(self, category_id: str, transactions: Iterable[Transaction]) -> ReconciliationTotal:
        """Actual spending in a main category (signed, normally negative)."""
        return _signed_total(
            t for t in transactions
            if is_cost(t) and self.matches_category(t, category_id)
        )

    def actual_for_subcategory(self, sub_category_id: str, transactions: Iterable[Transaction]) -> ReconciliationTotal:
        """Actual spending in a subcategory (signed, normally negative)."""
        return _signed_total(
            t for t in transactions
            if is_cost(t) and t.app_sub_category_id == sub_category_id
        )

    def actual_for_account(self, account_id: str, transactions: Iterable[Transaction]) -> ReconciliationTotal:
        """Net cost-type activity on one account (signed)."""
        return _signed_total(
            t for t in transactions
            if t.account_id == account_id and t.type in COST_TRANSACTION_TYPES
        )

    def actual_for_savings_target(self, target_id: str, transactions: Iterable[Transaction]) -> ReconciliationTotal:
        """Amount saved toward one savings target (magnitude)."""
        return _magnitude_total(
            t for t in transactions
            if t.savings_target_id == target_id
        )

    def actual_savings_total(self, transactions: Iterable[Transaction]) -> ReconciliationTotal:
        """All savings contributions (magnitude)."""
        return _magnitude_total(t for t in transactions if is_savings_contribution(t))

    def actual_for_income_target(self, target_id: str, transactions: Iterable[Transaction]) -> ReconciliationTotal:
        """Income received against one income budget post (signed)."""
        return _signed_total(
            t for t in transactions
            if t.income_target_id == target_id
        )

    # -------------------------------------------------------------------------
    # Full report
    # -------------------------------------------------------------------------

    def find_anomalies(self, transactions: Iterable[Transaction]) -> list[Anomaly]:
        """Every unresolvable reference, in transaction order."""
        account_ids = {a.id for a in self._accounts} if self._accounts is not None else None
        savings_ids = set(self._savings_target_ids) if self._savings_target_ids is not None else None
        income_ids = set(self._income_target_ids) if self._income_target_ids is not None else None

        anomalies = []
        for t in transactions:
            if t.app_category_id is not None and not self._categories.has_category(t.app_category_id):
                anomalies.append(Anomaly(
                    kind=AnomalyKind.UNKNOWN_CATEGORY,
                    entity_id=t.id,
                    reference_id=t.app_category_id,
                    message=f"Transaction {t.id} references unknown category {t.app_category_id}",
                ))
            if t.app_sub_category_id is not None and not self._categories.has_subcategory(t.app_sub_category_id):
                anomalies.append(Anomaly(
                    kind=AnomalyKind.UNKNOWN_SUBCATEGORY,
                    entity_id=t.id,
                    reference_id=t.app_sub_category_id,
                    message=f"Transaction {t.id} references unknown subcategory {t.app_sub_category_id}",
                ))
            if account_ids is not None and t.account_id not in account_ids:
                anomalies.append(Anomaly(
                    kind=AnomalyKind.UNKNOWN_ACCOUNT,
                    entity_id=t.id,
                    reference_id=t.account_id,
                    message=f"Transaction {t.id} references unknown account {t.account_id}",
                ))
            if savings_ids is not None and t.savings_target_id is not None and t.savings_target_id not in savings_ids:
                anomalies.append(Anomaly(
                    kind=AnomalyKind.UNKNOWN_SAVINGS_TARGET,
                    entity_id=t.id,
                    reference_id=t.savings_target_id,
                    message=f"Transaction {t.id} references unknown savings target {t.savings_target_id}",
                ))
            if income_ids is not None and t.income_target_id is not None and t.income_target_id not in income_ids:
                anomalies.append(Anomaly(
                    kind=AnomalyKind.UNKNOWN_INCOME_TARGET,
                    entity_id=t.id,
                    reference_id=t.income_target_id,
                    message=f"Transaction {t.id} references unknown income target {t.income_target_id}",
                ))
        return anomalies

    def reconcile(self, transactions: Iterable[Transaction]) -> ReconciliationReport:
        """
        Actual totals for every known category, subcategory, account and
        target, with missing-reference anomalies alongside.
        """
        transactions = list(transactions)
        anomalies = self.find_anomalies(transactions)

        # A transaction with any unresolvable reference stays out of every total
        flagged = {anomaly.entity_id for anomaly in anomalies}
        counted = [t for t in transactions if t.id not in flagged]

        report = ReconciliationReport(
            savings_total=self.actual_savings_total(counted),
            anomalies=anomalies,
        )

        for category in self._categories.main_categories:
            report.by_category[category.id] = self.actual_for_category(category.id, counted)
            for sub_id in category.sub_category_ids:
                report.by_subcategory[sub_id] = self.actual_for_subcategory(sub_id, counted)

        for account_id in self._account_ids(counted):
            report.by_account[account_id] = self.actual_for_account(account_id, counted)

        for target_id in self._target_ids(counted, "savings_target_id", self._savings_target_ids):
            report.by_savings_target[target_id] = self.actual_for_savings_target(target_id, counted)

        for target_id in self._target_ids(counted, "income_target_id", self._income_target_ids):
            report.by_income_target[target_id] = self.actual_for_income_target(target_id, counted)

        if anomalies:
            self._logger.warning(
                "reconciliation_anomalies",
                transaction_count=len(transactions),
                anomaly_count=len(anomalies),
            )
        return report

    def _account_ids(self, transactions: list[Transaction]) -> list[str]:
        if self._accounts is not None:
            return [a.id for a in self._accounts]
        return list(dict.fromkeys(t.account_id for t in transactions))

    @staticmethod
    def _target_ids(
        transactions: list[Transaction],
        attribute: str,
        known: Optional[list[str]],
    ) -> list[str]:
        if known is not None:
            return list(known)
        seen = (getattr(t, attribute) for t in transactions)
        return list(dict.fromkeys(target for target in seen if target is not None))


# =============================================================================
# PERIOD AND BANK BALANCE HELPERS
# =============================================================================

def transactions_for_period(transactions: Iterable[Transaction], period: BudgetPeriod) -> list[Transaction]:
    """Transactions dated inside the period, in source order."""
    return [t for t in transactions if period.contains(t.date)]


def latest_bank_balance(
    account_id: str,
    transactions: Iterable[Transaction],
    period: BudgetPeriod,
) -> Optional[BankBalance]:
    """
    The most recent bank-reported running balance for an account in a period.

    Same-day ties go to the transaction that comes later in the source list.
    """
    latest: Optional[tuple] = None
    for index, t in enumerate(transactions):
        if t.account_id != account_id or t.balance_after is None or not period.contains(t.date):
            continue
        key = (t.date, index)
        if latest is None or key > latest[0]:
            latest = (key, t)

    if latest is None:
        return None

    t = latest[1]
    return BankBalance(
        account_id=account_id,
        balance=t.balance_after,
        date=t.date,
        transaction_id=t.id,
    )


def bank_balance_check(
    account_id: str,
    ledger_closing: int,
    transactions: Iterable[Transaction],
    period: BudgetPeriod,
) -> BankBalanceCheck:
    """Compare the ledger's closing balance with the bank's latest figure."""
    return BankBalanceCheck(
        account_id=account_id,
        ledger_closing=ledger_closing,
        bank_balance=latest_bank_balance(account_id, transactions, period),
    )


def internal_transfer_summary(
    transactions: Iterable[Transaction],
    accounts: Iterable[Account],
) -> list[TransferSummary]:
    """
    Internal transfers in and out of each account.

    Only accounts with at least one transfer are returned, in account order.
    """
    transfers = [t for t in transactions if t.type == TransactionType.INTERNAL_TRANSFER]
    summaries = []

    for account in accounts:
        summary = TransferSummary(account_id=account.id, account_name=account.name)
        for t in transfers:
            if t.account_id != account.id:
                continue
            amount = t.effective_amount
            if amount > 0:
                summary.total_in += amount
                summary.incoming_transaction_ids.append(t.id)
            elif amount < 0:
                summary.total_out += abs(amount)
                summary.outgoing_transaction_ids.append(t.id)
            else:
                continue
            if t.linked_transaction_id is None:
                summary.unlinked_count += 1

        if summary.total_in or summary.total_out:
            summaries.append(summary)

    return summaries
