"""
Balance Propagation Ledger

Keeps, per account and month, the user's actual closing balance (when they
entered one) and the engine's estimate (when they did not), and chains each
month's closing into the next month's opening.

DESIGN DECISIONS:
1. Snapshots are immutable. Every mutation returns a new LedgerSnapshot;
   nothing is cached between calls and nothing is published to subscribers.
   Callers re-run the computation after a mutation.
2. Opening balance resolution, for month M:
   - previous month's actual, if the user set one
   - else the previous month's stored estimated closing
   - else 0 (a brand new ledger)
   Stored estimates are only as fresh as the last recompute pass.
   An explicit `previous_month_closing` replaces the lookup entirely so a
   batch recompute can thread balances forward without hidden state.
3. Closing = opening + savings deposits + recurring cost allocations
   - all cost allocations. Recurring costs are balance-neutral, one-time
   costs reduce the balance, savings deposits increase it.
4. The lock ("final balances") flag chains forward: a month can be locked
   only if it is the first month with data or its predecessor is locked.
   Any manual change in month M clears the flag on M and every later month.
5. The month history never has holes. Touching a month creates any missing
   months between it and the existing history, and only the first or last
   month may be deleted.
"""

from typing import Iterable, Iterator, Optional

from budget_engine.audit import AuditLogger, get_logger
from budget_engine.models.budget import (
    BudgetItem,
    CustomHoliday,
    LedgerSnapshot,
    MonthRecord,
    SavingsGoal,
)
from budget_engine.models.month import (
    iter_month_keys,
    next_month_key,
    previous_month_key,
    validate_month_key,
)
from budget_engine.models.results import (
    AccountMonthResult,
    Anomaly,
    AnomalyKind,
    RecomputeResult,
)
from budget_engine.periods.daily_budget import monthly_amount
from budget_engine.savings.amortizer import total_contributions


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LockNotAllowedError(LedgerError):
    """The month cannot be marked final yet."""
    pass


class MonthDeletionError(LedgerError):
    """Deleting the month would break the chronological chain."""
    pass


class UnknownAccountError(LedgerError):
    """The account id is not part of the snapshot."""
    pass


# =============================================================================
# SNAPSHOT HELPERS
# =============================================================================

def first_month_with_data(snapshot: LedgerSnapshot) -> Optional[str]:
    """The chronologically first month holding any recorded data."""
    for month_key in snapshot.month_keys():
        if snapshot.months[month_key].has_data:
            return month_key
    return None


def ensure_month(snapshot: LedgerSnapshot, month_key: str) -> LedgerSnapshot:
    """
    Return a snapshot that contains month_key.

    Any months missing between the existing history and month_key are
    created empty so propagation never jumps over a hole.
    """
    month_key = validate_month_key(month_key)
    keys = snapshot.month_keys()
    if month_key in snapshot.months and (not keys or _is_contiguous(keys)):
        return snapshot

    months = dict(snapshot.months)
    low = min(keys[0], month_key) if keys else month_key
    high = max(keys[-1], month_key) if keys else month_key
    for key in iter_month_keys(low, high):
        if key not in months:
            months[key] = MonthRecord(month_key=key)
    return snapshot.with_months(months)


def _is_contiguous(keys: list[str]) -> bool:
    return all(next_month_key(a) == b for a, b in zip(keys, keys[1:]))


def account_flows(
    record: MonthRecord,
    account_id: str,
    savings_goals: Iterable[SavingsGoal] = (),
    payday: Optional[int] = None,
) -> tuple[int, int, int]:
    """
    Budgeted flows for one account in one month.

    Returns: (savings_deposits, recurring_cost_allocations, all_cost_allocations)
    """
    month_key = record.month_key

    savings_deposits = sum(
        monthly_amount(item, month_key, payday)
        for item in record.savings_items
        if item.account_id == account_id
    )
    savings_deposits += total_contributions(savings_goals, month_key, account_id)

    recurring_costs = 0
    all_costs = 0
    for item in record.cost_items:
        if item.account_id != account_id:
            continue
        amount = monthly_amount(item, month_key, payday)
        all_costs += amount
        if item.is_recurring:
            recurring_costs += amount

    return savings_deposits, recurring_costs, all_costs


def closing_balance(opening: int, savings_deposits: int, recurring_costs: int, all_costs: int) -> int:
    return opening + savings_deposits + recurring_costs - all_costs


# =============================================================================
# LEDGER
# =============================================================================

class BalanceLedger:
    """
    Balance propagation and month finality over ledger snapshots.

    The ledger holds no state of its own apart from its collaborators; pass
    the snapshot to every call and keep the one that comes back.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        payday: Optional[int] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._payday = payday
        self._logger = get_logger("budget_engine.ledger")

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def estimated_opening(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        account_id: str,
        previous_month_closing: Optional[int] = None,
    ) -> int:
        """
        The opening balance of an account in a month.

        Resolution order:
        1. previous month's actual balance, if the user set one
        2. else the previous month's stored estimated closing
        3. else 0, when there is no earlier history

        Stored estimates may be stale until the next recompute pass. A
        previous month past the end of the recorded history has no stored
        estimate, so its closing is derived from the months before it.
        """
        month_key = validate_month_key(month_key)
        if previous_month_closing is not None:
            return previous_month_closing

        previous = previous_month_key(month_key)
        record = snapshot.get_month(previous)
        if record is not None:
            return record.balance_for(account_id).effective_closing

        keys = snapshot.month_keys()
        if not keys or previous < keys[0]:
            return 0
        return self.compute_closing(snapshot, previous, account_id)

    def compute_account_month(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        account_id: str,
        previous_month_closing: Optional[int] = None,
    ) -> AccountMonthResult:
        """Opening, flows and closing for one account in one month."""
        month_key = validate_month_key(month_key)
        opening = self.estimated_opening(snapshot, month_key, account_id, previous_month_closing)

        record = snapshot.get_month(month_key) or MonthRecord(month_key=month_key)
        savings_deposits, recurring_costs, all_costs = account_flows(
            record, account_id, snapshot.savings_goals, self._payday
        )
        balance = record.balance_for(account_id)

        return AccountMonthResult(
            account_id=account_id,
            opening=opening,
            closing=closing_balance(opening, savings_deposits, recurring_costs, all_costs),
            savings_deposits=savings_deposits,
            recurring_costs=recurring_costs,
            all_costs=all_costs,
            actual=balance.actual if balance.is_set else None,
            is_set=balance.is_set,
        )

    def compute_closing(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        account_id: str,
        previous_month_closing: Optional[int] = None,
    ) -> int:
        """Estimated closing balance of an account in a month."""
        return self.compute_account_month(
            snapshot, month_key, account_id, previous_month_closing
        ).closing

    def month_balances(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        previous_month_closing: Optional[dict[str, int]] = None,
    ) -> tuple[dict[str, AccountMonthResult], list[Anomaly]]:
        """
        Balances for every account in one month, without storing or auditing.

        A failure for one account is recorded as an anomaly and does not
        stop the other accounts.
        """
        month_key = validate_month_key(month_key)
        record = snapshot.get_month(month_key) or MonthRecord(month_key=month_key)

        anomalies = self._reference_anomalies(snapshot, record)
        results: dict[str, AccountMonthResult] = {}

        for account_id in snapshot.account_ids():
            carried = None
            if previous_month_closing is not None:
                carried = previous_month_closing.get(account_id)
            try:
                results[account_id] = self.compute_account_month(snapshot, month_key, account_id, carried)
            except (ValueError, ArithmeticError) as e:
                self._logger.error(
                    "account_recompute_failed",
                    month_key=month_key,
                    account_id=account_id,
                    error=str(e),
                )
                anomalies.append(Anomaly(
                    kind=AnomalyKind.COMPUTATION_FAILED,
                    entity_id=account_id,
                    month_key=month_key,
                    message=f"Could not compute balances for {account_id} in {month_key}: {e}",
                ))

        return results, anomalies

    def recompute_month(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        previous_month_closing: Optional[dict[str, int]] = None,
    ) -> RecomputeResult:
        """
        Store fresh estimates for every account in one month.

        Recomputing does not touch lock flags.
        """
        snapshot = ensure_month(snapshot, month_key)
        month_key = validate_month_key(month_key)
        record = snapshot.months[month_key]

        results, anomalies = self.month_balances(snapshot, month_key, previous_month_closing)

        balances = dict(record.balances)
        for account_id, result in results.items():
            balances[account_id] = record.balance_for(account_id).model_copy(update={
                "estimated_opening": result.opening,
                "estimated_closing": result.closing,
            })
        snapshot = snapshot.with_month(record.model_copy(update={"balances": balances}))

        for anomaly in anomalies:
            self._audit_logger.log_anomaly(anomaly.kind.value, anomaly.entity_id, anomaly.message, month_key)
        self._audit_logger.log_recompute_completed(month_key, len(results), len(anomalies))

        return RecomputeResult(
            month_key=month_key,
            snapshot=snapshot,
            accounts=results,
            anomalies=anomalies,
        )

    def iter_recompute(
        self,
        snapshot: LedgerSnapshot,
        start_month: Optional[str] = None,
    ) -> Iterator[RecomputeResult]:
        """
        Recompute months in strictly increasing order, one step per month.

        Each step's carried balances are passed explicitly into the next.
        Stop iterating at any point to cancel; every yielded snapshot is
        consistent up to and including its month.
        """
        if start_month is not None:
            start_month = validate_month_key(start_month)
            snapshot = ensure_month(snapshot, start_month)

        carried: Optional[dict[str, int]] = None
        for month_key in snapshot.month_keys():
            if start_month is not None and month_key < start_month:
                continue
            result = self.recompute_month(snapshot, month_key, carried)
            snapshot = result.snapshot
            carried = result.carried_balances
            yield result

    def recompute_all(self, snapshot: LedgerSnapshot) -> tuple[LedgerSnapshot, list[Anomaly]]:
        """Recompute the whole history. Returns the new snapshot and all anomalies."""
        anomalies: list[Anomaly] = []
        for result in self.iter_recompute(snapshot):
            snapshot = result.snapshot
            anomalies.extend(result.anomalies)
        return snapshot, anomalies

    # -------------------------------------------------------------------------
    # Manual edits
    # -------------------------------------------------------------------------

    def set_actual_balance(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        account_id: str,
        value: Optional[int],
    ) -> LedgerSnapshot:
        """
        Set (or with None, clear) the actual closing balance of an account.

        Invalidates finality from this month onward.

        Raises:
            UnknownAccountError: account is not in the snapshot
        """
        self._require_account(snapshot, account_id)
        snapshot = ensure_month(snapshot, month_key)
        month_key = validate_month_key(month_key)
        record = snapshot.months[month_key]

        balances = dict(record.balances)
        balances[account_id] = record.balance_for(account_id).model_copy(update={
            "actual": value,
            "is_set": value is not None,
        })
        snapshot = snapshot.with_month(record.model_copy(update={"balances": balances}))

        self._audit_logger.log_balance_set(month_key, account_id, value)
        return self.invalidate_from(snapshot, month_key)

    def set_budget_items(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        cost_items: Optional[Iterable[BudgetItem]] = None,
        savings_items: Optional[Iterable[BudgetItem]] = None,
    ) -> LedgerSnapshot:
        """Replace a month's cost and/or savings items. Invalidates finality."""
        snapshot = ensure_month(snapshot, month_key)
        month_key = validate_month_key(month_key)
        record = snapshot.months[month_key]

        update = {}
        if cost_items is not None:
            update["cost_items"] = tuple(cost_items)
        if savings_items is not None:
            update["savings_items"] = tuple(savings_items)
        record = record.model_copy(update=update)
        snapshot = snapshot.with_month(record)

        self._audit_logger.log_budget_items_changed(
            month_key, len(record.cost_items), len(record.savings_items)
        )
        return self.invalidate_from(snapshot, month_key)

    def set_transfer_settings(
        self,
        snapshot: LedgerSnapshot,
        month_key: str,
        daily_transfer: int,
        weekend_transfer: int,
        custom_holidays: Optional[Iterable[CustomHoliday]] = None,
    ) -> LedgerSnapshot:
        """Change a month's daily/weekend transfer amounts. Invalidates finality."""
        if daily_transfer < 0 or weekend_transfer < 0:
            raise ValueError("Transfer amounts cannot be negative")

        snapshot = ensure_month(snapshot, month_key)
        month_key = validate_month_key(month_key)
        record = snapshot.months[month_key]

        update = {
            "daily_transfer": daily_transfer,
            "weekend_transfer": weekend_transfer,
        }
        if custom_holidays is not None:
            update["custom_holidays"] = tuple(custom_holidays)
        snapshot = snapshot.with_month(record.model_copy(update=update))

        self._audit_logger.log_transfer_settings_changed(month_key, daily_transfer, weekend_transfer)
        return self.invalidate_from(snapshot, month_key)

    def set_savings_goals(self, snapshot: LedgerSnapshot, goals: Iterable[SavingsGoal]) -> LedgerSnapshot:
        """
        Replace the savings goals.

        Finality is invalidated from the earliest month any added, removed
        or changed goal touches.
        """
        goals = tuple(goals)
        changed = set(snapshot.savings_goals).symmetric_difference(goals)
        snapshot = snapshot.model_copy(update={"savings_goals": goals})
        if not changed:
            return snapshot

        earliest = min(goal.start_month for goal in changed)
        snapshot = ensure_month(snapshot, earliest)
        return self.invalidate_from(snapshot, earliest)

    # -------------------------------------------------------------------------
    # Finality
    # -------------------------------------------------------------------------

    def can_lock(self, snapshot: LedgerSnapshot, month_key: str) -> bool:
        """
        True iff month_key is the first month with data, or the month before
        it is already locked.
        """
        month_key = validate_month_key(month_key)
        first = first_month_with_data(snapshot)
        if first is None:
            return False
        if month_key == first:
            return True
        previous = snapshot.get_month(previous_month_key(month_key))
        return previous is not None and previous.locked

    def lock(self, snapshot: LedgerSnapshot, month_key: str) -> LedgerSnapshot:
        """
        Mark a month's closing balances final.

        Raises:
            LockNotAllowedError: the chain of locks does not reach this month
        """
        month_key = validate_month_key(month_key)
        if not self.can_lock(snapshot, month_key):
            reason = f"{previous_month_key(month_key)} is not locked"
            self._audit_logger.log_lock_rejected(month_key, reason)
            raise LockNotAllowedError(f"Cannot lock {month_key}: {reason}")

        snapshot = ensure_month(snapshot, month_key)
        record = snapshot.months[month_key]
        if record.locked:
            return snapshot

        self._audit_logger.log_month_locked(month_key)
        return snapshot.with_month(record.model_copy(update={"locked": True}))

    def invalidate_from(self, snapshot: LedgerSnapshot, month_key: str) -> LedgerSnapshot:
        """
        Clear the lock on month_key and every later month.

        Idempotent: when nothing is locked the same snapshot comes back and
        nothing is logged.
        """
        month_key = validate_month_key(month_key)
        months = dict(snapshot.months)
        unlocked: list[str] = []

        for key in snapshot.month_keys():
            if key >= month_key and months[key].locked:
                months[key] = months[key].model_copy(update={"locked": False})
                unlocked.append(key)

        if not unlocked:
            return snapshot

        self._audit_logger.log_lock_invalidated(month_key, unlocked)
        return snapshot.with_months(months)

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def delete_month(self, snapshot: LedgerSnapshot, month_key: str) -> LedgerSnapshot:
        """
        Delete the first or last month of the history.

        Raises:
            MonthDeletionError: the month is unknown or in the middle of the history
        """
        month_key = validate_month_key(month_key)
        keys = snapshot.month_keys()
        if month_key not in snapshot.months:
            raise MonthDeletionError(f"Month {month_key} does not exist")
        if month_key not in (keys[0], keys[-1]):
            raise MonthDeletionError(
                f"Cannot delete {month_key}: it would leave a gap between {keys[0]} and {keys[-1]}"
            )

        months = dict(snapshot.months)
        del months[month_key]
        snapshot = snapshot.with_months(months)
        self._audit_logger.log_month_deleted(month_key)

        # The following month now opens from a different balance
        following = next_month_key(month_key)
        if following in snapshot.months:
            snapshot = self.invalidate_from(snapshot, following)
        return snapshot

    def remove_account(self, snapshot: LedgerSnapshot, account_id: str) -> LedgerSnapshot:
        """
        Remove an account and its per-month balance records.

        Other accounts' records are left exactly as they were.
        """
        self._require_account(snapshot, account_id)

        months = dict(snapshot.months)
        touched: list[str] = []
        for key, record in snapshot.months.items():
            if account_id in record.balances:
                balances = {k: v for k, v in record.balances.items() if k != account_id}
                months[key] = record.model_copy(update={"balances": balances})
                touched.append(key)

        accounts = tuple(account for account in snapshot.accounts if account.id != account_id)
        snapshot = snapshot.model_copy(update={"accounts": accounts, "months": months})
        self._audit_logger.log_account_removed(account_id, len(touched))

        if touched:
            snapshot = self.invalidate_from(snapshot, min(touched))
        return snapshot

    def rename_account(self, snapshot: LedgerSnapshot, account_id: str, name: str) -> LedgerSnapshot:
        """Change an account's display name. Balances are keyed by id and unaffected."""
        self._require_account(snapshot, account_id)
        accounts = tuple(
            account.model_copy(update={"name": name}) if account.id == account_id else account
            for account in snapshot.accounts
        )
        return snapshot.model_copy(update={"accounts": accounts})

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_account(snapshot: LedgerSnapshot, account_id: str) -> None:
        if not snapshot.has_account(account_id):
            raise UnknownAccountError(f"Unknown account: {account_id}")

    @staticmethod
    def _reference_anomalies(snapshot: LedgerSnapshot, record: MonthRecord) -> list[Anomaly]:
        known = set(snapshot.account_ids())
        anomalies = []
        for item in (*record.cost_items, *record.savings_items):
            if item.account_id is not None and item.account_id not in known:
                anomalies.append(Anomaly(
                    kind=AnomalyKind.UNKNOWN_ACCOUNT,
                    entity_id=item.id,
                    reference_id=item.account_id,
                    month_key=record.month_key,
                    message=f"Budget item {item.id} references unknown account {item.account_id}",
                ))
        return anomalies
