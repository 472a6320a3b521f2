"""
Tests for balance propagation and month finality.
"""

import pytest

from budget_engine.audit import AuditLogger, InMemoryAuditSink
from budget_engine.ledger import (
    BalanceLedger,
    LockNotAllowedError,
    MonthDeletionError,
    UnknownAccountError,
    ensure_month,
    first_month_with_data,
)
from budget_engine.models.audit import AuditEventType
from budget_engine.models.budget import (
    Account,
    BudgetItem,
    FinancedFrom,
    LedgerSnapshot,
    MonthAccountBalance,
    MonthRecord,
    SavingsGoal,
)
from budget_engine.models.month import InvalidMonthKeyError
from budget_engine.models.results import AnomalyKind


ACCOUNTS = (
    Account(id="acc-1", name="Lönekonto"),
    Account(id="acc-2", name="Sparkonto"),
)


def make_ledger():
    sink = InMemoryAuditSink()
    return BalanceLedger(audit_logger=AuditLogger(sink), payday=25), sink


def cost(item_id, amount, account_id="acc-1", one_time=False) -> BudgetItem:
    return BudgetItem(
        id=item_id,
        account_id=account_id,
        amount=amount,
        financed_from=FinancedFrom.ONE_TIME if one_time else FinancedFrom.RECURRING,
    )


def saving(item_id, amount, account_id="acc-1") -> BudgetItem:
    return BudgetItem(id=item_id, account_id=account_id, amount=amount)


def record(month_key, **kwargs) -> MonthRecord:
    return MonthRecord(month_key=month_key, **kwargs)


def snapshot_of(*records, goals=()) -> LedgerSnapshot:
    return LedgerSnapshot(
        accounts=ACCOUNTS,
        months={r.month_key: r for r in records},
        savings_goals=tuple(goals),
    )


def three_month_snapshot() -> LedgerSnapshot:
    return snapshot_of(
        record("2025-01", daily_transfer=300),
        record("2025-02", daily_transfer=300),
        record("2025-03", daily_transfer=300),
    )


class TestOpeningBalance:
    """Tests for opening balance resolution."""

    def test_empty_ledger_opens_at_zero(self):
        """Test that a brand new ledger starts at 0."""
        ledger, _ = make_ledger()
        assert ledger.estimated_opening(snapshot_of(), "2025-01", "acc-1") == 0

    def test_previous_actual_wins(self):
        """Test that the previous month's actual balance is the opening."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2024-12", balances={"acc-1": MonthAccountBalance(actual=10000, is_set=True)},
                   savings_items=(saving("s1", 500),)),
            record("2025-01"),
        )
        assert ledger.estimated_opening(snapshot, "2025-01", "acc-1") == 10000

    def test_uses_stored_estimate_when_not_set(self):
        """Test that an unset previous month contributes its stored estimated closing."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2025-03", balances={"acc-1": MonthAccountBalance(estimated_closing=5000)}),
            record("2025-04"),
        )
        assert ledger.estimated_opening(snapshot, "2025-04", "acc-1") == 5000

    def test_stale_estimates_until_recompute(self):
        """Test that openings follow stored estimates, and a recompute refreshes them."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2024-12", balances={"acc-1": MonthAccountBalance(actual=10000, is_set=True)}),
            record("2025-01", savings_items=(saving("s1", 500),)),
            record("2025-02", cost_items=(cost("c1", 700, one_time=True),)),
            record("2025-03"),
        )
        assert ledger.estimated_opening(snapshot, "2025-02", "acc-1") == 0

        recomputed, _ = ledger.recompute_all(snapshot)
        assert ledger.estimated_opening(recomputed, "2025-02", "acc-1") == 10500
        assert ledger.estimated_opening(recomputed, "2025-03", "acc-1") == 9800

    def test_month_past_history_chains_through_missing_months(self):
        """Test that a month beyond the history derives the missing months' closings."""
        ledger, _ = make_ledger()
        goal = SavingsGoal(
            id="goal-1", account_id="acc-1", target_amount=1200,
            start_month="2025-01", end_month="2025-04",
        )
        snapshot = snapshot_of(
            record("2025-01", balances={"acc-1": MonthAccountBalance(actual=1000, is_set=True)}),
            goals=[goal],
        )
        # February and March are not recorded; each adds its 300 goal contribution
        assert ledger.estimated_opening(snapshot, "2025-04", "acc-1") == 1600

    def test_explicit_previous_closing_overrides(self):
        """Test that a passed-in previous closing replaces the lookup."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2024-12", balances={"acc-1": MonthAccountBalance(actual=10000, is_set=True)}),
            record("2025-01"),
        )
        assert ledger.estimated_opening(snapshot, "2025-01", "acc-1", previous_month_closing=42) == 42

    def test_accounts_are_independent(self):
        """Test that one account's actual does not leak into another."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2024-12", balances={"acc-1": MonthAccountBalance(actual=10000, is_set=True)}),
            record("2025-01"),
        )
        assert ledger.estimated_opening(snapshot, "2025-01", "acc-2") == 0

    def test_malformed_month_key(self):
        """Test that malformed keys fail fast."""
        ledger, _ = make_ledger()
        with pytest.raises(InvalidMonthKeyError):
            ledger.estimated_opening(snapshot_of(), "2025-13", "acc-1")


class TestClosingBalance:
    """Tests for closing balance computation."""

    def test_recurring_costs_are_balance_neutral(self):
        """Test closing == opening + savings with no one-time costs."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2024-12", balances={"acc-1": MonthAccountBalance(actual=10000, is_set=True)}),
            record("2025-01", savings_items=(saving("s1", 500),), cost_items=(cost("c1", 2000),)),
        )
        result = ledger.compute_account_month(snapshot, "2025-01", "acc-1")
        assert result.opening == 10000
        assert result.closing == result.opening + result.savings_deposits
        assert result.closing == 10500

    def test_one_time_costs_reduce_balance(self):
        """Test that one-time costs come out of the balance."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2025-01", savings_items=(saving("s1", 500),),
                   cost_items=(cost("c1", 2000), cost("c2", 700, one_time=True))),
        )
        assert ledger.compute_closing(snapshot, "2025-01", "acc-1", previous_month_closing=10000) == 9800

    def test_items_on_other_accounts_ignored(self):
        """Test that items only affect their own account."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(record("2025-01", savings_items=(saving("s1", 500, account_id="acc-2"),)))
        assert ledger.compute_closing(snapshot, "2025-01", "acc-1") == 0
        assert ledger.compute_closing(snapshot, "2025-01", "acc-2") == 500

    def test_goal_contributions_are_savings_deposits(self):
        """Test that amortized goal contributions add to the closing balance."""
        ledger, _ = make_ledger()
        goal = SavingsGoal(
            id="goal-1", account_id="acc-1", target_amount=1200,
            start_month="2025-01", end_month="2025-04",
        )
        snapshot = snapshot_of(record("2025-01"), goals=[goal])
        result = ledger.compute_account_month(snapshot, "2025-01", "acc-1")
        assert result.savings_deposits == 300
        assert result.closing == 300

    def test_opening_equals_previous_closing_without_actuals(self):
        """Test opening(M+1) == closing(M) across a chain with no actual balances."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2025-01", savings_items=(saving("s1", 500),)),
            record("2025-02", cost_items=(cost("c1", 200, one_time=True),)),
            record("2025-03", savings_items=(saving("s2", 50),)),
            record("2025-04"),
        )
        snapshot, _ = ledger.recompute_all(snapshot)
        keys = snapshot.month_keys()
        for current, following in zip(keys, keys[1:]):
            assert ledger.estimated_opening(snapshot, following, "acc-1") == \
                ledger.compute_closing(snapshot, current, "acc-1")


class TestRecompute:
    """Tests for batch recompute."""

    def test_recompute_all_stores_estimates(self):
        """Test that estimates are written into the new snapshot."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2025-01", savings_items=(saving("s1", 500),)),
            record("2025-02", savings_items=(saving("s2", 250),)),
        )
        recomputed, anomalies = ledger.recompute_all(snapshot)
        assert anomalies == []
        february = recomputed.months["2025-02"].balance_for("acc-1")
        assert february.estimated_opening == 500
        assert february.estimated_closing == 750

    def test_recompute_is_idempotent(self):
        """Test that recomputing twice yields the same snapshot."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2024-12", balances={"acc-1": MonthAccountBalance(actual=1000, is_set=True)}),
            record("2025-01", savings_items=(saving("s1", 500),)),
        )
        once, _ = ledger.recompute_all(snapshot)
        twice, _ = ledger.recompute_all(once)
        assert once == twice

    def test_recompute_does_not_touch_locks(self):
        """Test that recompute leaves lock flags alone."""
        ledger, _ = make_ledger()
        snapshot = ledger.lock(three_month_snapshot(), "2025-01")
        recomputed, _ = ledger.recompute_all(snapshot)
        assert recomputed.months["2025-01"].locked is True

    def test_iter_recompute_order_and_threading(self):
        """Test that steps come in month order and carry balances forward."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2025-01", savings_items=(saving("s1", 500),)),
            record("2025-02", balances={"acc-1": MonthAccountBalance(actual=2000, is_set=True)}),
            record("2025-03"),
        )
        steps = list(ledger.iter_recompute(snapshot))
        assert [step.month_key for step in steps] == ["2025-01", "2025-02", "2025-03"]
        assert steps[1].accounts["acc-1"].carried_balance == 2000
        assert steps[2].accounts["acc-1"].opening == 2000

    def test_iter_recompute_can_stop_early(self):
        """Test that stopping after one step leaves later months untouched."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(
            record("2025-01", savings_items=(saving("s1", 500),)),
            record("2025-02"),
        )
        first = next(ledger.iter_recompute(snapshot))
        assert first.snapshot.months["2025-01"].balance_for("acc-1").estimated_closing == 500
        assert first.snapshot.months["2025-02"].balance_for("acc-1").estimated_closing == 0

    def test_unknown_account_on_item_is_anomaly(self):
        """Test that an item on an unknown account is reported, not raised."""
        ledger, sink = make_ledger()
        snapshot = snapshot_of(record("2025-01", cost_items=(cost("c1", 100, account_id="acc-ghost"),)))
        result = ledger.recompute_month(snapshot, "2025-01")
        assert len(result.anomalies) == 1
        assert result.anomalies[0].kind == AnomalyKind.UNKNOWN_ACCOUNT
        assert result.anomalies[0].reference_id == "acc-ghost"
        assert set(result.accounts) == {"acc-1", "acc-2"}
        assert any(e.event_type == AuditEventType.ANOMALY_DETECTED for e in sink.events)


class TestManualEdits:
    """Tests for manual edits and lazy month creation."""

    def test_set_actual_balance(self):
        """Test setting and clearing an actual balance."""
        ledger, sink = make_ledger()
        snapshot = ledger.set_actual_balance(snapshot_of(), "2025-01", "acc-1", 5000)
        balance = snapshot.months["2025-01"].balance_for("acc-1")
        assert balance.is_set is True
        assert balance.actual == 5000

        snapshot = ledger.set_actual_balance(snapshot, "2025-01", "acc-1", None)
        assert snapshot.months["2025-01"].balance_for("acc-1").is_set is False
        assert [e.event_type for e in sink.events] == [
            AuditEventType.BALANCE_SET,
            AuditEventType.BALANCE_CLEARED,
        ]

    def test_set_actual_balance_unknown_account(self):
        """Test that edits on unknown accounts are rejected."""
        ledger, _ = make_ledger()
        with pytest.raises(UnknownAccountError):
            ledger.set_actual_balance(snapshot_of(), "2025-01", "acc-ghost", 100)

    def test_edit_returns_new_snapshot(self):
        """Test that the input snapshot is left unchanged."""
        ledger, _ = make_ledger()
        original = snapshot_of()
        ledger.set_actual_balance(original, "2025-01", "acc-1", 5000)
        assert original.months == {}

    def test_touching_later_month_fills_gap(self):
        """Test that months between the history and a new month are created."""
        ledger, _ = make_ledger()
        snapshot = ledger.set_actual_balance(snapshot_of(), "2025-01", "acc-1", 5000)
        snapshot = ledger.set_budget_items(snapshot, "2025-04", cost_items=[cost("c1", 100)])
        assert snapshot.month_keys() == ["2025-01", "2025-02", "2025-03", "2025-04"]

    def test_ensure_month_fills_existing_holes(self):
        """Test that ensure_month repairs a history with holes."""
        snapshot = snapshot_of(record("2025-01"), record("2025-03"))
        assert ensure_month(snapshot, "2025-03").month_keys() == ["2025-01", "2025-02", "2025-03"]

    def test_set_budget_items_keeps_other_kind(self):
        """Test that replacing costs leaves savings items alone."""
        ledger, _ = make_ledger()
        snapshot = ledger.set_budget_items(snapshot_of(), "2025-01", savings_items=[saving("s1", 100)])
        snapshot = ledger.set_budget_items(snapshot, "2025-01", cost_items=[cost("c1", 50)])
        month = snapshot.months["2025-01"]
        assert [item.id for item in month.savings_items] == ["s1"]
        assert [item.id for item in month.cost_items] == ["c1"]

    def test_set_transfer_settings(self):
        """Test changing daily and weekend transfers."""
        ledger, _ = make_ledger()
        snapshot = ledger.set_transfer_settings(snapshot_of(), "2025-01", 300, 540)
        assert snapshot.months["2025-01"].daily_transfer == 300
        assert snapshot.months["2025-01"].weekend_transfer == 540

    def test_set_transfer_settings_rejects_negative(self):
        """Test that negative transfers are rejected."""
        ledger, _ = make_ledger()
        with pytest.raises(ValueError):
            ledger.set_transfer_settings(snapshot_of(), "2025-01", -300, 540)

    def test_rename_account(self):
        """Test that renaming keeps balances keyed by id."""
        ledger, _ = make_ledger()
        snapshot = ledger.set_actual_balance(snapshot_of(), "2025-01", "acc-1", 5000)
        renamed = ledger.rename_account(snapshot, "acc-1", "Hushållskonto")
        assert renamed.accounts[0].name == "Hushållskonto"
        assert renamed.months == snapshot.months


class TestLocking:
    """Tests for the chained lock flag."""

    def test_lock_chain_over_three_months(self):
        """Test that the middle month cannot be locked before the first."""
        ledger, _ = make_ledger()
        snapshot = three_month_snapshot()

        assert ledger.can_lock(snapshot, "2025-01") is True
        assert ledger.can_lock(snapshot, "2025-02") is False
        with pytest.raises(LockNotAllowedError):
            ledger.lock(snapshot, "2025-02")

        snapshot = ledger.lock(snapshot, "2025-01")
        assert ledger.can_lock(snapshot, "2025-02") is True
        snapshot = ledger.lock(snapshot, "2025-02")
        snapshot = ledger.lock(snapshot, "2025-03")
        assert all(snapshot.months[key].locked for key in snapshot.month_keys())

    def test_lock_rejection_is_audited(self):
        """Test that a rejected lock leaves an audit event."""
        ledger, sink = make_ledger()
        with pytest.raises(LockNotAllowedError):
            ledger.lock(three_month_snapshot(), "2025-03")
        assert sink.events[-1].event_type == AuditEventType.LOCK_REJECTED

    def test_cannot_lock_empty_ledger(self):
        """Test that nothing can be locked without data."""
        ledger, _ = make_ledger()
        assert ledger.can_lock(snapshot_of(), "2025-01") is False

    def test_first_month_with_data_skips_empty_months(self):
        """Test that empty leading months do not block the chain."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(record("2025-01"), record("2025-02", daily_transfer=300))
        assert first_month_with_data(snapshot) == "2025-02"
        assert ledger.can_lock(snapshot, "2025-02") is True

    def test_edit_invalidates_from_month_onward(self):
        """Test the invalidation cascade after a manual edit."""
        ledger, _ = make_ledger()
        snapshot = three_month_snapshot()
        for key in ["2025-01", "2025-02", "2025-03"]:
            snapshot = ledger.lock(snapshot, key)

        snapshot = ledger.set_actual_balance(snapshot, "2025-02", "acc-1", 1234)
        assert snapshot.months["2025-01"].locked is True
        assert snapshot.months["2025-02"].locked is False
        assert snapshot.months["2025-03"].locked is False

    def test_budget_item_edit_invalidates(self):
        """Test that replacing items also clears locks."""
        ledger, _ = make_ledger()
        snapshot = three_month_snapshot()
        for key in ["2025-01", "2025-02", "2025-03"]:
            snapshot = ledger.lock(snapshot, key)

        snapshot = ledger.set_budget_items(snapshot, "2025-03", cost_items=[cost("c1", 100)])
        assert snapshot.months["2025-02"].locked is True
        assert snapshot.months["2025-03"].locked is False

    def test_invalidate_from_is_idempotent(self):
        """Test that invalidating an unlocked history changes and logs nothing."""
        ledger, sink = make_ledger()
        snapshot = three_month_snapshot()
        assert ledger.invalidate_from(snapshot, "2025-01") is snapshot
        assert sink.events == []

    def test_invalidate_logs_unlocked_months(self):
        """Test the audit event of a lock cascade."""
        ledger, sink = make_ledger()
        snapshot = ledger.lock(three_month_snapshot(), "2025-01")
        snapshot = ledger.lock(snapshot, "2025-02")
        ledger.invalidate_from(snapshot, "2025-01")
        event = sink.events[-1]
        assert event.event_type == AuditEventType.LOCK_INVALIDATED
        assert event.details["unlocked_months"] == ["2025-01", "2025-02"]

    def test_savings_goal_change_invalidates_from_goal_start(self):
        """Test that adding a goal clears locks from its first month."""
        ledger, _ = make_ledger()
        snapshot = three_month_snapshot()
        for key in ["2025-01", "2025-02", "2025-03"]:
            snapshot = ledger.lock(snapshot, key)

        goal = SavingsGoal(
            id="goal-1", account_id="acc-1", target_amount=600,
            start_month="2025-02", end_month="2025-03",
        )
        snapshot = ledger.set_savings_goals(snapshot, [goal])
        assert snapshot.months["2025-01"].locked is True
        assert snapshot.months["2025-02"].locked is False
        assert snapshot.savings_goals == (goal,)


class TestStructure:
    """Tests for month deletion and account removal."""

    def test_delete_inner_month_rejected(self):
        """Test that deleting a middle month would leave a gap and is rejected."""
        ledger, _ = make_ledger()
        with pytest.raises(MonthDeletionError):
            ledger.delete_month(three_month_snapshot(), "2025-02")

    def test_delete_unknown_month_rejected(self):
        """Test that deleting a month that does not exist is rejected."""
        ledger, _ = make_ledger()
        with pytest.raises(MonthDeletionError):
            ledger.delete_month(three_month_snapshot(), "2025-07")

    def test_delete_last_month(self):
        """Test deleting the end of the history."""
        ledger, _ = make_ledger()
        snapshot = ledger.delete_month(three_month_snapshot(), "2025-03")
        assert snapshot.month_keys() == ["2025-01", "2025-02"]

    def test_delete_first_month_invalidates_next(self):
        """Test that the new first month loses its lock."""
        ledger, _ = make_ledger()
        snapshot = three_month_snapshot()
        for key in ["2025-01", "2025-02"]:
            snapshot = ledger.lock(snapshot, key)

        snapshot = ledger.delete_month(snapshot, "2025-01")
        assert snapshot.month_keys() == ["2025-02", "2025-03"]
        assert snapshot.months["2025-02"].locked is False

    def test_remove_account_leaves_others_untouched(self):
        """Test that removing an account only drops its own records."""
        ledger, _ = make_ledger()
        snapshot = snapshot_of(record("2025-01", balances={
            "acc-1": MonthAccountBalance(actual=100, is_set=True),
            "acc-2": MonthAccountBalance(actual=200, is_set=True, estimated_closing=150),
        }))
        updated = ledger.remove_account(snapshot, "acc-1")
        assert updated.account_ids() == ["acc-2"]
        assert "acc-1" not in updated.months["2025-01"].balances
        assert updated.months["2025-01"].balances["acc-2"] == snapshot.months["2025-01"].balances["acc-2"]

    def test_remove_unknown_account(self):
        """Test that removing an unknown account is rejected."""
        ledger, _ = make_ledger()
        with pytest.raises(UnknownAccountError):
            ledger.remove_account(snapshot_of(), "acc-ghost")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
