"""
Savings Goal Amortizer

A goal's target amount is spread evenly over its inclusive month range.

DESIGN DECISION: Amounts are integer öre, so an uneven split is resolved
explicitly: every month gets the floor of target / months and the final
month also gets the remainder. The schedule always sums to the target.
"""

from typing import Iterable, Optional

from budget_engine.models.budget import SavingsGoal
from budget_engine.models.month import iter_month_keys, month_span, validate_month_key


def month_count(goal: SavingsGoal) -> int:
    """Number of months in the goal's range, both endpoints included."""
    return month_span(goal.start_month, goal.end_month)


def in_range(goal: SavingsGoal, month_key: str) -> bool:
    month_key = validate_month_key(month_key)
    return goal.start_month <= month_key <= goal.end_month


def monthly_contribution(goal: SavingsGoal, month_key: str) -> int:
    """
    The amortized contribution of a goal in one month.

    Returns 0 for months outside the goal's range.

    Raises:
        InvalidMonthKeyError: malformed month key
    """
    if not in_range(goal, month_key):
        return 0

    months = month_count(goal)
    base, remainder = divmod(goal.target_amount, months)
    if month_key == goal.end_month:
        return base + remainder
    return base


def contribution_schedule(goal: SavingsGoal) -> dict[str, int]:
    """Every month in the goal's range mapped to its contribution."""
    return {
        month_key: monthly_contribution(goal, month_key)
        for month_key in iter_month_keys(goal.start_month, goal.end_month)
    }


def total_contributions(
    goals: Iterable[SavingsGoal],
    month_key: str,
    account_id: Optional[str] = None,
) -> int:
    """Sum of all goals' contributions in a month, optionally for one account."""
    return sum(
        monthly_contribution(goal, month_key)
        for goal in goals
        if account_id is None or goal.account_id == account_id
    )
