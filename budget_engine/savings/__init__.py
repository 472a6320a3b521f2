"""Savings goal package."""

from budget_engine.savings.amortizer import (
    contribution_schedule,
    in_range,
    month_count,
    monthly_contribution,
    total_contributions,
)

__all__ = [
    "contribution_schedule",
    "in_range",
    "month_count",
    "monthly_contribution",
    "total_contributions",
]
