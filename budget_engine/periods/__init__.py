"""Calendar and budget period package."""

from budget_engine.periods.daily_budget import (
    budget_period,
    compute_daily_budget,
    estimated_to_date,
    monthly_amount,
    period_timing,
    remaining_to_transfer,
    total_budgeted,
    transfer_days_in_period,
    transfer_weekday,
)
from budget_engine.periods.holidays import (
    HolidayCalendar,
    all_saints_day,
    easter_sunday,
    midsummer_eve,
    official_holidays,
)

__all__ = [
    # Holiday calendar
    "HolidayCalendar",
    "all_saints_day",
    "easter_sunday",
    "midsummer_eve",
    "official_holidays",
    # Budget period
    "budget_period",
    "compute_daily_budget",
    "estimated_to_date",
    "monthly_amount",
    "period_timing",
    "remaining_to_transfer",
    "total_budgeted",
    "transfer_days_in_period",
    "transfer_weekday",
]
