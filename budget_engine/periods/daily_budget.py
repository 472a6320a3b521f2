"""
Budget Period Calculator

A budget month does not follow the calendar: month key 2025-03 covers
2025-02-25 through 2025-03-24, because salary lands on the 25th.

Within that period the household gets a daily allowance on weekdays and an
extra weekend allowance on Fridays. Holidays do not consume the allowance;
what they would have cost is reported separately as the holiday budget.

DESIGN DECISION: "Remaining" depends on where the period sits relative to
today:
- past periods have nothing left to disburse
- the current period has today through the end of the period left
- future periods have the whole period left
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from budget_engine.config import get_settings
from budget_engine.models.budget import (
    BudgetItem,
    BudgetPeriod,
    PeriodTiming,
    TransferType,
)
from budget_engine.models.month import next_month_key, parse_month_key, previous_month_key
from budget_engine.models.results import DailyBudgetResult
from budget_engine.periods.holidays import HolidayCalendar


def _resolve_payday(payday: Optional[int]) -> int:
    if payday is None:
        return get_settings().payday
    if not 1 <= payday <= 28:
        raise ValueError(f"Payday must be between 1 and 28, got {payday}")
    return payday


def budget_period(month_key: str, payday: Optional[int] = None) -> BudgetPeriod:
    """
    The budget period for a month key.

    With the default payday (25) this is the 25th of the prior month through
    the 24th of the target month. Payday 1 gives the plain calendar month.

    Raises:
        InvalidMonthKeyError: malformed month key
    """
    payday = _resolve_payday(payday)
    year, month = parse_month_key(month_key)

    if payday == 1:
        next_year, next_month = parse_month_key(next_month_key(month_key))
        start = date(year, month, 1)
        end = date(next_year, next_month, 1) - timedelta(days=1)
        return BudgetPeriod(month_key=month_key, start=start, end=end)

    prev_year, prev_month = parse_month_key(previous_month_key(month_key))
    start = date(prev_year, prev_month, payday)
    end = date(year, month, payday) - timedelta(days=1)
    return BudgetPeriod(month_key=month_key, start=start, end=end)


def period_timing(period: BudgetPeriod, today: date) -> PeriodTiming:
    if today > period.end:
        return PeriodTiming.PAST
    if today < period.start:
        return PeriodTiming.FUTURE
    return PeriodTiming.CURRENT


def compute_daily_budget(
    month_key: str,
    daily_transfer_amount: int,
    weekend_transfer_amount: int,
    calendar: Optional[HolidayCalendar] = None,
    today: Optional[date] = None,
    payday: Optional[int] = None,
    upcoming_limit: Optional[int] = None,
) -> DailyBudgetResult:
    """
    Compute the daily allowance figures for a budget month.

    Every non-holiday weekday adds `daily_transfer_amount`; Fridays also add
    `weekend_transfer_amount`. Holiday weekdays add what they would have
    cost to the holiday budget instead.

    The remaining window of the current period runs from today through
    `period.end`, the day before payday. Payday itself opens the next
    period and is not counted.

    Raises:
        InvalidMonthKeyError: malformed month key
        ValueError: negative transfer amounts
    """
    if daily_transfer_amount < 0 or weekend_transfer_amount < 0:
        raise ValueError("Transfer amounts cannot be negative")

    calendar = calendar or HolidayCalendar()
    today = today or date.today()
    if upcoming_limit is None:
        upcoming_limit = get_settings().upcoming_holiday_limit

    period = budget_period(month_key, payday)
    timing = period_timing(period, today)

    total_budget = 0
    holiday_budget = 0
    weekday_count = 0
    friday_count = 0

    for day in period.days():
        if not HolidayCalendar.is_weekday(day):
            continue
        day_cost = daily_transfer_amount
        if HolidayCalendar.is_friday(day):
            day_cost += weekend_transfer_amount

        if calendar.is_holiday(day):
            holiday_budget += day_cost
            continue

        total_budget += day_cost
        weekday_count += 1
        if HolidayCalendar.is_friday(day):
            friday_count += 1

    remaining_weekday_count = 0
    remaining_friday_count = 0
    if timing != PeriodTiming.PAST:
        window = period if timing == PeriodTiming.FUTURE else BudgetPeriod(
            month_key=month_key,
            start=today,
            end=period.end,
        )
        for day in window.days():
            if not HolidayCalendar.is_weekday(day) or calendar.is_holiday(day):
                continue
            remaining_weekday_count += 1
            if HolidayCalendar.is_friday(day):
                remaining_friday_count += 1

    remaining_budget = (
        daily_transfer_amount * remaining_weekday_count
        + weekend_transfer_amount * remaining_friday_count
    )

    if timing == PeriodTiming.PAST:
        upcoming = []
    else:
        upcoming = calendar.upcoming(max(today, period.start), upcoming_limit)

    return DailyBudgetResult(
        month_key=month_key,
        period=period,
        timing=timing,
        total_budget=total_budget,
        remaining_budget=remaining_budget,
        holiday_budget=holiday_budget,
        weekday_count=weekday_count,
        friday_count=friday_count,
        remaining_weekday_count=remaining_weekday_count,
        remaining_friday_count=remaining_friday_count,
        holidays_in_period=calendar.holidays_in_range(period.start, period.end),
        upcoming_holidays=upcoming,
    )


# =============================================================================
# DAILY TRANSFER BUDGET ITEMS
# =============================================================================

def transfer_weekday(d: date) -> int:
    """Weekday number used by transfer_days: 0 = Sunday ... 6 = Saturday."""
    return (d.weekday() + 1) % 7


def _count_transfer_days(start: date, end: date, transfer_days: Iterable[int]) -> int:
    days = set(transfer_days)
    count = 0
    current = start
    while current <= end:
        if transfer_weekday(current) in days:
            count += 1
        current += timedelta(days=1)
    return count


def transfer_days_in_period(
    month_key: str,
    transfer_days: Iterable[int],
    payday: Optional[int] = None,
) -> int:
    """How many days in the budget period fall on one of transfer_days."""
    period = budget_period(month_key, payday)
    return _count_transfer_days(period.start, period.end, transfer_days)


def monthly_amount(item: BudgetItem, month_key: str, payday: Optional[int] = None) -> int:
    """
    The effective monthly amount of a budget item.

    Daily items are `daily_amount` times the number of transfer days in the
    period. Monthly items are their stored amount.
    """
    if item.transfer_type != TransferType.DAILY:
        return item.amount
    return item.daily_amount * transfer_days_in_period(month_key, item.transfer_days, payday)


def estimated_to_date(
    item: BudgetItem,
    month_key: str,
    today: Optional[date] = None,
    payday: Optional[int] = None,
) -> int:
    """How much of a daily item should have been transferred by today."""
    if item.transfer_type != TransferType.DAILY:
        return item.amount

    today = today or date.today()
    period = budget_period(month_key, payday)
    if today < period.start:
        return 0
    if today > period.end:
        return monthly_amount(item, month_key, payday)
    return item.daily_amount * _count_transfer_days(period.start, today, item.transfer_days)


def remaining_to_transfer(
    item: BudgetItem,
    month_key: str,
    today: Optional[date] = None,
    payday: Optional[int] = None,
) -> int:
    """What is left to transfer for a daily item this period (0 for monthly items)."""
    if item.transfer_type != TransferType.DAILY:
        return 0
    total = monthly_amount(item, month_key, payday)
    return max(0, total - estimated_to_date(item, month_key, today, payday))


def total_budgeted(items: Iterable[BudgetItem], month_key: str, payday: Optional[int] = None) -> int:
    return sum(monthly_amount(item, month_key, payday) for item in items)
