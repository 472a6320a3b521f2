"""
Swedish Holiday Calendar

Holidays matter to the daily allowance: a holiday weekday does not consume
the allowance. The official set is computed per year from fixed dates, an
Easter anchor and two "the Friday/Saturday in this window" rules. Users may
add their own holidays on top.

DESIGN DECISION: Easter uses the anonymous Gregorian algorithm (pure integer
arithmetic). No holiday library or lookup table is involved, so any year
works.
"""

from datetime import date, timedelta
from functools import lru_cache
from typing import Iterable, Optional

from budget_engine.models.budget import CustomHoliday, DayKind, Holiday

FRIDAY = 4
SATURDAY = 5

# (month, day, name)
FIXED_HOLIDAYS = (
    (1, 1, "Nyårsdagen"),
    (1, 6, "Trettondedag jul"),
    (5, 1, "Första maj"),
    (6, 6, "Sveriges nationaldag"),
    (12, 24, "Julafton"),
    (12, 25, "Juldagen"),
    (12, 26, "Annandag jul"),
    (12, 31, "Nyårsafton"),
)

# (offset from Easter Sunday in days, name)
EASTER_RELATIVE_HOLIDAYS = (
    (-2, "Långfredagen"),
    (1, "Annandag påsk"),
    (39, "Kristi himmelfärdsdag"),
    (50, "Annandag pingst"),
)


def easter_sunday(year: int) -> date:
    """Easter Sunday by the anonymous Gregorian algorithm."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _weekday_in_window(start: date, end: date, weekday: int) -> date:
    current = start
    while current <= end:
        if current.weekday() == weekday:
            return current
        current += timedelta(days=1)
    # A seven-day window always contains every weekday
    raise ValueError(f"No weekday {weekday} between {start} and {end}")


def midsummer_eve(year: int) -> date:
    """The Friday in June 19-25."""
    return _weekday_in_window(date(year, 6, 19), date(year, 6, 25), FRIDAY)


def all_saints_day(year: int) -> date:
    """The Saturday in October 31 - November 6."""
    return _weekday_in_window(date(year, 10, 31), date(year, 11, 6), SATURDAY)


@lru_cache(maxsize=64)
def official_holidays(year: int) -> dict[date, str]:
    """All official Swedish holidays for a year, keyed by date."""
    holidays: dict[date, str] = {}

    for month, day, name in FIXED_HOLIDAYS:
        holidays[date(year, month, day)] = name

    easter = easter_sunday(year)
    for offset, name in EASTER_RELATIVE_HOLIDAYS:
        holidays[easter + timedelta(days=offset)] = name

    holidays[midsummer_eve(year)] = "Midsommarafton"
    holidays[all_saints_day(year)] = "Alla helgons dag"

    return dict(sorted(holidays.items()))


class HolidayCalendar:
    """
    Official Swedish holidays merged with user-supplied ones.

    A date is a holiday if it is in either set. When both sets contain the
    same date, the custom name is the one displayed.
    """

    def __init__(self, custom_holidays: Iterable[CustomHoliday] = ()):
        self._custom: dict[date, str] = {}
        for holiday in custom_holidays:
            self._custom[holiday.date] = holiday.name

    @property
    def custom_holidays(self) -> list[Holiday]:
        return [
            Holiday(date=d, name=name, is_custom=True)
            for d, name in sorted(self._custom.items())
        ]

    def is_holiday(self, d: date) -> bool:
        return d in self._custom or d in official_holidays(d.year)

    def holiday_name(self, d: date) -> Optional[str]:
        """Display name for a holiday date, or None for ordinary days."""
        if d in self._custom:
            return self._custom[d]
        return official_holidays(d.year).get(d)

    def get_holiday(self, d: date) -> Optional[Holiday]:
        if d in self._custom:
            return Holiday(date=d, name=self._custom[d], is_custom=True)
        name = official_holidays(d.year).get(d)
        if name is None:
            return None
        return Holiday(date=d, name=name)

    def holidays_in_range(self, start: date, end: date) -> list[Holiday]:
        """All holidays between start and end inclusive, ordered by date."""
        if end < start:
            return []

        merged: dict[date, Holiday] = {}
        for year in range(start.year, end.year + 1):
            for d, name in official_holidays(year).items():
                if start <= d <= end:
                    merged[d] = Holiday(date=d, name=name)
        for d, name in self._custom.items():
            if start <= d <= end:
                merged[d] = Holiday(date=d, name=name, is_custom=True)

        return [merged[d] for d in sorted(merged)]

    def upcoming(self, from_date: date, limit: int = 10) -> list[Holiday]:
        """The next `limit` holidays on or after from_date."""
        if limit <= 0:
            return []

        found: list[Holiday] = []
        year = from_date.year
        # Every year has at least 14 official holidays
        while len(found) < limit:
            window_start = max(from_date, date(year, 1, 1))
            found.extend(self.holidays_in_range(window_start, date(year, 12, 31)))
            year += 1
        return found[:limit]

    def classify(self, d: date) -> DayKind:
        if self.is_holiday(d):
            return DayKind.HOLIDAY
        weekday = d.weekday()
        if weekday == FRIDAY:
            return DayKind.FRIDAY
        if weekday < FRIDAY:
            return DayKind.WEEKDAY
        return DayKind.WEEKEND

    @staticmethod
    def is_weekday(d: date) -> bool:
        """Monday through Friday, ignoring holidays."""
        return d.weekday() <= FRIDAY

    @staticmethod
    def is_friday(d: date) -> bool:
        return d.weekday() == FRIDAY
