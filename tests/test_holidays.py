"""
Tests for the Swedish holiday calendar.
"""

import pytest
from datetime import date

from budget_engine.models.budget import CustomHoliday, DayKind
from budget_engine.periods.holidays import (
    HolidayCalendar,
    all_saints_day,
    easter_sunday,
    midsummer_eve,
    official_holidays,
)


class TestEaster:
    """Tests for the Easter computation."""

    @pytest.mark.parametrize("year,expected", [
        (2024, date(2024, 3, 31)),
        (2025, date(2025, 4, 20)),
        (2026, date(2026, 4, 5)),
        (2019, date(2019, 4, 21)),
        (2000, date(2000, 4, 23)),
    ])
    def test_easter_sunday(self, year, expected):
        """Test Easter Sunday for known years."""
        assert easter_sunday(year) == expected

    def test_easter_relative_holidays_2025(self):
        """Test Good Friday, Easter Monday, Ascension and Whit Monday 2025."""
        holidays = official_holidays(2025)
        assert holidays[date(2025, 4, 18)] == "Långfredagen"
        assert holidays[date(2025, 4, 21)] == "Annandag påsk"
        assert holidays[date(2025, 5, 29)] == "Kristi himmelfärdsdag"
        assert holidays[date(2025, 6, 9)] == "Annandag pingst"


class TestMovableHolidays:
    """Tests for the weekday-in-window holidays."""

    def test_midsummer_eve_2025(self):
        """Test that Midsummer Eve is the Friday in June 19-25."""
        assert midsummer_eve(2025) == date(2025, 6, 20)

    def test_midsummer_eve_is_always_friday(self):
        """Test the weekday over a range of years."""
        for year in range(2020, 2035):
            eve = midsummer_eve(year)
            assert eve.weekday() == 4
            assert date(year, 6, 19) <= eve <= date(year, 6, 25)

    def test_all_saints_day_2025(self):
        """Test that All Saints' Day is the Saturday in Oct 31 - Nov 6."""
        assert all_saints_day(2025) == date(2025, 11, 1)

    def test_all_saints_day_can_fall_in_october(self):
        """Test the Oct 31 edge of the window."""
        assert all_saints_day(2026) == date(2026, 10, 31)


class TestOfficialHolidays:
    """Tests for the official holiday set."""

    def test_count(self):
        """Test that every year has fourteen official holidays."""
        assert len(official_holidays(2025)) == 14

    def test_fixed_holidays_present(self):
        """Test the fixed-date holidays, Epiphany included."""
        holidays = official_holidays(2025)
        for month, day in [(1, 1), (1, 6), (5, 1), (6, 6), (12, 24), (12, 25), (12, 26), (12, 31)]:
            assert date(2025, month, day) in holidays

    def test_sorted_by_date(self):
        """Test that holidays come back in date order."""
        dates = list(official_holidays(2025))
        assert dates == sorted(dates)


class TestHolidayCalendar:
    """Tests for the calendar with custom holidays."""

    def test_is_holiday(self):
        """Test official and ordinary days."""
        calendar = HolidayCalendar()
        assert calendar.is_holiday(date(2025, 1, 6))
        assert not calendar.is_holiday(date(2025, 1, 7))

    def test_custom_holiday(self):
        """Test that custom holidays count as holidays."""
        calendar = HolidayCalendar([CustomHoliday(date=date(2025, 3, 14), name="Studiedag")])
        assert calendar.is_holiday(date(2025, 3, 14))
        assert calendar.holiday_name(date(2025, 3, 14)) == "Studiedag"

    def test_custom_name_displaces_official(self):
        """Test that a custom holiday on an official date shows the custom name."""
        calendar = HolidayCalendar([CustomHoliday(date=date(2025, 12, 24), name="Jul hemma")])
        assert calendar.holiday_name(date(2025, 12, 24)) == "Jul hemma"
        holiday = calendar.get_holiday(date(2025, 12, 24))
        assert holiday.is_custom is True

    def test_holiday_name_ordinary_day(self):
        """Test that ordinary days have no name."""
        assert HolidayCalendar().holiday_name(date(2025, 3, 4)) is None
        assert HolidayCalendar().get_holiday(date(2025, 3, 4)) is None

    def test_holidays_in_range_ordered(self):
        """Test range queries across custom and official holidays."""
        calendar = HolidayCalendar([CustomHoliday(date=date(2025, 4, 22), name="Lovdag")])
        holidays = calendar.holidays_in_range(date(2025, 3, 25), date(2025, 4, 24))
        assert [h.date for h in holidays] == [
            date(2025, 4, 18),
            date(2025, 4, 21),
            date(2025, 4, 22),
        ]
        assert holidays[2].is_custom is True

    def test_holidays_in_range_across_years(self):
        """Test a range spanning New Year."""
        holidays = HolidayCalendar().holidays_in_range(date(2024, 12, 25), date(2025, 1, 24))
        assert [h.date for h in holidays] == [
            date(2024, 12, 25),
            date(2024, 12, 26),
            date(2024, 12, 31),
            date(2025, 1, 1),
            date(2025, 1, 6),
        ]

    def test_holidays_in_empty_range(self):
        """Test that an inverted range has no holidays."""
        assert HolidayCalendar().holidays_in_range(date(2025, 2, 1), date(2025, 1, 1)) == []

    def test_upcoming(self):
        """Test the next holidays from a date."""
        upcoming = HolidayCalendar().upcoming(date(2025, 12, 20), 3)
        assert [h.date for h in upcoming] == [
            date(2025, 12, 24),
            date(2025, 12, 25),
            date(2025, 12, 26),
        ]

    def test_upcoming_crosses_year(self):
        """Test that upcoming continues into the next year."""
        upcoming = HolidayCalendar().upcoming(date(2025, 12, 30), 3)
        assert [h.date for h in upcoming] == [
            date(2025, 12, 31),
            date(2026, 1, 1),
            date(2026, 1, 6),
        ]

    def test_upcoming_includes_from_date(self):
        """Test that a holiday on the start date is included."""
        upcoming = HolidayCalendar().upcoming(date(2025, 6, 6), 1)
        assert upcoming[0].date == date(2025, 6, 6)

    def test_upcoming_zero_limit(self):
        """Test that a zero limit returns nothing."""
        assert HolidayCalendar().upcoming(date(2025, 1, 1), 0) == []

    @pytest.mark.parametrize("day,kind", [
        (date(2025, 4, 18), DayKind.HOLIDAY),
        (date(2025, 3, 7), DayKind.FRIDAY),
        (date(2025, 3, 5), DayKind.WEEKDAY),
        (date(2025, 3, 8), DayKind.WEEKEND),
        (date(2025, 3, 9), DayKind.WEEKEND),
    ])
    def test_classify(self, day, kind):
        """Test day classification."""
        assert HolidayCalendar().classify(day) == kind


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
