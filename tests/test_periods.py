"""
Unit tests for budget period windows.
"""

from datetime import date, datetime

import pytest

from exceptions import BudgetError
from periods import (
    MONDAY,
    SUNDAY,
    PeriodType,
    as_date,
    compute_window,
    get_month_period,
    in_window,
    parse_week_start,
    start_of_week,
)


class TestComputeWindow:
    """Window computation per period type."""

    def test_monthly_window_covers_calendar_month(self):
        assert compute_window(PeriodType.MONTHLY, date(2025, 1, 15)) == (date(2025, 1, 1), date(2025, 1, 31))

    def test_monthly_window_handles_leap_february(self):
        assert compute_window("monthly", date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_monthly_window_handles_december(self):
        assert get_month_period(date(2024, 12, 31)) == (date(2024, 12, 1), date(2024, 12, 31))

    def test_yearly_window(self):
        assert compute_window(PeriodType.YEARLY, date(2025, 6, 30)) == (date(2025, 1, 1), date(2025, 12, 31))

    def test_weekly_window_starts_monday_by_default(self):
        # 2025-01-15 is a Wednesday
        start, end = compute_window(PeriodType.WEEKLY, date(2025, 1, 15))
        assert start == date(2025, 1, 13)
        assert end == date(2025, 1, 19)
        assert start.weekday() == MONDAY

    def test_weekly_window_on_week_start_day(self):
        assert compute_window(PeriodType.WEEKLY, date(2025, 1, 13)) == (date(2025, 1, 13), date(2025, 1, 19))

    def test_weekly_window_with_sunday_start(self):
        start, end = compute_window(PeriodType.WEEKLY, date(2025, 1, 15), week_start=SUNDAY)
        assert start == date(2025, 1, 12)
        assert end == date(2025, 1, 18)

    def test_weekly_window_crosses_year_boundary(self):
        assert compute_window(PeriodType.WEEKLY, date(2025, 1, 1)) == (date(2024, 12, 30), date(2025, 1, 5))

    def test_datetime_anchor_uses_date_part(self):
        assert compute_window("monthly", datetime(2025, 3, 31, 23, 59)) == (date(2025, 3, 1), date(2025, 3, 31))

    def test_window_is_deterministic(self):
        anchor = date(2025, 5, 7)
        assert compute_window("weekly", anchor) == compute_window("weekly", anchor)


class TestPeriodType:

    @pytest.mark.parametrize("raw, expected", [
        ("weekly", PeriodType.WEEKLY),
        ("Monthly", PeriodType.MONTHLY),
        (" YEARLY ", PeriodType.YEARLY),
        (PeriodType.MONTHLY, PeriodType.MONTHLY),
    ])
    def test_parse_accepts_names_and_members(self, raw, expected):
        assert PeriodType.parse(raw) is expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(BudgetError) as exc_info:
            PeriodType.parse("quarterly")
        assert "quarterly" in str(exc_info.value)


class TestWeekStart:

    @pytest.mark.parametrize("raw, expected", [
        (None, 0),
        (0, 0),
        (6, 6),
        ("sunday", 6),
        ("Monday", 0),
        ("3", 3),
    ])
    def test_parse_week_start(self, raw, expected):
        assert parse_week_start(raw) == expected

    @pytest.mark.parametrize("raw", [7, -1, "funday", True])
    def test_parse_week_start_rejects_invalid(self, raw):
        with pytest.raises(BudgetError):
            parse_week_start(raw)

    def test_start_of_week_for_sunday_anchor(self):
        assert start_of_week(date(2025, 1, 19)) == date(2025, 1, 13)
        assert start_of_week(date(2025, 1, 19), SUNDAY) == date(2025, 1, 19)


class TestInWindow:

    def test_bounds_are_inclusive(self):
        start, end = date(2025, 1, 1), date(2025, 1, 31)
        assert in_window(start, start, end)
        assert in_window(end, start, end)
        assert not in_window(date(2024, 12, 31), start, end)
        assert not in_window(date(2025, 2, 1), start, end)

    def test_datetime_late_on_end_date_is_inside(self):
        assert in_window(datetime(2025, 1, 31, 23, 59, 59), date(2025, 1, 1), date(2025, 1, 31))

    def test_as_date(self):
        assert as_date(datetime(2025, 1, 2, 8, 30)) == date(2025, 1, 2)
        assert as_date(date(2025, 1, 2)) == date(2025, 1, 2)
