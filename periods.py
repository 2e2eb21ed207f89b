"""
Budget period windows.

Converts a period type and an anchor date into the inclusive
``(start, end)`` date window a budget covers. Week boundaries use a fixed,
configurable first weekday (Monday by default, as in ISO 8601) and never
depend on the host locale.
"""

import calendar
import enum
import logging
from datetime import date, datetime, timedelta
from typing import Tuple, Union

from exceptions import BudgetError

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

MONDAY = 0
SUNDAY = 6

_WEEKDAY_NAMES = {name.lower(): index for index, name in enumerate(calendar.day_name)}


class PeriodType(enum.Enum):
    """Length of a budget window."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Union["PeriodType", str]) -> "PeriodType":
        """
        Resolve a period type from an enum member or a case-insensitive name.

        Raises:
            BudgetError: If the value is not a known period type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise BudgetError(
                f"Unknown budget period type '{value}'",
                details={"allowed": ", ".join(p.value for p in cls)},
                original_error=exc
            ) from exc


def as_date(value: DateLike) -> date:
    """Return the calendar date of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_week_start(value: Union[int, str, None]) -> int:
    """
    Translate a configured first weekday into ``date.weekday()`` numbering.

    Accepts an integer 0-6 (0 = Monday) or an English weekday name.
    ``None`` means Monday.

    Raises:
        BudgetError: If the value cannot be interpreted
    """
    if value is None:
        return MONDAY
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 6:
            return value
    elif isinstance(value, str):
        key = value.strip().lower()
        if key in _WEEKDAY_NAMES:
            return _WEEKDAY_NAMES[key]
        if key.isdigit() and 0 <= int(key) <= 6:
            return int(key)
    raise BudgetError(f"Invalid week start '{value}'", details={"expected": "0-6 or weekday name"})


def start_of_week(anchor: DateLike, week_start: int = MONDAY) -> date:
    """Most recent ``week_start`` weekday on or before the anchor."""
    day = as_date(anchor)
    offset = (day.weekday() - week_start) % 7
    return day - timedelta(days=offset)


def get_month_period(anchor: DateLike) -> Tuple[date, date]:
    """
    Get the first and last day for the anchor's month.

    Args:
        anchor: Date within the desired month (only month/year are used).

    Returns:
        Tuple of (period_start, period_end).
    """
    period_start = as_date(anchor).replace(day=1)
    if period_start.month == 12:
        period_end = period_start.replace(year=period_start.year + 1, month=1, day=1) - timedelta(days=1)
    else:
        period_end = period_start.replace(month=period_start.month + 1, day=1) - timedelta(days=1)
    return period_start, period_end


def compute_window(
    period_type: Union[PeriodType, str],
    anchor_date: DateLike,
    week_start: int = MONDAY
) -> Tuple[date, date]:
    """
    Compute the inclusive window of the period containing ``anchor_date``.

    Args:
        period_type: weekly, monthly or yearly
        anchor_date: Any date inside the wanted period
        week_start: First weekday of a week (0 = Monday ... 6 = Sunday)

    Returns:
        Tuple of (start, end), both inclusive
    """
    period = PeriodType.parse(period_type)
    anchor = as_date(anchor_date)

    if period is PeriodType.WEEKLY:
        start = start_of_week(anchor, week_start)
        return start, start + timedelta(days=6)
    if period is PeriodType.MONTHLY:
        return get_month_period(anchor)
    return date(anchor.year, 1, 1), date(anchor.year, 12, 31)


def in_window(value: DateLike, start: date, end: date) -> bool:
    """Inclusive membership test of a transaction date in a budget window."""
    day = as_date(value)
    return start <= day <= end
