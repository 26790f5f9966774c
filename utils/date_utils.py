"""
Date arithmetic helpers for scheduling.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[date, datetime]


def add_months(value: DateLike, months: int) -> DateLike:
    """
    Add calendar months, clamping to the last day of the target month.

    Examples:
        2025-01-31 + 1 month → 2025-02-28
        2025-11-15 + 3 months → 2026-02-15

    Works for both date and datetime (time of day is preserved).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def days_until(target: date, today: date) -> int:
    """Whole days from today to target (negative if target is past)."""
    return (target - today).days


def production_start_for(delivery_date: date, lead_days: int) -> date:
    """Production must start lead_days before delivery."""
    return delivery_date - timedelta(days=lead_days)


def as_date(value: DateLike) -> date:
    """Drop the time part of a datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value
