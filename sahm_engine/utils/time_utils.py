"""
Calendar helpers for monthly series.

Key concepts:
  - Calendar-month arithmetic: ``add_months`` moves a date by whole months,
    clamping the day to the end of shorter months (Mar 31 - 1 month = Feb 28/29).
  - Signed day offsets: ``days_between`` is the building block of every
    lead/lag statistic.
"""

from __future__ import annotations

import calendar
from datetime import date


def add_months(d: date, months: int) -> date:
    """Return ``d`` shifted by ``months`` calendar months (negative = earlier).

    Args:
        d: Anchor date.
        months: Number of months to add; may be negative.

    Returns:
        Shifted date, with the day clamped to the target month's length.
    """
    month_index = d.year * 12 + (d.month - 1) + months
    year, month0 = divmod(month_index, 12)
    month = month0 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_between(start: date, end: date) -> int:
    """Return the signed number of days from ``start`` to ``end``.

    Positive when ``end`` is later than ``start``.
    """
    return (end - start).days


def monthly_dates(start: date, count: int) -> list[date]:
    """Generate ``count`` consecutive month dates beginning at ``start``.

    Raises:
        ValueError: If ``count`` is negative.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}.")
    return [add_months(start, i) for i in range(count)]
