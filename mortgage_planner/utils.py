"""Utility functions for the mortgage planner.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding calendar months, parsing ISO ``YYYY-MM-DD`` strings
and measuring month differences between two dates. It uses Python's
``datetime`` module to calculate month offsets.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext
import calendar
from typing import Optional

from .data_models import TimeSpan

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    A trailing time component (``2024-01-15T00:00:00``) is ignored so that
    dates written by browsers round-trip cleanly.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def parse_optional_date(value: object) -> Optional[date]:
    """Return a ``date`` for ``value`` or ``None`` when it is empty or invalid."""
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        return None


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(dt: date, years: int) -> date:
    return add_months(dt, years * 12)


def months_between(start: date, end: date) -> int:
    """Return the number of calendar months from ``start`` to ``end`` (never negative)."""
    return max((end.year - start.year) * 12 + end.month - start.month, 0)


def month_difference(start: date, end: date) -> int:
    """Count the calendar months from ``start`` to ``end`` inclusively.

    Both endpoint months are counted, so a loan starting in January with its
    last payment in December of the same year spans 12 months. Returns 0 when
    ``end`` is not in a later month than ``start``.
    """
    months = (end.year - start.year) * 12 + end.month - start.month
    return 0 if months <= 0 else months + 1


def time_difference(later: Optional[date], earlier: Optional[date]) -> TimeSpan:
    """Return how far ``earlier`` precedes ``later`` in whole years and months.

    Returns a zero span when either date is missing or ``earlier`` is not
    actually earlier.
    """
    if later is None or earlier is None or earlier >= later:
        return TimeSpan()
    months = (later.year - earlier.year) * 12 + later.month - earlier.month
    if later.day < earlier.day:
        months -= 1
    return TimeSpan(years=months // 12, months=months % 12)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value: object) -> Decimal:
    """Convert an int, float, string or ``Decimal`` into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        return decimal_from_str(repr(value) if isinstance(value, float) else str(value))
    return decimal_from_str(value)
