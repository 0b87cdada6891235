"""Payment frequency arithmetic.

Pure helpers that convert an annual rate and term into a monthly annuity
payment, derive the per-period payment for each supported frequency and map a
payment number to its calendar date. Accelerated frequencies pay half (or a
quarter) of the monthly payment, which adds up to thirteen monthly payments a
year instead of twelve.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Collection

from .data_models import (
    ACCELERATED_BI_WEEKLY,
    ACCELERATED_WEEKLY,
    ANNUALLY,
    BI_WEEKLY,
    MONTHLY,
    QUARTERLY,
    SEMI_ANNUALLY,
    WEEKLY,
    ZERO,
)
from .utils import add_months

_PAYMENTS_PER_YEAR = {
    MONTHLY: 12,
    WEEKLY: 52,
    ACCELERATED_WEEKLY: 52,
    BI_WEEKLY: 26,
    ACCELERATED_BI_WEEKLY: 26,
}

# (days, months) advanced per period
_STEPS = {
    WEEKLY: (7, 0),
    ACCELERATED_WEEKLY: (7, 0),
    BI_WEEKLY: (14, 0),
    ACCELERATED_BI_WEEKLY: (14, 0),
    MONTHLY: (0, 1),
    QUARTERLY: (0, 3),
    SEMI_ANNUALLY: (0, 6),
    ANNUALLY: (0, 12),
}


def payments_per_year(frequency: str) -> int:
    try:
        return _PAYMENTS_PER_YEAR[frequency]
    except KeyError:
        raise ValueError(f"Unknown payment frequency: {frequency}") from None


def calculate_monthly_payment(principal: Decimal, annual_rate: Decimal, term_years: Decimal) -> Decimal:
    """Return the standard monthly annuity payment for a loan.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is ``annual_rate / 12`` and ``n`` is
    ``term_years * 12``. ``annual_rate`` is a fraction (``0.06`` for 6 %).
    When the rate is zero the payment simplifies to ``P / n``. Degenerate
    inputs (non-positive principal or term) yield zero.
    """
    if principal <= 0 or term_years <= 0:
        return ZERO
    monthly_rate = annual_rate / 12
    number_of_payments = term_years * 12
    if monthly_rate == 0:
        return principal / number_of_payments
    factor = (1 + monthly_rate) ** number_of_payments
    return principal * (monthly_rate * factor) / (factor - 1)


def calculate_periodic_payment(monthly_payment: Decimal, frequency: str) -> Decimal:
    """Convert a monthly payment into the payment due each period."""
    if frequency == MONTHLY:
        return monthly_payment
    if frequency == WEEKLY:
        return monthly_payment * 12 / 52
    if frequency == ACCELERATED_WEEKLY:
        return monthly_payment / 4
    if frequency == BI_WEEKLY:
        return monthly_payment * 12 / 26
    if frequency == ACCELERATED_BI_WEEKLY:
        return monthly_payment / 2
    raise ValueError(f"Unknown payment frequency: {frequency}")


def _step(frequency: str):
    try:
        return _STEPS[frequency]
    except KeyError:
        raise ValueError(f"Unknown frequency: {frequency}") from None


def payment_date(start: date, payment_number: int, frequency: str) -> date:
    """Return the nominal date of payment ``payment_number``.

    Payment ``k`` falls ``k`` periods after ``start``; monthly periods are
    counted from ``start`` itself so month-end clamping never accumulates.
    """
    if frequency not in _PAYMENTS_PER_YEAR:
        raise ValueError(f"Unknown payment frequency: {frequency}")
    if payment_number <= 0:
        return start
    return recurring_payment_date(start, payment_number, frequency)


def recurring_payment_date(anchor: date, index: int, frequency: str) -> date:
    """Return the ``index``-th cadence point (0-based) counted from ``anchor``."""
    days, months = _step(frequency)
    if months:
        return add_months(anchor, months * index)
    return anchor + timedelta(days=days * index)


def first_payment_on_or_after(
    start: date, when: date, frequency: str, skip: Collection[date] = ()
) -> date:
    """Return the first nominal payment date (k >= 1) that is on or after ``when``.

    Dates listed in ``skip`` are passed over.
    """
    payment_number = 1
    current = payment_date(start, payment_number, frequency)
    while current < when or current in skip:
        payment_number += 1
        current = payment_date(start, payment_number, frequency)
    return current
