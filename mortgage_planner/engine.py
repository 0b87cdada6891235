"""Core calculation engine for the mortgage planner.

This module simulates the period-by-period amortization of a single loan
segment. It supports the five payment frequencies, variable-rate changes that
re-amortize the remaining balance, payment deferments (interest is
capitalized), recurring, one-time and ad-hoc extra payments and an annual
payment escalation. Results are returned as a list of ``AmortizationEntry``
objects along with a partial ``MortgageSummary``; the orchestrator fills in the
PITI and baseline comparison fields.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_CEILING, Decimal, getcontext
from typing import Dict, List, Optional, Sequence, Tuple

from .data_models import (
    VARIABLE,
    ZERO,
    AmortizationEntry,
    LoanParameters,
    MortgageSummary,
    OneTimePayment,
    RecurringPayment,
)
from .frequency import (
    calculate_monthly_payment,
    calculate_periodic_payment,
    payment_date,
    payments_per_year,
    recurring_payment_date,
)
from .utils import add_years, months_between

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Residual balances below half a cent are treated as paid off to prevent
# phantom extra periods caused by rounding.
HALF_CENT = Decimal("0.005")


def is_valid(params: LoanParameters) -> bool:
    return (
        params.loan_amount > 0
        and params.interest_rate >= 0
        and params.loan_term > 0
        and params.start_date is not None
    )


def max_payments(loan_term: Decimal, frequency: str) -> int:
    """Return the iteration cap: twice the nominal number of payments."""
    cap = Decimal(loan_term) * payments_per_year(frequency) * 2
    return int(cap.to_integral_value(rounding=ROUND_CEILING))


def advance_recurring(
    payments: Sequence[RecurringPayment],
    cursors: Tuple[int, ...],
    anchors: Tuple[date, ...],
    previous_date: date,
    current_date: date,
) -> Tuple[Tuple[int, ...], Decimal]:
    """Collect recurring extra payments due up to ``current_date``.

    ``cursors[i]`` is the index of the next unconsumed occurrence of payment
    ``i``. Every occurrence on or before ``current_date`` is consumed; only
    those after ``previous_date`` count toward this period. Returns the new
    cursor tuple and the amount due.
    """
    amount_due = ZERO
    new_cursors: List[int] = []
    for payment, cursor, anchor in zip(payments, cursors, anchors):
        if payment.amount <= 0:
            new_cursors.append(cursor)
            continue
        next_date = recurring_payment_date(anchor, cursor, payment.frequency)
        while next_date <= current_date:
            if payment.end_date is not None and next_date > payment.end_date:
                break
            if next_date > previous_date:
                amount_due += payment.amount
            cursor += 1
            next_date = recurring_payment_date(anchor, cursor, payment.frequency)
        new_cursors.append(cursor)
    return tuple(new_cursors), amount_due


def _sorted_one_time_payments(payments: Sequence[OneTimePayment]) -> List[OneTimePayment]:
    return sorted((p for p in payments if p.amount > 0), key=lambda p: p.date)


def _empty_result() -> Tuple[List[AmortizationEntry], MortgageSummary]:
    return [], MortgageSummary()


def compute_segment(params: LoanParameters) -> Tuple[List[AmortizationEntry], MortgageSummary]:
    """Compute the amortization schedule for one loan segment.

    The simulation runs from ``params.start_date`` until the balance reaches
    zero or the iteration cap (twice the nominal payment count) is reached.
    The rate-lock term is not applied here; the full projection is returned.

    Parameters
    ----------
    params: LoanParameters
        The loan definition and its extra-payment inputs.

    Returns
    -------
    schedule: List[AmortizationEntry]
        One entry per period. Deferred periods carry zero payment and
        principal and show the capitalized interest.
    summary: MortgageSummary
        Periodic payment, totals, payoff date (``None`` when the cap was hit)
        and the extra payments grouped by calendar year.
    """
    if not is_valid(params):
        logger.debug("Rejecting invalid loan parameters: %r", params)
        return _empty_result()

    start_date = params.start_date
    frequency = params.payment_frequency
    periods_per_year = payments_per_year(frequency)
    loan_term = params.loan_term

    annual_rate = params.interest_rate / Decimal(100)
    periodic_payment = calculate_periodic_payment(
        calculate_monthly_payment(params.loan_amount, annual_rate, loan_term), frequency
    )

    rate_changes = sorted(params.rate_changes, key=lambda c: c.date)
    rate_change_index = 0
    one_time_payments = _sorted_one_time_payments(params.one_time_payments)
    one_time_index = 0
    deferment_dates = set(params.deferments)

    recurring = tuple(params.recurring_payments)
    anchors = tuple(p.start_date or start_date for p in recurring)
    cursors: Tuple[int, ...] = tuple(0 for _ in recurring)

    increase = params.annual_payment_increase_percentage / Decimal(100)
    anniversaries = 1
    next_anniversary = add_years(start_date, anniversaries)

    schedule: List[AmortizationEntry] = []
    balance = params.loan_amount
    total_paid = ZERO
    total_interest = ZERO
    total_extra = ZERO
    cap = max_payments(loan_term, frequency)
    payment_number = 0

    while balance > 0 and payment_number < cap:
        payment_number += 1
        current_date = payment_date(start_date, payment_number, frequency)
        previous_date = payment_date(start_date, payment_number - 1, frequency)

        # Annual payment escalation, compounding anniversary to anniversary
        if increase > 0 and current_date >= next_anniversary:
            periodic_payment *= 1 + increase
            anniversaries += 1
            next_anniversary = add_years(start_date, anniversaries)

        if params.rate_type == VARIABLE and rate_change_index < len(rate_changes):
            change = rate_changes[rate_change_index]
            if current_date >= change.date:
                annual_rate = change.rate / Decimal(100)
                years_elapsed = Decimal(payment_number - 1) / periods_per_year
                remaining_years = loan_term - years_elapsed
                if remaining_years > 0:
                    periodic_payment = calculate_periodic_payment(
                        calculate_monthly_payment(balance, annual_rate, remaining_years), frequency
                    )
                rate_change_index += 1

        interest = balance * (annual_rate / periods_per_year)

        if current_date in deferment_dates:
            balance += interest
            total_interest += interest
            schedule.append(
                AmortizationEntry(
                    payment_number=payment_number,
                    payment_date=current_date,
                    payment=ZERO,
                    principal=ZERO,
                    interest=interest,
                    scheduled_extra_payment=ZERO,
                    ad_hoc_payment=ZERO,
                    total_payment=ZERO,
                    remaining_balance=balance,
                    is_deferred=True,
                )
            )
            continue

        base_principal = periodic_payment - interest
        if base_principal < 0:
            base_principal = ZERO

        cursors, scheduled_extra = advance_recurring(
            recurring, cursors, anchors, previous_date, current_date
        )
        while (
            one_time_index < len(one_time_payments)
            and one_time_payments[one_time_index].date <= current_date
        ):
            one_time = one_time_payments[one_time_index]
            if one_time.date > previous_date:
                scheduled_extra += one_time.amount
            one_time_index += 1

        ad_hoc = params.ad_hoc_payments.get(payment_number, ZERO)
        extra = scheduled_extra + ad_hoc

        if balance - (base_principal + extra) < HALF_CENT:
            # Final period: the regular payment goes first, extras only cover
            # what is left.
            principal = min(base_principal, balance)
            remainder = balance - principal
            scheduled_applied = min(scheduled_extra, remainder)
            ad_hoc_applied = min(ad_hoc, remainder - scheduled_applied)
            # sub-cent leftovers are folded into the principal
            principal += remainder - scheduled_applied - ad_hoc_applied
            applied_extra = scheduled_applied + ad_hoc_applied
            payment = principal + interest
            total_payment = payment + applied_extra
            balance = ZERO
            schedule.append(
                AmortizationEntry(
                    payment_number=payment_number,
                    payment_date=current_date,
                    payment=payment,
                    principal=principal,
                    interest=interest,
                    scheduled_extra_payment=scheduled_applied,
                    ad_hoc_payment=ad_hoc_applied,
                    total_payment=total_payment,
                    remaining_balance=ZERO,
                )
            )
        else:
            balance -= base_principal + extra
            applied_extra = extra
            total_payment = periodic_payment + extra
            schedule.append(
                AmortizationEntry(
                    payment_number=payment_number,
                    payment_date=current_date,
                    payment=periodic_payment,
                    principal=base_principal,
                    interest=interest,
                    scheduled_extra_payment=scheduled_extra,
                    ad_hoc_payment=ad_hoc,
                    total_payment=total_payment,
                    remaining_balance=balance,
                )
            )
        total_paid += total_payment
        total_interest += interest
        total_extra += applied_extra

    payoff_date: Optional[date] = schedule[-1].payment_date if balance <= 0 and schedule else None
    if payoff_date is None:
        logger.warning(
            "Loan did not amortize within %d payments; remaining balance %.2f",
            cap,
            balance,
        )

    summary = MortgageSummary(
        periodic_payment=periodic_payment,
        total_paid=total_paid,
        total_interest=total_interest,
        total_extra_payments=total_extra,
        payoff_date=payoff_date,
        loan_term_months=(
            months_between(start_date, payoff_date)
            if payoff_date
            else int(loan_term * 12)
        ),
        balance_at_end_of_term=balance,
        extra_payments_by_year=extra_payments_by_year(schedule),
        converged=payoff_date is not None,
    )
    logger.debug(
        "Computed %d payments for %.2f at %s%% (%s)",
        len(schedule),
        params.loan_amount,
        params.interest_rate,
        frequency,
    )
    return schedule, summary


def extra_payments_by_year(schedule: Sequence[AmortizationEntry]) -> Dict[int, Decimal]:
    """Group scheduled and ad-hoc extra payments by payment-date calendar year."""
    by_year: Dict[int, Decimal] = {}
    for entry in schedule:
        extra = entry.scheduled_extra_payment + entry.ad_hoc_payment
        if extra > 0:
            year = entry.payment_date.year
            by_year[year] = by_year.get(year, ZERO) + extra
    return by_year
