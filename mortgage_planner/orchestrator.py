"""Schedule and summary orchestration.

``generate_schedule_and_summary`` turns one ``LoanParameters`` snapshot into
everything a caller needs: the term-limited schedule, the full projection, a
no-extra-payments baseline and a summary combining the three with PITI and
savings figures. The function is pure; it never mutates its input.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import List, Sequence

from .data_models import FIXED, ZERO, AmortizationEntry, LoanParameters, MortgageSummary, ScheduleResult
from .engine import compute_segment, is_valid
from .frequency import payments_per_year
from .utils import time_difference


def get_empty_summary() -> MortgageSummary:
    return MortgageSummary(converged=False)


def baseline_parameters(params: LoanParameters) -> LoanParameters:
    """Strip every extra-payment input and amortize over the full term at a fixed rate."""
    return dataclasses.replace(
        params,
        recurring_payments=(),
        one_time_payments=(),
        ad_hoc_payments={},
        rate_type=FIXED,
        rate_changes=(),
        annual_payment_increase_percentage=ZERO,
        term_in_years=params.loan_term,
    )


def _sum_interest(entries: Sequence[AmortizationEntry]) -> Decimal:
    return sum((e.interest for e in entries), ZERO)


def generate_schedule_and_summary(params: LoanParameters) -> ScheduleResult:
    """Compute schedules and the combined summary for a loan.

    Returns
    -------
    ScheduleResult
        ``schedule`` is the full projection truncated to the rate-lock term,
        ``full_schedule`` runs to payoff, ``baseline_schedule`` is the same
        loan without extra payments. Invalid parameters yield empty schedules
        and an all-zero summary.
    """
    if not is_valid(params):
        return ScheduleResult(schedule=[], summary=get_empty_summary(), baseline_schedule=[], full_schedule=[])

    baseline_schedule, baseline_summary = compute_segment(baseline_parameters(params))
    full_schedule, full_summary = compute_segment(params)

    periods_per_year = payments_per_year(params.payment_frequency)
    max_payments_in_term = int(Decimal(params.term_in_years) * periods_per_year)
    schedule_for_term: List[AmortizationEntry] = full_schedule[:max_payments_in_term]

    if schedule_for_term and len(schedule_for_term) >= max_payments_in_term:
        balance_at_end_of_term = schedule_for_term[-1].remaining_balance
    else:
        balance_at_end_of_term = max(full_summary.balance_at_end_of_term, ZERO)

    total_interest_over_term = _sum_interest(schedule_for_term)
    total_extra_over_term = sum(
        (e.scheduled_extra_payment + e.ad_hoc_payment for e in schedule_for_term), ZERO
    )
    baseline_for_term = baseline_schedule[: len(schedule_for_term)]
    baseline_interest_over_term = _sum_interest(baseline_for_term)

    interest_saved_lifetime = baseline_summary.total_interest - full_summary.total_interest
    interest_saved_over_term = baseline_interest_over_term - total_interest_over_term

    # PITI add-ons, pro-rated to the payment frequency
    annual_tax = params.annual_property_tax
    annual_insurance = params.annual_home_insurance
    monthly_pmi = params.monthly_pmi
    periodic_piti = (
        full_summary.periodic_payment
        + annual_tax / periods_per_year
        + annual_insurance / periods_per_year
        + monthly_pmi * 12 / periods_per_year
    )
    monthly_piti_equivalent = periodic_piti * periods_per_year / 12

    def taxes_and_insurance_for(months) -> Decimal:
        return (annual_tax + annual_insurance) * Decimal(months) / 12 + monthly_pmi * Decimal(months)

    total_taxes_and_insurance = taxes_and_insurance_for(full_summary.loan_term_months)
    term_months = Decimal(params.term_in_years) * 12
    taxes_and_insurance_over_term = taxes_and_insurance_for(term_months)

    baseline_paid_over_term = sum((e.payment for e in baseline_for_term), ZERO)
    baseline_lifetime_cost = baseline_summary.total_paid + taxes_and_insurance_for(
        baseline_summary.loan_term_months
    )

    summary = MortgageSummary(
        periodic_payment=full_summary.periodic_payment,
        total_periodic_piti=periodic_piti,
        total_monthly_piti_equivalent=monthly_piti_equivalent,
        total_paid=full_summary.total_paid,
        total_interest=full_summary.total_interest,
        total_lifetime_cost=full_summary.total_paid + total_taxes_and_insurance,
        total_taxes_and_insurance=total_taxes_and_insurance,
        total_paid_over_term=sum((e.total_payment for e in schedule_for_term), ZERO),
        total_taxes_and_insurance_over_term=taxes_and_insurance_over_term,
        total_interest_over_term=total_interest_over_term,
        total_extra_payments=full_summary.total_extra_payments,
        total_extra_payments_over_term=total_extra_over_term,
        payoff_date=full_summary.payoff_date,
        original_payoff_date=baseline_summary.payoff_date,
        loan_term_months=full_summary.loan_term_months,
        balance_at_end_of_term=balance_at_end_of_term,
        interest_saved_lifetime=max(interest_saved_lifetime, ZERO),
        interest_saved_over_term=max(interest_saved_over_term, ZERO),
        time_saved=time_difference(baseline_summary.payoff_date, full_summary.payoff_date),
        extra_payments_by_year=full_summary.extra_payments_by_year,
        baseline_total_interest=baseline_summary.total_interest,
        baseline_total_interest_over_term=baseline_interest_over_term,
        baseline_total_lifetime_cost=baseline_lifetime_cost,
        baseline_total_cost_over_term=baseline_paid_over_term + taxes_and_insurance_over_term,
        converged=full_summary.converged,
    )
    return ScheduleResult(
        schedule=schedule_for_term,
        summary=summary,
        baseline_schedule=baseline_schedule,
        full_schedule=full_schedule,
    )


def advice_inputs(params: LoanParameters, summary: MortgageSummary) -> dict:
    """Return the scalar values an advice service may receive about a loan."""
    return {
        "loan_amount": float(params.loan_amount),
        "interest_rate": float(params.interest_rate),
        "loan_term": float(params.loan_term),
        "periodic_payment": float(summary.periodic_payment),
        "payment_frequency": params.payment_frequency,
    }
