"""Scenario comparison and refinance analysis.

Helpers built on top of the orchestrator: side-by-side metrics for up to three
what-if scenarios, Canadian-style prepayment penalties (three months of
interest or the interest rate differential, whichever is larger) and a
refinance break-even analysis based on monthly-equivalent PITI.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .data_models import ZERO, LoanParameters, MortgageSummary
from .orchestrator import generate_schedule_and_summary

MAX_SCENARIOS = 3


@dataclass
class ScenarioComparison:
    name: str
    periodic_payment: Decimal
    total_monthly_piti_equivalent: Decimal
    total_interest: Decimal
    total_interest_over_term: Decimal
    total_paid: Decimal
    payoff_date: Optional[date]
    interest_saved_lifetime: Decimal
    balance_at_end_of_term: Decimal


def compare_scenarios(scenarios: Sequence[Tuple[str, LoanParameters]]) -> List[ScenarioComparison]:
    """Run each named scenario independently and collect headline metrics."""
    if len(scenarios) > MAX_SCENARIOS:
        raise ValueError(f"At most {MAX_SCENARIOS} scenarios can be compared")
    rows = []
    for name, params in scenarios:
        summary = generate_schedule_and_summary(params).summary
        rows.append(
            ScenarioComparison(
                name=name,
                periodic_payment=summary.periodic_payment,
                total_monthly_piti_equivalent=summary.total_monthly_piti_equivalent,
                total_interest=summary.total_interest,
                total_interest_over_term=summary.total_interest_over_term,
                total_paid=summary.total_paid,
                payoff_date=summary.payoff_date,
                interest_saved_lifetime=summary.interest_saved_lifetime,
                balance_at_end_of_term=summary.balance_at_end_of_term,
            )
        )
    return rows


def three_month_interest_penalty(balance: Decimal, rate: Decimal) -> Decimal:
    if balance <= 0 or rate <= 0:
        return ZERO
    return balance * (rate / 100) / 4


def interest_rate_differential_penalty(
    balance: Decimal, current_rate: Decimal, posted_rate: Decimal, remaining_months: int
) -> Decimal:
    """Return the IRD penalty: balance x rate differential x remaining years."""
    if balance <= 0 or current_rate <= 0 or posted_rate <= 0 or remaining_months <= 0:
        return ZERO
    differential = (current_rate - posted_rate) / 100
    if differential <= 0:
        return ZERO
    return balance * differential * Decimal(remaining_months) / 12


def prepayment_penalty(
    balance: Decimal, current_rate: Decimal, posted_rate: Decimal, remaining_months: int
) -> Decimal:
    return max(
        three_month_interest_penalty(balance, current_rate),
        interest_rate_differential_penalty(balance, current_rate, posted_rate, remaining_months),
    )


@dataclass
class RefinanceAnalysis:
    monthly_savings: Decimal
    breakeven_months: Decimal
    total_interest_savings: Decimal
    closing_costs: Decimal
    penalty: Decimal


def analyze_refinance(
    current: MortgageSummary,
    proposed: MortgageSummary,
    closing_costs: Decimal = ZERO,
    penalty: Decimal = ZERO,
) -> RefinanceAnalysis:
    """Compare the current loan against a proposed refinance.

    Savings use the monthly-equivalent PITI so loans with different payment
    frequencies compare fairly. The penalty counts toward the up-front cost
    and is deducted from the interest savings.
    """
    current_piti = current.total_monthly_piti_equivalent
    new_piti = proposed.total_monthly_piti_equivalent
    monthly_savings = current_piti - new_piti if current_piti > 0 and new_piti > 0 else ZERO

    costs = closing_costs + penalty
    if costs > 0 and monthly_savings > 0:
        breakeven = costs / monthly_savings
    else:
        breakeven = ZERO

    if current.total_interest > 0 and proposed.total_interest > 0:
        interest_savings = current.total_interest - (proposed.total_interest + penalty)
    else:
        interest_savings = ZERO

    return RefinanceAnalysis(
        monthly_savings=monthly_savings,
        breakeven_months=breakeven,
        total_interest_savings=interest_savings,
        closing_costs=closing_costs,
        penalty=penalty,
    )
