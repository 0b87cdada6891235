"""Output helpers for the mortgage planner.

This module provides simple functions to render amortization schedules,
summaries, loan histories and comparisons in a tabular text format. We rely
only on built-in printing and string formatting; ``click`` handles everything
else on the command line.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from .comparison import RefinanceAnalysis, ScenarioComparison
from .data_models import AmortizationEntry, HistoryResult, MortgageSummary


def _date(value: Optional[date]) -> str:
    return value.isoformat() if value else "not reached"


def print_summary(summary: MortgageSummary) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Periodic payment    : {summary.periodic_payment:.2f}")
    if summary.total_periodic_piti != summary.periodic_payment:
        print(f"Periodic PITI       : {summary.total_periodic_piti:.2f}")
    print(f"Monthly equivalent  : {summary.total_monthly_piti_equivalent:.2f}")
    print(f"Interest over term  : {summary.total_interest_over_term:.2f}")
    print(f"Paid over term      : {summary.total_paid_over_term:.2f}")
    print(f"Balance end of term : {summary.balance_at_end_of_term:.2f}")
    print(f"Total interest      : {summary.total_interest:.2f}")
    print(f"Total paid          : {summary.total_paid:.2f}")
    if summary.total_extra_payments:
        print(f"Extra payments      : {summary.total_extra_payments:.2f}")
    print(f"Payoff date         : {_date(summary.payoff_date)}")
    print(f"Original payoff     : {_date(summary.original_payoff_date)}")
    if summary.interest_saved_lifetime:
        print(f"Interest saved      : {summary.interest_saved_lifetime:.2f}")
    if summary.time_saved.total_months:
        print(f"Time saved          : {summary.time_saved.years} years, {summary.time_saved.months} months")
    if not summary.converged:
        print("Warning: the loan does not amortize under these terms.")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = [
        "No",
        "Date",
        "Payment",
        "Principal",
        "Interest",
        "Extra",
        "AdHoc",
        "Total",
        "Balance",
        "Deferred",
    ]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.payment_number),
            entry.payment_date.isoformat(),
            f"{entry.payment:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.scheduled_extra_payment:.2f}",
            f"{entry.ad_hoc_payment:.2f}",
            f"{entry.total_payment:.2f}",
            f"{entry.remaining_balance:.2f}",
            "Yes" if entry.is_deferred else "No",
        ]
        print("\t".join(row))


def print_history(result: HistoryResult) -> None:
    print("Loan history")
    print("=" * 72)
    for segment in result.segments:
        label = segment.event.type if segment.event else "original"
        print(
            f"{segment.start_date.isoformat()} {label:14s} "
            f"rate {segment.interest_rate:.2f}% {segment.payment_frequency:22s} "
            f"payment {segment.periodic_payment:10.2f} "
            f"balance {segment.starting_balance:12.2f} -> {segment.ending_balance:12.2f}"
        )
    summary = result.summary
    print("-" * 72)
    print(f"Original payoff     : {_date(summary.original_payoff_date)}")
    print(f"Actual payoff       : {_date(summary.actual_payoff_date)}")
    print(f"Original interest   : {summary.original_total_interest:.2f}")
    print(f"Actual interest     : {summary.actual_total_interest:.2f}")
    if summary.total_closing_costs:
        print(f"Closing costs       : {summary.total_closing_costs:.2f}")
    print("=" * 72)


def print_comparison(rows: Sequence[ScenarioComparison]) -> None:
    """Print scenario metrics side by side.

    The last column shows the difference between the last and the first
    scenario; a negative difference means the later scenario is cheaper.
    """
    print("Comparison")
    print("=" * 72)
    header = f"{'Metric':24s}" + "".join(f"{row.name[:15]:>16s}" for row in rows)
    if len(rows) > 1:
        header += f"{'Difference':>16s}"
    print(header)
    keys = [
        "periodic_payment",
        "total_monthly_piti_equivalent",
        "total_interest_over_term",
        "total_interest",
        "total_paid",
        "balance_at_end_of_term",
    ]
    for key in keys:
        values = [getattr(row, key) for row in rows]
        line = f"{key[:24]:24s}" + "".join(f"{v:16.2f}" for v in values)
        if len(values) > 1:
            line += f"{values[-1] - values[0]:16.2f}"
        print(line)
    print(f"{'payoff_date':24s}" + "".join(f"{_date(row.payoff_date):>16s}" for row in rows))
    print("=" * 72)


def print_refinance(analysis: RefinanceAnalysis) -> None:
    print("Refinance analysis")
    print("-" * 72)
    print(f"Monthly savings     : {analysis.monthly_savings:.2f}")
    print(f"Closing costs       : {analysis.closing_costs:.2f}")
    print(f"Prepayment penalty  : {analysis.penalty:.2f}")
    print(f"Break-even (months) : {analysis.breakeven_months:.1f}")
    print(f"Net interest saved  : {analysis.total_interest_savings:.2f}")
    print("-" * 72)
