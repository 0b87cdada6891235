"""Loan history segmentation.

A loan's lifetime is split into segments bounded by life events. Refinances
and renewals change the running state (balance, rate, amortization clock and
payment frequency) at a segment boundary; lump sums and missed payments are
handed to the engine as a one-time payment or deferment on the first payment
due on or after the event date. A lump sum never lands on a deferred payment,
and an event whose payment falls past the next boundary is carried into the
following segment. Each segment is computed by the single-segment engine and
the pieces are stitched into one continuous schedule.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .data_models import (
    FIXED,
    LUMP_SUM,
    MISSED_PAYMENT,
    REFINANCE,
    RENEWAL,
    ZERO,
    AmortizationEntry,
    HistoryResult,
    HistorySummary,
    LoanEvent,
    LoanHistorySegment,
    LoanParameters,
    OneTimePayment,
    OriginalLoan,
)
from .engine import compute_segment
from .frequency import first_payment_on_or_after
from .utils import month_difference

logger = logging.getLogger(__name__)

# Each segment is run long enough to always reach the next event.
SEGMENT_RUN_YEARS = Decimal(50)


@dataclasses.dataclass(frozen=True)
class _LoanState:
    balance: Decimal
    rate: Decimal
    amortization_years: Decimal
    payment_frequency: str
    clock_start: date


def _apply_boundary_events(state: _LoanState, events: Iterable[LoanEvent]) -> _LoanState:
    for event in events:
        details = event.details
        if event.type == REFINANCE:
            state = dataclasses.replace(
                state,
                balance=state.balance + details.cash_out_amount,
                rate=details.new_interest_rate,
                amortization_years=details.new_loan_term,
                clock_start=event.date,
                payment_frequency=details.new_payment_frequency or state.payment_frequency,
            )
        elif event.type == RENEWAL:
            state = dataclasses.replace(
                state,
                rate=details.new_interest_rate,
                payment_frequency=details.new_payment_frequency or state.payment_frequency,
            )
    return state


def _timeline(start: date, events: List[LoanEvent]) -> List[date]:
    points = [start]
    for event in events:
        if event.date not in points:
            points.append(event.date)
    return points


def _in_interval(event: LoanEvent, start: date, end: Optional[date]) -> bool:
    return event.date >= start and (end is None or event.date < end)


def _place_payment_events(
    start: date, frequency: str, events: List[LoanEvent]
) -> List[Tuple[LoanEvent, date]]:
    """Assign each lump sum and missed payment the payment date it acts on.

    Every missed payment defers its own payment. Lump sums skip deferred
    payments so they are never swallowed by a deferment.
    """
    deferred: List[date] = []
    placed: List[Tuple[LoanEvent, date]] = []
    for event in events:
        if event.type == MISSED_PAYMENT:
            due = first_payment_on_or_after(start, event.date, frequency, deferred)
            deferred.append(due)
            placed.append((event, due))
    for event in events:
        if event.type == LUMP_SUM:
            placed.append((event, first_payment_on_or_after(start, event.date, frequency, deferred)))
    return placed


def _segment_parameters(
    state: _LoanState,
    remaining_years: Decimal,
    start: date,
    placed: List[Tuple[LoanEvent, date]],
) -> LoanParameters:
    one_time = tuple(
        OneTimePayment(date=due, amount=event.details.amount)
        for event, due in placed
        if event.type == LUMP_SUM
    )
    deferments = tuple(due for event, due in placed if event.type == MISSED_PAYMENT)
    frequency = state.payment_frequency
    return LoanParameters(
        loan_amount=state.balance,
        interest_rate=state.rate,
        loan_term=remaining_years,
        term_in_years=SEGMENT_RUN_YEARS,
        start_date=start,
        payment_frequency=frequency,
        rate_type=FIXED,
        one_time_payments=one_time,
        deferments=deferments,
    )


def _renumber(entries: List[AmortizationEntry], offset: int) -> List[AmortizationEntry]:
    return [dataclasses.replace(e, payment_number=e.payment_number + offset) for e in entries]


def original_parameters(original: OriginalLoan) -> LoanParameters:
    return LoanParameters(
        loan_amount=original.loan_amount,
        interest_rate=original.interest_rate,
        loan_term=original.amortization_period,
        term_in_years=original.amortization_period,
        start_date=original.start_date,
        payment_frequency=original.payment_frequency,
    )


def calculate_loan_history(original: OriginalLoan, events: Iterable[LoanEvent]) -> HistoryResult:
    """Compute the lifetime schedule of a loan with its history of events.

    Parameters
    ----------
    original: OriginalLoan
        The loan as first taken out.
    events: Iterable[LoanEvent]
        Refinances, renewals, lump sums and missed payments in any order.

    Returns
    -------
    HistoryResult
        The stitched schedule, one segment per timeline interval, the
        no-events baseline schedule and a comparison summary.
    """
    original_schedule, original_summary = compute_segment(original_parameters(original))

    sorted_events = sorted(events, key=lambda e: e.date)
    points = _timeline(original.start_date, sorted_events)

    full_schedule: List[AmortizationEntry] = []
    carried: List[LoanEvent] = []
    segments: List[LoanHistorySegment] = []
    state = _LoanState(
        balance=original.loan_amount,
        rate=original.interest_rate,
        amortization_years=original.amortization_period,
        payment_frequency=original.payment_frequency,
        clock_start=original.start_date,
    )

    for index, start in enumerate(points):
        if state.balance <= 0:
            break
        end = points[index + 1] if index + 1 < len(points) else None
        events_at_start = [e for e in sorted_events if e.date == start]
        trigger = events_at_start[0] if events_at_start else None

        state = _apply_boundary_events(state, events_at_start)
        starting_balance = state.balance

        if full_schedule:
            months = month_difference(state.clock_start, full_schedule[-1].payment_date)
            years_elapsed = Decimal(months) / 12
        else:
            years_elapsed = ZERO
        remaining_years = state.amortization_years - years_elapsed
        if remaining_years <= 0:
            logger.debug("Skipping segment starting %s: amortization exhausted", start)
            continue

        payment_events = carried + [
            e for e in sorted_events if e.type in (LUMP_SUM, MISSED_PAYMENT) and _in_interval(e, start, end)
        ]
        placed = _place_payment_events(start, state.payment_frequency, payment_events)
        params = _segment_parameters(state, remaining_years, start, placed)
        schedule, summary = compute_segment(params)
        segment_schedule = [e for e in schedule if end is None or e.payment_date < end]
        # events whose payment falls past the next boundary act on the next segment
        carried = [event for event, due in placed if end is not None and due >= end]

        if segment_schedule:
            full_schedule.extend(_renumber(segment_schedule, len(full_schedule)))
            state = dataclasses.replace(state, balance=segment_schedule[-1].remaining_balance)

        segments.append(
            LoanHistorySegment(
                start_date=start,
                end_date=segment_schedule[-1].payment_date if segment_schedule else start,
                starting_balance=starting_balance,
                ending_balance=state.balance,
                interest_rate=state.rate,
                periodic_payment=summary.periodic_payment,
                payment_frequency=state.payment_frequency,
                event=trigger,
            )
        )

    actual_payoff = (
        full_schedule[-1].payment_date
        if full_schedule and full_schedule[-1].remaining_balance <= 0
        else None
    )
    summary = HistorySummary(
        original_payoff_date=original_summary.payoff_date,
        actual_payoff_date=actual_payoff,
        original_total_interest=original_summary.total_interest,
        actual_total_interest=sum((e.interest for e in full_schedule), ZERO),
        total_closing_costs=sum(
            (e.details.closing_costs for e in sorted_events if e.type == REFINANCE), ZERO
        ),
    )
    return HistoryResult(
        segments=segments,
        schedule=full_schedule,
        summary=summary,
        original_schedule=original_schedule,
    )
