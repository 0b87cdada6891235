"""Data models for the mortgage planner.

This module defines dataclasses representing the entities the amortization
engine works with: loan parameters and their extra-payment inputs, individual
schedule entries, run summaries and the life events used in loan history mode.
Inputs are frozen so that a calculation can never mutate the snapshot it was
handed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

MONTHLY = "monthly"
WEEKLY = "weekly"
ACCELERATED_WEEKLY = "accelerated-weekly"
BI_WEEKLY = "bi-weekly"
ACCELERATED_BI_WEEKLY = "accelerated-bi-weekly"
QUARTERLY = "quarterly"
SEMI_ANNUALLY = "semi-annually"
ANNUALLY = "annually"

PAYMENT_FREQUENCIES = (
    MONTHLY,
    BI_WEEKLY,
    ACCELERATED_BI_WEEKLY,
    WEEKLY,
    ACCELERATED_WEEKLY,
)
RECURRING_FREQUENCIES = PAYMENT_FREQUENCIES + (QUARTERLY, SEMI_ANNUALLY, ANNUALLY)

FIXED = "fixed"
VARIABLE = "variable"
RATE_TYPES = (FIXED, VARIABLE)

ZERO = Decimal("0")


@dataclass(frozen=True)
class RecurringPayment:
    """An extra payment repeated on its own cadence.

    ``start_date`` anchors the cadence; when omitted the loan start date is
    used. Occurrences after ``end_date`` are ignored.
    """

    amount: Decimal
    frequency: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class OneTimePayment:
    date: date
    amount: Decimal


@dataclass(frozen=True)
class RateChange:
    """A scheduled change of the annual rate (percent) for variable loans."""

    date: date
    rate: Decimal


@dataclass(frozen=True)
class LoanParameters:
    """All user inputs for one calculation.

    ``interest_rate`` is the annual nominal rate in percent. ``loan_term`` is
    the full amortization in years (fractions allowed for extra months) while
    ``term_in_years`` is the rate-lock term used for the "over term" view.
    A ``start_date`` of ``None`` means the date could not be parsed; the
    orchestrator then returns an empty result.
    """

    loan_amount: Decimal
    interest_rate: Decimal
    loan_term: Decimal
    term_in_years: Decimal
    start_date: Optional[date]
    payment_frequency: str = MONTHLY
    rate_type: str = FIXED
    rate_changes: Tuple[RateChange, ...] = ()
    recurring_payments: Tuple[RecurringPayment, ...] = ()
    one_time_payments: Tuple[OneTimePayment, ...] = ()
    ad_hoc_payments: Dict[int, Decimal] = field(default_factory=dict)
    deferments: Tuple[date, ...] = ()
    annual_payment_increase_percentage: Decimal = ZERO
    annual_property_tax: Decimal = ZERO
    annual_home_insurance: Decimal = ZERO
    monthly_pmi: Decimal = ZERO


@dataclass(frozen=True)
class AmortizationEntry:
    """One row of the amortization schedule.

    ``total_payment`` is every dollar paid in the period: the regular payment
    plus scheduled extras and the ad-hoc amount. When ``is_deferred`` is True,
    all payment columns are zero and ``interest`` was capitalized onto the
    balance.
    """

    payment_number: int
    payment_date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    scheduled_extra_payment: Decimal
    ad_hoc_payment: Decimal
    total_payment: Decimal
    remaining_balance: Decimal
    is_deferred: bool = False


@dataclass(frozen=True)
class TimeSpan:
    years: int = 0
    months: int = 0

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months


@dataclass
class MortgageSummary:
    """Aggregate metrics for one calculation run.

    The engine fills the payment, totals and payoff fields; the orchestrator
    fills the PITI, term-scoped and baseline comparison fields.
    """

    periodic_payment: Decimal = ZERO
    total_periodic_piti: Decimal = ZERO
    total_monthly_piti_equivalent: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_interest: Decimal = ZERO
    total_lifetime_cost: Decimal = ZERO
    total_taxes_and_insurance: Decimal = ZERO
    total_paid_over_term: Decimal = ZERO
    total_taxes_and_insurance_over_term: Decimal = ZERO
    total_interest_over_term: Decimal = ZERO
    total_extra_payments: Decimal = ZERO
    total_extra_payments_over_term: Decimal = ZERO
    payoff_date: Optional[date] = None
    original_payoff_date: Optional[date] = None
    loan_term_months: int = 0
    balance_at_end_of_term: Decimal = ZERO
    interest_saved_lifetime: Decimal = ZERO
    interest_saved_over_term: Decimal = ZERO
    time_saved: TimeSpan = field(default_factory=TimeSpan)
    extra_payments_by_year: Dict[int, Decimal] = field(default_factory=dict)
    baseline_total_interest: Decimal = ZERO
    baseline_total_interest_over_term: Decimal = ZERO
    baseline_total_lifetime_cost: Decimal = ZERO
    baseline_total_cost_over_term: Decimal = ZERO
    # False when the iteration cap was reached before the balance hit zero
    converged: bool = True


@dataclass
class ScheduleResult:
    schedule: List[AmortizationEntry]
    summary: MortgageSummary
    baseline_schedule: List[AmortizationEntry]
    full_schedule: List[AmortizationEntry]


# --- Loan history ---------------------------------------------------------

REFINANCE = "refinance"
RENEWAL = "renewal"
LUMP_SUM = "lumpSum"
MISSED_PAYMENT = "missedPayment"
EVENT_TYPES = (REFINANCE, RENEWAL, LUMP_SUM, MISSED_PAYMENT)


@dataclass(frozen=True)
class RefinanceDetails:
    """A refinance adds cash-out to the balance and restarts amortization."""

    new_interest_rate: Decimal
    new_loan_term: Decimal
    cash_out_amount: Decimal = ZERO
    closing_costs: Decimal = ZERO
    new_payment_frequency: Optional[str] = None

    type = REFINANCE


@dataclass(frozen=True)
class RenewalDetails:
    """A renewal changes the rate but keeps the original amortization clock."""

    new_interest_rate: Decimal
    new_term: Decimal
    new_payment_frequency: Optional[str] = None

    type = RENEWAL


@dataclass(frozen=True)
class LumpSumDetails:
    amount: Decimal

    type = LUMP_SUM


@dataclass(frozen=True)
class MissedPaymentDetails:
    type = MISSED_PAYMENT


EventDetails = Union[RefinanceDetails, RenewalDetails, LumpSumDetails, MissedPaymentDetails]


@dataclass(frozen=True)
class LoanEvent:
    id: str
    date: date
    details: EventDetails

    @property
    def type(self) -> str:
        return self.details.type


@dataclass(frozen=True)
class OriginalLoan:
    """The loan as originally taken out, before any history events."""

    purchase_price: Decimal
    down_payment: Decimal
    interest_rate: Decimal
    amortization_period: Decimal
    term: Decimal
    payment_frequency: str
    start_date: date

    @property
    def loan_amount(self) -> Decimal:
        return self.purchase_price - self.down_payment


@dataclass(frozen=True)
class LoanHistorySegment:
    start_date: date
    end_date: date
    starting_balance: Decimal
    ending_balance: Decimal
    interest_rate: Decimal
    periodic_payment: Decimal
    payment_frequency: str
    event: Optional[LoanEvent] = None


@dataclass
class HistorySummary:
    original_payoff_date: Optional[date]
    actual_payoff_date: Optional[date]
    original_total_interest: Decimal
    actual_total_interest: Decimal
    total_closing_costs: Decimal = ZERO


@dataclass
class HistoryResult:
    segments: List[LoanHistorySegment]
    schedule: List[AmortizationEntry]
    summary: HistorySummary
    original_schedule: List[AmortizationEntry]
