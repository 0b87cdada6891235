"""JSON-compatible (de)serialization of mortgage planner records.

Scenarios and loan history states are stored as plain dictionaries with
camel-case keys (``loanAmount``, ``interestRate``...), ISO ``YYYY-MM-DD``
dates and numbers as-is, the same shape browser clients keep in local
storage. Deserializers raise ``SerializationError`` on structurally malformed
data; an unparseable loan start date is not an error, it simply produces
parameters the orchestrator rejects with an empty result.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .data_models import (
    EVENT_TYPES,
    FIXED,
    LUMP_SUM,
    MISSED_PAYMENT,
    MONTHLY,
    PAYMENT_FREQUENCIES,
    RATE_TYPES,
    RECURRING_FREQUENCIES,
    REFINANCE,
    RENEWAL,
    AmortizationEntry,
    LoanEvent,
    LoanHistorySegment,
    LoanParameters,
    LumpSumDetails,
    MissedPaymentDetails,
    MortgageSummary,
    OneTimePayment,
    OriginalLoan,
    RateChange,
    RecurringPayment,
    RefinanceDetails,
    RenewalDetails,
)
from .utils import parse_iso_date, parse_optional_date, to_decimal


class SerializationError(ValueError):
    """Raised when persisted data does not have the expected shape."""


def _number(value: Decimal) -> float:
    return float(value)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _require(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise SerializationError(f"Expected an object, got {type(data).__name__}")
    if key not in data or data[key] is None:
        raise SerializationError(f"Missing required field '{key}'")
    return data[key]


def _decimal(data: Mapping[str, Any], key: str, default: Optional[Decimal] = None) -> Decimal:
    value = data.get(key) if isinstance(data, Mapping) else None
    if value is None or value == "":
        if default is None:
            raise SerializationError(f"Missing required field '{key}'")
        return default
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise SerializationError(f"Field '{key}' is not a number: {value!r}") from exc


def _date_value(value: Any, label: str) -> date:
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise SerializationError(f"Field '{label}' is not a date: {value!r}") from exc


def _date(data: Mapping[str, Any], key: str) -> date:
    return _date_value(_require(data, key), key)


def _optional_date(data: Mapping[str, Any], key: str) -> Optional[date]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return _date_value(value, key)


def _choice(value: Any, choices: Tuple[str, ...], label: str) -> str:
    if value not in choices:
        raise SerializationError(f"Unknown {label}: {value!r}")
    return value


def _list(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise SerializationError(f"Field '{key}' must be a list")
    return value


# --- Loan parameters ------------------------------------------------------


def params_to_dict(params: LoanParameters) -> Dict[str, Any]:
    return {
        "loanAmount": _number(params.loan_amount),
        "interestRate": _number(params.interest_rate),
        "loanTerm": _number(params.loan_term),
        "termInYears": _number(params.term_in_years),
        "startDate": _iso(params.start_date),
        "paymentFrequency": params.payment_frequency,
        "rateType": params.rate_type,
        "rateChanges": [
            {"date": c.date.isoformat(), "rate": _number(c.rate)} for c in params.rate_changes
        ],
        "recurringPayments": [
            {
                "amount": _number(p.amount),
                "frequency": p.frequency,
                "startDate": _iso(p.start_date),
                "endDate": _iso(p.end_date),
            }
            for p in params.recurring_payments
        ],
        "oneTimePayments": [
            {"date": p.date.isoformat(), "amount": _number(p.amount)} for p in params.one_time_payments
        ],
        "adHocPayments": {str(k): _number(v) for k, v in sorted(params.ad_hoc_payments.items())},
        "deferments": [d.isoformat() for d in params.deferments],
        "annualPaymentIncreasePercentage": _number(params.annual_payment_increase_percentage),
        "annualPropertyTax": _number(params.annual_property_tax),
        "annualHomeInsurance": _number(params.annual_home_insurance),
        "monthlyPMI": _number(params.monthly_pmi),
    }


def _recurring_from_dict(data: Mapping[str, Any]) -> RecurringPayment:
    return RecurringPayment(
        amount=_decimal(data, "amount"),
        frequency=_choice(_require(data, "frequency"), RECURRING_FREQUENCIES, "recurring frequency"),
        start_date=_optional_date(data, "startDate"),
        end_date=_optional_date(data, "endDate"),
    )


def _ad_hoc_from_dict(value: Any) -> Dict[int, Decimal]:
    if not value:
        return {}
    if not isinstance(value, Mapping):
        raise SerializationError("Field 'adHocPayments' must be an object")
    payments: Dict[int, Decimal] = {}
    for key, amount in value.items():
        try:
            payments[int(key)] = to_decimal(amount)
        except ValueError as exc:
            raise SerializationError(f"Invalid ad-hoc payment {key!r}: {amount!r}") from exc
    return payments


def params_from_dict(data: Mapping[str, Any]) -> LoanParameters:
    """Build ``LoanParameters`` from a dictionary produced by ``params_to_dict``.

    Missing optional fields take their defaults; ``termInYears`` defaults to
    the full amortization.
    """
    if not isinstance(data, Mapping):
        raise SerializationError("Loan parameters must be an object")
    loan_term = _decimal(data, "loanTerm")
    return LoanParameters(
        loan_amount=_decimal(data, "loanAmount"),
        interest_rate=_decimal(data, "interestRate"),
        loan_term=loan_term,
        term_in_years=_decimal(data, "termInYears", loan_term),
        start_date=parse_optional_date(data.get("startDate")),
        payment_frequency=_choice(
            data.get("paymentFrequency") or MONTHLY, PAYMENT_FREQUENCIES, "payment frequency"
        ),
        rate_type=_choice(data.get("rateType") or FIXED, RATE_TYPES, "rate type"),
        rate_changes=tuple(
            RateChange(date=_date(c, "date"), rate=_decimal(c, "rate")) for c in _list(data, "rateChanges")
        ),
        recurring_payments=tuple(_recurring_from_dict(p) for p in _list(data, "recurringPayments")),
        one_time_payments=tuple(
            OneTimePayment(date=_date(p, "date"), amount=_decimal(p, "amount"))
            for p in _list(data, "oneTimePayments")
        ),
        ad_hoc_payments=_ad_hoc_from_dict(data.get("adHocPayments")),
        deferments=tuple(_date_value(d, "deferments") for d in _list(data, "deferments")),
        annual_payment_increase_percentage=_decimal(data, "annualPaymentIncreasePercentage", Decimal(0)),
        annual_property_tax=_decimal(data, "annualPropertyTax", Decimal(0)),
        annual_home_insurance=_decimal(data, "annualHomeInsurance", Decimal(0)),
        monthly_pmi=_decimal(data, "monthlyPMI", Decimal(0)),
    )


# --- Loan events ----------------------------------------------------------


def event_to_dict(event: LoanEvent) -> Dict[str, Any]:
    details = event.details
    if event.type == REFINANCE:
        payload = {
            "newInterestRate": _number(details.new_interest_rate),
            "newLoanTerm": _number(details.new_loan_term),
            "cashOutAmount": _number(details.cash_out_amount),
            "closingCosts": _number(details.closing_costs),
        }
        if details.new_payment_frequency:
            payload["newPaymentFrequency"] = details.new_payment_frequency
    elif event.type == RENEWAL:
        payload = {
            "newInterestRate": _number(details.new_interest_rate),
            "newTerm": _number(details.new_term),
        }
        if details.new_payment_frequency:
            payload["newPaymentFrequency"] = details.new_payment_frequency
    elif event.type == LUMP_SUM:
        payload = {"amount": _number(details.amount)}
    else:
        payload = {}
    return {"id": event.id, "date": event.date.isoformat(), "type": event.type, "details": payload}


def _optional_frequency(details: Mapping[str, Any]) -> Optional[str]:
    value = details.get("newPaymentFrequency")
    if not value:
        return None
    return _choice(value, PAYMENT_FREQUENCIES, "payment frequency")


def event_from_dict(data: Mapping[str, Any]) -> LoanEvent:
    event_type = _choice(_require(data, "type"), EVENT_TYPES, "event type")
    details = data.get("details") or {}
    if not isinstance(details, Mapping):
        raise SerializationError("Event details must be an object")
    if event_type == REFINANCE:
        parsed = RefinanceDetails(
            new_interest_rate=_decimal(details, "newInterestRate"),
            new_loan_term=_decimal(details, "newLoanTerm"),
            cash_out_amount=_decimal(details, "cashOutAmount", Decimal(0)),
            closing_costs=_decimal(details, "closingCosts", Decimal(0)),
            new_payment_frequency=_optional_frequency(details),
        )
    elif event_type == RENEWAL:
        parsed = RenewalDetails(
            new_interest_rate=_decimal(details, "newInterestRate"),
            new_term=_decimal(details, "newTerm", Decimal(0)),
            new_payment_frequency=_optional_frequency(details),
        )
    elif event_type == LUMP_SUM:
        parsed = LumpSumDetails(amount=_decimal(details, "amount"))
    else:
        parsed = MissedPaymentDetails()
    return LoanEvent(id=str(_require(data, "id")), date=_date(data, "date"), details=parsed)


def events_to_list(events: Iterable[LoanEvent]) -> List[Dict[str, Any]]:
    return [event_to_dict(e) for e in events]


def events_from_list(data: Any) -> List[LoanEvent]:
    if not isinstance(data, list):
        raise SerializationError("Events must be a list")
    return [event_from_dict(item) for item in data]


# --- Loan history state ---------------------------------------------------


def original_loan_to_dict(loan: OriginalLoan) -> Dict[str, Any]:
    return {
        "purchasePrice": _number(loan.purchase_price),
        "downPayment": _number(loan.down_payment),
        "interestRate": _number(loan.interest_rate),
        "amortizationPeriod": _number(loan.amortization_period),
        "term": _number(loan.term),
        "paymentFrequency": loan.payment_frequency,
        "startDate": loan.start_date.isoformat(),
    }


def original_loan_from_dict(data: Mapping[str, Any]) -> OriginalLoan:
    return OriginalLoan(
        purchase_price=_decimal(data, "purchasePrice"),
        down_payment=_decimal(data, "downPayment", Decimal(0)),
        interest_rate=_decimal(data, "interestRate"),
        amortization_period=_decimal(data, "amortizationPeriod"),
        term=_decimal(data, "term", Decimal(0)),
        payment_frequency=_choice(
            data.get("paymentFrequency") or MONTHLY, PAYMENT_FREQUENCIES, "payment frequency"
        ),
        start_date=_date(data, "startDate"),
    )


def history_state_to_dict(loan: OriginalLoan, events: Iterable[LoanEvent]) -> Dict[str, Any]:
    return {"form": original_loan_to_dict(loan), "events": events_to_list(events)}


def history_state_from_dict(data: Any) -> Tuple[OriginalLoan, List[LoanEvent]]:
    if not isinstance(data, Mapping) or not isinstance(data.get("form"), Mapping):
        raise SerializationError("Loan history state must contain a 'form' object")
    return original_loan_from_dict(data["form"]), events_from_list(data.get("events", []))


# --- Results --------------------------------------------------------------


def entry_to_dict(entry: AmortizationEntry) -> Dict[str, Any]:
    return {
        "paymentNumber": entry.payment_number,
        "paymentDate": entry.payment_date.isoformat(),
        "payment": _number(entry.payment),
        "principal": _number(entry.principal),
        "interest": _number(entry.interest),
        "scheduledExtraPayment": _number(entry.scheduled_extra_payment),
        "adHocPayment": _number(entry.ad_hoc_payment),
        "totalPayment": _number(entry.total_payment),
        "remainingBalance": _number(entry.remaining_balance),
        "isDeferred": entry.is_deferred,
    }


def schedule_to_list(schedule: Iterable[AmortizationEntry]) -> List[Dict[str, Any]]:
    return [entry_to_dict(e) for e in schedule]


def summary_to_dict(summary: MortgageSummary) -> Dict[str, Any]:
    return {
        "periodicPayment": _number(summary.periodic_payment),
        "totalPeriodicPITI": _number(summary.total_periodic_piti),
        "totalMonthlyPITIEquivalent": _number(summary.total_monthly_piti_equivalent),
        "totalPaid": _number(summary.total_paid),
        "totalInterest": _number(summary.total_interest),
        "totalLifetimeCost": _number(summary.total_lifetime_cost),
        "totalTaxesAndInsurance": _number(summary.total_taxes_and_insurance),
        "totalPaidOverTerm": _number(summary.total_paid_over_term),
        "totalTaxesAndInsuranceOverTerm": _number(summary.total_taxes_and_insurance_over_term),
        "totalInterestOverTerm": _number(summary.total_interest_over_term),
        "totalExtraPayments": _number(summary.total_extra_payments),
        "totalExtraPaymentsOverTerm": _number(summary.total_extra_payments_over_term),
        "payoffDate": _iso(summary.payoff_date),
        "originalPayoffDate": _iso(summary.original_payoff_date),
        "loanTermMonths": summary.loan_term_months,
        "balanceAtEndOfTerm": _number(summary.balance_at_end_of_term),
        "interestSavedLifetime": _number(summary.interest_saved_lifetime),
        "interestSavedOverTerm": _number(summary.interest_saved_over_term),
        "timeSaved": {"years": summary.time_saved.years, "months": summary.time_saved.months},
        "extraPaymentsByYear": {
            str(year): _number(amount) for year, amount in sorted(summary.extra_payments_by_year.items())
        },
        "baselineTotalInterest": _number(summary.baseline_total_interest),
        "baselineTotalInterestOverTerm": _number(summary.baseline_total_interest_over_term),
        "baselineTotalLifetimeCost": _number(summary.baseline_total_lifetime_cost),
        "baselineTotalCostOverTerm": _number(summary.baseline_total_cost_over_term),
        "converged": summary.converged,
    }


def segment_to_dict(segment: LoanHistorySegment) -> Dict[str, Any]:
    return {
        "startDate": segment.start_date.isoformat(),
        "endDate": segment.end_date.isoformat(),
        "startingBalance": _number(segment.starting_balance),
        "endingBalance": _number(segment.ending_balance),
        "interestRate": _number(segment.interest_rate),
        "periodicPayment": _number(segment.periodic_payment),
        "paymentFrequency": segment.payment_frequency,
        "event": event_to_dict(segment.event) if segment.event else None,
    }
