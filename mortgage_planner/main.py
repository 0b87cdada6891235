"""Command-line interface for the mortgage planner.

This module uses the ``click`` library to implement a multi-command interface.
Users can compute full amortization schedules, view summaries, compare up to
three scenarios, replay a loan's history of refinances and renewals or analyze
a refinance. Loans are described either with options or with a scenario JSON
file in the persisted format; results can be printed to the terminal or
exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .comparison import analyze_refinance, compare_scenarios, prepayment_penalty
from .data_models import (
    FIXED,
    MONTHLY,
    PAYMENT_FREQUENCIES,
    RECURRING_FREQUENCIES,
    VARIABLE,
    AmortizationEntry,
    LoanParameters,
    MortgageSummary,
    OneTimePayment,
    RateChange,
    RecurringPayment,
)
from .formatter import print_comparison, print_history, print_refinance, print_schedule, print_summary
from .history import calculate_loan_history
from .orchestrator import generate_schedule_and_summary
from .serialization import (
    SerializationError,
    history_state_from_dict,
    params_from_dict,
    schedule_to_list,
    segment_to_dict,
    summary_to_dict,
)
from .utils import decimal_from_str, parse_iso_date

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def _amount(value: str):
    return decimal_from_str(str(parse_amount(value)))


def _date(value: str, label: str):
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(f"{label}: {exc}")


def parse_recurring_strings(values: Tuple[str, ...]) -> List[RecurringPayment]:
    payments: List[RecurringPayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) < 2 or len(parts) > 4:
            raise click.BadParameter(
                f"Extra payment must be in AMOUNT:FREQUENCY[:START[:END]] format; got {item}"
            )
        frequency = parts[1].lower()
        if frequency not in RECURRING_FREQUENCIES:
            raise click.BadParameter(
                f"Extra payment frequency must be one of {', '.join(RECURRING_FREQUENCIES)}; got {frequency}"
            )
        start = _date(parts[2], "extra payment start") if len(parts) > 2 and parts[2] else None
        end = _date(parts[3], "extra payment end") if len(parts) > 3 and parts[3] else None
        payments.append(
            RecurringPayment(amount=_amount(parts[0]), frequency=frequency, start_date=start, end_date=end)
        )
    return payments


def parse_lump_sum_strings(values: Tuple[str, ...]) -> List[OneTimePayment]:
    payments: List[OneTimePayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Lump sum must be in YYYY-MM-DD:AMOUNT format; got {item}")
        payments.append(OneTimePayment(date=_date(parts[0], "lump sum"), amount=_amount(parts[1])))
    return payments


def parse_rate_change_strings(values: Tuple[str, ...]) -> List[RateChange]:
    changes: List[RateChange] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Rate change must be in YYYY-MM-DD:RATE format; got {item}")
        try:
            rate = decimal_from_str(parts[1].rstrip("%"))
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        changes.append(RateChange(date=_date(parts[0], "rate change"), rate=rate))
    return changes


def parse_ad_hoc_strings(values: Tuple[str, ...]) -> Dict[int, Any]:
    payments: Dict[int, Any] = {}
    for item in values:
        parts = item.split(":")
        if len(parts) != 2 or not parts[0].isdigit():
            raise click.BadParameter(f"Ad-hoc payment must be in NUMBER:AMOUNT format; got {item}")
        payments[int(parts[0])] = _amount(parts[1])
    return payments


def build_params_from_options(
    principal: str,
    rate: float,
    amortization: float,
    term: Optional[float],
    start_date: str,
    frequency: str = MONTHLY,
    extra: Tuple[str, ...] = (),
    lump_sum: Tuple[str, ...] = (),
    ad_hoc: Tuple[str, ...] = (),
    defer: Tuple[str, ...] = (),
    rate_change: Tuple[str, ...] = (),
    increase: Optional[float] = None,
    property_tax: Optional[str] = None,
    insurance: Optional[str] = None,
    pmi: Optional[str] = None,
) -> LoanParameters:
    rate_changes = parse_rate_change_strings(rate_change) if rate_change else []
    return LoanParameters(
        loan_amount=_amount(principal),
        interest_rate=decimal_from_str(str(rate)),
        loan_term=decimal_from_str(str(amortization)),
        term_in_years=decimal_from_str(str(term if term is not None else amortization)),
        start_date=_date(start_date, "start date"),
        payment_frequency=frequency,
        rate_type=VARIABLE if rate_changes else FIXED,
        rate_changes=tuple(rate_changes),
        recurring_payments=tuple(parse_recurring_strings(extra)),
        one_time_payments=tuple(parse_lump_sum_strings(lump_sum)),
        ad_hoc_payments=parse_ad_hoc_strings(ad_hoc),
        deferments=tuple(_date(d, "deferment") for d in defer),
        annual_payment_increase_percentage=decimal_from_str(str(increase or 0)),
        annual_property_tax=_amount(property_tax) if property_tax else decimal_from_str("0"),
        annual_home_insurance=_amount(insurance) if insurance else decimal_from_str("0"),
        monthly_pmi=_amount(pmi) if pmi else decimal_from_str("0"),
    )


def load_json_file(path: str) -> Any:
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(f"Cannot read {path}: {exc}")


def load_scenario_file(path: str) -> LoanParameters:
    logger.debug("Loading scenario from %s", path)
    try:
        return params_from_dict(load_json_file(path))
    except SerializationError as exc:
        raise click.BadParameter(f"Invalid scenario {path}: {exc}")


def export_to_json(path: Path, schedule: List[AmortizationEntry], summary: MortgageSummary) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary_to_dict(summary), "schedule": schedule_to_list(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[AmortizationEntry]) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Payment_Number",
        "Date",
        "Payment",
        "Principal",
        "Interest",
        "Scheduled_Extra",
        "Ad_Hoc",
        "Total_Payment",
        "Remaining_Balance",
        "Deferred",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.payment_number,
                    e.payment_date.isoformat(),
                    float(e.payment),
                    float(e.principal),
                    float(e.interest),
                    float(e.scheduled_extra_payment),
                    float(e.ad_hoc_payment),
                    float(e.total_payment),
                    float(e.remaining_balance),
                    e.is_deferred,
                ]
            )


def loan_options(func):
    """Attach the shared loan-definition options to a command."""
    options = [
        click.option("--scenario", "scenario", type=click.Path(exists=True, dir_okay=False), help="Scenario JSON file; replaces the loan options"),
        click.option("--principal", "-p", "principal", help="Loan amount (e.g. 450k)"),
        click.option("--rate", "-r", "rate", type=float, help="Annual interest rate (percent)"),
        click.option("--amortization", "-a", "amortization", type=float, help="Full amortization in years"),
        click.option("--term", "-t", "term", type=float, help="Rate term in years (defaults to the amortization)"),
        click.option("--start-date", "-s", "start_date", help="Loan start date (YYYY-MM-DD)"),
        click.option("--frequency", "-f", "frequency", type=click.Choice(PAYMENT_FREQUENCIES), default=MONTHLY, help="Payment frequency"),
        click.option("--extra", "extra", multiple=True, help="Recurring extra payment in AMOUNT:FREQUENCY[:START[:END]] format"),
        click.option("--lump-sum", "lump_sum", multiple=True, help="One-time payment in YYYY-MM-DD:AMOUNT format"),
        click.option("--ad-hoc", "ad_hoc", multiple=True, help="Extra amount on a payment number in NUMBER:AMOUNT format"),
        click.option("--defer", "defer", multiple=True, help="Deferred payment date (YYYY-MM-DD)"),
        click.option("--rate-change", "rate_change", multiple=True, help="Variable rate change in YYYY-MM-DD:RATE format"),
        click.option("--increase", "increase", type=float, help="Annual payment increase (percent)"),
        click.option("--property-tax", "property_tax", help="Annual property tax"),
        click.option("--insurance", "insurance", help="Annual home insurance"),
        click.option("--pmi", "pmi", help="Monthly mortgage insurance"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def params_from_options(options: Dict[str, Any]) -> LoanParameters:
    scenario = options.pop("scenario", None)
    if scenario:
        return load_scenario_file(scenario)
    for required in ("principal", "rate", "amortization", "start_date"):
        if options.get(required) is None:
            raise click.BadParameter(f"--{required.replace('_', '-')} is required without --scenario")
    return build_params_from_options(**options)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command-line mortgage planner supporting complex scenarios."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--full", "full", is_flag=True, help="Show the full projection instead of the term")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(full: bool, output: Optional[str], **options: Any) -> None:
    """Compute and print the amortization schedule."""
    params = params_from_options(options)
    result = generate_schedule_and_summary(params)
    entries = result.full_schedule if full else result.schedule
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries, result.summary)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_summary(result.summary)
        # Limit schedule length printed to avoid flooding the terminal
        if len(entries) > MAX_PRINTED_ROWS:
            click.echo(f"Schedule has {len(entries)} rows; showing first {MAX_PRINTED_ROWS} rows.")
            print_schedule(entries[:MAX_PRINTED_ROWS])
        else:
            print_schedule(entries)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary metrics for a loan."""
    params = params_from_options(options)
    summary_data = generate_schedule_and_summary(params).summary
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_to_dict(summary_data)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


@cli.command()
@click.argument("scenario_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
def compare(scenario_files: Tuple[str, ...]) -> None:
    """Compare two or three loan scenarios.

    Scenarios are scenario JSON files, for example:

        mortgage-planner compare current.json weekly.json
    """
    if not 2 <= len(scenario_files) <= 3:
        raise click.BadParameter("Provide two or three scenario files")
    scenarios = [(Path(path).stem, load_scenario_file(path)) for path in scenario_files]
    print_comparison(compare_scenarios(scenarios))


@cli.command()
@click.argument("state_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def history(state_file: str, output: Optional[str]) -> None:
    """Replay a loan history (original loan plus events) from a JSON file."""
    try:
        original, events = history_state_from_dict(load_json_file(state_file))
    except SerializationError as exc:
        raise click.BadParameter(f"Invalid loan history {state_file}: {exc}")
    result = calculate_loan_history(original, events)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            data = {
                "segments": [segment_to_dict(s) for s in result.segments],
                "schedule": schedule_to_list(result.schedule),
            }
            with path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result.schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"History exported to {path}")
    else:
        print_history(result)


@cli.command()
@click.argument("current_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("proposed_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--closing-costs", "closing_costs", default="0", help="Closing costs of the new loan")
@click.option("--posted-rate", "posted_rate", type=float, help="Posted rate for the remaining term, enables the penalty")
@click.option("--remaining-months", "remaining_months", type=int, default=0, help="Months left in the current term")
def refinance(
    current_file: str,
    proposed_file: str,
    closing_costs: str,
    posted_rate: Optional[float],
    remaining_months: int,
) -> None:
    """Analyze refinancing the current scenario into the proposed one."""
    current = load_scenario_file(current_file)
    proposed = load_scenario_file(proposed_file)
    penalty = decimal_from_str("0")
    if posted_rate is not None:
        penalty = prepayment_penalty(
            current.loan_amount, current.interest_rate, decimal_from_str(str(posted_rate)), remaining_months
        )
    analysis = analyze_refinance(
        generate_schedule_and_summary(current).summary,
        generate_schedule_and_summary(proposed).summary,
        closing_costs=_amount(closing_costs),
        penalty=penalty,
    )
    print_refinance(analysis)


if __name__ == "__main__":
    cli()
