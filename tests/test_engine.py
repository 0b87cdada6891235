"""
Test suite for the single-segment amortization engine

Tests cover:
- Standard fixed-rate amortization
- Recurring, one-time and ad-hoc extra payments
- Deferments, annual payment increases and variable rate changes
- Final-period handling and the iteration cap
"""

from datetime import date
from decimal import Decimal

from conftest import make_params
from mortgage_planner.data_models import (
    ACCELERATED_BI_WEEKLY,
    BI_WEEKLY,
    MONTHLY,
    QUARTERLY,
    VARIABLE,
    WEEKLY,
    OneTimePayment,
    RateChange,
    RecurringPayment,
)
from mortgage_planner.engine import advance_recurring, compute_segment, max_payments
from mortgage_planner.frequency import payment_date

CENT = Decimal("0.01")


def _principal_repaid(schedule):
    return sum(e.principal + e.scheduled_extra_payment + e.ad_hoc_payment for e in schedule)


class TestStandardAmortization:
    """Test a plain fixed-rate loan"""

    def test_thirty_year_schedule(self, base_params):
        schedule, summary = compute_segment(base_params)

        assert len(schedule) == 360
        assert abs(summary.periodic_payment - Decimal("599.55")) < CENT
        assert summary.payoff_date == date(2054, 1, 1)
        assert summary.loan_term_months == 360
        assert summary.converged is True
        assert summary.balance_at_end_of_term == 0

    def test_first_period_split(self, base_params):
        schedule, summary = compute_segment(base_params)
        first = schedule[0]

        assert first.payment_number == 1
        assert first.payment_date == date(2024, 2, 1)
        assert first.interest == Decimal("500")
        assert abs(first.principal - Decimal("99.55")) < CENT
        assert first.total_payment == summary.periodic_payment

    def test_balance_reaches_zero_exactly(self, base_params):
        schedule, summary = compute_segment(base_params)

        assert schedule[-1].remaining_balance == 0
        assert abs(_principal_repaid(schedule) - base_params.loan_amount) < CENT
        assert abs(summary.total_paid - (base_params.loan_amount + summary.total_interest)) < CENT

    def test_balances_decrease_monotonically(self, base_params):
        schedule, _ = compute_segment(base_params)
        balances = [e.remaining_balance for e in schedule]
        assert balances == sorted(balances, reverse=True)

    def test_zero_rate_loan(self):
        params = make_params(loan_amount=Decimal("120000"), interest_rate=Decimal("0"), loan_term=Decimal("10"))
        schedule, summary = compute_segment(params)

        assert len(schedule) == 120
        assert summary.periodic_payment == Decimal("1000")
        assert summary.total_interest == 0
        assert all(e.interest == 0 for e in schedule)

    def test_invalid_inputs_yield_empty_result(self):
        for params in (
            make_params(loan_amount=Decimal("0")),
            make_params(interest_rate=Decimal("-1")),
            make_params(loan_term=Decimal("0")),
            make_params(start_date=None),
        ):
            schedule, summary = compute_segment(params)
            assert schedule == []
            assert summary.total_paid == 0
            assert summary.payoff_date is None

    def test_accelerated_bi_weekly_pays_off_sooner(self):
        _, regular = compute_segment(make_params(payment_frequency=BI_WEEKLY))
        _, accelerated = compute_segment(make_params(payment_frequency=ACCELERATED_BI_WEEKLY))

        assert accelerated.payoff_date < regular.payoff_date
        assert accelerated.total_interest < regular.total_interest

    def test_weekly_and_bi_weekly_finish_just_early(self):
        # payments converted from the monthly annuity slightly overpay at rate/52 and rate/26
        weekly, _ = compute_segment(make_params(payment_frequency=WEEKLY))
        bi_weekly, _ = compute_segment(make_params(payment_frequency=BI_WEEKLY))

        assert len(weekly) == 1558
        assert len(bi_weekly) == 779
        assert weekly[-1].remaining_balance == 0
        assert bi_weekly[-1].remaining_balance == 0

    def test_iteration_cap(self):
        assert max_payments(Decimal("30"), MONTHLY) == 720
        assert max_payments(Decimal("1.5"), BI_WEEKLY) == 78
        assert max_payments(25, MONTHLY) == 600


class TestExtraPayments:
    """Test recurring, one-time and ad-hoc extra payments"""

    def test_ad_hoc_payment_shortens_loan(self, base_params):
        _, baseline = compute_segment(base_params)
        schedule, summary = compute_segment(make_params(ad_hoc_payments={12: Decimal("20000")}))

        assert schedule[11].ad_hoc_payment == Decimal("20000")
        assert schedule[11].total_payment == summary.periodic_payment + Decimal("20000")
        assert summary.total_interest < baseline.total_interest
        assert summary.payoff_date < baseline.payoff_date
        assert summary.total_extra_payments == Decimal("20000")

    def test_monthly_recurring_payment_every_period(self):
        params = make_params(recurring_payments=(RecurringPayment(Decimal("100"), MONTHLY),))
        schedule, summary = compute_segment(params)

        assert all(e.scheduled_extra_payment == Decimal("100") for e in schedule[:-1])
        assert schedule[-1].scheduled_extra_payment <= Decimal("100")
        assert len(schedule) < 360
        assert summary.extra_payments_by_year[2024] == Decimal("1100")
        assert summary.extra_payments_by_year[2025] == Decimal("1200")

    def test_recurring_payment_window(self):
        params = make_params(
            recurring_payments=(
                RecurringPayment(
                    Decimal("100"),
                    MONTHLY,
                    start_date=date(2024, 3, 1),
                    end_date=date(2024, 5, 1),
                ),
            )
        )
        schedule, _ = compute_segment(params)
        paying = [e.payment_number for e in schedule if e.scheduled_extra_payment > 0]
        assert paying == [2, 3, 4]

    def test_quarterly_recurring_payment(self):
        params = make_params(recurring_payments=(RecurringPayment(Decimal("500"), QUARTERLY),))
        schedule, _ = compute_segment(params)
        paying = [e.payment_number for e in schedule[:12] if e.scheduled_extra_payment > 0]
        assert paying == [3, 6, 9, 12]

    def test_one_time_payment_lands_in_following_period(self):
        params = make_params(one_time_payments=(OneTimePayment(date(2024, 2, 15), Decimal("5000")),))
        schedule, _ = compute_segment(params)

        assert schedule[1].payment_date == date(2024, 3, 1)
        assert schedule[1].scheduled_extra_payment == Decimal("5000")
        assert sum(e.scheduled_extra_payment for e in schedule) == Decimal("5000")

    def test_final_period_caps_extras(self):
        params = make_params(
            loan_amount=Decimal("10000"),
            loan_term=Decimal("1"),
            ad_hoc_payments={1: Decimal("50000")},
        )
        schedule, summary = compute_segment(params)

        assert len(schedule) == 1
        final = schedule[0]
        assert final.remaining_balance == 0
        assert abs(final.principal + final.ad_hoc_payment - Decimal("10000")) < CENT
        assert final.ad_hoc_payment < Decimal("50000")
        assert final.total_payment == final.payment + final.ad_hoc_payment
        assert summary.payoff_date == date(2024, 2, 1)


class TestScheduleAdjustments:
    """Test deferments, payment increases and rate changes"""

    def test_deferment_capitalizes_interest(self, base_params):
        params = make_params(deferments=(date(2024, 4, 1),))
        schedule, _ = compute_segment(params)
        before, deferred = schedule[1], schedule[2]

        assert deferred.payment_date == date(2024, 4, 1)
        assert deferred.is_deferred is True
        assert deferred.payment == 0
        assert deferred.principal == 0
        assert deferred.total_payment == 0
        assert deferred.remaining_balance == before.remaining_balance + deferred.interest

        _, baseline = compute_segment(base_params)
        _, summary = compute_segment(params)
        assert summary.total_interest > baseline.total_interest

    def test_annual_payment_increase(self):
        params = make_params(annual_payment_increase_percentage=Decimal("10"))
        schedule, _ = compute_segment(params)

        assert schedule[10].payment == schedule[0].payment
        assert schedule[11].payment_date == date(2025, 1, 1)
        assert schedule[11].payment == schedule[10].payment * Decimal("1.1")
        assert len(schedule) < 360

    def test_variable_rate_change_reamortizes(self):
        params = make_params(
            rate_type=VARIABLE,
            rate_changes=(RateChange(date(2025, 1, 1), Decimal("8")),),
        )
        schedule, summary = compute_segment(params)
        changed = schedule[11]

        assert changed.payment > schedule[10].payment
        assert changed.interest == schedule[10].remaining_balance * Decimal("0.08") / 12
        assert summary.payoff_date == date(2054, 1, 1)

    def test_rate_changes_ignored_for_fixed_rate(self, base_params):
        params = make_params(rate_changes=(RateChange(date(2025, 1, 1), Decimal("8")),))
        _, fixed = compute_segment(params)
        _, baseline = compute_segment(base_params)
        assert fixed.total_interest == baseline.total_interest

    def test_iteration_cap_reports_non_convergence(self):
        start = date(2024, 1, 1)
        params = make_params(
            loan_term=Decimal("1"),
            deferments=tuple(payment_date(start, k, MONTHLY) for k in range(1, 14)),
        )
        schedule, summary = compute_segment(params)

        assert len(schedule) == 24
        assert summary.payoff_date is None
        assert summary.converged is False
        assert summary.balance_at_end_of_term > 0
        assert summary.loan_term_months == 12


class TestAdvanceRecurring:
    """Test the immutable recurring payment cursors"""

    def test_cursors_consume_occurrences(self):
        payments = (RecurringPayment(Decimal("50"), MONTHLY),)
        anchors = (date(2024, 1, 1),)

        cursors, due = advance_recurring(payments, (0,), anchors, date(2024, 1, 1), date(2024, 2, 1))
        assert due == Decimal("50")
        assert cursors == (2,)

        cursors, due = advance_recurring(payments, cursors, anchors, date(2024, 2, 1), date(2024, 3, 1))
        assert due == Decimal("50")
        assert cursors == (3,)

    def test_input_cursors_are_not_mutated(self):
        payments = (RecurringPayment(Decimal("50"), MONTHLY),)
        original = (0,)
        advance_recurring(payments, original, (date(2024, 1, 1),), date(2024, 1, 1), date(2024, 6, 1))
        assert original == (0,)

    def test_zero_amount_is_skipped(self):
        payments = (RecurringPayment(Decimal("0"), MONTHLY),)
        cursors, due = advance_recurring(payments, (0,), (date(2024, 1, 1),), date(2024, 1, 1), date(2024, 2, 1))
        assert due == 0
        assert cursors == (0,)
