"""
Test suite for payment frequency arithmetic

Tests the annuity formula, per-frequency payment conversion, payments per
year and payment-number to date mapping.
"""

from datetime import date
from decimal import Decimal

import pytest

from mortgage_planner.data_models import (
    ACCELERATED_BI_WEEKLY,
    ACCELERATED_WEEKLY,
    BI_WEEKLY,
    MONTHLY,
    QUARTERLY,
    WEEKLY,
)
from mortgage_planner.frequency import (
    calculate_monthly_payment,
    calculate_periodic_payment,
    first_payment_on_or_after,
    payment_date,
    payments_per_year,
    recurring_payment_date,
)


class TestMonthlyPayment:
    """Test the fixed-rate annuity formula"""

    def test_standard_thirty_year_loan(self):
        payment = calculate_monthly_payment(Decimal("100000"), Decimal("0.06"), Decimal("30"))
        assert abs(payment - Decimal("599.55")) < Decimal("0.01")

    def test_zero_rate_divides_evenly(self):
        payment = calculate_monthly_payment(Decimal("120000"), Decimal("0"), Decimal("10"))
        assert payment == Decimal("1000")

    def test_degenerate_inputs_yield_zero(self):
        assert calculate_monthly_payment(Decimal("0"), Decimal("0.05"), Decimal("25")) == 0
        assert calculate_monthly_payment(Decimal("-5"), Decimal("0.05"), Decimal("25")) == 0
        assert calculate_monthly_payment(Decimal("100000"), Decimal("0.05"), Decimal("0")) == 0

    def test_fractional_term(self):
        whole = calculate_monthly_payment(Decimal("100000"), Decimal("0.05"), Decimal("25"))
        longer = calculate_monthly_payment(Decimal("100000"), Decimal("0.05"), Decimal("25.5"))
        assert longer < whole


class TestPeriodicPayment:
    """Test conversion of the monthly payment per frequency"""

    monthly = Decimal("1300")

    def test_monthly_unchanged(self):
        assert calculate_periodic_payment(self.monthly, MONTHLY) == self.monthly

    def test_weekly_variants(self):
        assert calculate_periodic_payment(self.monthly, WEEKLY) == self.monthly * 12 / 52
        assert calculate_periodic_payment(self.monthly, ACCELERATED_WEEKLY) == Decimal("325")

    def test_bi_weekly_variants(self):
        assert calculate_periodic_payment(self.monthly, BI_WEEKLY) == Decimal("600")
        assert calculate_periodic_payment(self.monthly, ACCELERATED_BI_WEEKLY) == Decimal("650")

    def test_accelerated_pays_thirteen_monthly_payments(self):
        accelerated = calculate_periodic_payment(self.monthly, ACCELERATED_BI_WEEKLY) * 26
        regular = calculate_periodic_payment(self.monthly, BI_WEEKLY) * 26
        assert accelerated == self.monthly * 13
        assert regular == self.monthly * 12
        assert accelerated > regular

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValueError):
            calculate_periodic_payment(self.monthly, "daily")


class TestPaymentDates:
    """Test payments per year and date mapping"""

    def test_payments_per_year(self):
        assert payments_per_year(MONTHLY) == 12
        assert payments_per_year(WEEKLY) == 52
        assert payments_per_year(ACCELERATED_WEEKLY) == 52
        assert payments_per_year(BI_WEEKLY) == 26
        assert payments_per_year(ACCELERATED_BI_WEEKLY) == 26
        with pytest.raises(ValueError):
            payments_per_year(QUARTERLY)

    def test_monthly_dates_clamp_without_drift(self):
        start = date(2024, 1, 31)
        assert payment_date(start, 1, MONTHLY) == date(2024, 2, 29)
        assert payment_date(start, 2, MONTHLY) == date(2024, 3, 31)
        assert payment_date(start, 13, MONTHLY) == date(2025, 2, 28)

    def test_weekly_and_bi_weekly_dates(self):
        start = date(2024, 1, 1)
        assert payment_date(start, 1, WEEKLY) == date(2024, 1, 8)
        assert payment_date(start, 2, ACCELERATED_WEEKLY) == date(2024, 1, 15)
        assert payment_date(start, 1, BI_WEEKLY) == date(2024, 1, 15)
        assert payment_date(start, 3, ACCELERATED_BI_WEEKLY) == date(2024, 2, 12)

    def test_payment_zero_is_start(self):
        start = date(2024, 5, 17)
        assert payment_date(start, 0, MONTHLY) == start

    def test_recurring_cadence(self):
        anchor = date(2024, 1, 15)
        assert recurring_payment_date(anchor, 0, QUARTERLY) == anchor
        assert recurring_payment_date(anchor, 2, QUARTERLY) == date(2024, 7, 15)
        assert recurring_payment_date(anchor, 1, "annually") == date(2025, 1, 15)
        assert recurring_payment_date(anchor, 1, "semi-annually") == date(2024, 7, 15)

    def test_first_payment_on_or_after(self):
        start = date(2024, 1, 1)
        assert first_payment_on_or_after(start, start, MONTHLY) == date(2024, 2, 1)
        assert first_payment_on_or_after(start, date(2024, 2, 10), MONTHLY) == date(2024, 3, 1)
        assert first_payment_on_or_after(start, date(2024, 3, 1), MONTHLY) == date(2024, 3, 1)

    def test_first_payment_passes_over_skipped_dates(self):
        start = date(2024, 1, 1)
        taken = [date(2024, 2, 1), date(2024, 3, 1)]
        assert first_payment_on_or_after(start, start, MONTHLY, taken) == date(2024, 4, 1)
        assert first_payment_on_or_after(start, date(2024, 3, 1), MONTHLY, taken) == date(2024, 4, 1)
