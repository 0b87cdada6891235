import os
from datetime import date
from decimal import Decimal

import pytest

# The web app builds its store at import time; keep it in memory for tests.
os.environ.setdefault("SCENARIO_DATABASE_URL", "sqlite://")

from mortgage_planner.data_models import MONTHLY, LoanParameters, OriginalLoan  # noqa: E402


def make_params(**overrides) -> LoanParameters:
    values = dict(
        loan_amount=Decimal("100000"),
        interest_rate=Decimal("6"),
        loan_term=Decimal("30"),
        term_in_years=Decimal("5"),
        start_date=date(2024, 1, 1),
        payment_frequency=MONTHLY,
    )
    values.update(overrides)
    return LoanParameters(**values)


@pytest.fixture
def base_params() -> LoanParameters:
    return make_params()


@pytest.fixture
def original_loan() -> OriginalLoan:
    return OriginalLoan(
        purchase_price=Decimal("350000"),
        down_payment=Decimal("70000"),
        interest_rate=Decimal("3.5"),
        amortization_period=Decimal("25"),
        term=Decimal("5"),
        payment_frequency=MONTHLY,
        start_date=date(2018, 6, 1),
    )
