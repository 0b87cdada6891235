"""
Test suite for the SQLAlchemy scenario and loan history store
"""

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_params
from mortgage_planner.data_models import ACCELERATED_WEEKLY, LoanEvent, LumpSumDetails
from mortgage_planner_web.scenario_store import (
    LoanHistoryStateModel,
    ScenarioModel,
    ScenarioStore,
    default_scenario,
)


@pytest.fixture
def store():
    return ScenarioStore("sqlite://", max_per_user=3)


class TestDefaultScenario:
    def test_default_values(self):
        params = default_scenario(today=date(2025, 6, 1))

        assert params.loan_amount == Decimal("234000")
        assert params.interest_rate == Decimal("3.85")
        assert params.loan_term == Decimal("25")
        assert params.term_in_years == Decimal("3")
        assert params.payment_frequency == ACCELERATED_WEEKLY
        assert params.start_date == date(2025, 11, 3)


class TestScenarios:
    """Test saving and loading scenarios"""

    def test_empty_store_falls_back_to_default(self, store):
        scenarios = store.load_scenarios("user-1")
        assert len(scenarios) == 1
        name, params = scenarios[0]
        assert name == "Default"
        assert params.loan_amount == Decimal("234000")

    def test_add_and_load(self, store):
        params = make_params(ad_hoc_payments={6: Decimal("2500")})
        store.add_scenario("user-1", "a", "Base", params)

        assert store.load_scenarios("user-1") == [("Base", params)]
        assert [s["id"] for s in store.list_scenarios("user-1")] == ["a"]
        assert store.list_scenarios("user-2") == []

    def test_trims_to_max_per_user(self, store):
        for index in range(5):
            store.add_scenario("user-1", f"s{index}", f"Scenario {index}", make_params())
        assert len(store.list_scenarios("user-1")) == 3

    def test_remove_and_clear(self, store):
        store.add_scenario("user-1", "a", "A", make_params())
        store.add_scenario("user-1", "b", "B", make_params())

        store.remove_scenario("user-2", "a")
        assert len(store.list_scenarios("user-1")) == 2

        store.remove_scenario("user-1", "a")
        assert [s["id"] for s in store.list_scenarios("user-1")] == ["b"]

        store.clear_scenarios("user-1")
        assert store.list_scenarios("user-1") == []

    def test_malformed_row_falls_back_to_default(self, store):
        store.add_scenario("user-1", "a", "Good", make_params())
        with store._session_factory() as session:
            session.add(ScenarioModel(id="bad", user_token="user-1", name="Bad", params_json='{"loanTerm": 5}'))
            session.commit()

        scenarios = store.load_scenarios("user-1")
        assert [name for name, _ in scenarios] == ["Default"]

    def test_missing_user_token_is_ignored(self, store):
        store.add_scenario("", "a", "A", make_params())
        assert store.list_scenarios("") == []


class TestHistoryState:
    """Test the saved loan history form"""

    def test_save_and_load(self, store, original_loan):
        events = [LoanEvent(id="lump", date=date(2020, 1, 15), details=LumpSumDetails(Decimal("10000")))]
        store.save_history_state("user-1", original_loan, events)
        assert store.load_history_state("user-1") == (original_loan, events)

        store.save_history_state("user-1", original_loan, [])
        assert store.load_history_state("user-1") == (original_loan, [])

    def test_missing_state(self, store):
        assert store.load_history_state("user-1") is None

    def test_malformed_state(self, store):
        with store._session_factory() as session:
            session.add(LoanHistoryStateModel(user_token="user-1", state_json="{not json"))
            session.commit()
        assert store.load_history_state("user-1") is None
