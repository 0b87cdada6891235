"""Persistence layer for mortgage scenarios and loan history states.

This module abstracts persistence so the web app can keep saved scenarios and
the loan history form in a database instead of browser storage. It defaults to
SQLite for local development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL). Payloads are stored as JSON in the same shape the
serialization module produces. If any saved scenario row no longer parses the
whole saved list is discarded and the caller gets the default scenario.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from mortgage_planner.data_models import ACCELERATED_WEEKLY, FIXED, LoanEvent, LoanParameters, OriginalLoan
from mortgage_planner.serialization import (
    SerializationError,
    history_state_from_dict,
    history_state_to_dict,
    params_from_dict,
    params_to_dict,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


class ScenarioModel(Base):
    __tablename__ = "scenarios"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    params_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LoanHistoryStateModel(Base):
    __tablename__ = "loan_history_states"

    user_token = Column(String(64), primary_key=True)
    state_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


def default_scenario(today: Optional[date] = None) -> LoanParameters:
    """Return the scenario shown when nothing valid has been saved yet."""
    today = today or date.today()
    return LoanParameters(
        loan_amount=Decimal("234000"),
        interest_rate=Decimal("3.85"),
        loan_term=Decimal("25"),
        term_in_years=Decimal("3"),
        start_date=date(today.year, 11, 3),
        payment_frequency=ACCELERATED_WEEKLY,
        rate_type=FIXED,
    )


class ScenarioStore:
    """Database-backed scenario and loan history store."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[ScenarioModel] = session.execute(
                select(ScenarioModel)
                .where(ScenarioModel.user_token == user_token)
                .order_by(ScenarioModel.created_at.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def load_scenarios(self, user_token: str) -> List[Tuple[str, LoanParameters]]:
        """Return the user's scenarios as parameters.

        Falls back to the default scenario when nothing is stored or any
        stored row is malformed.
        """
        try:
            scenarios = [
                (item["name"], params_from_dict(json.loads(item["params_json"])))
                for item in self.list_scenarios(user_token)
            ]
        except (SerializationError, json.JSONDecodeError) as exc:
            logger.error("Discarding malformed scenarios for %s: %s", user_token, exc)
            scenarios = []
        return scenarios or [("Default", default_scenario())]

    def add_scenario(self, user_token: str, scenario_id: str, name: str, params: LoanParameters) -> None:
        if not user_token:
            return
        payload = ScenarioModel(
            id=scenario_id,
            user_token=user_token,
            name=name,
            params_json=json.dumps(params_to_dict(params)),
        )
        with self._session_factory() as session:
            session.add(payload)
            session.commit()
        self._trim_user(user_token)

    def remove_scenario(self, user_token: str, scenario_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            row = session.get(ScenarioModel, scenario_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()

    def clear_scenarios(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                ScenarioModel.__table__.delete().where(ScenarioModel.user_token == user_token)
            )
            session.commit()

    def save_history_state(self, user_token: str, loan: OriginalLoan, events: Iterable[LoanEvent]) -> None:
        if not user_token:
            return
        state_json = json.dumps(history_state_to_dict(loan, events))
        with self._session_factory() as session:
            row = session.get(LoanHistoryStateModel, user_token)
            if row is None:
                session.add(LoanHistoryStateModel(user_token=user_token, state_json=state_json))
            else:
                row.state_json = state_json
            session.commit()

    def load_history_state(self, user_token: str) -> Optional[Tuple[OriginalLoan, List[LoanEvent]]]:
        """Return the saved loan history, or ``None`` when missing or malformed."""
        if not user_token:
            return None
        with self._session_factory() as session:
            row = session.get(LoanHistoryStateModel, user_token)
            if row is None:
                return None
            state_json = row.state_json
        try:
            return history_state_from_dict(json.loads(state_json))
        except (SerializationError, json.JSONDecodeError) as exc:
            logger.error("Discarding malformed loan history for %s: %s", user_token, exc)
            return None

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(ScenarioModel)
                .where(ScenarioModel.user_token == user_token)
                .order_by(ScenarioModel.created_at.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: ScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "params_json": row.params_json,
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: str | None) -> ScenarioStore:
    return ScenarioStore(url or "sqlite:///mortgage_scenarios.sqlite3")
