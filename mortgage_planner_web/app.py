import logging
import os
from uuid import uuid4

from flask import Flask, jsonify, request, session

from mortgage_planner.comparison import compare_scenarios
from mortgage_planner.history import calculate_loan_history
from mortgage_planner.orchestrator import generate_schedule_and_summary
from mortgage_planner.serialization import (
    SerializationError,
    history_state_from_dict,
    history_state_to_dict,
    params_from_dict,
    params_to_dict,
    schedule_to_list,
    segment_to_dict,
    summary_to_dict,
)
from mortgage_planner_web.scenario_store import create_store_from_env

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 120

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
scenario_store = create_store_from_env(os.environ.get("SCENARIO_DATABASE_URL"))


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise SerializationError("Request body must be JSON")
    return data


def _iso(value):
    return value.isoformat() if value else None


@app.errorhandler(SerializationError)
def handle_bad_payload(exc):
    return jsonify({"error": str(exc)}), 400


def _schedule_payload(result, show_full_schedule: bool) -> dict:
    payload = {
        "summary": summary_to_dict(result.summary),
        "baselineSchedule": schedule_to_list(result.baseline_schedule),
    }
    if show_full_schedule:
        payload["schedule"] = schedule_to_list(result.schedule)
        payload["fullSchedule"] = schedule_to_list(result.full_schedule)
    else:
        preview = result.schedule[:PREVIEW_ROWS]
        payload["schedule"] = schedule_to_list(preview)
        if len(result.schedule) > len(preview):
            payload["truncated"] = len(result.schedule) - len(preview)
    return payload


@app.post("/api/schedule")
def schedule():
    params = params_from_dict(_json_body())
    result = generate_schedule_and_summary(params)
    return jsonify(_schedule_payload(result, request.args.get("full") == "1"))


@app.post("/api/history")
def history():
    original, events = history_state_from_dict(_json_body())
    result = calculate_loan_history(original, events)
    return jsonify(
        {
            "segments": [segment_to_dict(s) for s in result.segments],
            "schedule": schedule_to_list(result.schedule),
            "originalSchedule": schedule_to_list(result.original_schedule),
            "summary": {
                "originalPayoffDate": _iso(result.summary.original_payoff_date),
                "actualPayoffDate": _iso(result.summary.actual_payoff_date),
                "originalTotalInterest": float(result.summary.original_total_interest),
                "actualTotalInterest": float(result.summary.actual_total_interest),
                "totalClosingCosts": float(result.summary.total_closing_costs),
            },
        }
    )


@app.post("/api/compare")
def compare():
    data = _json_body()
    if not isinstance(data, list):
        raise SerializationError("Expected a list of scenarios")
    try:
        scenarios = [
            (item.get("name") or f"Scenario {index + 1}", params_from_dict(item.get("params")))
            for index, item in enumerate(data)
        ]
        rows = compare_scenarios(scenarios)
    except AttributeError:
        raise SerializationError("Each scenario must be an object with 'name' and 'params'")
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(
        [
            {
                "name": row.name,
                "periodicPayment": float(row.periodic_payment),
                "totalMonthlyPITIEquivalent": float(row.total_monthly_piti_equivalent),
                "totalInterest": float(row.total_interest),
                "totalInterestOverTerm": float(row.total_interest_over_term),
                "totalPaid": float(row.total_paid),
                "payoffDate": _iso(row.payoff_date),
                "interestSavedLifetime": float(row.interest_saved_lifetime),
                "balanceAtEndOfTerm": float(row.balance_at_end_of_term),
            }
            for row in rows
        ]
    )


@app.get("/api/scenarios")
def list_scenarios():
    user_token = _ensure_user_token()
    saved = scenario_store.list_scenarios(user_token)
    scenarios = scenario_store.load_scenarios(user_token)
    return jsonify(
        {
            "saved": [{"id": s["id"], "name": s["name"], "createdAt": s["created_at"]} for s in saved],
            "scenarios": [{"name": name, "params": params_to_dict(params)} for name, params in scenarios],
        }
    )


@app.post("/api/scenarios")
def add_scenario():
    user_token = _ensure_user_token()
    data = _json_body()
    if not isinstance(data, dict):
        raise SerializationError("Expected a scenario object")
    params = params_from_dict(data.get("params"))
    scenario_id = uuid4().hex
    scenario_store.add_scenario(user_token, scenario_id, data.get("name") or "Scenario", params)
    return jsonify({"id": scenario_id}), 201


@app.delete("/api/scenarios/<scenario_id>")
def remove_scenario(scenario_id):
    scenario_store.remove_scenario(session.get("user_token"), scenario_id)
    return "", 204


@app.delete("/api/scenarios")
def clear_scenarios():
    scenario_store.clear_scenarios(session.get("user_token"))
    return "", 204


@app.get("/api/history-state")
def get_history_state():
    state = scenario_store.load_history_state(_ensure_user_token())
    if state is None:
        return jsonify(None)
    loan, events = state
    return jsonify(history_state_to_dict(loan, events))


@app.put("/api/history-state")
def put_history_state():
    loan, events = history_state_from_dict(_json_body())
    scenario_store.save_history_state(_ensure_user_token(), loan, events)
    return "", 204


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting Mortgage Planner web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
