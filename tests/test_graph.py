"""End-to-end tests for the question pipeline graph."""

from __future__ import annotations

from agent.graph import route_after_node, run_question, stream_question
from agent.state import create_initial_state


def test_total_revenue(sales_csv) -> None:
    state = run_question(sales_csv, "What is the total revenue?")
    response = state["response"]

    assert response["is_error"] is False
    assert response["intent"] == "aggregate_sum"
    assert response["confidence"] == "high"
    assert response["resolution"]["metric"] == "revenue"
    assert response["result"] == {
        "type": "scalar",
        "data": 4740.0,
        "metadata": {
            "metric": "revenue",
            "dimension": None,
            "time_column": "order_date",
            "intent": "aggregate_sum",
            "values_used": 60,
        },
    }
    assert response["quality_warnings"] == []


def test_average_price_by_category(sales_csv) -> None:
    response = run_question(sales_csv, "average price by category")["response"]

    assert response["is_error"] is False
    assert response["intent"] == "group_by"
    assert response["result"]["type"] == "table"
    rows = response["result"]["data"]
    assert rows[0] == {"category": "Home", "total": 328.0}
    assert [r["total"] for r in rows] == sorted((r["total"] for r in rows), reverse=True)


def test_summing_a_categorical_column_is_refused(sales_csv) -> None:
    state = run_question(sales_csv, "sum of category")
    response = state["response"]

    assert response["is_error"] is True
    assert response["error_type"] == "SEMANTIC_VIOLATION"
    assert response["failed_node"] == "guard"
    assert "categorical" in response["error_message"]
    assert response["guard_result"]["column"] == "category"
    assert response["guard_result"]["suggested_alternatives"] == ["count", "group_by", "distribution"]
    assert "result" not in response
    assert state.get("analysis_result") is None


def test_averaging_a_day_of_month_is_refused(flights_csv) -> None:
    response = run_question(flights_csv, "what is the average date_of_journey")["response"]

    assert response["is_error"] is True
    assert response["error_type"] == "SEMANTIC_VIOLATION"
    assert response["guard_result"]["semantic_type"] == "date"
    assert response["guard_result"]["attempted_operation"] == "average"


def test_small_dataset_carries_low_row_count_warning(make_sales_csv) -> None:
    response = run_question(make_sales_csv(30), "What is the total revenue?")["response"]

    codes = [w["code"] for w in response["quality_warnings"]]
    assert response["is_error"] is False
    assert codes == ["LOW_ROW_COUNT"]
    assert response["quality_warnings"][0]["severity"] == "medium"


def test_count_question(sales_csv) -> None:
    response = run_question(sales_csv, "How many orders are there?")["response"]

    assert response["intent"] == "aggregate_count"
    assert response["result"]["data"] == 60


def test_monthly_time_series(sales_csv) -> None:
    response = run_question(sales_csv, "revenue over time", bucket="month")["response"]

    assert response["result"]["type"] == "series"
    assert [p["time_bucket"] for p in response["result"]["data"]] == ["2024-01", "2024-02"]


def test_unsupported_question(sales_csv) -> None:
    response = run_question(sales_csv, "tell me a joke")["response"]

    assert response["error_type"] == "UNSUPPORTED_QUERY"
    assert response["failed_node"] == "classify"
    assert response["recovery_hint"]


def test_too_short_question(sales_csv) -> None:
    response = run_question(sales_csv, "hi")["response"]

    assert response["error_type"] == "INVALID_QUESTION"


def test_missing_dimension(sales_csv) -> None:
    response = run_question(sales_csv, "total revenue by planet")["response"]

    assert response["error_type"] == "DIMENSION_NOT_FOUND"
    assert response["failed_node"] == "resolve"


def test_time_series_without_date_column(flights_csv) -> None:
    response = run_question(flights_csv, "price over time")["response"]

    assert response["error_type"] == "TIME_COLUMN_NOT_FOUND"


def test_malformed_file(write_csv) -> None:
    response = run_question(write_csv("a,b\n1,2\n3,4,5\n"), "What is the total a?")["response"]

    assert response["error_type"] == "DATA_INVALID"
    assert response["error_code"] == "MALFORMED_ROW"
    assert response["failed_node"] == "ingest"


def test_unsupported_file_type(tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("a\n1\n")

    response = run_question(path, "What is the total a?")["response"]

    assert response["error_type"] == "DATA_INVALID"
    assert "Invalid file type" in response["error_message"]


def test_progress_callback_sees_every_node(sales_csv) -> None:
    events = []

    run_question(sales_csv, "What is the total revenue?", progress_callback=events.append)

    completed = [e["node"] for e in events if e["status"] == "complete"]
    assert completed == ["ingest", "profile", "check_quality", "classify", "resolve", "guard", "execute"]
    assert events[-1]["progress"] == 1.0


def test_failing_callback_does_not_break_the_pipeline(sales_csv) -> None:
    def explode(_event: dict) -> None:
        raise RuntimeError("ui went away")

    response = run_question(sales_csv, "What is the total revenue?", progress_callback=explode)["response"]

    assert response["is_error"] is False


def test_stream_yields_nodes_in_order(sales_csv) -> None:
    nodes = [name for name, _ in stream_question(sales_csv, "sum of category")]

    assert nodes == ["ingest", "profile", "check_quality", "classify", "resolve", "guard", "handle_error"]


def test_initial_state_defaults(sales_csv) -> None:
    state = create_initial_state(sales_csv, "What is the total revenue?")

    assert state["dataset_version_id"] == "sales"
    assert state["bucket"] == "day"
    assert state["warnings"] == []
    assert route_after_node(state) == "continue"
    assert route_after_node({**state, "error": "boom"}) == "error"
