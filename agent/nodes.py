# nodes.py — Question pipeline nodes
# Steps: ingest → profile → check quality → classify → resolve → guard → execute
"""
nodes.py — LangGraph Pipeline Nodes

Each node is a plain function that takes the pipeline state and returns a
state update. Engine exceptions are converted into error state here and
nowhere else; a node that fails sets ``error`` and the graph routes to
``handle_error_node``.

Node Responsibilities:
- ingest_node: validate the file type and parse the dataset
- profile_node: profile every column
- check_quality_node: run data quality checks (non-fatal)
- classify_node: sanitize the question and classify its intent
- resolve_node: resolve metric / dimension / time column
- guard_node: block semantically meaningless operations
- execute_node: compute the answer and build the response
- handle_error_node: build the error response
"""

from __future__ import annotations

import logging

from engine.data_parser import parse_file
from engine.data_profiler import profile_dataset
from engine.errors import DataParseError, EmptyDatasetError, ExecutionError, ResolutionError
from engine.execution_engine import execute_analysis
from engine.intent_classifier import classify_intent
from engine.metric_resolver import resolve_all
from engine.models import AnalyticsIntent
from engine.semantic_guard import validate_semantic_operations
from engine.validators import (
    MAX_QUESTION_LENGTH,
    MIN_QUESTION_LENGTH,
    sanitize_dict_for_json,
    sanitize_question,
    validate_file_extension,
)
from reports.data_quality import run_data_quality_checks

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

REPHRASE_HINTS = {
    "UNSUPPORTED_QUERY": (
        "Try asking for a total, average, minimum, maximum or count, "
        'a breakdown such as "revenue by region", or a trend such as "revenue over time".'
    ),
    "NO_NUMERIC_COLUMNS": "This dataset has no numeric columns to aggregate. Try counting rows instead.",
    "DIMENSION_NOT_FOUND": 'Name the column to group by, for example "total sales by region".',
    "TIME_COLUMN_NOT_FOUND": "This dataset has no date column. Ask for a total or a breakdown by category instead.",
}
DEFAULT_HINT = "Please rephrase your question or try again."


# =============================================================================
# PROGRESS HELPERS
# =============================================================================

def _emit_progress(
    state: dict,
    node: str,
    progress: float,
    message: str,
    status: str = "running",
) -> None:
    """
    Emit a progress update via the callback if available.

    Args:
        state: Current pipeline state
        node: Current node name
        progress: Progress value (0.0 - 1.0)
        message: Human-readable progress message
        status: "running" | "complete" | "failed"
    """
    callback = state.get("progress_callback")
    if callback and callable(callback):
        try:
            callback({
                "node": node,
                "status": status,
                "progress": progress,
                "message": message,
            })
        except Exception:
            logger.warning("Progress callback failed in %s", node, exc_info=True)


def _create_error_state(
    node: str,
    error_msg: str,
    error_type: str,
    recovery_hint: str,
    **extra,
) -> dict:
    """
    Create state update for error routing.
    """
    logger.info("Node %s failed with %s: %s", node, error_type, error_msg)
    return {
        "error": error_msg,
        "error_type": error_type,
        "failed_node": node,
        "recovery_hint": recovery_hint,
        "current_node": node,
        **extra,
    }


# =============================================================================
# NODE: INGEST
# =============================================================================

def ingest_node(state: dict) -> dict:
    """
    Validate the file type and parse the dataset.

    Output state updates:
        - parsed_data: ParsedData

    On error:
        - error_type DATA_INVALID
    """
    node_name = "ingest"
    _emit_progress(state, node_name, 0.02, "Loading your data...")

    file_path = state.get("file_path")
    is_valid_ext, ext_error = validate_file_extension(file_path)
    if not is_valid_ext:
        return _create_error_state(
            node_name, ext_error, "DATA_INVALID",
            "Please upload a CSV, TSV or Excel file.",
        )

    try:
        parsed = parse_file(file_path)
    except DataParseError as e:
        return _create_error_state(
            node_name, e.message, "DATA_INVALID",
            "Check that the file is readable and every row has as many columns as the header.",
            error_code=e.code,
        )

    _emit_progress(state, node_name, 0.10, "Data loaded", "complete")
    return {
        "parsed_data": parsed,
        "current_node": node_name,
        "progress": 0.10,
        "progress_message": f"Loaded {parsed.row_count:,} rows × {parsed.column_count} columns",
    }


# =============================================================================
# NODE: PROFILE
# =============================================================================

def profile_node(state: dict) -> dict:
    """
    Profile every column of the parsed dataset.

    Output state updates:
        - profile: DatasetProfile

    On error:
        - error_type DATA_EMPTY
    """
    node_name = "profile"
    _emit_progress(state, node_name, 0.12, "Profiling columns...")

    try:
        profile = profile_dataset(state["parsed_data"], state.get("dataset_version_id") or "")
    except EmptyDatasetError as e:
        return _create_error_state(
            node_name, e.message, "DATA_EMPTY",
            "The file appears to be empty. Please check and re-upload.",
        )

    _emit_progress(state, node_name, 0.25, "Profiling complete", "complete")
    return {
        "profile": profile,
        "current_node": node_name,
        "progress": 0.25,
        "progress_message": f"Profiled {profile.column_count} columns",
    }


# =============================================================================
# NODE: CHECK QUALITY
# =============================================================================

def check_quality_node(state: dict) -> dict:
    """
    Run data quality checks. Failures here never stop the pipeline.

    Output state updates:
        - quality: DataQualityCheckResult | None
        - warnings: list[str] (extended)
    """
    node_name = "check_quality"
    _emit_progress(state, node_name, 0.30, "Checking data quality...")

    warnings = list(state.get("warnings", []))
    try:
        quality = run_data_quality_checks(
            state["parsed_data"], state["profile"], state.get("dataset_version_id") or "",
        )
        warnings.extend(w.message for w in quality.warnings)
    except Exception as e:
        # Non-fatal: answer the question without a quality report
        logger.warning("Data quality checks failed: %s", e, exc_info=True)
        quality = None
        warnings.append(f"Data quality check incomplete: {e}")

    _emit_progress(state, node_name, 0.40, "Quality checks complete", "complete")
    return {
        "quality": quality,
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.40,
    }


# =============================================================================
# NODE: CLASSIFY
# =============================================================================

def classify_node(state: dict) -> dict:
    """
    Sanitize the question and classify its intent.

    Output state updates:
        - sanitized_question: str
        - classification: IntentClassification

    On error:
        - INVALID_QUESTION for empty / too-short questions
        - UNSUPPORTED_QUERY when no rule matches
    """
    node_name = "classify"
    _emit_progress(state, node_name, 0.45, "Understanding your question...")

    question = sanitize_question(state.get("question"))
    if question is None:
        return _create_error_state(
            node_name, "No question provided", "INVALID_QUESTION",
            f"Ask a question between {MIN_QUESTION_LENGTH} and {MAX_QUESTION_LENGTH} characters long.",
        )

    classification = classify_intent(question)
    if classification.intent == AnalyticsIntent.UNSUPPORTED_QUERY:
        return _create_error_state(
            node_name, "This question is not supported", "UNSUPPORTED_QUERY",
            REPHRASE_HINTS["UNSUPPORTED_QUERY"],
            sanitized_question=question,
            classification=classification,
        )

    _emit_progress(state, node_name, 0.55, f"Intent: {classification.intent.value}", "complete")
    return {
        "sanitized_question": question,
        "classification": classification,
        "current_node": node_name,
        "progress": 0.55,
    }


# =============================================================================
# NODE: RESOLVE
# =============================================================================

def resolve_node(state: dict) -> dict:
    """
    Resolve the metric, dimension and time column.

    Output state updates:
        - resolution: MetricResolution

    On error:
        - error_type is the resolution error's code
    """
    node_name = "resolve"
    _emit_progress(state, node_name, 0.60, "Matching columns...")

    try:
        resolution = resolve_all(
            state["sanitized_question"], state["profile"], state["classification"].intent,
        )
    except ResolutionError as e:
        return _create_error_state(
            node_name, e.message, e.code, REPHRASE_HINTS.get(e.code, DEFAULT_HINT),
        )

    _emit_progress(state, node_name, 0.70, f"Metric: {resolution.metric.column_name}", "complete")
    return {
        "resolution": resolution,
        "current_node": node_name,
        "progress": 0.70,
    }


# =============================================================================
# NODE: GUARD
# =============================================================================

def guard_node(state: dict) -> dict:
    """
    Validate the resolved operations.

    On block:
        - error_type SEMANTIC_VIOLATION, guard_result set
    """
    node_name = "guard"
    _emit_progress(state, node_name, 0.75, "Validating operation...")

    blocked = validate_semantic_operations(
        state["resolution"], state["classification"].intent, state.get("dataset_version_id") or "",
    )
    if blocked is not None:
        alternatives = ", ".join(blocked.suggested_alternatives)
        return _create_error_state(
            node_name, blocked.reason, "SEMANTIC_VIOLATION",
            f"Try one of: {alternatives}" if alternatives else DEFAULT_HINT,
            guard_result=blocked,
        )

    _emit_progress(state, node_name, 0.80, "Operation is valid", "complete")
    return {"current_node": node_name, "progress": 0.80}


# =============================================================================
# NODE: EXECUTE
# =============================================================================

def execute_node(state: dict) -> dict:
    """
    Execute the query and build the success response.

    Output state updates:
        - analysis_result: AnalysisResult
        - response: dict

    On error:
        - error_type EXECUTION_ERROR
    """
    node_name = "execute"
    _emit_progress(state, node_name, 0.85, "Computing the answer...")

    classification = state["classification"]
    resolution = state["resolution"]
    try:
        result = execute_analysis(
            state["file_path"], classification.intent, resolution, state.get("bucket", "day"),
        )
    except ExecutionError as e:
        return _create_error_state(node_name, e.message, e.code, DEFAULT_HINT)

    quality = state.get("quality")
    response = {
        "is_error": False,
        "result": result.to_dict(),
        "intent": classification.intent.value,
        "confidence": classification.confidence.value,
        "resolution": {
            "metric": resolution.metric.column_name,
            "dimension": resolution.dimension.column_name if resolution.dimension else None,
            "time_column": resolution.time_column.column_name if resolution.time_column else None,
        },
        "quality_warnings": [w.to_dict() for w in quality.warnings] if quality else [],
    }

    _emit_progress(state, node_name, 1.0, "Done", "complete")
    return {
        "analysis_result": result,
        "response": sanitize_dict_for_json(response),
        "current_node": node_name,
        "progress": 1.0,
        "progress_message": f"Answered with a {result.type.value} result",
    }


# =============================================================================
# NODE: HANDLE ERROR
# =============================================================================

def handle_error_node(state: dict) -> dict:
    """
    Build the user-facing error response. Never carries a result.

    Output state updates:
        - response: dict
    """
    node_name = "handle_error"
    _emit_progress(state, node_name, 0.99, "Handling error...", "failed")

    error_type = state.get("error_type") or "UNKNOWN"
    response = {
        "is_error": True,
        "error_type": error_type,
        "error_message": state.get("error") or "An unknown error occurred",
        "failed_node": state.get("failed_node") or "unknown",
        "recovery_hint": state.get("recovery_hint") or DEFAULT_HINT,
    }
    if state.get("error_code"):
        response["error_code"] = state["error_code"]
    guard_result = state.get("guard_result")
    if guard_result is not None:
        response["guard_result"] = guard_result.to_dict()

    return {
        "response": sanitize_dict_for_json(response),
        "current_node": node_name,
        "progress": 1.0,
        "progress_message": f"Error: {error_type}",
    }
