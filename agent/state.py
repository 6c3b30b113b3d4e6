# state.py — Question pipeline state schema
# TypedDict passed between LangGraph nodes
"""
state.py — Pipeline State Schema

Defines the TypedDict structure for state passed between LangGraph nodes of
the question pipeline (ingest → profile → check_quality → classify →
resolve → guard → execute).
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypedDict

from engine.models import (
    AnalysisResult,
    DatasetProfile,
    IntentClassification,
    MetricResolution,
    ParsedData,
    SemanticGuardResult,
)
from reports.data_quality import DataQualityCheckResult


class AgentState(TypedDict, total=False):
    """
    Shared state passed between all pipeline nodes.

    All fields are optional (total=False) to support partial updates.
    """

    # =========================================================================
    # INPUT LAYER
    # =========================================================================
    file_path: str | None  # Dataset file on disk
    question: str | None  # Raw user question
    dataset_version_id: str | None  # Opaque version id from the dataset store
    bucket: str  # Time-series granularity: "day" | "month" | "year"

    # =========================================================================
    # DATA LAYER
    # =========================================================================
    parsed_data: ParsedData | None
    profile: DatasetProfile | None
    quality: DataQualityCheckResult | None

    # =========================================================================
    # QUESTION LAYER
    # =========================================================================
    sanitized_question: str | None
    classification: IntentClassification | None
    resolution: MetricResolution | None
    guard_result: SemanticGuardResult | None  # Set only when the guard blocks

    # =========================================================================
    # OUTPUT LAYER
    # =========================================================================
    analysis_result: AnalysisResult | None
    warnings: list[str]
    response: dict | None  # JSON-safe payload for the caller

    # =========================================================================
    # CONTROL LAYER
    # =========================================================================
    current_node: str | None
    progress: float  # 0.0 - 1.0
    progress_message: str | None

    # =========================================================================
    # ERROR LAYER
    # =========================================================================
    error: str | None
    error_type: str | None  # DATA_INVALID, SEMANTIC_VIOLATION, resolution codes, ...
    error_code: str | None  # Engine error code behind DATA_INVALID (FILE_NOT_FOUND, MALFORMED_ROW, ...)
    failed_node: str | None
    recovery_hint: str | None

    # =========================================================================
    # CALLBACKS (not persisted)
    # =========================================================================
    progress_callback: Callable[[dict], None] | None


def create_initial_state(
    file_path: str | Path,
    question: str | None,
    dataset_version_id: str | None = None,
    bucket: str = "day",
    progress_callback: Callable[[dict], None] | None = None,
) -> AgentState:
    """
    Create a fresh AgentState with default values.

    Args:
        file_path: Dataset file to analyze
        question: Natural-language question
        dataset_version_id: Version id; defaults to the file name stem
        bucket: Time-series granularity
        progress_callback: Optional callback for progress updates

    Returns:
        Initialized AgentState dict
    """
    return AgentState(
        # Input
        file_path=str(file_path),
        question=question,
        dataset_version_id=dataset_version_id or Path(str(file_path)).stem,
        bucket=bucket,

        # Data
        parsed_data=None,
        profile=None,
        quality=None,

        # Question
        sanitized_question=None,
        classification=None,
        resolution=None,
        guard_result=None,

        # Output
        analysis_result=None,
        warnings=[],
        response=None,

        # Control
        current_node=None,
        progress=0.0,
        progress_message=None,

        # Error
        error=None,
        error_type=None,
        error_code=None,
        failed_node=None,
        recovery_hint=None,

        # Callbacks
        progress_callback=progress_callback,
    )
