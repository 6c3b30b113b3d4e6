# graph.py — LangGraph question pipeline
# Defines state machine, node edges, and conditional error routing
"""
graph.py — LangGraph Question Pipeline

Wires the engine nodes into a single linear graph with error routing.

Flow:
    START → ingest → profile → check_quality → classify → resolve → guard → execute → END

Any node that sets state["error"] routes to handle_error → END.
check_quality never fails; its problems only become warnings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, Literal

from langgraph.graph import END, START, StateGraph

from agent.nodes import (
    check_quality_node,
    classify_node,
    execute_node,
    guard_node,
    handle_error_node,
    ingest_node,
    profile_node,
    resolve_node,
)
from agent.state import AgentState, create_initial_state


# =============================================================================
# CONDITIONAL ROUTING
# =============================================================================

def route_after_node(state: AgentState) -> Literal["continue", "error"]:
    """
    Conditional router: check if error occurred, route accordingly.

    Returns:
        "error" if state has error, "continue" otherwise
    """
    if state.get("error"):
        return "error"
    return "continue"


# Happy path, in order. check_quality never fails so it has a plain edge.
PIPELINE = (
    ("ingest", ingest_node),
    ("profile", profile_node),
    ("check_quality", check_quality_node),
    ("classify", classify_node),
    ("resolve", resolve_node),
    ("guard", guard_node),
    ("execute", execute_node),
)
NON_FAILING_NODES = {"check_quality"}


# =============================================================================
# GRAPH BUILDER
# =============================================================================

def build_agent_graph() -> StateGraph:
    """
    Build the LangGraph workflow for the question pipeline.

    Returns:
        Uncompiled StateGraph
    """
    workflow = StateGraph(AgentState)

    for name, node in PIPELINE:
        workflow.add_node(name, node)
    workflow.add_node("handle_error", handle_error_node)

    workflow.add_edge(START, PIPELINE[0][0])

    for (name, _), (next_name, _) in zip(PIPELINE, PIPELINE[1:]):
        if name in NON_FAILING_NODES:
            workflow.add_edge(name, next_name)
            continue
        workflow.add_conditional_edges(
            name,
            route_after_node,
            {
                "continue": next_name,
                "error": "handle_error",
            },
        )

    # execute → END OR handle_error
    workflow.add_conditional_edges(
        PIPELINE[-1][0],
        route_after_node,
        {
            "continue": END,
            "error": "handle_error",
        },
    )

    # handle_error → END (terminal node)
    workflow.add_edge("handle_error", END)

    return workflow


def compile_agent_graph():
    """
    Build and compile the pipeline graph.

    Returns:
        Compiled graph ready for .invoke() or .stream()
    """
    return build_agent_graph().compile()


# =============================================================================
# GRAPH EXECUTION
# =============================================================================

# Compiled graph singleton (lazy initialization)
_compiled_graph = None


def get_compiled_graph():
    """
    Get or create the compiled graph singleton.

    Returns:
        Compiled StateGraph
    """
    global _compiled_graph
    if _compiled_graph is None:
        _compiled_graph = compile_agent_graph()
    return _compiled_graph


def run_question(
    file_path: str | Path,
    question: str,
    dataset_version_id: str | None = None,
    bucket: str = "day",
    progress_callback: Callable[[dict], None] | None = None,
) -> dict:
    """
    Answer one question about one dataset file.

    This is the main entry point for the question pipeline.

    Args:
        file_path: Dataset file (CSV / TSV / XLSX / XLS)
        question: Natural-language question
        dataset_version_id: Opaque version id (defaults to the file stem)
        bucket: Time-series granularity ("day", "month", "year")
        progress_callback: Optional callback for progress updates

    Returns:
        Final state dict; ``state["response"]`` holds the JSON-safe answer or error

    Example:
        state = run_question("sales.csv", "What is the total revenue?")
        if state["response"]["is_error"]:
            print(state["response"]["recovery_hint"])
        else:
            print(state["response"]["result"]["data"])
    """
    initial_state = create_initial_state(
        file_path=file_path,
        question=question,
        dataset_version_id=dataset_version_id,
        bucket=bucket,
        progress_callback=progress_callback,
    )
    return get_compiled_graph().invoke(initial_state)


def stream_question(
    file_path: str | Path,
    question: str,
    dataset_version_id: str | None = None,
    bucket: str = "day",
    progress_callback: Callable[[dict], None] | None = None,
) -> Iterator[tuple[str, dict]]:
    """
    Stream the pipeline, yielding state after each node.

    Yields:
        Tuple of (node_name, accumulated_state) after each node execution
    """
    initial_state = create_initial_state(
        file_path=file_path,
        question=question,
        dataset_version_id=dataset_version_id,
        bucket=bucket,
        progress_callback=progress_callback,
    )

    accumulated_state = dict(initial_state)
    for event in get_compiled_graph().stream(initial_state):
        # event maps node_name to that node's state update
        for node_name, state_update in event.items():
            accumulated_state.update(state_update or {})
            yield node_name, accumulated_state


# =============================================================================
# GRAPH VISUALIZATION (Development Only)
# =============================================================================

def get_graph_mermaid() -> str:
    """
    Get Mermaid diagram representation of the graph.

    Returns:
        Mermaid diagram string
    """
    return get_compiled_graph().get_graph().draw_mermaid()
