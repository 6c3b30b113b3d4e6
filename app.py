"""
app.py — Streamlit Entry Point

Tabular Analyst: Upload a dataset → Ask questions → Get deterministic answers

All computation is delegated to the engine, the question pipeline and the
report templates. The UI only handles presentation and user interaction.
No language model is called anywhere.
"""

import hashlib
import tempfile
from dataclasses import asdict
from pathlib import Path

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from agent.graph import stream_question
from config.settings import BaselineSettings, QualityThresholds, configure_logging
from engine.data_parser import parse_file
from engine.data_profiler import profile_dataset
from engine.errors import EngineError
from engine.validators import ALLOWED_EXTENSIONS
from reports.baseline_analysis import generate_baseline_analysis
from reports.data_quality import run_data_quality_checks
from reports.drill_down import DrillDownRequest, generate_drill_down


configure_logging()


# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="Tabular Analyst",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)


# =============================================================================
# SESSION STATE INITIALIZATION
# =============================================================================

def init_session_state():
    """Initialize session state with default values."""
    defaults = {
        "filename": None,
        "file_path": None,
        "dataset_version_id": None,
        "profile": None,
        "quality": None,
        "load_error": None,
        "question": "",
        "bucket": "day",
        "question_response": None,
        "baseline": None,
        "drill_down": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


init_session_state()


# =============================================================================
# CUSTOM CSS
# =============================================================================

st.markdown("""
<style>
    .main-header h1 { margin-bottom: 0; }
    .main-header p { color: #64748b; margin-top: 0.25rem; }
    .answer-card {
        background: linear-gradient(135deg, #1e293b 0%, #334155 100%);
        border-radius: 16px;
        padding: 1.25rem 1.5rem;
        border: 1px solid #475569;
        margin-bottom: 1rem;
    }
    .answer-card .label {
        font-size: 0.75rem;
        color: #94a3b8;
        text-transform: uppercase;
        letter-spacing: 0.05em;
    }
    .answer-card .value {
        font-size: 1.875rem;
        font-weight: 700;
        color: #f1f5f9;
    }
</style>
""", unsafe_allow_html=True)


# Blue color palette for charts
CHART_COLORS = ["#3b82f6", "#0ea5e9", "#06b6d4", "#60a5fa", "#38bdf8", "#22d3ee", "#93c5fd", "#7dd3fc"]

NODE_NAMES = {
    "ingest": "Loading data",
    "profile": "Profiling columns",
    "check_quality": "Checking data quality",
    "classify": "Understanding the question",
    "resolve": "Matching columns",
    "guard": "Validating the operation",
    "execute": "Computing the answer",
    "handle_error": "Handling error",
}


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar():
    """Render the sidebar with dataset facts."""
    with st.sidebar:
        st.markdown("### 📊 Tabular Analyst")
        st.caption("Deterministic answers over one uploaded dataset")
        st.markdown("---")

        profile = st.session_state.profile
        if profile is None:
            st.markdown("📂 Upload a file to get started")
        else:
            st.markdown(f"**{st.session_state.filename}**")
            st.caption(f"Version: {st.session_state.dataset_version_id}")
            st.metric("Rows", f"{profile.row_count:,}")
            st.metric("Columns", profile.column_count)

        st.markdown("---")
        st.caption("Powered by LangGraph • Built with Streamlit")


# =============================================================================
# FILE UPLOAD SECTION
# =============================================================================

def _reset_dataset_state():
    for key in ("profile", "quality", "load_error", "question_response", "baseline", "drill_down"):
        st.session_state[key] = None


def _store_upload(uploaded_file) -> None:
    """Write the upload to a temp file (the engine reads paths) and profile it."""
    file_bytes = uploaded_file.getvalue()
    version_id = hashlib.sha1(file_bytes).hexdigest()[:12]
    if version_id == st.session_state.dataset_version_id:
        return

    _reset_dataset_state()
    suffix = Path(uploaded_file.name).suffix.lower()
    target = Path(tempfile.mkdtemp(prefix="analyst_")) / f"{version_id}{suffix}"
    target.write_bytes(file_bytes)

    st.session_state.filename = uploaded_file.name
    st.session_state.file_path = str(target)
    st.session_state.dataset_version_id = version_id

    try:
        parsed = parse_file(target)
        profile = profile_dataset(parsed, version_id)
        st.session_state.profile = profile
        st.session_state.quality = run_data_quality_checks(
            parsed, profile, version_id, QualityThresholds.from_env(),
        )
    except EngineError as e:
        st.session_state.load_error = e.to_dict()


def render_upload_section():
    """Render the file uploader."""
    uploaded_file = st.file_uploader(
        "📂 Drop your dataset here or click to browse",
        type=[ext.lstrip(".") for ext in ALLOWED_EXTENSIONS],
        help="CSV, TSV or Excel (first sheet). A header row is required.",
        key="file_uploader",
    )
    if uploaded_file is not None:
        _store_upload(uploaded_file)


# =============================================================================
# PROFILE & QUALITY
# =============================================================================

def render_profile(profile):
    """Render the per-column profile table."""
    st.subheader("📋 Dataset Profile")
    rows = [col.to_dict() for col in profile.columns]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def render_quality(quality):
    """Render data quality warnings."""
    st.subheader("🩺 Data Quality")
    if quality is None or not quality.warnings:
        st.success("No data quality issues detected.")
        return

    for warning in quality.warnings:
        text = f"**{warning.code}**: {warning.message}"
        if warning.severity.value == "high":
            st.error(text)
        else:
            st.warning(text)

    if quality.time_coverage:
        coverage = quality.time_coverage
        st.caption(
            f"Time coverage on `{coverage.column}`: {coverage.coverage_ratio:.0%} of "
            f"{coverage.expected_periods} {coverage.expected_granularity} periods"
        )


# =============================================================================
# QUESTION SECTION
# =============================================================================

def run_question_with_progress(question: str):
    """Stream the question pipeline with real-time progress updates."""
    progress_bar = st.progress(0, text="Starting...")
    final_state = None

    for node_name, state in stream_question(
        file_path=st.session_state.file_path,
        question=question,
        dataset_version_id=st.session_state.dataset_version_id,
        bucket=st.session_state.bucket,
    ):
        message = state.get("progress_message") or NODE_NAMES.get(node_name, node_name)
        progress_bar.progress(state.get("progress", 0.0), text=message)
        final_state = state

    progress_bar.empty()
    st.session_state.question_response = (final_state or {}).get("response")


def _create_bar_chart(rows: list[dict], x_col: str, y_col: str) -> go.Figure:
    """Create a Plotly bar chart for a group_by table."""
    df = pd.DataFrame(rows)
    fig = px.bar(df, x=x_col, y=y_col, color_discrete_sequence=CHART_COLORS)
    fig.update_layout(
        plot_bgcolor="white",
        paper_bgcolor="white",
        xaxis=dict(title=None),
        yaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
    )
    return fig


def _create_line_chart(rows: list[dict]) -> go.Figure:
    """Create a Plotly line chart for a time series."""
    df = pd.DataFrame(rows)
    fig = px.line(df, x="time_bucket", y="total", markers=len(df) < 30)
    fig.update_traces(line=dict(color="#3b82f6", width=2))
    fig.update_layout(
        plot_bgcolor="white",
        paper_bgcolor="white",
        xaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
        yaxis=dict(showgrid=True, gridcolor="#f1f5f9", title=None),
    )
    return fig


def _format_scalar(value) -> str:
    if value is None:
        return "No values"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def render_answer(response: dict):
    """Render a pipeline response: scalar, table, series or error."""
    if response.get("is_error"):
        render_error(response)
        return

    result = response["result"]
    resolution = response["resolution"]
    metric = resolution["metric"]
    st.caption(f"Intent: `{response['intent']}` ({response['confidence']} confidence) • Metric: `{metric}`")

    if result["type"] == "scalar":
        st.markdown(f"""
        <div class="answer-card">
            <div class="label">{response['intent'].replace('_', ' ')} of {metric}</div>
            <div class="value">{_format_scalar(result['data'])}</div>
        </div>
        """, unsafe_allow_html=True)
    elif result["type"] == "table":
        dimension = resolution["dimension"]
        st.markdown(f"**Total {metric} by {dimension}**")
        if result["data"]:
            st.plotly_chart(_create_bar_chart(result["data"], dimension, "total"), use_container_width=True)
        st.dataframe(pd.DataFrame(result["data"]), use_container_width=True, hide_index=True)
    else:
        st.markdown(f"**Total {metric} per {result['metadata'].get('bucket', 'day')}**")
        if result["data"]:
            st.plotly_chart(_create_line_chart(result["data"]), use_container_width=True)
        else:
            st.info("No rows had both a date and a numeric value.")

    for warning in response.get("quality_warnings", []):
        st.caption(f"⚠️ {warning['message']}")


def render_error(response: dict):
    """Render an error response with its recovery hint."""
    error_type = response.get("error_type", "UNKNOWN")
    message = response.get("error_message", "An unknown error occurred")

    if error_type == "SEMANTIC_VIOLATION":
        guard = response.get("guard_result", {})
        st.warning(f"**Blocked on `{guard.get('column')}` ({guard.get('semantic_type')})**: {message}")
        alternatives = guard.get("suggested_alternatives", [])
        if alternatives:
            st.info("💡 **Allowed operations**: " + ", ".join(alternatives))
        return

    st.error(f"**{error_type}**: {message}")
    st.info(f"💡 **Suggestion**: {response.get('recovery_hint', 'Please try again.')}")


def render_question_section():
    """Render the question box and the latest answer."""
    st.subheader("💬 Ask a Question")
    col1, col2 = st.columns([4, 1])
    with col1:
        question = st.text_input(
            "Question",
            value=st.session_state.question,
            placeholder="e.g., What is the total revenue? • average price by category • revenue over time",
            label_visibility="collapsed",
        )
    with col2:
        st.session_state.bucket = st.selectbox(
            "Time bucket", options=["day", "month", "year"], label_visibility="collapsed",
        )

    if st.button("🔎 Answer", type="primary") and question:
        st.session_state.question = question
        run_question_with_progress(question)

    if st.session_state.question_response:
        render_answer(st.session_state.question_response)


# =============================================================================
# BASELINE ANALYSIS
# =============================================================================

def _create_distribution_chart(buckets: list) -> go.Figure:
    """Bar chart over precomputed histogram buckets."""
    fig = go.Figure(go.Bar(
        x=[b.bucket for b in buckets],
        y=[b.count for b in buckets],
        marker_color="#3b82f6",
    ))
    fig.update_layout(
        bargap=0.1,
        height=260,
        margin=dict(l=10, r=10, t=10, b=10),
        plot_bgcolor="white",
        paper_bgcolor="white",
    )
    return fig


def render_baseline(baseline):
    """Render the three baseline phases."""
    st.markdown("#### Phase A: Metric Summary")
    if not baseline.metric_summaries:
        st.info("No eligible numeric columns.")
    for summary in baseline.metric_summaries:
        with st.expander(f"{summary.column_name} (mean {summary.mean:,.2f})"):
            cols = st.columns(5)
            cols[0].metric("Min", f"{summary.min:,.2f}")
            cols[1].metric("Median", f"{summary.median:,.2f}")
            cols[2].metric("Max", f"{summary.max:,.2f}")
            cols[3].metric("Std", f"{summary.std:,.2f}")
            cols[4].metric("Skewness", f"{summary.skewness:.2f}")
            st.plotly_chart(_create_distribution_chart(summary.distribution), use_container_width=True)

    st.markdown("#### Phase B: Breakdowns")
    if not baseline.breakdowns:
        st.info("No low-cardinality categorical columns to break down by.")
    for breakdown in baseline.breakdowns:
        with st.expander(f"Average {breakdown.metric_column} by {breakdown.categorical_column}"):
            st.dataframe(
                pd.DataFrame([asdict(b) for b in breakdown.breakdowns]),
                use_container_width=True,
                hide_index=True,
            )

    st.markdown("#### Phase C: Outcome Analysis")
    outcome = baseline.outcome_analysis
    if outcome is None:
        st.info("No binary outcome column detected.")
        return

    st.metric(f"Outcome rate ({outcome.outcome_column} = {outcome.positive_outcome})", f"{outcome.outcome_rate:.1%}")
    if outcome.key_differences:
        st.markdown("**Key differences**")
        st.dataframe(
            pd.DataFrame([asdict(k) for k in outcome.key_differences]),
            use_container_width=True,
            hide_index=True,
        )
    for by_category in outcome.breakdowns_by_category:
        with st.expander(f"Outcome rate by {by_category.category_column}"):
            st.dataframe(
                pd.DataFrame([asdict(b) for b in by_category.breakdowns]),
                use_container_width=True,
                hide_index=True,
            )


def render_drill_down_form(baseline):
    """Render the drill-down form for one metric against the detected outcome."""
    outcome = baseline.outcome_analysis
    if outcome is None or not baseline.metric_summaries:
        return

    st.markdown("#### 🔬 Drill-Down")
    metric = st.selectbox("Metric", [m.column_name for m in baseline.metric_summaries])
    if st.button("Drill down"):
        request = DrillDownRequest(
            dataset_version_id=st.session_state.dataset_version_id,
            file_path=st.session_state.file_path,
            metric_column=metric,
            outcome_column=outcome.outcome_column,
        )
        try:
            st.session_state.drill_down = generate_drill_down(
                request, st.session_state.profile, BaselineSettings.from_env(),
            )
        except EngineError as e:
            st.error(f"**{e.code}**: {e.message}")

    drill = st.session_state.drill_down
    if drill is None:
        return

    cols = st.columns(2)
    for col, group in zip(cols, (drill.group_a, drill.group_b)):
        with col:
            stats = group.percentile_stats
            st.markdown(f"**{group.group_label}** ({group.count} rows)")
            st.caption(f"p25 {stats.p25:,.2f} • p50 {stats.p50:,.2f} • p75 {stats.p75:,.2f}")
            if group.distribution:
                st.plotly_chart(_create_distribution_chart(group.distribution), use_container_width=True)

    if drill.secondary_breakdown:
        st.markdown(f"**Average {drill.metric_column} by {drill.secondary_breakdown.dimension_column}**")
        st.dataframe(
            pd.DataFrame([asdict(b) for b in drill.secondary_breakdown.breakdowns]),
            use_container_width=True,
            hide_index=True,
        )


def render_baseline_section():
    """Render the baseline tab (generated on demand)."""
    if st.button("📈 Run Baseline Analysis"):
        try:
            st.session_state.baseline = generate_baseline_analysis(
                st.session_state.profile, st.session_state.file_path, BaselineSettings.from_env(),
            )
            st.session_state.drill_down = None
        except EngineError as e:
            st.error(f"**{e.code}**: {e.message}")

    if st.session_state.baseline is not None:
        render_baseline(st.session_state.baseline)
        render_drill_down_form(st.session_state.baseline)


# =============================================================================
# MAIN APP FLOW
# =============================================================================

def main():
    """Main application flow."""
    render_sidebar()

    st.markdown("""
    <div class="main-header">
        <h1>📊 Tabular Analyst</h1>
        <p>Upload a CSV or Excel file → ask questions → get deterministic, semantically valid answers</p>
    </div>
    """, unsafe_allow_html=True)

    render_upload_section()

    if st.session_state.load_error:
        error = st.session_state.load_error
        st.error(f"**{error['code']}**: {error['message']}")
        return

    profile = st.session_state.profile
    if profile is None:
        return

    tab_question, tab_profile, tab_baseline = st.tabs(["💬 Ask", "📋 Profile & Quality", "📈 Baseline"])
    with tab_question:
        render_question_section()
    with tab_profile:
        render_profile(profile)
        render_quality(st.session_state.quality)
    with tab_baseline:
        render_baseline_section()

    st.markdown("---")
    st.caption("📊 Tabular Analyst — Powered by LangGraph • Built with Streamlit")


if __name__ == "__main__":
    main()
