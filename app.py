import logging
import os
import sys

import streamlit as st

from utils.llm import _model, cost_tracker


def setup_logging() -> None:
    """Console logging for the collector and LLM modules."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


setup_logging()

st.set_page_config(
    page_title="Paid vs Organic · Keyword Advisor",
    page_icon="🎯",
    layout="wide",
)

# ── Brand CSS ────────────────────────────────────────────────────

st.markdown("""
<style>
@import url('https://fonts.googleapis.com/css2?family=DM+Sans:wght@400;500;700&display=swap');

html, body, [class*="css"] {
    font-family: 'DM Sans', sans-serif;
}

/* ── Sidebar ─────────────────────────────────── */
section[data-testid="stSidebar"] {
    background: linear-gradient(180deg, #10302A 0%, #1D5B4F 55%, #2E8B74 100%);
}
section[data-testid="stSidebar"] * {
    color: #EAF6F2 !important;
}
section[data-testid="stSidebar"] .stCaption {
    color: rgba(234, 246, 242, 0.6) !important;
    font-size: 0.75rem;
    letter-spacing: 0.05em;
}
section[data-testid="stSidebar"] [data-testid="stMetricValue"] {
    color: #F2C14E !important;
    font-size: 1.4rem !important;
}
section[data-testid="stSidebar"] nav a[aria-selected="true"] {
    background: rgba(242, 193, 78, 0.18) !important;
    border-left: 3px solid #F2C14E !important;
}

/* ── Main content ────────────────────────────── */
h1, h2, h3 {
    color: #10302A !important;
}
.stButton > button[kind="primary"] {
    background: #1D5B4F !important;
    border: none !important;
    border-radius: 8px !important;
}
.stDownloadButton > button {
    border: 1.5px solid #1D5B4F !important;
    border-radius: 8px !important;
}
.stProgress > div > div > div {
    background: #2E8B74 !important;
}
[data-testid="stMetricValue"] {
    font-weight: 700 !important;
}
.stDeployButton, [data-testid="stMainMenu"] { display: none !important; }

/* Guide page header */
.page-hero {
    border-left: 4px solid #1D5B4F;
    border-radius: 0 12px 12px 0;
    padding: 1.25rem 2rem;
    margin-bottom: 1.5rem;
}
.page-hero .step-badge {
    display: inline-block;
    color: white;
    font-size: 0.7rem;
    font-weight: 700;
    text-transform: uppercase;
    padding: 0.2rem 0.7rem;
    border-radius: 20px;
}
.page-hero p {
    margin: 0 !important;
}
</style>
""", unsafe_allow_html=True)

# ── Pages ────────────────────────────────────────────────────────

api_keys = st.Page("pages/api_keys.py", title="API Keys", icon="🔑", default=True)
keyword_analysis = st.Page("pages/keyword_analysis.py", title="Keyword Analysis", icon="🎯")
how_it_works = st.Page("pages/how_it_works.py", title="How It Works", icon="📖")

pg = st.navigation({
    "Workflow": [api_keys, keyword_analysis],
    "Resources": [how_it_works],
})

# ── Sidebar ──────────────────────────────────────────────────────

with st.sidebar:
    st.caption("PAID VS ORGANIC ADVISOR")
    st.divider()

    if st.session_state.get("dfs_login"):
        st.caption(f"DATAFORSEO: {st.session_state.dfs_login}")
        st.caption(f"LOCATION: {st.session_state.get('dfs_location', '')}")
    else:
        st.markdown(
            '<p style="color:rgba(232,240,254,0.5);font-size:0.85rem;">'
            "No keys yet — start with API Keys.</p>",
            unsafe_allow_html=True,
        )

    analysis = st.session_state.get("analysis")
    if analysis is not None:
        st.divider()
        st.metric("Keywords Analyzed", analysis.summary.total)
        st.metric("Budget / month", f"€{analysis.summary.total_budget:,}")

    # Cost monitor
    st.divider()
    model_short = _model().split("/")[-1]
    st.caption(f"MODEL: {model_short}")
    summary = cost_tracker.summary()
    if summary["total_calls"] > 0:
        st.metric("Session Cost", f"${summary['total_cost_usd']:.4f}")
        st.caption(
            f"{summary['total_calls']} calls · "
            f"{summary['total_input_tokens']:,} in · "
            f"{summary['total_output_tokens']:,} out"
        )

pg.run()
