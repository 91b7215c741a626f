import streamlit as st

from utils.dataforseo import Credentials, credentials_from_env, default_language, default_location
from utils.llm import _model

st.header("API Keys")
st.write(
    "Bring your own keys. Credentials stay in this browser session only; "
    "nothing is written to disk."
)

env_creds = credentials_from_env()

# ── DataForSEO ───────────────────────────────────────────────────

st.subheader("DataForSEO")
st.caption("Used for bidders (Ads Transparency), organic SERP and keyword metrics.")

show = st.toggle("Show secrets", value=False)
input_type = "default" if show else "password"

col1, col2 = st.columns(2)
with col1:
    login = st.text_input(
        "Login (email)",
        value=st.session_state.get("dfs_login", env_creds.login),
    )
with col2:
    password = st.text_input(
        "API Password",
        value=st.session_state.get("dfs_password", env_creds.password),
        type=input_type,
    )

col3, col4 = st.columns(2)
with col3:
    location = st.text_input(
        "Location",
        value=st.session_state.get("dfs_location", default_location()),
        help="DataForSEO location_name, e.g. Italy, United States",
    )
with col4:
    language = st.text_input(
        "Language code",
        value=st.session_state.get("dfs_language", default_language()),
        help="e.g. it, en",
    )

# ── LLM ──────────────────────────────────────────────────────────

st.divider()
st.subheader("OpenRouter")
st.caption(f"Used for AI insights. Model: {_model()}")

openrouter_key = st.text_input(
    "OpenRouter API Key",
    value=st.session_state.get("openrouter_key", ""),
    type=input_type,
    help="Leave empty to use OPENROUTER_API_KEY from the environment.",
)

# ── Save ─────────────────────────────────────────────────────────

if st.button("Save Keys", type="primary"):
    creds = Credentials(login=login.strip(), password=password.strip())
    if not creds.is_complete:
        st.error("DataForSEO login and password are both required.")
        st.stop()

    st.session_state.dfs_login = creds.login
    st.session_state.dfs_password = creds.password
    st.session_state.dfs_location = location.strip() or default_location()
    st.session_state.dfs_language = language.strip() or default_language()
    st.session_state.openrouter_key = openrouter_key.strip()
    st.success("Keys saved for this session. Head to **Keyword Analysis**.")

if st.session_state.get("dfs_login"):
    st.info(f"DataForSEO: **{st.session_state.dfs_login}** · Location: {st.session_state.get('dfs_location')}")
