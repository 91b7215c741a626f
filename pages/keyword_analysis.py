from datetime import datetime

import streamlit as st

from utils.classifier import Recommendation, estimate_budget_range, summarize
from utils.data import (
    export_csv,
    keywords_from_dataframe,
    parse_keyword_csv,
    recommendation_counts,
    results_dataframe,
)
from utils.dataforseo import (
    MAX_KEYWORDS,
    Credentials,
    DataForSEOError,
    clean_domain,
    collect_keywords,
    credentials_from_env,
    default_language,
    default_location,
    fetch_domain_keywords,
    parse_keyword_list,
)
from utils.llm import analyze_keyword_intent, estimate_cost, generate_insights

st.header("Keyword Analysis")
st.write("Paid or organic? Collect bidders, rankings and metrics, then let the rules decide.")

# ── Credentials ──────────────────────────────────────────────────

env_creds = credentials_from_env()
credentials = Credentials(
    login=st.session_state.get("dfs_login", env_creds.login),
    password=st.session_state.get("dfs_password", env_creds.password),
)
location = st.session_state.get("dfs_location", default_location())
language = st.session_state.get("dfs_language", default_language())
openrouter_key = st.session_state.get("openrouter_key") or None

if not credentials.is_complete:
    st.warning("No DataForSEO credentials found. Go to **API Keys** first.")
    st.stop()

# ── Input ────────────────────────────────────────────────────────

mode = st.radio(
    "Analysis mode",
    ["Keyword list", "Domain"],
    horizontal=True,
    help="Domain mode pulls the keywords a domain already ranks for.",
)

keywords: list[str] = []
brand_domains: list[str] = []

if mode == "Keyword list":
    text = st.text_area(
        f"Keywords (one per line, max {MAX_KEYWORDS})",
        height=200,
        key="keywords_text",
    )
    uploaded = st.file_uploader("…or upload a CSV with a keyword column", type=["csv"])
    brand_input = st.text_input(
        "Your brand domains (optional, comma separated)",
        placeholder="example.com, example.it",
    )
    brand_domains = [clean_domain(d) for d in brand_input.split(",") if d.strip()]

    if uploaded is not None:
        try:
            keywords = keywords_from_dataframe(parse_keyword_csv(uploaded))
        except Exception as e:
            st.error(f"Failed to parse CSV: {e}")
            st.stop()
    else:
        keywords = parse_keyword_list(text)
else:
    domain = st.text_input("Domain", placeholder="example.com")
    limit = st.slider("Keywords to pull", 10, MAX_KEYWORDS, 50, step=10)
    if domain.strip():
        target = clean_domain(domain)
        brand_domains = [target]
        # Cached per domain so a new domain never reuses another's keywords
        cache = st.session_state.setdefault("domain_keywords", {})
        if st.button("Pull Ranked Keywords"):
            try:
                with st.spinner(f"Pulling keywords for {target}..."):
                    cache[target] = fetch_domain_keywords(
                        target, credentials, location, language, limit=limit
                    )
            except DataForSEOError as e:
                st.error(f"DataForSEO error: {e}")
                st.stop()
        keywords = cache.get(target, [])
        if keywords:
            st.caption(f"{len(keywords)} ranked keywords: {', '.join(keywords[:10])}…")

if not keywords:
    st.stop()

st.write(f"**{len(keywords)} keywords** ready · Location: {location} · Language: {language}")

est = estimate_cost(len(keywords))
model_short = est["model"].split("/")[-1]
st.info(
    f"**Estimate** ({model_short}): ~{len(keywords) * 3} DataForSEO calls, "
    f"~{len(keywords)} s with rate limiting, ~${est['est_cost_usd']:.4f} LLM cost"
)

# ── Run ──────────────────────────────────────────────────────────

if st.button("Analyze Keywords", type="primary"):
    # A new run discards the previous analysis
    for key in ("analysis", "keyword_results", "insights", "intents"):
        st.session_state.pop(key, None)

    progress_bar = st.progress(0)

    with st.status("Collecting keyword data...", expanded=True) as status:
        status_text = st.empty()

        def update_progress(current, total, keyword):
            if total > 0:
                progress_bar.progress(current / total)
            if keyword:
                status_text.text(f"Keyword {current + 1}/{total}: {keyword}")

        try:
            keyword_results = collect_keywords(
                keywords,
                credentials,
                brand_domains=brand_domains,
                location=location,
                language=language,
                progress_callback=update_progress,
            )
        except ValueError as e:
            st.error(str(e))
            st.stop()

        failed = [r for r in keyword_results if not r.success]
        if failed:
            st.warning(f"{len(failed)} keywords failed and use default metrics.")

        analysis = summarize(r.record for r in keyword_results)

        st.write("Generating AI insights...")
        insights = generate_insights(
            analysis,
            api_key=openrouter_key,
            brand_name=brand_domains[0] if brand_domains else None,
            keyword_results=keyword_results,
        )

        status.update(label=f"Done! Analyzed {len(keyword_results)} keywords.", state="complete")

    st.session_state.keyword_results = keyword_results
    st.session_state.analysis = analysis
    st.session_state.insights = insights

# ── Results ──────────────────────────────────────────────────────

analysis = st.session_state.get("analysis")
if analysis is None:
    st.stop()

keyword_results = st.session_state.get("keyword_results", [])
insights = st.session_state.get("insights", {})
summary = analysis.summary

st.divider()
st.subheader("Summary")

three_label = st.toggle("Three-label view (fold OPPORTUNITY into TEST)", value=False)

cols = st.columns(6)
cols[0].metric("Total", summary.total)
cols[1].metric("🔴 Yes Paid", summary.count(Recommendation.YES_PAID))
cols[2].metric("🟢 No Paid", summary.count(Recommendation.NO_PAID))
if three_label:
    cols[3].metric(
        "🟡 Test",
        summary.count(Recommendation.TEST) + summary.count(Recommendation.OPPORTUNITY),
    )
else:
    cols[3].metric("🟡 Test", summary.count(Recommendation.TEST))
    cols[4].metric("🔵 Opportunity", summary.count(Recommendation.OPPORTUNITY))
cols[5].metric("Budget / month", f"€{summary.total_budget:,}")

# ── AI insights ──────────────────────────────────────────────────

st.divider()
st.subheader("🧠 AI Insights")
if insights.get("source") == "fallback":
    st.caption("LLM unavailable — showing rule-based insights.")

st.write(insights.get("summary", ""))

col_recs, col_side = st.columns([2, 1])
with col_recs:
    st.markdown("**Recommendations**")
    for rec in insights.get("recommendations", []):
        st.markdown(f"- {rec}")
with col_side:
    st.markdown("**Budget estimate**")
    st.markdown(f"### {insights.get('budget_estimate', 'N/A')}")
    priority = insights.get("priority_keywords", [])
    if priority:
        st.markdown("**Priority keywords**")
        st.write(", ".join(priority))

# ── Charts ───────────────────────────────────────────────────────

df = results_dataframe(analysis, keyword_results, three_label=three_label)

st.divider()
st.subheader("Charts")

chart1, chart2 = st.columns(2)
with chart1:
    st.caption("Keywords per recommendation")
    st.bar_chart(recommendation_counts(analysis, three_label), x="Recommendation", y="Keywords")
with chart2:
    st.caption("Estimated monthly budget per keyword")
    budget_df = df[df["Budget"] > 0].sort_values("Budget", ascending=False).head(20)
    if len(budget_df) > 0:
        st.bar_chart(budget_df, x="Keyword", y="Budget")
    else:
        st.info("No paid budget recommended.")

st.caption("CPC vs competition")
st.scatter_chart(df, x="Competition (0-1)", y="CPC", color="Recommendation", size="Volume")

# ── Table ────────────────────────────────────────────────────────

st.divider()
st.subheader("Results")

rec_names = recommendation_counts(analysis, three_label)["Recommendation"].tolist()
tabs = st.tabs(["All"] + rec_names)
display_cols = ["Keyword", "Label", "Advertisers", "CPC", "Competition", "Volume", "Top-3 Organic", "Budget", "Brand"]

with tabs[0]:
    st.dataframe(df[display_cols], use_container_width=True, hide_index=True)

for tab, rec_name in zip(tabs[1:], rec_names):
    with tab:
        sub = df[df["Recommendation"] == rec_name][display_cols]
        if len(sub) > 0:
            st.dataframe(sub, use_container_width=True, hide_index=True)
        else:
            st.info(f"No keywords classified as {rec_name}.")

# ── Keyword detail ───────────────────────────────────────────────

st.divider()
st.subheader("Keyword Detail")

selected = st.selectbox("Keyword", [item.keyword for item in analysis.classified])
idx = [item.keyword for item in analysis.classified].index(selected)
item = analysis.classified[idx]
collected = keyword_results[idx] if idx < len(keyword_results) else None

low, high = estimate_budget_range(item.record, item.recommendation)
st.write(
    f"**{item.recommendation.value}** · budget €{item.estimated_monthly_budget:,} "
    f"(range €{low:,} – €{high:,})"
)

if collected and not collected.success:
    st.warning(f"Data collection failed: {collected.error}")

col_bid, col_org = st.columns(2)
with col_bid:
    st.markdown(f"**🎯 Bidders ({item.record.advertiser_count})**")
    if collected:
        for adv in collected.advertisers[:5]:
            verified = " ✔" if adv.verified else ""
            st.write(f"- {adv.title}{verified} · ~{adv.approx_ads_count} ads")
with col_org:
    st.markdown("**🌱 Top organic results**")
    if collected:
        for res in collected.organic[:5]:
            st.write(f"- #{res.position} {res.domain}")

intents = st.session_state.setdefault("intents", {})
if st.button("Explain search intent"):
    intents[selected] = analyze_keyword_intent(selected, api_key=openrouter_key)
if selected in intents:
    st.info(intents[selected])

# ── Export ───────────────────────────────────────────────────────

st.divider()
st.subheader("Export")

st.download_button(
    "Download Results (CSV)",
    data=export_csv(analysis),
    file_name=f"paid-organic-analysis-{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv",
    mime="text/csv",
)
