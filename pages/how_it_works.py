import streamlit as st

from utils import classifier as rules

st.markdown("""
<div class="page-hero" style="background: #EAF6F2;">
    <span class="step-badge" style="background: #1D5B4F;">Reference Guide</span>
    <h1>How It Works</h1>
    <p>A plain-English guide to the paid vs organic decision. Start here if you're new.</p>
</div>
""", unsafe_allow_html=True)

st.divider()

# ── Quick overview ───────────────────────────────────────────────

st.subheader("What is this?")
st.markdown("""
For every keyword you enter, the tool answers one question: **should we pay for ads on
this search, or let organic (SEO) do the work?**

It pulls three things from DataForSEO for each keyword:

1. **Who is bidding** — advertisers currently running Google Ads on it
2. **Who ranks organically** — the top-10 unpaid results, and where your domain sits
3. **What it costs** — monthly search volume, cost-per-click and competition
""")

st.subheader("How to get started")
st.markdown("""
1. **API Keys** — Enter your DataForSEO login/password and (optionally) an OpenRouter key
2. **Keyword Analysis** — Paste keywords or enter a domain, add your brand domains, click Analyze
3. **Review & Export** — Check the recommendations, charts and AI insights, download the CSV
""")

st.divider()

# ── The rules ────────────────────────────────────────────────────

st.subheader("The Decision Rules")
st.caption("Rules run top to bottom. The first one that matches decides.")

col1, col2 = st.columns(2)

with col1:
    st.markdown("#### Brand keywords")
    st.markdown(f"""
    A keyword is a **brand keyword** when it contains one of your brand domains
    (without the `.com` / `.it` part).

    1. At least **{rules.BRAND_MIN_TOP_POSITIONS}** organic results in the top {rules.TOP_POSITION}
       → **NO PAID** (you already own the page)
    2. More than **{rules.BRAND_MIN_ADVERTISERS}** advertisers bidding
       → **YES PAID** (competitors are buying your name — defend it)
    3. Otherwise → **TEST**
    """)

with col2:
    st.markdown("#### Generic keywords")
    st.markdown(f"""
    1. Competition > {rules.HIGH_COMPETITION:.0%}, CPC > €{rules.HIGH_CPC}, more than
       {rules.MIN_ADVERTISERS_SATURATED} advertisers → **YES PAID**
    2. Competition < {rules.LOW_COMPETITION:.0%}, CPC < €{rules.LOW_CPC}, fewer than
       {rules.MAX_ADVERTISERS_QUIET} advertisers → **NO PAID**
    3. Volume > {rules.HIGH_VOLUME:,}, competition > {rules.MEDIUM_COMPETITION:.0%}, more than
       {rules.MIN_ADVERTISERS_BUSY} advertisers → **YES PAID**
    4. Volume < {rules.LOW_VOLUME}, CPC > €{rules.EXPENSIVE_CPC} → **NO PAID**
    5. At least {rules.OPPORTUNITY_MIN_TOP_POSITIONS} organic results in the top {rules.TOP_POSITION}
       → **OPPORTUNITY**
    6. Otherwise → **TEST**
    """)

st.subheader("How the budget is estimated")
st.markdown(f"""
**Budget = monthly searches × {rules.DEFAULT_CTR:.0%} click-through rate × CPC**, rounded to
the nearest euro. Keywords marked **NO PAID** get a budget of zero.

The range shown in the keyword detail is the same figure × {rules.BUDGET_LOW_FACTOR} (low)
and × {rules.BUDGET_HIGH_FACTOR} (high).
""")

st.divider()

# ── Glossary ─────────────────────────────────────────────────────

st.subheader("Glossary — Common Terms Explained")

glossary = {
    "Keyword": "A word or phrase people type into Google. Example: *\"running shoes\"*",
    "Search Volume": "How many people search for that keyword per month.",
    "CPC (Cost per Click)": "The average price advertisers pay each time someone clicks their ad.",
    "Competition": "How contested the paid auction is, from 0% (nobody bids) to 100% (everybody bids).",
    "Advertisers / Bidders": "Companies currently running Google Ads on the keyword.",
    "Organic Position": "Where a page ranks in the unpaid results. Position 1 is the top.",
    "Brand Keyword": "A search that contains your brand name, e.g. *\"brandx shoes\"*.",
    "YES PAID": "Paid ads are worth it: the market is contested, valuable, or competitors are bidding on your brand.",
    "NO PAID": "Skip ads: organic already covers it, or clicks are too expensive for the traffic.",
    "TEST": "Not enough signal either way. Run a small, time-boxed campaign and measure.",
    "OPPORTUNITY": "You already rank well organically and nobody is forcing your hand in paid — a gap to exploit or a position to protect.",
    "BYOK": "Bring your own key — you use your own DataForSEO and OpenRouter accounts.",
}

for term, definition in glossary.items():
    with st.expander(f"**{term}**"):
        st.markdown(definition)

st.divider()

# ── FAQ ──────────────────────────────────────────────────────────

st.subheader("Frequently Asked Questions")

with st.expander("How much does it cost to run?"):
    st.markdown("""
    Each keyword makes three DataForSEO calls (bidders, organic SERP, metrics), billed to
    your DataForSEO account. The AI insights are a single LLM call per analysis; the tool
    shows an **estimate before you start**.
    """)

with st.expander("Why is it slow?"):
    st.markdown("""
    Keywords are processed one at a time with a one-second pause between them to stay
    within DataForSEO rate limits. 100 keywords take a few minutes.
    """)

with st.expander("What happens if a keyword fails?"):
    st.markdown("""
    It stays in the results with zero metrics and is usually marked **TEST** or **NO PAID**.
    The keyword detail panel shows the error.
    """)

with st.expander("What if the AI insights are missing?"):
    st.markdown("""
    If no OpenRouter key is set, or the model returns something unusable, the tool writes
    a rule-based summary instead. The per-keyword recommendations never depend on the AI.
    """)

with st.expander("Are my keys stored?"):
    st.markdown("""
    No. Keys entered on the API Keys page live only in your browser session and are gone
    when you close the tab. You can also set them in a `.env.local` file.
    """)
