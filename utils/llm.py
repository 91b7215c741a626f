"""
LLM client — OpenRouter API via openai library.
Turns a classified keyword batch into a strategic narrative (summary,
recommendations, budget band, priority keywords).
Tracks actual token usage and costs per session.
"""

import json
import logging
import os
import re
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from utils.classifier import (
    AnalysisResult,
    Recommendation,
    estimate_budget_range,
)

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env.local"))
load_dotenv()  # Fallback to .env

logger = logging.getLogger(__name__)

_clients: dict[str, OpenAI] = {}


def _resolve_key(api_key: Optional[str] = None) -> str:
    key = api_key or os.getenv("OPENROUTER_API_KEY", "")
    if not key:
        raise ValueError(
            "OPENROUTER_API_KEY not set. "
            "Enter it on the API Keys page, add it to .env.local or set the environment variable."
        )
    return key


def _get_client(api_key: Optional[str] = None) -> OpenAI:
    key = _resolve_key(api_key)
    if key not in _clients:
        _clients[key] = OpenAI(
            base_url="https://openrouter.ai/api/v1",
            api_key=key,
            default_headers={
                "HTTP-Referer": "http://localhost:8501",
                "X-Title": "Paid vs Organic Keyword Advisor",
            },
        )
    return _clients[key]


def _model() -> str:
    return os.getenv("DEFAULT_LLM_MODEL", "google/gemini-2.5-flash")


# ── Pricing table ($ per 1M tokens on OpenRouter) ───────────────

MODEL_PRICING = {
    "google/gemini-2.5-flash": {"input": 0.30, "output": 2.50},
    "anthropic/claude-haiku-4.5": {"input": 1.00, "output": 5.00},
    "anthropic/claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
    "moonshotai/kimi-k2": {"input": 0.50, "output": 2.40},
}

# ── Cost tracker ─────────────────────────────────────────────────


class CostTracker:
    """Tracks actual token usage and costs within a session."""

    def __init__(self):
        self.calls: list[dict] = []
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_cost_usd = 0.0

    def record(self, model: str, input_tokens: int, output_tokens: int, task: str = ""):
        pricing = MODEL_PRICING.get(model, {"input": 1.00, "output": 5.00})
        cost = (input_tokens * pricing["input"] / 1_000_000) + (
            output_tokens * pricing["output"] / 1_000_000
        )
        self.calls.append({
            "timestamp": datetime.now().isoformat(),
            "model": model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cost_usd": round(cost, 6),
            "task": task,
        })
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_cost_usd += cost

    def summary(self) -> dict:
        return {
            "total_calls": len(self.calls),
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": round(self.total_cost_usd, 4),
        }


# Module-level tracker, lives as long as the Streamlit process
cost_tracker = CostTracker()


# ── Retry-wrapped LLM call ──────────────────────────────────────


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=30),
    reraise=True,
)
def _chat(
    messages: list[dict],
    response_format: Optional[dict] = None,
    task: str = "",
    api_key: Optional[str] = None,
    max_tokens: int = 2048,
    temperature: float = 0.7,
) -> str:
    """Single LLM call with retry. Returns raw content string."""
    model = _model()
    kwargs = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if response_format:
        kwargs["response_format"] = response_format
    resp = _get_client(api_key).chat.completions.create(**kwargs)

    usage = resp.usage
    if usage:
        cost_tracker.record(
            model=model,
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
            task=task,
        )

    return resp.choices[0].message.content or ""


def _parse_json(text: str) -> dict | list:
    """Parse JSON from LLM response, handling markdown fences and extra text."""
    text = text.strip()
    if "```" in text:
        match = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
        if match:
            text = match.group(1).strip()
    if not text.startswith(("{", "[")):
        start = min(
            (text.find(c) for c in ("{", "[") if text.find(c) >= 0),
            default=-1,
        )
        if start >= 0:
            text = text[start:]
    return json.loads(text)


# ── Insights ─────────────────────────────────────────────────────


def _budget_band(result: AnalysisResult) -> tuple[int, int]:
    low = high = 0
    for item in result.classified:
        item_low, item_high = estimate_budget_range(item.record, item.recommendation)
        low += item_low
        high += item_high
    return low, high


def fallback_insights(
    result: AnalysisResult,
    currency: str = "€",
    keyword_results: Optional[list] = None,
) -> dict:
    """Deterministic insights used when the LLM is unavailable or unparseable.

    Keywords whose collection failed (``success=False`` in ``keyword_results``,
    matched by index) carry default metrics and are left out of the average CPC.
    """
    summary = result.summary
    total = len(result.classified)
    yes_count = summary.count(Recommendation.YES_PAID)
    no_count = summary.count(Recommendation.NO_PAID)
    test_count = summary.count(Recommendation.TEST)
    opportunity_count = summary.count(Recommendation.OPPORTUNITY)

    failed = {i for i, r in enumerate(keyword_results or []) if not r.success}
    priced = [item for i, item in enumerate(result.classified) if i not in failed]
    avg_cpc = sum(item.record.cpc for item in priced) / len(priced) if priced else 0.0
    low, high = _budget_band(result)

    priority = sorted(
        (i for i in result.classified if i.recommendation is Recommendation.YES_PAID),
        key=lambda i: i.record.search_volume,
        reverse=True,
    )[:5]

    return {
        "summary": (
            f"Analyzed {total} keywords: {yes_count} need paid coverage, "
            f"{no_count} are better served organically, {test_count} should be tested "
            f"and {opportunity_count} show an organic opportunity. "
            f"Average CPC: {currency}{avg_cpc:.2f}."
        ),
        "recommendations": [
            f"1. High priority: invest in the {yes_count} keywords with strong paid signals",
            f"2. Organic focus: {no_count} keywords do not justify paid spend",
            f"3. Testing: run limited-budget experiments on {test_count} mid-potential keywords",
            f"4. Opportunity: protect or exploit {opportunity_count} keywords with top-3 organic presence",
            "5. Monitoring: review ROI weekly and adjust bids",
        ],
        "budget_estimate": f"{currency}{low} - {currency}{high}",
        "priority_keywords": [i.keyword for i in priority],
        "source": "fallback",
    }


def _insights_prompt(result: AnalysisResult, brand_name: Optional[str]) -> str:
    rows = [
        {
            "keyword": item.keyword,
            "advertisers": item.record.advertiser_count,
            "top3_organic_positions": sum(1 for p in item.record.organic_positions if p <= 3),
            "is_brand": item.record.is_brand_keyword,
            "cpc": item.record.cpc,
            "competition": item.record.competition,
            "volume": item.record.search_volume,
            "recommendation": item.recommendation.value,
            "estimated_monthly_budget": item.estimated_monthly_budget,
        }
        for item in result.classified
    ]

    return f"""You are a senior search marketing strategist. Analyze this SEO/PPC data for {brand_name or "the site"}.

KEYWORD DATA (recommendations already computed by rules):
{json.dumps(rows, indent=2)}

DECISION RULES USED:
- Brand keywords with 3+ top-3 organic positions → NO paid
- Brand keywords with competitors bidding → YES paid (defensive)
- Saturated, expensive, contested generic keywords → YES paid
- Cheap, quiet generic keywords → NO paid, focus SEO
- Generic keywords with 2+ top-3 organic positions and no paid signal → OPPORTUNITY
- Monthly budget = volume × 0.02 × CPC (for paid)

Provide:
1. SUMMARY: 2-3 sentences on the competitive situation
2. RECOMMENDATIONS: 3-5 numbered strategic recommendations
3. BUDGET: estimated total monthly budget band (format: "€X - €Y")
4. PRIORITY: up to 5 keywords to bid on first

Return ONLY a JSON object:
{{"summary": "...", "recommendations": ["1. ...", "2. ..."], "budget_estimate": "€X - €Y", "priority_keywords": ["kw1", "kw2"]}}"""


def generate_insights(
    result: AnalysisResult,
    api_key: Optional[str] = None,
    brand_name: Optional[str] = None,
    keyword_results: Optional[list] = None,
) -> dict:
    """Ask the LLM for a narrative over the classified batch.

    Returns:
        Dict with summary, recommendations, budget_estimate, priority_keywords
        and source ("llm" or "fallback").
    """
    if not result.classified:
        return fallback_insights(result, keyword_results=keyword_results)

    try:
        raw = _chat(
            [{"role": "user", "content": _insights_prompt(result, brand_name)}],
            response_format={"type": "json_object"},
            task="generate_insights",
            api_key=api_key,
        )
        data = _parse_json(raw)
    except Exception as e:
        logger.warning("LLM insights failed, using fallback: %s", e)
        return fallback_insights(result, keyword_results=keyword_results)

    if not isinstance(data, dict):
        logger.warning("LLM insights returned %s, using fallback", type(data).__name__)
        return fallback_insights(result, keyword_results=keyword_results)

    recommendations = data.get("recommendations")
    priority = data.get("priority_keywords")
    return {
        "summary": data.get("summary") or "Analysis complete.",
        "recommendations": recommendations if isinstance(recommendations, list) else [],
        "budget_estimate": data.get("budget_estimate") or "N/A",
        "priority_keywords": priority if isinstance(priority, list) else [],
        "source": "llm",
    }


def analyze_keyword_intent(keyword: str, api_key: Optional[str] = None) -> str:
    """One-sentence search intent (informational, navigational, transactional, commercial)."""
    prompt = (
        f'Classify the search intent of the keyword "{keyword}" in one sentence '
        "(informational, navigational, transactional or commercial)."
    )
    try:
        text = _chat(
            [{"role": "user", "content": prompt}],
            task="keyword_intent",
            api_key=api_key,
            max_tokens=100,
            temperature=0.3,
        )
    except Exception as e:
        logger.warning("Intent lookup failed for %r: %s", keyword, e)
        return "Unknown intent"
    return text.strip() or "Unknown intent"


def estimate_cost(num_keywords: int) -> dict:
    """Estimate token usage and cost of one insights call using current model pricing.

    Token estimates: ~600 tokens of instructions plus ~80 tokens per keyword row,
    ~700 output tokens for the JSON narrative.
    """
    model = _model()
    pricing = MODEL_PRICING.get(model, {"input": 1.00, "output": 5.00})

    est_input = 600 + 80 * max(num_keywords, 0)
    est_output = 700

    cost = (est_input * pricing["input"] / 1_000_000) + (
        est_output * pricing["output"] / 1_000_000
    )

    return {
        "model": model,
        "est_input_tokens": est_input,
        "est_output_tokens": est_output,
        "est_cost_usd": round(cost, 4),
    }
