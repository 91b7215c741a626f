"""
Recommendation engine — paid vs organic decision for each keyword.
Rule-based classifier, monthly budget estimator, batch summary and CSV export.
Pure functions only: no network, no disk, no Streamlit.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

import pandas as pd


class Recommendation(str, Enum):
    YES_PAID = "YES_PAID"
    NO_PAID = "NO_PAID"
    TEST = "TEST"
    OPPORTUNITY = "OPPORTUNITY"


class InvalidRecord(ValueError):
    """Raised at the ingestion boundary for structurally impossible metrics."""


# ── Thresholds ───────────────────────────────────────────────────

TOP_POSITION = 3  # organic ranks counted as "top"

BRAND_MIN_TOP_POSITIONS = 3
BRAND_MIN_ADVERTISERS = 2

HIGH_COMPETITION = 0.7
HIGH_CPC = 1.5
MIN_ADVERTISERS_SATURATED = 8

LOW_COMPETITION = 0.3
LOW_CPC = 0.5
MAX_ADVERTISERS_QUIET = 3

HIGH_VOLUME = 5000
MEDIUM_COMPETITION = 0.5
MIN_ADVERTISERS_BUSY = 5

LOW_VOLUME = 500
EXPENSIVE_CPC = 2.0

OPPORTUNITY_MIN_TOP_POSITIONS = 2

# Budget
DEFAULT_CTR = 0.02
BUDGET_LOW_FACTOR = 0.7
BUDGET_HIGH_FACTOR = 1.3


@dataclass(frozen=True)
class Thresholds:
    """Tunable rule table. Defaults mirror the module constants."""

    top_position: int = TOP_POSITION
    brand_min_top_positions: int = BRAND_MIN_TOP_POSITIONS
    brand_min_advertisers: int = BRAND_MIN_ADVERTISERS
    high_competition: float = HIGH_COMPETITION
    high_cpc: float = HIGH_CPC
    min_advertisers_saturated: int = MIN_ADVERTISERS_SATURATED
    low_competition: float = LOW_COMPETITION
    low_cpc: float = LOW_CPC
    max_advertisers_quiet: int = MAX_ADVERTISERS_QUIET
    high_volume: int = HIGH_VOLUME
    medium_competition: float = MEDIUM_COMPETITION
    min_advertisers_busy: int = MIN_ADVERTISERS_BUSY
    low_volume: int = LOW_VOLUME
    expensive_cpc: float = EXPENSIVE_CPC
    opportunity_min_top_positions: int = OPPORTUNITY_MIN_TOP_POSITIONS


DEFAULT_THRESHOLDS = Thresholds()


# ── Data model ───────────────────────────────────────────────────


@dataclass(frozen=True)
class KeywordMetricRecord:
    """Metrics for one keyword, as delivered by the ingestion boundary.

    ``competition`` is already normalized to [0, 1].
    """

    keyword: str
    search_volume: int = 0
    cpc: float = 0.0
    competition: float = 0.0
    advertiser_count: int = 0
    organic_positions: tuple[int, ...] = ()
    is_brand_keyword: bool = False


@dataclass(frozen=True)
class ClassifiedKeyword:
    record: KeywordMetricRecord
    recommendation: Recommendation
    estimated_monthly_budget: int

    @property
    def keyword(self) -> str:
        return self.record.keyword


@dataclass
class Summary:
    """Counts per recommendation plus the summed monthly budget."""

    counts: dict[Recommendation, int] = field(
        default_factory=lambda: {rec: 0 for rec in Recommendation}
    )
    total_budget: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def count(self, recommendation: Recommendation) -> int:
        return self.counts.get(recommendation, 0)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "yes_paid": self.count(Recommendation.YES_PAID),
            "no_paid": self.count(Recommendation.NO_PAID),
            "test": self.count(Recommendation.TEST),
            "opportunity": self.count(Recommendation.OPPORTUNITY),
            "total_budget": self.total_budget,
        }


@dataclass
class AnalysisResult:
    classified: list[ClassifiedKeyword]
    summary: Summary


# ── Helpers ──────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negatives."""
    return int(math.floor(value + 0.5))


def _top_count(positions: Iterable[int], top: int) -> int:
    return sum(1 for pos in positions if pos <= top)


# ── Classifier ───────────────────────────────────────────────────


def classify(
    record: KeywordMetricRecord,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Recommendation:
    """Assign a paid-search recommendation to a single keyword.

    Rules are evaluated in order and the first match wins. Brand keywords
    never reach the generic rules.
    """
    t = thresholds
    top_count = _top_count(record.organic_positions, t.top_position)
    advertisers = record.advertiser_count
    competition = record.competition
    cpc = record.cpc
    volume = record.search_volume

    if record.is_brand_keyword:
        if top_count >= t.brand_min_top_positions:
            return Recommendation.NO_PAID
        if advertisers > t.brand_min_advertisers:
            # competitors bidding on the brand name
            return Recommendation.YES_PAID
        return Recommendation.TEST

    if (
        competition > t.high_competition
        and cpc > t.high_cpc
        and advertisers > t.min_advertisers_saturated
    ):
        return Recommendation.YES_PAID

    if (
        competition < t.low_competition
        and cpc < t.low_cpc
        and advertisers < t.max_advertisers_quiet
    ):
        return Recommendation.NO_PAID

    if (
        volume > t.high_volume
        and competition > t.medium_competition
        and advertisers > t.min_advertisers_busy
    ):
        return Recommendation.YES_PAID

    if volume < t.low_volume and cpc > t.expensive_cpc:
        return Recommendation.NO_PAID

    if top_count >= t.opportunity_min_top_positions:
        return Recommendation.OPPORTUNITY

    return Recommendation.TEST


def to_three_label(recommendation: Recommendation) -> Recommendation:
    """Project onto the YES_PAID / NO_PAID / TEST scheme."""
    if recommendation is Recommendation.OPPORTUNITY:
        return Recommendation.TEST
    return recommendation


# ── Budget estimator ─────────────────────────────────────────────


def _monthly_spend(record: KeywordMetricRecord, ctr: float) -> float:
    estimated_clicks = record.search_volume * ctr
    return estimated_clicks * record.cpc


def estimate_budget(
    record: KeywordMetricRecord,
    recommendation: Recommendation,
    ctr: float = DEFAULT_CTR,
) -> int:
    """Expected monthly paid spend: volume × CTR × CPC, rounded.

    Always 0 for NO_PAID.
    """
    if recommendation is Recommendation.NO_PAID:
        return 0
    return max(0, round_half_up(_monthly_spend(record, ctr)))


def estimate_budget_range(
    record: KeywordMetricRecord,
    recommendation: Recommendation,
    ctr: float = DEFAULT_CTR,
    low_factor: float = BUDGET_LOW_FACTOR,
    high_factor: float = BUDGET_HIGH_FACTOR,
) -> tuple[int, int]:
    """Low/high band around the point estimate."""
    if recommendation is Recommendation.NO_PAID:
        return 0, 0
    spend = _monthly_spend(record, ctr)
    return (
        max(0, round_half_up(spend * low_factor)),
        max(0, round_half_up(spend * high_factor)),
    )


# ── Aggregator ───────────────────────────────────────────────────


def classify_record(
    record: KeywordMetricRecord,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    ctr: float = DEFAULT_CTR,
) -> ClassifiedKeyword:
    recommendation = classify(record, thresholds)
    return ClassifiedKeyword(
        record=record,
        recommendation=recommendation,
        estimated_monthly_budget=estimate_budget(record, recommendation, ctr),
    )


def summarize(
    records: Iterable[KeywordMetricRecord],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    ctr: float = DEFAULT_CTR,
) -> AnalysisResult:
    """Classify and budget every record, keeping input order.

    Returns:
        AnalysisResult with one ClassifiedKeyword per input record and a
        Summary whose counts add up to the number of records.
    """
    classified = [classify_record(r, thresholds, ctr) for r in records]

    summary = Summary()
    for item in classified:
        summary.counts[item.recommendation] += 1
        summary.total_budget += item.estimated_monthly_budget

    return AnalysisResult(classified=classified, summary=summary)


# ── Export ───────────────────────────────────────────────────────

CSV_COLUMNS = [
    "Keyword",
    "Advertisers",
    "CPC",
    "Competition",
    "Volume",
    "Recommendation",
    "Budget",
]


def format_competition(competition: float) -> str:
    return f"{round_half_up(competition * 100)}%"


def to_dataframe(classified: list[ClassifiedKeyword]) -> pd.DataFrame:
    """Export-ready table, one row per keyword, columns as in CSV_COLUMNS."""
    rows = [
        {
            "Keyword": item.record.keyword,
            "Advertisers": item.record.advertiser_count,
            "CPC": f"{item.record.cpc:.2f}",
            "Competition": format_competition(item.record.competition),
            "Volume": item.record.search_volume,
            "Recommendation": item.recommendation.value,
            "Budget": f"{item.estimated_monthly_budget:.2f}",
        }
        for item in classified
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def to_csv(classified: list[ClassifiedKeyword]) -> str:
    """Render classified keywords as CSV text with a header row."""
    return to_dataframe(classified).to_csv(index=False, lineterminator="\n")


def recommendation_label(recommendation: Optional[Recommendation]) -> str:
    return {
        Recommendation.YES_PAID: "🔴 YES — invest in paid",
        Recommendation.NO_PAID: "🟢 NO — focus on SEO",
        Recommendation.TEST: "🟡 TEST — limited budget",
        Recommendation.OPPORTUNITY: "🔵 OPPORTUNITY — organic gap",
    }.get(recommendation, "⚪ Unknown")
