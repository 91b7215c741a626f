"""
Data layer — keyword file parsing, display tables and export.
"""

from typing import Optional

import pandas as pd

from utils.classifier import (
    AnalysisResult,
    Recommendation,
    format_competition,
    recommendation_label,
    to_csv,
    to_three_label,
)
from utils.dataforseo import MAX_KEYWORDS, KeywordResult

KEYWORD_COLUMNS = ["keyword", "keywords", "query", "search query", "term"]


# --- CSV parsing ---


def parse_keyword_csv(file) -> pd.DataFrame:
    """Parse a keyword CSV (DataForSEO / SEMRush export, or generic).
    Auto-detects delimiter. Normalizes column names to lowercase.
    """
    sample = file.read(4096)
    file.seek(0)
    if isinstance(sample, bytes):
        sample = sample.decode("utf-8", errors="ignore")

    delimiter = ";" if sample.count(";") > sample.count(",") else ","

    df = pd.read_csv(file, delimiter=delimiter)
    df.columns = [c.strip().lower() for c in df.columns]
    return df


def find_keyword_column(df: pd.DataFrame) -> Optional[str]:
    return next((c for c in KEYWORD_COLUMNS if c in df.columns), None)


def keywords_from_dataframe(df: pd.DataFrame, limit: int = MAX_KEYWORDS) -> list[str]:
    """Unique, non-empty keywords from the first recognised keyword column."""
    col = find_keyword_column(df)
    if col is None:
        raise ValueError(
            f"Could not find a keyword column. Found columns: {', '.join(df.columns)}"
        )
    values = df[col].dropna().astype(str).str.strip()
    values = values[values.str.len() > 0]
    return list(dict.fromkeys(values))[:limit]


# --- Display ---


def results_dataframe(
    analysis: AnalysisResult,
    keyword_results: Optional[list[KeywordResult]] = None,
    three_label: bool = False,
) -> pd.DataFrame:
    """Numeric table for st.dataframe and charts, in input order."""
    keyword_results = keyword_results or []

    rows = []
    for i, item in enumerate(analysis.classified):
        rec = to_three_label(item.recommendation) if three_label else item.recommendation
        collected = keyword_results[i] if i < len(keyword_results) else None
        rows.append({
            "Keyword": item.keyword,
            "Brand": item.record.is_brand_keyword,
            "Advertisers": item.record.advertiser_count,
            "CPC": round(item.record.cpc, 2),
            "Competition": format_competition(item.record.competition),
            "Competition (0-1)": item.record.competition,
            "Volume": item.record.search_volume,
            "Top-3 Organic": sum(1 for p in item.record.organic_positions if p <= 3),
            "Recommendation": rec.value,
            "Label": recommendation_label(rec),
            "Budget": item.estimated_monthly_budget,
            "Collected": collected.success if collected else True,
        })
    return pd.DataFrame(rows)


def recommendation_counts(analysis: AnalysisResult, three_label: bool = False) -> pd.DataFrame:
    """One row per recommendation, zero counts included."""
    counts = {rec.value: 0 for rec in Recommendation}
    for item in analysis.classified:
        rec = to_three_label(item.recommendation) if three_label else item.recommendation
        counts[rec.value] += 1
    if three_label:
        counts.pop(Recommendation.OPPORTUNITY.value)
    return pd.DataFrame({"Recommendation": list(counts), "Keywords": list(counts.values())})


# --- Export ---


def export_csv(analysis: AnalysisResult) -> bytes:
    """Classified keywords as CSV bytes for st.download_button."""
    return to_csv(analysis.classified).encode("utf-8")
