"""
DataForSEO API client — bidders, organic SERP and keyword metrics per keyword.
Builds validated KeywordMetricRecords for the recommendation engine.
"""

import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests
from dotenv import load_dotenv

from utils.classifier import InvalidRecord, KeywordMetricRecord

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env.local"))
load_dotenv()  # Fallback to .env

logger = logging.getLogger(__name__)

DATAFORSEO_BASE_URL = "https://api.dataforseo.com/v3/"

ADVERTISERS_ENDPOINT = "serp/google/ads_advertisers/live/advanced"
ORGANIC_ENDPOINT = "serp/google/organic/live/advanced"
METRICS_ENDPOINT = "keywords_data/google_ads/search_volume/live"
RANKED_KEYWORDS_ENDPOINT = "dataforseo_labs/google/ranked_keywords/live"

TASK_OK = 20000
REQUEST_TIMEOUT = 60  # seconds
REQUEST_DELAY = 1.0  # seconds between keywords
MAX_KEYWORDS = 150
ORGANIC_DEPTH = 20
ORGANIC_TOP_N = 10

ADVERTISER_TYPES = ("ads_advertiser", "ads_multi_account_advertiser")

_TLD_PATTERN = re.compile(r"\.(com|it|net|org|co\.uk|de|fr|es|eu|io)$")


class DataForSEOError(Exception):
    """DataForSEO HTTP or task-level failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


@dataclass(frozen=True)
class Credentials:
    login: str
    password: str

    @property
    def is_complete(self) -> bool:
        return bool(self.login and self.password)


def credentials_from_env() -> Credentials:
    return Credentials(
        login=os.getenv("DATAFORSEO_LOGIN", ""),
        password=os.getenv("DATAFORSEO_PASSWORD", ""),
    )


def default_location() -> str:
    return os.getenv("DATAFORSEO_LOCATION", "Italy")


def default_language() -> str:
    return os.getenv("DATAFORSEO_LANGUAGE", "it")


@dataclass(frozen=True)
class KeywordMetrics:
    search_volume: int = 0
    cpc: float = 0.0
    competition: float = 0.0


# Used whenever the metrics endpoint fails or has no row for the keyword
DEFAULT_METRICS = KeywordMetrics(search_volume=0, cpc=0.0, competition=0.0)


@dataclass(frozen=True)
class Advertiser:
    title: str
    advertiser_id: str = ""
    location: str = ""
    verified: bool = False
    approx_ads_count: int = 0


@dataclass(frozen=True)
class OrganicResult:
    position: int
    domain: str
    title: str = ""
    url: str = ""


@dataclass
class KeywordResult:
    """Everything collected for one keyword, plus the record built from it."""

    record: KeywordMetricRecord
    advertisers: list[Advertiser] = field(default_factory=list)
    organic: list[OrganicResult] = field(default_factory=list)
    success: bool = True
    error: str = ""


# ── HTTP ─────────────────────────────────────────────────────────


def _post(endpoint: str, payload: list[dict], credentials: Credentials) -> dict:
    """POST one task to DataForSEO and return the first task object.

    Raises:
        DataForSEOError: on HTTP failure or a task status other than 20000.
    """
    if not credentials.is_complete:
        raise ValueError(
            "DataForSEO credentials not set. "
            "Enter them on the API Keys page or set DATAFORSEO_LOGIN / DATAFORSEO_PASSWORD."
        )

    try:
        resp = requests.post(
            DATAFORSEO_BASE_URL + endpoint,
            json=payload,
            auth=(credentials.login, credentials.password),
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise DataForSEOError(f"{endpoint} failed: HTTP {status}", status_code=status) from e
    except (requests.RequestException, ValueError) as e:
        # ValueError covers a non-JSON body such as a gateway error page
        raise DataForSEOError(f"{endpoint} failed: {e}") from e

    tasks = data.get("tasks") or []
    task = tasks[0] if tasks else {}
    status_code = task.get("status_code")
    if status_code != TASK_OK:
        message = task.get("status_message") or data.get("status_message") or "Unknown error"
        raise DataForSEOError(
            f"{endpoint} task failed: {message}",
            status_code=status_code,
            response=data,
        )

    logger.debug("%s cost=%s", endpoint, task.get("cost"))
    return task


def _first_result(task: dict) -> dict:
    result = task.get("result") or []
    first = result[0] if result else {}
    return first if isinstance(first, dict) else {}


# ── Endpoints ────────────────────────────────────────────────────


def fetch_advertisers(
    keyword: str,
    credentials: Credentials,
    location: str = "Italy",
    language: str = "it",
) -> list[Advertiser]:
    """Advertisers currently bidding on the keyword (Ads Transparency)."""
    task = _post(
        ADVERTISERS_ENDPOINT,
        [{
            "keyword": keyword,
            "location_name": location,
            "language_code": language,
            "device": "desktop",
            "os": "windows",
        }],
        credentials,
    )
    items = _first_result(task).get("items") or []

    advertisers = []
    for item in items:
        if item.get("type") not in ADVERTISER_TYPES:
            continue
        nested = item.get("advertisers") or []
        advertiser_id = item.get("advertiser_id") or (nested[0].get("advertiser_id", "") if nested else "")
        ads_count = item.get("approx_ads_count") or sum(a.get("approx_ads_count") or 0 for a in nested)
        advertisers.append(Advertiser(
            title=item.get("title") or "N/A",
            advertiser_id=advertiser_id or "",
            location=item.get("location") or "",
            verified=bool(item.get("verified")),
            approx_ads_count=int(ads_count or 0),
        ))

    if not advertisers and items:
        logger.info(
            "No advertisers extracted for %r; item types: %s",
            keyword, sorted({i.get("type") for i in items}),
        )
    return advertisers


def fetch_organic_results(
    keyword: str,
    credentials: Credentials,
    location: str = "Italy",
    language: str = "it",
    depth: int = ORGANIC_DEPTH,
) -> list[OrganicResult]:
    """Top organic results for the keyword, best rank first."""
    task = _post(
        ORGANIC_ENDPOINT,
        [{
            "keyword": keyword,
            "location_name": location,
            "language_code": language,
            "device": "desktop",
            "os": "windows",
            "depth": depth,
        }],
        credentials,
    )
    items = _first_result(task).get("items") or []

    organic = [
        OrganicResult(
            position=item.get("rank_absolute") or item.get("rank_group") or 0,
            domain=item.get("domain") or "N/A",
            title=item.get("title") or "",
            url=item.get("url") or "",
        )
        for item in items
        if item.get("type") == "organic"
    ]
    return organic[:ORGANIC_TOP_N]


def fetch_keyword_metrics(
    keyword: str,
    credentials: Credentials,
    location: str = "Italy",
    language: str = "it",
    default: KeywordMetrics = DEFAULT_METRICS,
) -> KeywordMetrics:
    """Search volume, CPC and normalized competition.

    Never raises for API problems: falls back to ``default``.
    """
    try:
        task = _post(
            METRICS_ENDPOINT,
            [{
                "keywords": [keyword],
                "location_name": location,
                "language_code": language,
            }],
            credentials,
        )
    except DataForSEOError as e:
        logger.warning("Metrics for %r unavailable, using defaults: %s", keyword, e)
        return default

    result = _first_result(task)
    if not result:
        logger.warning("No metrics row for %r, using defaults", keyword)
        return default

    # competition_index is always 0-100; the raw field may be either scale
    if result.get("competition_index") is not None:
        competition = normalize_competition(result["competition_index"], is_index=True)
    else:
        competition = normalize_competition(result.get("competition"))

    return KeywordMetrics(
        search_volume=int(result.get("search_volume") or 0),
        cpc=float(result.get("cpc") or 0.0),
        competition=competition,
    )


def fetch_domain_keywords(
    domain: str,
    credentials: Credentials,
    location: str = "Italy",
    language: str = "it",
    limit: int = 50,
) -> list[str]:
    """Keywords a domain ranks for, highest search volume first."""
    task = _post(
        RANKED_KEYWORDS_ENDPOINT,
        [{
            "target": clean_domain(domain),
            "location_name": location,
            "language_code": language,
            "limit": min(limit, MAX_KEYWORDS),
            "order_by": ["keyword_data.keyword_info.search_volume,desc"],
        }],
        credentials,
    )
    items = _first_result(task).get("items") or []

    keywords = []
    for item in items:
        keyword = (item.get("keyword_data") or {}).get("keyword", "")
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    return keywords


# ── Normalization ────────────────────────────────────────────────


def normalize_competition(value, is_index: bool = False) -> float:
    """Bring competition onto [0, 1].

    With ``is_index`` the value is a 0-100 index and is always divided by
    100. Otherwise values above 1 are treated as an index. Missing or
    non-numeric values (e.g. "HIGH") become 0.
    """
    if value is None:
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if is_index or value > 1:
        value = value / 100
    return min(max(value, 0.0), 1.0)


def clean_domain(domain: str) -> str:
    domain = domain.strip().lower()
    domain = re.sub(r"^https?://", "", domain)
    domain = domain.split("/")[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def brand_token(domain: str) -> str:
    """example.com -> example"""
    return _TLD_PATTERN.sub("", clean_domain(domain))


def is_brand_keyword(keyword: str, brand_domains: list[str]) -> bool:
    if not brand_domains:
        return False
    lower_keyword = keyword.lower()
    return any(
        token and token in lower_keyword
        for token in (brand_token(d) for d in brand_domains)
    )


def tracked_positions(organic: list[OrganicResult], brand_domains: list[str]) -> tuple[int, ...]:
    """Organic ranks held by any tracked domain."""
    if not brand_domains:
        return ()
    tokens = [brand_token(d) for d in brand_domains if brand_token(d)]
    return tuple(
        r.position
        for r in organic
        if r.position > 0 and any(t in clean_domain(r.domain) for t in tokens)
    )


def validate_record(record: KeywordMetricRecord) -> KeywordMetricRecord:
    """Reject impossible metrics before they reach the classifier."""
    if not record.keyword.strip():
        raise InvalidRecord("keyword is empty")
    if record.search_volume < 0:
        raise InvalidRecord(f"{record.keyword}: negative search volume {record.search_volume}")
    if record.cpc < 0:
        raise InvalidRecord(f"{record.keyword}: negative CPC {record.cpc}")
    if not 0 <= record.competition <= 1:
        raise InvalidRecord(f"{record.keyword}: competition {record.competition} outside [0, 1]")
    if record.advertiser_count < 0:
        raise InvalidRecord(f"{record.keyword}: negative advertiser count")
    if any(pos < 1 for pos in record.organic_positions):
        raise InvalidRecord(f"{record.keyword}: organic positions must be positive")
    return record


def build_record(
    keyword: str,
    advertisers: list[Advertiser],
    organic: list[OrganicResult],
    metrics: KeywordMetrics,
    brand_domains: list[str],
) -> KeywordMetricRecord:
    return validate_record(KeywordMetricRecord(
        keyword=keyword,
        search_volume=metrics.search_volume,
        cpc=metrics.cpc,
        competition=metrics.competition,
        advertiser_count=len(advertisers),
        organic_positions=tracked_positions(organic, brand_domains),
        is_brand_keyword=is_brand_keyword(keyword, brand_domains),
    ))


# ── Collection run ───────────────────────────────────────────────


def parse_keyword_list(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """One keyword per line, blanks and duplicates dropped, capped at ``limit``."""
    keywords = []
    for line in text.splitlines():
        kw = line.strip()
        if kw and kw not in keywords:
            keywords.append(kw)
    return keywords[:limit]


def collect_keywords(
    keywords: list[str],
    credentials: Credentials,
    brand_domains: Optional[list[str]] = None,
    location: str = "Italy",
    language: str = "it",
    default_metrics: KeywordMetrics = DEFAULT_METRICS,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
    delay: float = REQUEST_DELAY,
) -> list[KeywordResult]:
    """Collect bidders, organic ranks and metrics keyword by keyword.

    A keyword whose calls fail still yields a result (default metrics, no
    advertisers) with ``success=False`` so the output keeps the input order.
    """
    brand_domains = brand_domains or []
    keywords = keywords[:MAX_KEYWORDS]
    results = []

    for i, keyword in enumerate(keywords):
        if progress_callback:
            progress_callback(i, len(keywords), keyword)

        try:
            advertisers = fetch_advertisers(keyword, credentials, location, language)
            organic = fetch_organic_results(keyword, credentials, location, language)
            metrics = fetch_keyword_metrics(keyword, credentials, location, language, default_metrics)
            record = build_record(keyword, advertisers, organic, metrics, brand_domains)
            results.append(KeywordResult(record=record, advertisers=advertisers, organic=organic))
            logger.info(
                "%s - %d bidders, %d organic, CPC %.2f",
                keyword, len(advertisers), len(organic), metrics.cpc,
            )
        except (DataForSEOError, InvalidRecord) as e:
            logger.error("Error processing %r: %s", keyword, e)
            record = KeywordMetricRecord(
                keyword=keyword,
                search_volume=default_metrics.search_volume,
                cpc=default_metrics.cpc,
                competition=default_metrics.competition,
                is_brand_keyword=is_brand_keyword(keyword, brand_domains),
            )
            results.append(KeywordResult(record=record, success=False, error=str(e)))

        if i < len(keywords) - 1 and delay > 0:
            time.sleep(delay)

    if progress_callback:
        progress_callback(len(keywords), len(keywords), "")

    return results
