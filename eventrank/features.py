from __future__ import annotations

"""
Per-candidate feature scoring.

Every feature is a total function of (candidate, query, country): missing or
malformed input degrades to the feature's neutral value (0.5 for recency and
authority, 0.0 for the rest) and never raises. One bad page must not take
the whole batch down.
"""

import datetime as dt
from typing import Any, Callable, Optional

import pandas as pd
from loguru import logger

from .config import (
    CONTENT_HIT_WEIGHT,
    DATE_METADATA_KEYS,
    FEATURE_CAP,
    GEO_TERM_WEIGHT,
    GEO_TLD_WEIGHT,
    HTTPS_SCORE,
    KNOWN_DOMAIN_SCORE,
    NEUTRAL_AUTHORITY,
    NEUTRAL_RECENCY,
    OFFICIAL_TLD_SCORE,
    ORG_TLD_SCORE,
    RECENCY_FLOOR,
    RECENCY_STEPS,
    SCHEMA_HIT_WEIGHT,
    SNIPPET_HIT_WEIGHT,
    TITLE_HIT_WEIGHT,
    TOPIC_HIT_WEIGHT,
    RankingFeatures,
    SearchCandidate,
)
from .constants import (
    AUTHORITATIVE_DOMAINS,
    COUNTRY_INDICATORS,
    EVENT_TERMS,
    OFFICIAL_TLDS,
    SCHEMA_INDICATORS,
)
from .normalize import query_terms, safe_lower
from .utils.urls import parse_url


_RELATIVE_DATE_WORDS = frozenset({"now", "today"})


def _utcnow() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


def _cap(score: float) -> float:
    return min(score, FEATURE_CAP)


# ---------------------------------------------------------------------------
# Individual features
# ---------------------------------------------------------------------------

def lexical_feature(candidate: SearchCandidate, query: str) -> float:
    title = safe_lower(candidate.title)
    snippet = safe_lower(candidate.snippet)
    content = safe_lower(candidate.content)

    score = 0.0
    for term in query_terms(query):
        if term in title:
            score += TITLE_HIT_WEIGHT
        if term in snippet:
            score += SNIPPET_HIT_WEIGHT
        if term in content:
            score += CONTENT_HIT_WEIGHT
    return _cap(score)


def _date_value(metadata: Any) -> Any:
    if not isinstance(metadata, dict):
        return None
    for key in DATE_METADATA_KEYS:
        value = metadata.get(key)
        if value:
            return value
    return None


def parse_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Best-effort UTC timestamp from a metadata value.

    Accepts ISO/RFC strings, datetime/date objects and epoch milliseconds.
    Naive values are taken as UTC. Returns None when nothing sensible can be
    read.
    """
    if isinstance(value, bool):
        return None
    # pandas reads these as the current instant; they carry no date
    if isinstance(value, str) and value.strip().lower() in _RELATIVE_DATE_WORDS:
        return None
    try:
        if isinstance(value, (int, float)):
            ts = pd.to_datetime(value, unit="ms", utc=True)
        elif isinstance(value, (str, dt.date, pd.Timestamp)):
            ts = pd.to_datetime(value, utc=True)
        else:
            return None
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug("Unparseable date {!r}: {}", value, e)
        return None
    if ts is pd.NaT or pd.isna(ts):
        return None
    return ts


def recency_feature(
    candidate: SearchCandidate,
    now: Optional[pd.Timestamp] = None,
) -> float:
    ts = parse_timestamp(_date_value(candidate.metadata))
    if ts is None:
        return NEUTRAL_RECENCY

    now = now if now is not None else _utcnow()
    try:
        age_days = (now - ts).total_seconds() / 86400.0
    except (TypeError, OverflowError, ValueError):
        return NEUTRAL_RECENCY

    for max_age, score in RECENCY_STEPS:
        if age_days <= max_age:
            return score
    return RECENCY_FLOOR


def authority_feature(candidate: SearchCandidate) -> float:
    p = parse_url(candidate.url)
    if p is None:
        return NEUTRAL_AUTHORITY

    if p.host.endswith(OFFICIAL_TLDS):
        return OFFICIAL_TLD_SCORE
    if p.host.endswith(".org"):
        return ORG_TLD_SCORE
    if any(d in p.host for d in AUTHORITATIVE_DOMAINS):
        return KNOWN_DOMAIN_SCORE
    if p.scheme == "https":
        return HTTPS_SCORE
    return NEUTRAL_AUTHORITY


def geo_feature(candidate: SearchCandidate, country: str) -> float:
    indicators = COUNTRY_INDICATORS.get(safe_lower(country).strip(), [])
    if not indicators:
        return 0.0

    text = " ".join(
        safe_lower(v)
        for v in (candidate.url, candidate.title, candidate.snippet, candidate.content)
    )
    score = 0.0
    for ind in indicators:
        if ind in text:
            score += GEO_TLD_WEIGHT if ind.startswith(".") else GEO_TERM_WEIGHT
    return _cap(score)


def schema_feature(candidate: SearchCandidate) -> float:
    content = safe_lower(candidate.content)
    if not content:
        return 0.0
    hits = sum(1 for ind in SCHEMA_INDICATORS if ind in content)
    return _cap(hits * SCHEMA_HIT_WEIGHT)


def topic_feature(candidate: SearchCandidate, query: str) -> float:
    q = safe_lower(query)
    title = safe_lower(candidate.title)
    snippet = safe_lower(candidate.snippet)

    hits = sum(
        1 for term in EVENT_TERMS
        if term in q and (term in title or term in snippet)
    )
    return _cap(hits * TOPIC_HIT_WEIGHT)


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------

class FeatureCalculator:
    """
    Computes the six-feature vector for one candidate.

    ``clock`` returns the reference "now" for recency; it is read once per
    batch so every candidate in a call is aged against the same instant.
    """

    def __init__(self, clock: Optional[Callable[[], pd.Timestamp]] = None):
        self.clock = clock or _utcnow

    def calculate(
        self,
        candidate: SearchCandidate,
        query: str,
        country: str,
        now: Optional[pd.Timestamp] = None,
    ) -> RankingFeatures:
        now = now if now is not None else self.clock()
        return RankingFeatures(
            lexical_score=lexical_feature(candidate, query),
            recency_score=recency_feature(candidate, now=now),
            authority_score=authority_feature(candidate),
            geo_match_score=geo_feature(candidate, country),
            schema_score=schema_feature(candidate),
            topic_match_score=topic_feature(candidate, query),
        )
