from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------
# Model names (pinned)
# ---------------------------

# Local cross-encoders, tried in order
LOCAL_RERANKER_MODELS: List[str] = [
    "BAAI/bge-reranker-base",
    "cross-encoder/ms-marco-MiniLM-L-6-v2",
]

# Remote rerank API
VOYAGE_RERANK_URL = "https://api.voyageai.com/v1/rerank"
VOYAGE_RERANK_MODEL = "rerank-2"
VOYAGE_API_KEY_ENV = "VOYAGE_API_KEY"
RERANKER_MODEL_ENV = "RERANKER_MODEL"


# ---------------------------
# HTTP hardening (remote reranker)
# ---------------------------

HTTP_CONNECT_TIMEOUT = 3.0
HTTP_READ_TIMEOUT = 15.0
HTTP_USER_AGENT = "eventrank/1.0 (+https://example.com)"

# chars of title + snippet + content sent per document
MAX_DOCUMENT_CHARS = 4_000


# ---------------------------
# Weighted blend defaults
# ---------------------------

DEFAULT_WEIGHTS: Dict[str, float] = {
    "lexical": 0.25,
    "recency": 0.20,
    "authority": 0.20,
    "geo": 0.15,
    "schema": 0.10,
    "topic": 0.10,
}

DEFAULT_MIN_SCORE = 0.3
DEFAULT_MAX_CANDIDATES = 10
DEFAULT_MAX_RESULTS = 10

LEXICAL_SCORER_NAME = "lexical"


# ---------------------------
# Feature constants
# ---------------------------

# lexical feature: per-term substring hit
TITLE_HIT_WEIGHT = 0.4
SNIPPET_HIT_WEIGHT = 0.3
CONTENT_HIT_WEIGHT = 0.1

# tokens of this length or shorter are dropped by the lexical scorer
MIN_TOKEN_LEN = 2

# recency: metadata keys, checked in order
DATE_METADATA_KEYS: Tuple[str, ...] = (
    "publishedDate",
    "lastModified",
    "published_date",
    "last_modified",
)
NEUTRAL_RECENCY = 0.5
# (max age in days, score); older than the last bucket -> RECENCY_FLOOR
RECENCY_STEPS: List[Tuple[float, float]] = [
    (7, 1.0),
    (30, 0.8),
    (90, 0.6),
    (365, 0.4),
]
RECENCY_FLOOR = 0.2

# authority
OFFICIAL_TLD_SCORE = 1.0
ORG_TLD_SCORE = 0.9
KNOWN_DOMAIN_SCORE = 0.8
HTTPS_SCORE = 0.7
NEUTRAL_AUTHORITY = 0.5

# geo: TLD indicators (leading ".") count more than words
GEO_TLD_WEIGHT = 0.3
GEO_TERM_WEIGHT = 0.1

SCHEMA_HIT_WEIGHT = 0.1
TOPIC_HIT_WEIGHT = 0.2

FEATURE_CAP = 1.0


# ---------------------------
# URL micro-bias & aggregator gate
# ---------------------------

DE_TLD_BONUS = 0.08
CONFERENCE_PATH_BONUS = 0.05

MIN_NON_AGGREGATOR_URLS = 6
MAX_BACKSTOP_AGGREGATORS = 1


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class SearchCandidate(BaseModel):
    """
    One retrieved page/event. The url is the key within a ranking call.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    snippet: str = ""
    content: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", "snippet", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_default(cls, v: Any) -> Any:
        return {} if v is None else v

    def text_fields(self) -> List[str]:
        return [self.title, self.snippet, self.content or ""]


class RankingFeatures(BaseModel):
    model_config = ConfigDict(frozen=True)

    lexical_score: float = Field(ge=0.0, le=1.0)
    recency_score: float = Field(ge=0.0, le=1.0)
    authority_score: float = Field(ge=0.0, le=1.0)
    geo_match_score: float = Field(ge=0.0, le=1.0)
    schema_score: float = Field(ge=0.0, le=1.0)
    topic_match_score: float = Field(ge=0.0, le=1.0)


class RankingResult(BaseModel):
    """
    A scored candidate. ``rank`` is positional and only meaningful inside the
    result list it was returned in.
    """

    model_config = ConfigDict(frozen=True)

    candidate: SearchCandidate
    features: RankingFeatures
    relevance_score: float
    final_score: float
    rank: int = Field(ge=1)


class RerankerWeights(BaseModel):
    """
    Blend weights. Used as supplied; they are not required to sum to 1.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    lexical: float = DEFAULT_WEIGHTS["lexical"]
    recency: float = DEFAULT_WEIGHTS["recency"]
    authority: float = DEFAULT_WEIGHTS["authority"]
    geo: float = DEFAULT_WEIGHTS["geo"]
    schema_: float = Field(default=DEFAULT_WEIGHTS["schema"], alias="schema")
    topic: float = DEFAULT_WEIGHTS["topic"]

    @field_validator("*")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("weights must be finite")
        return v

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump(by_alias=True)


class RerankerThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_score: float = DEFAULT_MIN_SCORE
    max_candidates: int = Field(default=DEFAULT_MAX_CANDIDATES, ge=0)


class RerankerConfig(BaseModel):
    """
    Immutable reranker configuration. Build a new one (and a new reranker)
    to retune; never mutate a live instance.
    """

    model_config = ConfigDict(frozen=True)

    weights: RerankerWeights = Field(default_factory=RerankerWeights)
    thresholds: RerankerThresholds = Field(default_factory=RerankerThresholds)

    def with_weights(self, **overrides: float) -> "RerankerConfig":
        """Return a copy whose weights are ``overrides`` merged over ours."""
        unknown = set(overrides) - set(DEFAULT_WEIGHTS)
        if unknown:
            raise ValueError(f"Unknown weight(s): {sorted(unknown)}")
        merged = {**self.weights.as_dict(), **overrides}
        return RerankerConfig(
            weights=RerankerWeights(**merged),
            thresholds=self.thresholds,
        )


DEFAULT_RERANKER_CONFIG = RerankerConfig()


class RankRequest(BaseModel):
    """
    Request envelope handed over by the surrounding request handler.
    """

    query: str = ""
    candidates: List[SearchCandidate] = Field(default_factory=list)
    country: str = ""
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, ge=1)


class RankingStats(BaseModel):
    total_candidates: int
    ranked_candidates: int
    reranker_used: str
    processing_time_ms: float
    aggregators_dropped: int = 0
    backstop_kept: int = 0


class RankingResponse(BaseModel):
    ranked_results: List[RankingResult]
    stats: RankingStats
