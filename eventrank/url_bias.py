from __future__ import annotations

"""
URL-level heuristics applied around the weighted reranker.

Two independent pieces:

* an aggregator gate that drops listing sites (10times, eventbrite, ...)
  before ranking, keeping a small backstop when too few primary sources
  remain;
* a micro-bias (``url_bonus``) that nudges German hosts and
  programme/speaker pages upwards.

Both are opt-in from the orchestrator; with defaults the ranking is the
plain weighted blend.
"""

from dataclasses import dataclass
from typing import List, Sequence

from loguru import logger

from .config import (
    CONFERENCE_PATH_BONUS,
    DE_TLD_BONUS,
    MAX_BACKSTOP_AGGREGATORS,
    MIN_NON_AGGREGATOR_URLS,
    SearchCandidate,
)
from .constants import AGGREGATOR_DOMAINS, CONFERENCE_PATH_KEYWORDS
from .utils.urls import bare_host, parse_url


def is_aggregator_url(url: str) -> bool:
    host = bare_host(url)
    if not host:
        return False
    return any(host == d or host.endswith(f".{d}") for d in AGGREGATOR_DOMAINS)


def has_german_tld(url: str) -> bool:
    p = parse_url(url)
    return bool(p) and p.host.endswith(".de")


def has_conference_path(url: str) -> bool:
    p = parse_url(url)
    return bool(p) and any(k in p.path for k in CONFERENCE_PATH_KEYWORDS)


def url_bonus(url: str) -> float:
    bonus = 0.0
    if has_german_tld(url):
        bonus += DE_TLD_BONUS
    if has_conference_path(url):
        bonus += CONFERENCE_PATH_BONUS
    return bonus


def candidate_url_bonus(candidate: SearchCandidate) -> float:
    return url_bonus(candidate.url)


@dataclass
class GateResult:
    candidates: List[SearchCandidate]
    aggregators_dropped: int
    backstop_kept: int


def filter_aggregators(
    candidates: Sequence[SearchCandidate],
    min_non_aggregators: int = MIN_NON_AGGREGATOR_URLS,
    max_backstop: int = MAX_BACKSTOP_AGGREGATORS,
) -> GateResult:
    """
    Drop aggregator pages, preserving input order.

    If fewer than ``min_non_aggregators`` primary pages survive, the first
    ``max_backstop`` aggregators are appended so the shortlist is not empty.
    """
    primary: List[SearchCandidate] = []
    aggregators: List[SearchCandidate] = []
    for c in candidates:
        (aggregators if is_aggregator_url(c.url) else primary).append(c)

    kept = list(primary)
    backstop = 0
    if len(primary) < min_non_aggregators and aggregators:
        extra = aggregators[:max_backstop]
        kept.extend(extra)
        backstop = len(extra)
        logger.info("Aggregator gate: kept {} backstop aggregator(s)", backstop)

    dropped = len(aggregators) - backstop
    logger.info(
        "Aggregator gate: {} -> {} candidates (dropped {}, backstop {})",
        len(candidates), len(kept), dropped, backstop,
    )
    return GateResult(candidates=kept, aggregators_dropped=dropped, backstop_kept=backstop)
