# eventrank/reranker.py
from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from .config import (
    DEFAULT_RERANKER_CONFIG,
    LEXICAL_SCORER_NAME,
    RankingFeatures,
    RankingResult,
    RerankerConfig,
    SearchCandidate,
)
from .cross_encoder import RelevanceScorer
from .features import FeatureCalculator
from .lexical import lexical_scores


@dataclass
class RerankOutcome:
    results: List[RankingResult]
    scorer_used: str


class WeightedReranker:
    """
    Blends a relevance score with five page features into one final score.

    High-level flow:
      1) relevance from the cross-encoder, or the lexical scorer when the
         cross-encoder is missing, unavailable, raises or times out
      2) six features per candidate
      3) weighted sum (relevance stands in for the lexical feature)
      4) drop final < min_score
      5) stable sort by final desc (ties keep input order)
      6) ranks 1..n, truncate to max_candidates

    Instances are immutable; use ``with_weights`` to retune.
    """

    def __init__(
        self,
        config: RerankerConfig = DEFAULT_RERANKER_CONFIG,
        cross_encoder: Optional[RelevanceScorer] = None,
        feature_calculator: Optional[FeatureCalculator] = None,
        timeout_s: Optional[float] = None,
    ):
        self._config = config
        self._cross_encoder = cross_encoder
        self._features = feature_calculator or FeatureCalculator()
        self._timeout_s = timeout_s

    @property
    def config(self) -> RerankerConfig:
        return self._config

    @property
    def cross_encoder(self) -> Optional[RelevanceScorer]:
        return self._cross_encoder

    def with_weights(self, **overrides: float) -> "WeightedReranker":
        return WeightedReranker(
            config=self._config.with_weights(**overrides),
            cross_encoder=self._cross_encoder,
            feature_calculator=self._features,
            timeout_s=self._timeout_s,
        )

    # ------------------------------------------------------------------
    # Relevance
    # ------------------------------------------------------------------

    async def _cross_encoder_scores(
        self,
        query: str,
        candidates: Sequence[SearchCandidate],
    ) -> Optional[List[float]]:
        ce = self._cross_encoder
        if ce is None:
            return None

        try:
            available = await ce.is_available()
        except Exception as e:
            logger.warning("Cross-encoder '{}' availability check raised: {}", ce.name, e)
            return None
        if not available:
            logger.debug("Cross-encoder '{}' unavailable; using lexical", ce.name)
            return None

        try:
            if self._timeout_s is not None:
                pairs = await asyncio.wait_for(ce.rank(query, candidates), self._timeout_s)
            else:
                pairs = await ce.rank(query, candidates)
            scores = [float(score) for _, score in pairs]
        except Exception as e:
            logger.warning("Cross-encoder '{}' failed, falling back to lexical: {!r}", ce.name, e)
            return None

        if len(scores) != len(candidates) or not all(math.isfinite(s) for s in scores):
            logger.warning(
                "Cross-encoder '{}' returned {} usable scores for {} candidates; falling back to lexical",
                ce.name, len(scores), len(candidates),
            )
            return None
        return scores

    async def relevance(
        self,
        query: str,
        candidates: Sequence[SearchCandidate],
    ) -> Tuple[List[float], str]:
        """Relevance scores in input order, plus the name of the scorer that produced them."""
        scores = await self._cross_encoder_scores(query, candidates)
        if scores is not None:
            return scores, self._cross_encoder.name
        return lexical_scores(query, candidates), LEXICAL_SCORER_NAME

    # ------------------------------------------------------------------
    # Blend
    # ------------------------------------------------------------------

    def final_score(self, features: RankingFeatures, relevance: float) -> float:
        w = self._config.weights
        return (
            relevance * w.lexical
            + features.recency_score * w.recency
            + features.authority_score * w.authority
            + features.geo_match_score * w.geo
            + features.schema_score * w.schema_
            + features.topic_match_score * w.topic
        )

    async def rerank(
        self,
        query: str,
        candidates: Sequence[SearchCandidate],
        country: str,
        score_bonus: Optional[Callable[[SearchCandidate], float]] = None,
    ) -> RerankOutcome:
        if not candidates:
            return RerankOutcome(results=[], scorer_used=LEXICAL_SCORER_NAME)

        relevance, scorer_used = await self.relevance(query, candidates)

        now = self._features.clock()
        min_score = self._config.thresholds.min_score
        kept: List[Tuple[SearchCandidate, RankingFeatures, float, float]] = []
        for cand, rel in zip(candidates, relevance):
            feats = self._features.calculate(cand, query, country, now=now)
            final = self.final_score(feats, rel)
            if score_bonus is not None:
                final += score_bonus(cand)
            if final >= min_score:
                kept.append((cand, feats, rel, final))

        # sorted() is stable, reverse=True included
        kept = sorted(kept, key=lambda t: t[3], reverse=True)
        kept = kept[: self._config.thresholds.max_candidates]

        results = [
            RankingResult(
                candidate=cand,
                features=feats,
                relevance_score=rel,
                final_score=final,
                rank=i + 1,
            )
            for i, (cand, feats, rel, final) in enumerate(kept)
        ]
        logger.debug(
            "Reranked {} -> {} candidates (min_score={}) using {}",
            len(candidates), len(results), min_score, scorer_used,
        )
        return RerankOutcome(results=results, scorer_used=scorer_used)
