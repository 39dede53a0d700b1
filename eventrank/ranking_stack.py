from __future__ import annotations

"""
Ranking stack: retrieve (done upstream) -> rerank -> truncate.

This is the single entry point the request handler talks to. It owns a
reference to an immutable ``WeightedReranker``; retuning swaps that
reference, so calls already in flight finish with the weights they started
with. Nothing else is kept between calls.
"""

import asyncio
import time
from typing import Optional, Sequence

from loguru import logger

from .config import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_RERANKER_CONFIG,
    RankingResponse,
    RankingStats,
    RankRequest,
    RerankerConfig,
    SearchCandidate,
)
from .cross_encoder import RelevanceScorer
from .features import FeatureCalculator
from .reranker import WeightedReranker
from .url_bias import candidate_url_bonus, filter_aggregators


class RankingStack:
    def __init__(
        self,
        cross_encoder: Optional[RelevanceScorer] = None,
        config: RerankerConfig = DEFAULT_RERANKER_CONFIG,
        timeout_s: Optional[float] = None,
        prefilter_aggregators: bool = False,
        apply_url_bonus: bool = False,
        feature_calculator: Optional[FeatureCalculator] = None,
    ):
        self._base_config = config
        self.prefilter_aggregators = prefilter_aggregators
        self.apply_url_bonus = apply_url_bonus
        self._reranker = WeightedReranker(
            config=config,
            cross_encoder=cross_encoder,
            feature_calculator=feature_calculator,
            timeout_s=timeout_s,
        )

    @property
    def reranker(self) -> WeightedReranker:
        return self._reranker

    def update_weights(self, **weights: float) -> WeightedReranker:
        """
        Retune with partial overrides merged over this stack's base weights.
        Builds a fresh reranker and swaps it in; the old one is untouched.
        """
        new = self._reranker.with_weights(**{**self._base_config.weights.as_dict(), **weights})
        self._reranker = new
        logger.info("Ranking weights updated: {}", new.config.weights.as_dict())
        return new

    async def execute(
        self,
        query: str,
        candidates: Sequence[SearchCandidate],
        country: str,
        max_results: Optional[int] = DEFAULT_MAX_RESULTS,
    ) -> RankingResponse:
        start = time.perf_counter()
        reranker = self._reranker
        query = query or ""
        country = country or ""
        limit = DEFAULT_MAX_RESULTS if max_results is None else max(0, int(max_results))

        logger.info("Ranking {} candidates for query: {!r} (country={!r})", len(candidates), query, country)

        pool = list(candidates)
        dropped = backstop = 0
        if self.prefilter_aggregators and pool:
            gate = filter_aggregators(pool)
            pool, dropped, backstop = gate.candidates, gate.aggregators_dropped, gate.backstop_kept

        outcome = await reranker.rerank(
            query,
            pool,
            country,
            score_bonus=candidate_url_bonus if self.apply_url_bonus else None,
        )
        final = outcome.results[:limit]

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        stats = RankingStats(
            total_candidates=len(candidates),
            ranked_candidates=len(final),
            reranker_used=outcome.scorer_used,
            processing_time_ms=elapsed_ms,
            aggregators_dropped=dropped,
            backstop_kept=backstop,
        )
        logger.info(
            "Ranked {} -> {} candidates with {} in {:.1f} ms",
            stats.total_candidates, stats.ranked_candidates, stats.reranker_used, elapsed_ms,
        )
        return RankingResponse(ranked_results=final, stats=stats)

    async def execute_request(self, request: RankRequest) -> RankingResponse:
        return await self.execute(
            request.query,
            request.candidates,
            request.country,
            max_results=request.max_results,
        )


def rank_candidates(
    query: str,
    candidates: Sequence[SearchCandidate],
    country: str,
    max_results: int = DEFAULT_MAX_RESULTS,
    stack: Optional[RankingStack] = None,
) -> RankingResponse:
    """
    Blocking convenience wrapper for callers without an event loop.
    Must not be called from inside a running loop; await ``execute`` there.
    """
    stack = stack or RankingStack()
    return asyncio.run(stack.execute(query, candidates, country, max_results=max_results))
