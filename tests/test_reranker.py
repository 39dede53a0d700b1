import asyncio

import pandas as pd
import pytest

from eventrank.config import (
    DEFAULT_RERANKER_CONFIG,
    RerankerConfig,
    RerankerThresholds,
    RerankerWeights,
    SearchCandidate,
)
from eventrank.features import FeatureCalculator
from eventrank.reranker import WeightedReranker

NOW = pd.Timestamp("2025-06-01T12:00:00", tz="UTC")


class StubEncoder:
    """Returns fixed scores in input order."""

    def __init__(self, scores, available=True, name="stub-ce"):
        self.scores = scores
        self.available = available
        self.name = name
        self.calls = 0

    async def is_available(self):
        return self.available

    async def rank(self, query, candidates):
        self.calls += 1
        return [(c, s) for c, s in zip(candidates, self.scores)]


class FailingEncoder(StubEncoder):
    async def rank(self, query, candidates):
        raise RuntimeError("model exploded")


class SlowEncoder(StubEncoder):
    async def rank(self, query, candidates):
        await asyncio.sleep(2)
        return await super().rank(query, candidates)


class BrokenProbeEncoder(StubEncoder):
    async def is_available(self):
        raise ConnectionError("probe failed")


def _cand(i, **kw):
    kw.setdefault("title", f"Page {i}")
    return SearchCandidate(url=f"https://site{i}.gov/event", **kw)


def _reranker(config=DEFAULT_RERANKER_CONFIG, **kw):
    return WeightedReranker(config=config, feature_calculator=FeatureCalculator(clock=lambda: NOW), **kw)


def _run(reranker, query, candidates, country="de"):
    return asyncio.run(reranker.rerank(query, candidates, country))


def test_uses_cross_encoder_scores_when_available():
    cands = [_cand(i) for i in range(3)]
    enc = StubEncoder([0.1, 0.9, 0.5])
    out = _run(_reranker(cross_encoder=enc), "anything", cands)

    assert out.scorer_used == "stub-ce"
    assert [r.candidate.url for r in out.results] == [cands[1].url, cands[2].url, cands[0].url]
    assert out.results[0].relevance_score == 0.9


def test_final_score_is_weighted_blend():
    cand = SearchCandidate(url="https://example.com/x", title="Cooking")
    enc = StubEncoder([0.8])
    out = _run(_reranker(cross_encoder=enc), "q", [cand], country="")
    r = out.results[0]
    # 0.8*0.25 + recency 0.5*0.2 + authority 0.7*0.2
    assert r.final_score == pytest.approx(0.2 + 0.1 + 0.14)


def test_unavailable_encoder_falls_back_without_calling_rank():
    enc = StubEncoder([1.0, 1.0], available=False)
    out = _run(_reranker(cross_encoder=enc), "page", [_cand(0), _cand(1)])
    assert out.scorer_used == "lexical"
    assert enc.calls == 0


@pytest.mark.parametrize("enc_cls", [FailingEncoder, BrokenProbeEncoder])
def test_erroring_encoder_falls_back_to_lexical(enc_cls):
    enc = enc_cls([1.0])
    out = _run(_reranker(cross_encoder=enc), "page", [_cand(0)])
    assert out.scorer_used == "lexical"
    assert len(out.results) == 1


def test_encoder_timeout_falls_back_to_lexical():
    enc = SlowEncoder([1.0])
    out = _run(_reranker(cross_encoder=enc, timeout_s=0.05), "page", [_cand(0)])
    assert out.scorer_used == "lexical"


@pytest.mark.parametrize("scores", [[0.5], [0.5, float("nan")]])
def test_malformed_encoder_output_falls_back(scores):
    enc = StubEncoder(scores)
    out = _run(_reranker(cross_encoder=enc), "page", [_cand(0), _cand(1)])
    assert out.scorer_used == "lexical"


def test_min_score_boundary_is_inclusive():
    cfg = RerankerConfig(
        weights=RerankerWeights(lexical=0, recency=0, authority=1.0, geo=0, schema=0, topic=0),
        thresholds=RerankerThresholds(min_score=0.7),
    )
    https = SearchCandidate(url="https://example.com/a", title="A")
    http = SearchCandidate(url="http://example.com/b", title="B")
    out = _run(_reranker(config=cfg), "q", [http, https])

    assert [r.candidate.url for r in out.results] == [https.url]
    assert out.results[0].final_score == 0.7


def test_ties_keep_input_order():
    cfg = RerankerConfig(thresholds=RerankerThresholds(min_score=0.0))
    cands = [SearchCandidate(url=f"https://example.com/{i}", title="Same") for i in range(5)]
    out = _run(_reranker(config=cfg), "same", cands, country="")

    assert [r.candidate.url for r in out.results] == [c.url for c in cands]
    assert len({r.final_score for r in out.results}) == 1


def test_ranks_are_dense_and_scores_non_increasing():
    cfg = RerankerConfig(thresholds=RerankerThresholds(min_score=0.0, max_candidates=4))
    enc = StubEncoder([0.3, 0.9, 0.1, 0.7, 0.5, 0.2])
    cands = [_cand(i) for i in range(6)]
    out = _run(_reranker(config=cfg, cross_encoder=enc), "q", cands)

    assert [r.rank for r in out.results] == [1, 2, 3, 4]
    finals = [r.final_score for r in out.results]
    assert finals == sorted(finals, reverse=True)


def test_below_threshold_candidates_are_excluded():
    cfg = RerankerConfig(thresholds=RerankerThresholds(min_score=10.0))
    out = _run(_reranker(config=cfg), "page", [_cand(0), _cand(1)])
    assert out.results == []


def test_empty_inputs_are_valid():
    out = _run(_reranker(cross_encoder=StubEncoder([])), "page", [])
    assert out.results == []
    assert out.scorer_used == "lexical"

    cfg = RerankerConfig(thresholds=RerankerThresholds(min_score=0.0))
    out = _run(_reranker(config=cfg), "", [_cand(0)])
    assert len(out.results) == 1
    assert out.results[0].relevance_score == 0.0


def test_with_weights_returns_new_instance():
    base = _reranker()
    tuned = base.with_weights(recency=0.9)

    assert tuned is not base
    assert tuned.config.weights.recency == 0.9
    assert tuned.config.weights.lexical == 0.25
    assert base.config.weights.recency == 0.2


def test_score_bonus_is_added_before_threshold():
    cfg = RerankerConfig(thresholds=RerankerThresholds(min_score=0.5))
    cand = SearchCandidate(url="https://example.com/x", title="Cooking")
    reranker = _reranker(config=cfg)

    plain = asyncio.run(reranker.rerank("q", [cand], ""))
    boosted = asyncio.run(reranker.rerank("q", [cand], "", score_bonus=lambda c: 0.3))
    assert plain.results == []
    assert boosted.results[0].final_score == pytest.approx(0.24 + 0.3)
