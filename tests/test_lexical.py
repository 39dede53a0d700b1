import asyncio

import pytest

from eventrank.config import SearchCandidate
from eventrank.lexical import LexicalScorer, lexical_scores
from eventrank.normalize import query_terms, tokenize


def _cand(title="", snippet="", content=None):
    return SearchCandidate(url="https://example.com", title=title, snippet=snippet, content=content)


def test_tokenize_drops_short_tokens_and_punctuation():
    tokens = tokenize("Legal-Tech: AI in the EU, 2025!")
    assert tokens == ["legal", "tech", "the", "2025"]


def test_tokenize_keeps_unicode_words():
    assert tokenize("Summit München") == ["summit", "münchen"]


def test_query_terms_split_on_whitespace_only():
    assert query_terms("  Legal  tech\tAI ") == ["legal", "tech", "ai"]
    assert query_terms("") == []
    assert query_terms(None) == []


def test_term_frequency_formula():
    cand = _cand(title="Python conference", snippet="python")
    # tokens: python, conference, python -> python 2/3, conference 1/3
    assert lexical_scores("python conference", [cand]) == [pytest.approx(0.5)]


def test_scores_follow_input_order():
    a = _cand(title="python python python")
    b = _cand(title="cooking recipes")
    scores = lexical_scores("python", [b, a])
    assert scores[0] == 0.0
    assert scores[1] == pytest.approx(1.0)


def test_empty_query_and_empty_candidate_score_zero():
    cand = _cand(title="Legal tech summit")
    assert lexical_scores("", [cand]) == [0.0]
    assert lexical_scores("ai ml", [cand]) == [0.0]
    assert lexical_scores("legal", [_cand()]) == [0.0]
    assert lexical_scores("legal", []) == []


def test_lexical_scorer_is_always_available():
    scorer = LexicalScorer()
    cand = _cand(title="Legal tech")
    assert scorer.name == "lexical"
    assert asyncio.run(scorer.is_available()) is True
    pairs = asyncio.run(scorer.rank("legal", [cand]))
    assert pairs[0][0] is cand
    assert pairs[0][1] == pytest.approx(0.5)
