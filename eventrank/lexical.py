from __future__ import annotations

from collections import Counter
from typing import List, Sequence, Tuple

from .config import LEXICAL_SCORER_NAME, SearchCandidate
from .normalize import tokenize


def lexical_scores(query: str, candidates: Sequence[SearchCandidate]) -> List[float]:
    """
    Crude term-frequency relevance, one score per candidate in input order.

    For each query token: occurrences in title + snippet + content divided by
    the candidate's token count. Summed, then divided by the number of query
    tokens. An empty query or an empty candidate scores 0.0.
    """
    q_tokens = tokenize(query)
    if not q_tokens:
        return [0.0 for _ in candidates]

    scores: List[float] = []
    for cand in candidates:
        doc_tokens: List[str] = []
        for field in cand.text_fields():
            doc_tokens.extend(tokenize(field))

        total = len(doc_tokens)
        if total == 0:
            scores.append(0.0)
            continue

        counts = Counter(doc_tokens)
        score = sum(counts[tok] / total for tok in q_tokens)
        scores.append(score / len(q_tokens))
    return scores


class LexicalScorer:
    """Always-available relevance scorer; the fallback for every cross-encoder."""

    name = LEXICAL_SCORER_NAME

    async def is_available(self) -> bool:
        return True

    async def rank(
        self,
        query: str,
        candidates: Sequence[SearchCandidate],
    ) -> List[Tuple[SearchCandidate, float]]:
        return list(zip(candidates, lexical_scores(query, candidates)))
