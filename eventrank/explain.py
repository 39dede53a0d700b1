# eventrank/explain.py
from __future__ import annotations

"""
Tabular views over ranking output, for weight tuning in a notebook.

    frame = results_to_frame(response.ranked_results)
    feature_summary(frame)
"""

from typing import List, Sequence

import pandas as pd

from .config import RankingResult

FEATURE_COLUMNS: List[str] = [
    "lexical_score",
    "recency_score",
    "authority_score",
    "geo_match_score",
    "schema_score",
    "topic_match_score",
]

COLUMNS: List[str] = ["rank", "url", "title", "relevance_score", "final_score"] + FEATURE_COLUMNS


def results_to_frame(results: Sequence[RankingResult]) -> pd.DataFrame:
    rows = []
    for r in results:
        row = {
            "rank": r.rank,
            "url": r.candidate.url,
            "title": r.candidate.title,
            "relevance_score": r.relevance_score,
            "final_score": r.final_score,
        }
        row.update(r.features.model_dump())
        rows.append(row)
    return pd.DataFrame(rows, columns=COLUMNS)


def feature_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """Mean/min/max per feature column; empty frame in, empty summary out."""
    cols = [c for c in FEATURE_COLUMNS + ["relevance_score", "final_score"] if c in frame.columns]
    if frame.empty:
        return pd.DataFrame(index=cols, columns=["mean", "min", "max"], dtype="float64")
    return frame[cols].agg(["mean", "min", "max"]).T
