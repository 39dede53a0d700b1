# eventrank/cross_encoder.py
from __future__ import annotations

import asyncio
import os
import threading
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import httpx
import numpy as np
from loguru import logger

from . import config
from .config import SearchCandidate

try:
    from sentence_transformers import CrossEncoder  # type: ignore
except Exception as e:
    CrossEncoder = None
    _import_err = e


ScoredPairs = List[Tuple[SearchCandidate, float]]


@runtime_checkable
class RelevanceScorer(Protocol):
    """
    Capability every relevance scorer exposes.

    ``is_available`` must be cheap and must not raise. ``rank`` returns one
    (candidate, score) pair per input candidate, in input order; it may raise
    or hang, and the caller is responsible for falling back.
    """

    name: str

    async def is_available(self) -> bool: ...

    async def rank(self, query: str, candidates: Sequence[SearchCandidate]) -> ScoredPairs: ...


def build_candidate_text(candidate: SearchCandidate, max_chars: int = config.MAX_DOCUMENT_CHARS) -> str:
    """
    Text a cross-encoder sees for one candidate: title, snippet, content.
    """
    bits = [candidate.title, candidate.snippet, candidate.content or ""]
    text = " ".join(b.strip() for b in bits if b and b.strip())
    return text[:max_chars]


# ---------------------------------------------------------------------------
# Local sentence-transformers model
# ---------------------------------------------------------------------------

_MODELS: Dict[str, Any] = {}
_FAILED: set = set()
_LOAD_LOCK = threading.Lock()


def _model_ids_from_env() -> List[str]:
    pinned = os.getenv(config.RERANKER_MODEL_ENV, "").strip()
    return [pinned] if pinned else list(config.LOCAL_RERANKER_MODELS)


def load_reranker(model_ids: Sequence[str], device: str = "cpu") -> Optional[Any]:
    """
    Load and cache the first CrossEncoder in ``model_ids`` that loads.
    Respects the HF offline cache via env. Returns None if none load.
    Serialised so concurrent callers share one load.
    """
    if CrossEncoder is None:
        logger.warning("sentence_transformers not available: {}", _import_err)
        return None

    with _LOAD_LOCK:
        return _load_first(model_ids, device)


def _load_first(model_ids: Sequence[str], device: str) -> Optional[Any]:
    for rid in model_ids:
        if rid in _MODELS:
            return _MODELS[rid]
        if rid in _FAILED:
            continue
        try:
            logger.info("Loading cross-encoder reranker: {}", rid)
            model = CrossEncoder(rid, device=device)
            _MODELS[rid] = model
            logger.info("Loaded cross-encoder reranker: {}", rid)
            return model
        except Exception as e:
            logger.warning("Failed to load CrossEncoder '{}': {}", rid, e)
            _FAILED.add(rid)

    logger.warning("No cross-encoder could be loaded from {}", list(model_ids))
    return None


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-x))


class LocalCrossEncoder:
    """
    In-process cross-encoder backed by sentence-transformers.

    The model loads lazily on the first ``rank``; inference runs in a worker
    thread so the event loop is not blocked. Set ``apply_sigmoid`` for models
    that emit raw logits instead of 0-1 scores.
    """

    name = "local-cross-encoder"

    def __init__(
        self,
        model_ids: Optional[Sequence[str]] = None,
        device: str = "cpu",
        apply_sigmoid: bool = False,
        model: Any = None,
    ):
        self.model_ids = list(model_ids) if model_ids else _model_ids_from_env()
        self.device = device
        self.apply_sigmoid = apply_sigmoid
        self._model = model
        self._lock = threading.Lock()

    async def is_available(self) -> bool:
        if self._model is not None:
            return True
        if CrossEncoder is None:
            return False
        return any(rid not in _FAILED for rid in self.model_ids)

    def _predict(self, query: str, texts: List[str]) -> np.ndarray:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    self._model = load_reranker(self.model_ids, device=self.device)
        if self._model is None:
            raise RuntimeError("no cross-encoder model could be loaded")

        pairs = [(query, t) for t in texts]
        scores = np.asarray(self._model.predict(pairs), dtype="float64").reshape(-1)
        if self.apply_sigmoid:
            scores = _sigmoid(scores)
        return scores

    async def rank(self, query: str, candidates: Sequence[SearchCandidate]) -> ScoredPairs:
        if not candidates:
            return []
        texts = [build_candidate_text(c) for c in candidates]
        scores = await asyncio.to_thread(self._predict, query, texts)
        return [(c, float(s)) for c, s in zip(candidates, scores)]


# ---------------------------------------------------------------------------
# Remote rerank API
# ---------------------------------------------------------------------------

class VoyageCrossEncoder:
    """
    Voyage AI rerank endpoint. Available iff an API key is configured
    (argument or ``VOYAGE_API_KEY``).
    """

    name = "voyage"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.VOYAGE_RERANK_MODEL,
        url: str = config.VOYAGE_RERANK_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv(config.VOYAGE_API_KEY_ENV, "")
        self.model = model
        self.url = url
        self._transport = transport

    async def is_available(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(config.HTTP_READ_TIMEOUT, connect=config.HTTP_CONNECT_TIMEOUT),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "User-Agent": config.HTTP_USER_AGENT,
            },
            transport=self._transport,
        )

    async def rank(self, query: str, candidates: Sequence[SearchCandidate]) -> ScoredPairs:
        if not candidates:
            return []

        docs = [build_candidate_text(c) or c.url for c in candidates]
        payload = {
            "query": query,
            "documents": docs,
            "model": self.model,
            "top_k": len(docs),
            "return_documents": False,
        }
        async with self._client() as client:
            r = await client.post(self.url, json=payload)
            if r.status_code >= 400:
                logger.warning("Voyage rerank: HTTP {}", r.status_code)
            r.raise_for_status()
            data = r.json()

        items = data.get("data") or data.get("results") or []
        scores = [0.0] * len(candidates)
        for item in items:
            idx = int(item["index"])
            if 0 <= idx < len(scores):
                scores[idx] = float(item["relevance_score"])
        return list(zip(candidates, scores))
