from __future__ import annotations

"""
Text helpers shared by the lexical scorer and the feature calculator.

Both sides must see the same view of a query, so every lower-casing and
splitting rule lives here:

* safe_lower(value) -> str
    Lower-cased string for anything (None, numbers, str).

* tokenize(text) -> List[str]
    Word tokens for term-frequency scoring; short tokens dropped.

* query_terms(query) -> List[str]
    Whitespace terms used for substring matching.
"""

import re
from typing import Any, List

from .config import MIN_TOKEN_LEN

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


def safe_lower(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.lower()


def tokenize(text: Any) -> List[str]:
    """Lower-case, blank out punctuation, split on whitespace.

    Tokens of ``MIN_TOKEN_LEN`` characters or fewer are discarded, so
    'ai', 'de' and 'of' never count.
    """
    t = _NON_WORD_RE.sub(" ", safe_lower(text))
    return [tok for tok in _WS_RE.split(t) if len(tok) > MIN_TOKEN_LEN]


def query_terms(query: Any) -> List[str]:
    # no length filter here: "ai" in a title is still a hit
    return [term for term in _WS_RE.split(safe_lower(query)) if term]
