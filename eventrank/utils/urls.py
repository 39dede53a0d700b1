# eventrank/utils/urls.py
from __future__ import annotations

from typing import NamedTuple, Optional
from urllib.parse import urlparse

__all__ = ["ParsedUrl", "parse_url", "hostname", "bare_host"]


class ParsedUrl(NamedTuple):
    scheme: str
    host: str
    path: str


def parse_url(u: str) -> Optional[ParsedUrl]:
    """
    Parse an absolute URL into (scheme, host, path), all lower-cased.

    Returns None for anything that is not an absolute URL with a host:
    relative paths, bare words, broken IPv6 literals. Callers treat None as
    "no signal" rather than as an error.
    """
    if not isinstance(u, str):
        return None
    u = u.strip()
    if not u:
        return None
    try:
        p = urlparse(u)
        host = p.hostname
    except ValueError:
        return None
    if not p.scheme or not host:
        return None
    return ParsedUrl(p.scheme.lower(), host.lower(), (p.path or "").lower())


def hostname(u: str) -> str:
    p = parse_url(u)
    return p.host if p else ""


def bare_host(u: str) -> str:
    """Host without a leading ``www.``."""
    host = hostname(u)
    return host[4:] if host.startswith("www.") else host
