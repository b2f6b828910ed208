"""Domain normalisation used as the cache key everywhere.

The rule is the naive "last two hostname labels" one: ``www.example.co.uk``
normalises to ``co.uk``. It is not public-suffix aware. Changing it would
change every stored cache key, so it is pinned.
"""

from __future__ import annotations

from urllib.parse import urlparse


def _base_domain(hostname: str) -> str:
    """Return the last two DNS labels: ``'api.example.com'`` → ``'example.com'``."""
    parts = hostname.rstrip(".").split(".")
    return ".".join(parts[-2:]) if len(parts) >= 2 else hostname


def registrable_domain(url: str) -> str:
    """Return the lowercase cache-key domain for an absolute URL.

    Malformed input yields ``""``. Callers must check for the empty string
    before any cache operation.
    """
    if not isinstance(url, str):
        return ""
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname or ""
    except ValueError:
        return ""
    if not parsed.scheme or not hostname:
        return ""
    return _base_domain(hostname.lower())


def is_related_domain(domain1: str, domain2: str) -> bool:
    """True when both domains are non-empty and either contains the other.

    Lets ``legal.example.com`` links count for ``example.com`` pages while
    excluding unrelated third parties.
    """
    if not domain1 or not domain2:
        return False
    return domain1 in domain2 or domain2 in domain1
