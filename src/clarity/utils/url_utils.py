# src/clarity/utils/url_utils.py
"""
Canonical form of x402 resource URLs.

``normalize_resource_url`` is the single normalization routine: the
aggregator dedups on it and the endpoint repository upserts on it, so the
two keys cannot drift apart.
"""
import re
from urllib.parse import urlsplit

_TRAILING_SLASHES = re.compile(r"/+$")


def _fallback_normalize(url: str) -> str:
    return _TRAILING_SLASHES.sub("", url.lower())


def normalize_resource_url(url: str) -> str:
    """
    Normalize a resource URL for storage and deduplication.

    - Lowercase the host only (scheme, path and query keep their case)
    - Strip trailing slashes from the path; an empty path becomes ``/``
    - Keep the query string verbatim; drop the fragment

    Unparseable input falls back to lowercasing the whole string and
    stripping trailing slashes. Never raises.
    """
    if url is None:
        return ""

    url = url.strip()
    try:
        parts = urlsplit(url)
        # Accessing .port validates it and raises ValueError when it is garbage.
        parts.port
    except ValueError:
        return _fallback_normalize(url)

    if not parts.scheme or not parts.netloc or not parts.hostname:
        return _fallback_normalize(url)

    netloc = parts.netloc
    userinfo = ""
    if "@" in netloc:
        userinfo, _, netloc = netloc.rpartition("@")
        userinfo += "@"

    path = _TRAILING_SLASHES.sub("", parts.path) or "/"
    query = f"?{parts.query}" if parts.query else ""

    return f"{parts.scheme}://{userinfo}{netloc.lower()}{path}{query}"


def extract_host(url: str) -> str:
    """Return the lowercased host without a leading ``www.``, or ``""``."""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def path_and_query(url: str) -> str:
    """Return ``path`` plus ``?query`` (when present) for pattern matching."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return ""
    query = f"?{parts.query}" if parts.query else ""
    return f"{parts.path}{query}"
