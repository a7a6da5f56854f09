"""URL and domain canonicalization helpers shared by every provider adapter."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

# Search/CDN backend hosts that front provider infrastructure, never content.
INFRASTRUCTURE_DOMAINS = (
    "vertexaisearch.cloud.google.com",
    "googleapis.com",
    "googleusercontent.com",
    "gstatic.com",
)


def normalize_domain(domain: str) -> str:
    """Lowercase a host and strip a leading ``www.`` label."""
    domain = (domain or "").strip().lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def extract_domain(url: str) -> str:
    """Return the canonical domain of ``url``, or ``""`` if it can't be parsed."""
    try:
        host = urlsplit(url).hostname
    except (ValueError, TypeError, AttributeError):
        return ""
    if not host:
        return ""
    return normalize_domain(host)


def clean_url(url: str) -> str:
    """Drop the query string and fragment, keeping scheme, host and path."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except (ValueError, TypeError, AttributeError):
        return url
    if not parts.scheme or not host:
        return url
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port else host
    return f"{parts.scheme}://{netloc}{parts.path}"


def domain_matches(citation_domain: str, target_domain: str) -> bool:
    """Subdomain-inclusive match: either canonical domain contains the other."""
    a = normalize_domain(citation_domain)
    b = normalize_domain(target_domain)
    if not a or not b:
        return False
    return a in b or b in a


def is_excluded_domain(domain: str, denylist=INFRASTRUCTURE_DOMAINS) -> bool:
    """True if ``domain`` equals a denylisted domain or is a subdomain of one."""
    domain = normalize_domain(domain)
    if not domain:
        return False
    return any(domain == excluded or domain.endswith("." + excluded) for excluded in denylist)


def count_literal(text: str, needle: str) -> int:
    """Case-insensitive count of non-overlapping literal occurrences."""
    if not text or not needle:
        return 0
    return len(re.findall(re.escape(needle), text, flags=re.IGNORECASE))


def _marker_pattern(index: int) -> re.Pattern[str]:
    return re.compile(rf"\[{index}\]")


def count_marker_occurrences(text: str, index: int) -> int:
    """Count ``[index]`` reference markers in ``text``."""
    if not text:
        return 0
    return len(_marker_pattern(index).findall(text))


def marker_windows(text: str, index: int, window: int) -> list[tuple[int, int, str]]:
    """Return ``(start, end, text)`` windows of ``window`` chars around each marker."""
    if not text:
        return []
    spans: list[tuple[int, int, str]] = []
    for match in _marker_pattern(index).finditer(text):
        start = max(0, match.start() - window)
        end = min(len(text), match.end() + window)
        spans.append((start, end, text[start:end]))
    return spans
