from __future__ import annotations

from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def extract_domain(url: str) -> str:
    """Hostname without a leading ``www.``, for display and domain rules."""
    try:
        host = urlparse(url).netloc
    except Exception:
        return url
    if host.startswith("www."):
        host = host[4:]
    return host


def truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]
