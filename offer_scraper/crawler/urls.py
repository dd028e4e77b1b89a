"""
Helpers for turning page links into absolute URLs.
"""

from urllib.parse import urlparse


def resolve(base_url: str, candidate: str) -> str:
    """
    Resolve a link found on a page against a base URL.

    Absolute links (anything starting with ``http``) are returned unchanged,
    everything else is appended to ``base_url``. Malformed input is passed
    through as-is.

    Args:
        base_url: Base to prepend, usually the site origin.
        candidate: Link as written in the page markup.

    Returns:
        The absolute URL.
    """
    if candidate.startswith("http"):
        return candidate
    return f"{base_url}{candidate}"


def origin_of(url: str) -> str:
    """Return the ``scheme://host`` part of a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"
