"""
Factory for creating page fetchers from configuration.
"""

import logging
from typing import Optional

from ..config import CrawlerConfig
from .fetcher import PageFetcher
from .http_fetcher import HttpPageFetcher
from .identity import IdentityProvider, RandomUserAgentProvider

logger = logging.getLogger(__name__)

FETCHER_TYPES = ("playwright", "http")


def get_fetcher(
    config: Optional[CrawlerConfig] = None,
    identity: Optional[IdentityProvider] = None,
) -> PageFetcher:
    """
    Create a page fetcher based on configuration.

    Args:
        config: Crawler configuration (optional, defaults to the global one).
        identity: Source of request headers. Defaults to a random pick from
            the configured user agent pool.

    Returns:
        An unstarted PageFetcher.

    Raises:
        ValueError: If the fetcher type is unknown.
    """
    if config is None:
        from ..config import get_config

        config = get_config().crawler

    fetcher_type = config.fetcher.lower()
    identity = identity or RandomUserAgentProvider(config.user_agents)

    if fetcher_type == "playwright":
        # Imported here so the http fetcher works without browser binaries.
        from .playwright_fetcher import PlaywrightPageFetcher

        fetcher = PlaywrightPageFetcher(
            headless=config.headless,
            identity=identity,
            navigation_timeout_ms=config.navigation_timeout_ms,
        )
    elif fetcher_type == "http":
        fetcher = HttpPageFetcher(
            identity=identity,
            navigation_timeout_ms=config.navigation_timeout_ms,
        )
    else:
        raise ValueError(
            f"Unknown fetcher type: {fetcher_type} (expected one of {', '.join(FETCHER_TYPES)})"
        )

    logger.debug(f"Using {fetcher_type} fetcher")
    return fetcher
