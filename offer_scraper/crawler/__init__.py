"""
Page fetching for the offer scraper: fetchers, request identity, retries and
URL helpers.
"""

from .fetcher import ElementSnapshot, PageFetcher, RenderedPage
from .http_fetcher import HttpPageFetcher, StaticRenderedPage
from .identity import FixedIdentityProvider, IdentityProvider, RandomUserAgentProvider
from .retry_handler import RetryHandler, RetryStrategy, create_retry_handler
from .urls import origin_of, resolve

__all__ = [
    "ElementSnapshot",
    "PageFetcher",
    "RenderedPage",
    "HttpPageFetcher",
    "StaticRenderedPage",
    "FixedIdentityProvider",
    "IdentityProvider",
    "RandomUserAgentProvider",
    "RetryHandler",
    "RetryStrategy",
    "create_retry_handler",
    "origin_of",
    "resolve",
]
