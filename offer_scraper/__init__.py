"""
Offer scraper package.

This package crawls paginated product listings, extracts the competing
offers shown on each product page and upserts them into a store keyed by
product URL.
"""

import logging
from typing import Iterable, Optional

from ._version import __version__
from .config import AppConfig, get_config
from .crawler.factory import get_fetcher
from .events import CrawlEvent, EventEmitter, EventType, LoggingEventListener
from .extraction import DetailExtractor, ListingTraverser
from .ingest import IngestCoordinator
from .models import Offer, Product, RunSummary, UpsertResult
from .seeds import SeedFileError, load_seed_urls
from .storage import ProductStore, get_storage

logger = logging.getLogger(__name__)


async def scrape_offers(
    seed_urls: Iterable[str],
    config: Optional[AppConfig] = None,
    store: Optional[ProductStore] = None,
) -> RunSummary:
    """
    Crawl the given categories and store their products' offers.

    Args:
        seed_urls: Listing URLs, one per category.
        config: Configuration to use (defaults to the global one).
        store: Store to write to. Defaults to one built from ``config``; a
            store built here is closed before returning.

    Returns:
        RunSummary with the run's counters.
    """
    config = config or get_config()
    owns_store = store is None
    store = store or get_storage(config.storage)

    events = EventEmitter()
    events.subscribe(LoggingEventListener())

    try:
        async with get_fetcher(config.crawler) as fetcher:
            coordinator = IngestCoordinator.from_config(fetcher, store, config, events=events)
            return await coordinator.run(seed_urls)
    finally:
        if owns_store:
            await store.close()


__all__ = [
    "__version__",
    "scrape_offers",
    "AppConfig",
    "get_config",
    "get_fetcher",
    "get_storage",
    "load_seed_urls",
    "SeedFileError",
    "CrawlEvent",
    "EventEmitter",
    "EventType",
    "LoggingEventListener",
    "DetailExtractor",
    "ListingTraverser",
    "IngestCoordinator",
    "Offer",
    "Product",
    "ProductStore",
    "RunSummary",
    "UpsertResult",
]
