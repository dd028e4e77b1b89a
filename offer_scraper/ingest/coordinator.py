"""
Ingest coordinator: listing traversal, offer extraction and persistence for
every seed category.

Failures are isolated per item. A listing page that cannot be read ends its
category, a product page that cannot be read is skipped, a failed write is
counted, and the run always carries on with the next item.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from ..config import AppConfig
from ..crawler.fetcher import PageFetcher
from ..crawler.retry_handler import create_retry_handler
from ..events import CrawlEvent, EventEmitter, EventType
from ..extraction.listing import ListingTraverser
from ..extraction.offers import DetailExtractor
from ..models import ExtractionStatus, Offer, RunSummary
from ..storage.base import ProductStore, StorageError

logger = logging.getLogger(__name__)


class _SummaryRecorder:
    """Event listener keeping a RunSummary's counters up to date."""

    def __init__(self, summary: RunSummary):
        self.summary = summary

    def __call__(self, event: CrawlEvent) -> None:
        s = self.summary
        if event.type == EventType.CATEGORY_STARTED:
            s.categories += 1
        elif event.type == EventType.LISTING_PAGE_SCRAPED:
            s.listing_pages += 1
        elif event.type == EventType.LISTING_PAGE_FAILED:
            s.listing_failures += 1
        elif event.type == EventType.PRODUCT_SCRAPED:
            s.products_scraped += 1
        elif event.type == EventType.PRODUCT_SKIPPED:
            s.products_without_offers += 1
        elif event.type == EventType.PRODUCT_FAILED:
            s.products_failed += 1
        elif event.type == EventType.PRODUCT_STORED:
            if event.data.get("result") == "created":
                s.created += 1
            else:
                s.updated += 1
        elif event.type == EventType.STORE_FAILED:
            s.store_failures += 1


class IngestCoordinator:
    """
    Crawl seed categories and upsert the offers of every product found.

    Categories are processed one after another and listing pages in order.
    Product pages are extracted by up to ``max_concurrent_products`` workers;
    with the default of 1 every step completes before the next starts.
    """

    def __init__(
        self,
        traverser: ListingTraverser,
        extractor: DetailExtractor,
        store: ProductStore,
        events: Optional[EventEmitter] = None,
        max_concurrent_products: int = 1,
        store_empty_offers: bool = False,
    ):
        """
        Initialize the coordinator.

        Args:
            traverser: Listing traverser yielding product links.
            extractor: Extractor reading offers from product pages.
            store: Store receiving the upserts.
            events: Emitter for crawl events. Should be the one the traverser
                emits to, so listing events reach the same listeners.
            max_concurrent_products: Size of the product worker pool.
            store_empty_offers: Whether a product page that shows no offers
                overwrites the stored offers with an empty list. When False,
                the stored record is left untouched.
        """
        if max_concurrent_products < 1:
            raise ValueError("max_concurrent_products must be >= 1")

        self.traverser = traverser
        self.extractor = extractor
        self.store = store
        self.events = events or traverser.events
        self.max_concurrent_products = max_concurrent_products
        self.store_empty_offers = store_empty_offers
        self._stop_requested = False

    @classmethod
    def from_config(
        cls,
        fetcher: PageFetcher,
        store: ProductStore,
        config: Optional[AppConfig] = None,
        events: Optional[EventEmitter] = None,
    ) -> "IngestCoordinator":
        """
        Wire a coordinator, traverser and extractor from configuration.

        Args:
            fetcher: Fetcher shared by the traverser and extractor.
            store: Store receiving the upserts.
            config: Application configuration (defaults to the global one).
            events: Emitter for crawl events (a new one if omitted).
        """
        if config is None:
            from ..config import get_config

            config = get_config()

        crawler = config.crawler
        events = events or EventEmitter()
        retry_handler = create_retry_handler(
            max_retries=crawler.max_retries,
            retry_delay=crawler.retry_delay,
            strategy=crawler.retry_strategy,
        )

        traverser = ListingTraverser(
            fetcher,
            selectors=config.selectors,
            retry_handler=retry_handler,
            events=events,
            max_pages=crawler.max_listing_pages,
        )
        extractor = DetailExtractor(
            fetcher,
            selectors=config.selectors,
            selector_timeout_ms=crawler.selector_timeout_ms,
            currency_symbol=crawler.currency_symbol,
            retry_handler=retry_handler,
        )
        return cls(
            traverser,
            extractor,
            store,
            events=events,
            max_concurrent_products=crawler.max_concurrent_products,
            store_empty_offers=crawler.store_empty_offers,
        )

    def request_stop(self) -> None:
        """
        Stop scheduling new work.

        Product pages already being extracted are allowed to finish or time
        out so their browser pages are released properly.
        """
        if not self._stop_requested:
            logger.info("Stop requested, finishing in-flight pages")
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def run(self, seed_urls: Iterable[str]) -> RunSummary:
        """
        Crawl every seed category.

        Args:
            seed_urls: Listing URLs, one per category.

        Returns:
            Counters for the run. Individual failures are counted, never raised.
        """
        summary = RunSummary(started_at=datetime.utcnow())
        recorder = _SummaryRecorder(summary)
        self.events.subscribe(recorder)

        try:
            for seed_url in seed_urls:
                if self._stop_requested:
                    break
                await self._run_category(seed_url, summary)
        finally:
            self.events.unsubscribe(recorder)
            summary.finished_at = datetime.utcnow()

        data = summary.model_dump(mode="json")
        data["failures"] = summary.failures
        self.events.emit(EventType.RUN_COMPLETED, **data)
        return summary

    async def _run_category(self, seed_url: str, summary: RunSummary) -> None:
        self.events.emit(EventType.CATEGORY_STARTED, seed_url)
        pages_before = summary.listing_pages
        products = 0

        semaphore = asyncio.Semaphore(self.max_concurrent_products)
        in_flight: Set[asyncio.Task] = set()
        links = self.traverser.traverse(seed_url)

        try:
            async for product_url in links:
                if self._stop_requested:
                    break
                products += 1
                summary.products_seen += 1

                if self.max_concurrent_products == 1:
                    await self.process_product(product_url)
                    continue

                await semaphore.acquire()
                task = asyncio.create_task(self._process_with_slot(product_url, semaphore))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
        except Exception as e:
            logger.error(f"Unexpected error traversing {seed_url}: {str(e)}")
            self.events.emit(EventType.LISTING_PAGE_FAILED, seed_url, error=str(e))
        finally:
            await links.aclose()
            if in_flight:
                await asyncio.gather(*in_flight)

        self.events.emit(
            EventType.CATEGORY_FINISHED,
            seed_url,
            products=products,
            pages=summary.listing_pages - pages_before,
        )

    async def _process_with_slot(self, product_url: str, semaphore: asyncio.Semaphore) -> None:
        try:
            await self.process_product(product_url)
        finally:
            semaphore.release()

    async def process_product(self, product_url: str) -> None:
        """
        Extract one product page and upsert its offers.

        Never raises: every failure is logged and reported as an event.
        """
        try:
            result = await self.extractor.extract(product_url)

            if result.status == ExtractionStatus.OK:
                self.events.emit(EventType.PRODUCT_SCRAPED, product_url, offers=len(result.offers))
                await self._store(product_url, result.offers)
            elif result.status == ExtractionStatus.NO_OFFERS:
                self.events.emit(EventType.PRODUCT_SKIPPED, product_url, reason=result.error)
                if self.store_empty_offers:
                    await self._store(product_url, [])
            else:
                self.events.emit(EventType.PRODUCT_FAILED, product_url, error=result.error)
        except Exception as e:
            logger.error(f"Unexpected error processing {product_url}: {str(e)}")
            self.events.emit(EventType.PRODUCT_FAILED, product_url, error=str(e))

    async def _store(self, product_url: str, offers: List[Offer]) -> None:
        try:
            result = await self.store.upsert(product_url, offers)
        except StorageError as e:
            self.events.emit(EventType.STORE_FAILED, product_url, error=str(e))
            return
        self.events.emit(
            EventType.PRODUCT_STORED, product_url, result=result.value, offers=len(offers)
        )
