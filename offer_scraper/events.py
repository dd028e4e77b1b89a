"""
Structured events emitted while crawling.

The coordinator reports progress as a stream of events; logging is just one
subscriber to that stream.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of crawl events."""

    CATEGORY_STARTED = "category_started"
    CATEGORY_FINISHED = "category_finished"
    LISTING_PAGE_SCRAPED = "listing_page_scraped"
    LISTING_PAGE_FAILED = "listing_page_failed"
    PRODUCT_SCRAPED = "product_scraped"
    PRODUCT_SKIPPED = "product_skipped"
    PRODUCT_FAILED = "product_failed"
    PRODUCT_STORED = "product_stored"
    STORE_FAILED = "store_failed"
    RUN_COMPLETED = "run_completed"


class CrawlEvent(BaseModel):
    """A single crawl event."""

    type: EventType
    url: Optional[str] = Field(None, description="Page or product the event is about")
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)


EventListener = Callable[[CrawlEvent], None]


class EventEmitter:
    """Fan events out to subscribed listeners."""

    def __init__(self):
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event_type: EventType, url: Optional[str] = None, **data: Any) -> CrawlEvent:
        """
        Build an event and deliver it to every listener.

        A failing listener is logged and skipped; it never interrupts the
        crawl or the other listeners.

        Returns:
            The emitted event.
        """
        event = CrawlEvent(type=event_type, url=url, data=data)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener {listener!r} failed on {event.type.value}: {str(e)}")
        return event


class LoggingEventListener:
    """Turn crawl events into human-readable log lines."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger("offer_scraper.events")

    def __call__(self, event: CrawlEvent) -> None:
        data = event.data
        if event.type == EventType.CATEGORY_STARTED:
            self.log.info(f"Scraping category: {event.url}")
        elif event.type == EventType.CATEGORY_FINISHED:
            self.log.info(
                f"Finished category {event.url}: {data.get('products', 0)} products "
                f"on {data.get('pages', 0)} pages"
            )
        elif event.type == EventType.LISTING_PAGE_SCRAPED:
            self.log.debug(
                f"Listing page {event.url}: {data.get('links', 0)} products, "
                f"next page: {data.get('next_page')}"
            )
        elif event.type == EventType.LISTING_PAGE_FAILED:
            self.log.warning(f"Stopped category at listing page {event.url}: {data.get('error')}")
        elif event.type == EventType.PRODUCT_SCRAPED:
            self.log.info(f"Scraped product: {event.url} ({data.get('offers', 0)} offers)")
        elif event.type == EventType.PRODUCT_SKIPPED:
            self.log.warning(f"Skipped product: {event.url} ({data.get('reason')})")
        elif event.type == EventType.PRODUCT_FAILED:
            self.log.warning(f"Failed product: {event.url}: {data.get('error')}")
        elif event.type == EventType.PRODUCT_STORED:
            verb = "Inserted new" if data.get("result") == "created" else "Updated"
            self.log.info(f"{verb} product: {event.url}")
        elif event.type == EventType.STORE_FAILED:
            self.log.error(f"Error saving data for {event.url}: {data.get('error')}")
        elif event.type == EventType.RUN_COMPLETED:
            self.log.info(
                f"Scraping completed: {data.get('products_scraped', 0)} scraped, "
                f"{data.get('failures', 0)} failures"
            )
