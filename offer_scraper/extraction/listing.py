"""
Listing page traversal.

A category is crawled by following its "next page" links from the seed URL
until a page has none. Product links are yielded lazily, page by page.
"""

import logging
from typing import AsyncIterator, Optional

from ..config import SelectorConfig
from ..crawler.fetcher import ElementSnapshot, PageFetcher
from ..crawler.retry_handler import RetryHandler
from ..crawler.urls import origin_of, resolve
from ..exceptions import CrawlError
from ..events import EventEmitter, EventType
from ..models import ListingPage

logger = logging.getLogger(__name__)


def _link_of(element: ElementSnapshot, base_url: str) -> Optional[str]:
    if element.href:
        return element.href
    raw_href = element.get("href")
    return resolve(base_url, raw_href) if raw_href else None


class ListingTraverser:
    """Walk a category's listing pages and yield product links."""

    def __init__(
        self,
        fetcher: PageFetcher,
        selectors: Optional[SelectorConfig] = None,
        retry_handler: Optional[RetryHandler] = None,
        events: Optional[EventEmitter] = None,
        max_pages: Optional[int] = None,
    ):
        """
        Initialize the traverser.

        Args:
            fetcher: Fetcher used to load listing pages.
            selectors: Site selectors. Defaults to the configured ones.
            retry_handler: Retry policy for navigation errors. Defaults to a
                single attempt.
            events: Emitter receiving listing page events.
            max_pages: Stop a category after this many pages (None for no bound).
        """
        self.fetcher = fetcher
        self.selectors = selectors or SelectorConfig()
        self.retry_handler = retry_handler or RetryHandler(max_retries=0)
        self.events = events or EventEmitter()
        self.max_pages = max_pages

    async def _read_page(self, url: str) -> ListingPage:
        async with self.fetcher.fetch(url) as page:
            base_url = origin_of(page.url)
            elements = await page.query_all(self.selectors.product_link)
            next_element = await page.query_one(self.selectors.next_page)

        product_links = [link for link in (_link_of(el, base_url) for el in elements) if link]
        next_page = _link_of(next_element, base_url) if next_element else None
        return ListingPage(url=url, product_links=product_links, next_page=next_page)

    async def listing_page(self, url: str) -> ListingPage:
        """
        Read one listing page.

        Raises:
            CrawlError: If the page cannot be loaded or queried after retries.
        """
        return await self.retry_handler.execute(self._read_page, url)

    async def traverse(self, start_url: str) -> AsyncIterator[str]:
        """
        Yield every product link of a category, in page and document order.

        Duplicates are not filtered. A page that fails to load ends the
        traversal of this category without raising.

        Args:
            start_url: First listing page of the category.
        """
        visited = set()
        url: Optional[str] = start_url

        while url:
            if url in visited:
                logger.warning(f"Pagination loops back to {url}, stopping")
                return
            if self.max_pages is not None and len(visited) >= self.max_pages:
                logger.info(f"Reached {self.max_pages} listing pages for {start_url}, stopping")
                return
            visited.add(url)

            try:
                page = await self.listing_page(url)
            except CrawlError as e:
                logger.warning(f"Error scraping listing page for {url}: {str(e)}")
                self.events.emit(EventType.LISTING_PAGE_FAILED, url, error=str(e))
                return

            self.events.emit(
                EventType.LISTING_PAGE_SCRAPED,
                url,
                links=len(page.product_links),
                next_page=page.next_page,
            )

            for link in page.product_links:
                yield link

            url = page.next_page
