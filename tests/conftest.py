"""
Shared fixtures: a fake page fetcher serving canned HTML, and HTML builders
matching the crawled site's markup.
"""

from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pytest

from offer_scraper.crawler.fetcher import PageFetcher
from offer_scraper.crawler.http_fetcher import StaticRenderedPage
from offer_scraper.crawler.identity import FixedIdentityProvider
from offer_scraper.exceptions import FetchTimeout, NavigationError

BASE = "https://shop.example"

Outcome = Union[str, Exception]


class FakePageFetcher(PageFetcher):
    """
    Serve pages from a dict of URL -> HTML or exception.

    A list value is consumed one outcome per request, which lets a test make
    a page fail once and succeed on retry. Unknown URLs raise NavigationError.
    """

    def __init__(self, pages: Dict[str, Union[Outcome, List[Outcome]]]):
        super().__init__(identity=FixedIdentityProvider())
        self.pages = pages
        self.requests: List[str] = []
        self.open_pages = 0
        self.max_open_pages = 0

    def _outcome(self, url: str) -> Optional[Outcome]:
        outcome = self.pages.get(url)
        if isinstance(outcome, list):
            return outcome.pop(0) if len(outcome) > 1 else outcome[0]
        return outcome

    @asynccontextmanager
    async def fetch(self, url, *, wait_for=None, timeout_ms=None):
        self.requests.append(url)
        outcome = self._outcome(url)
        if outcome is None:
            raise NavigationError("HTTP error 404: Not Found", url=url)
        if isinstance(outcome, Exception):
            raise outcome

        page = StaticRenderedPage(url, outcome)
        if wait_for and not page.has(wait_for):
            raise FetchTimeout(f"{wait_for!r} did not appear", url=url)

        self.open_pages += 1
        self.max_open_pages = max(self.max_open_pages, self.open_pages)
        try:
            yield page
        finally:
            self.open_pages -= 1


def listing_html(product_paths: Sequence[str], next_href: Optional[str] = None) -> str:
    """Listing page with one result item per product path."""
    items = "\n".join(
        f'<div data-testid="resultItem"><a data-testid="productLink" href="{path}">{path}</a></div>'
        for path in product_paths
    )
    next_link = f'<a aria-label="next page" href="{next_href}">Next</a>' if next_href else ""
    return f"<html><body><div class='results'>{items}</div>{next_link}</body></html>"


def product_html(offers: Sequence[Tuple[Optional[str], Optional[str]]]) -> str:
    """Product page with one offer link per (shop name, href) pair."""
    links = []
    for shop_name, href in offers:
        attrs = ['class="productOffers-listItemOfferLink"']
        if shop_name is not None:
            attrs.append(f'data-shop-name="{shop_name}"')
        if href is not None:
            attrs.append(f'href="{href}"')
        links.append(f"<li><a {' '.join(attrs)}>Go to shop</a></li>")
    return f"<html><body><ul class='productOffers'>{''.join(links)}</ul></body></html>"


def empty_product_html() -> str:
    return "<html><body><p>No offers available</p></body></html>"


@pytest.fixture
def make_fetcher():
    """Factory building a FakePageFetcher from a page mapping."""
    return FakePageFetcher
