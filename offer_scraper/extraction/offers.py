"""
Offer extraction from product detail pages.

The normalization rules below decide what ends up in the store and must stay
stable between releases: shop names are cut at their first dot and reduced to
letters, digits and spaces, and prices are read from the ``price=`` parameter
of the offer link.
"""

import logging
import re
from typing import List, Optional

from ..config import SelectorConfig
from ..crawler.fetcher import ElementSnapshot, PageFetcher
from ..crawler.retry_handler import RetryHandler
from ..crawler.urls import origin_of, resolve
from ..exceptions import FetchTimeout, NavigationError, NoOffersFound, PageQueryError
from ..models import ExtractionResult, ExtractionStatus, Offer

logger = logging.getLogger(__name__)

MISSING = "N/A"

PRICE_PATTERN = re.compile(r"price=([\d.]+)", re.ASCII)
SHOP_NAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9 ]")


def normalize_shop_name(raw: Optional[str]) -> str:
    """
    Clean a shop name read from an offer element.

    Shop names are often domains ("Amazon.co.uk"), so everything from the
    first dot on is dropped before non-alphanumerics are stripped. A missing
    name becomes "N/A", which cleans to "NA".

    >>> normalize_shop_name("Amazon.co.uk#2")
    'Amazon'
    >>> normalize_shop_name("Currys_PC-World")
    'CurrysPCWorld'
    """
    name = raw or MISSING
    if "." in name:
        name = name.split(".")[0]
    return SHOP_NAME_DISALLOWED.sub("", name.strip())


def extract_price(href: Optional[str], currency_symbol: str = "£") -> str:
    """
    Read the price out of an offer link's ``price=`` query parameter.

    Returns:
        The price prefixed with ``currency_symbol``, or "N/A".
    """
    if not href:
        return MISSING
    match = PRICE_PATTERN.search(href)
    return f"{currency_symbol}{match.group(1)}" if match else MISSING


class DetailExtractor:
    """Read the offer list of product pages."""

    def __init__(
        self,
        fetcher: PageFetcher,
        selectors: Optional[SelectorConfig] = None,
        selector_timeout_ms: int = 10000,
        currency_symbol: str = "£",
        retry_handler: Optional[RetryHandler] = None,
    ):
        """
        Initialize the extractor.

        Args:
            fetcher: Fetcher used to load product pages.
            selectors: Site selectors. Defaults to the configured ones.
            selector_timeout_ms: How long to wait for the first offer element.
            currency_symbol: Symbol prefixed to extracted prices.
            retry_handler: Retry policy for navigation errors and timeouts.
                Defaults to a single attempt.
        """
        self.fetcher = fetcher
        self.selectors = selectors or SelectorConfig()
        self.selector_timeout_ms = selector_timeout_ms
        self.currency_symbol = currency_symbol
        self.retry_handler = retry_handler or RetryHandler(max_retries=0)

    def _to_offer(self, element: ElementSnapshot, base_url: str) -> Offer:
        raw_href = element.get("href")
        shop_link = element.href or (resolve(base_url, raw_href) if raw_href else None)
        return Offer(
            shop_name=normalize_shop_name(element.get(self.selectors.shop_name_attribute)),
            price=extract_price(raw_href, self.currency_symbol),
            shop_link=shop_link or MISSING,
        )

    async def _read_offers(self, product_url: str) -> List[Offer]:
        async with self.fetcher.fetch(
            product_url,
            wait_for=self.selectors.offer_link,
            timeout_ms=self.selector_timeout_ms,
        ) as page:
            elements = await page.query_all(self.selectors.offer_link)
            base_url = origin_of(page.url)

        if not elements:
            raise NoOffersFound(f"No offer elements on {product_url}", url=product_url)
        return [self._to_offer(element, base_url) for element in elements]

    async def extract(self, product_url: str) -> ExtractionResult:
        """
        Extract the offers of one product page.

        Navigation errors, selector timeouts and query failures are logged and
        reported through the result's status; they are never raised.

        Args:
            product_url: URL of the product page.

        Returns:
            ExtractionResult with the offers in page order.
        """
        try:
            offers = await self.retry_handler.execute(self._read_offers, product_url)
        except FetchTimeout as e:
            message = f"No offers appeared on {product_url}: {str(e)}"
            logger.warning(message)
            return ExtractionResult(
                product_url=product_url, status=ExtractionStatus.NO_OFFERS, error=message
            )
        except NoOffersFound as e:
            logger.warning(str(e))
            return ExtractionResult(
                product_url=product_url, status=ExtractionStatus.NO_OFFERS, error=str(e)
            )
        except (NavigationError, PageQueryError) as e:
            logger.warning(f"Error scraping product details for {product_url}: {str(e)}")
            return ExtractionResult(
                product_url=product_url, status=ExtractionStatus.FAILED, error=str(e)
            )

        return ExtractionResult(product_url=product_url, offers=offers)

    async def extract_offers(self, product_url: str) -> List[Offer]:
        """Extract the offers of one product page; empty on any failure."""
        result = await self.extract(product_url)
        return result.offers
