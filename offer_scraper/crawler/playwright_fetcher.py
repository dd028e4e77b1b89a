"""
Headless browser fetcher using Playwright for client-rendered listing and
product pages.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import Browser, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..exceptions import FetchTimeout, NavigationError, PageQueryError
from .fetcher import ElementSnapshot, PageFetcher, RenderedPage
from .identity import IdentityProvider

logger = logging.getLogger(__name__)

# Runs inside the page, so ``el.href`` is the browser-resolved absolute URL.
_SNAPSHOT_SCRIPT = """
elements => elements.map(el => ({
    attributes: Object.fromEntries(
        Array.from(el.attributes).map(attr => [attr.name, attr.value])
    ),
    href: el.href || null,
    text: (el.textContent || "").trim(),
}))
"""


class PlaywrightRenderedPage(RenderedPage):
    """A live Playwright page."""

    def __init__(self, page: Page, url: str):
        super().__init__(url)
        self._page = page

    async def query_all(self, selector: str) -> List[ElementSnapshot]:
        try:
            raw = await self._page.eval_on_selector_all(selector, _SNAPSHOT_SCRIPT)
        except PlaywrightError as e:
            raise PageQueryError(
                f"Failed to evaluate {selector!r}: {str(e)}", url=self.url
            ) from e
        return [
            ElementSnapshot(
                attributes=item.get("attributes") or {},
                href=item.get("href"),
                text=item.get("text") or "",
            )
            for item in raw
        ]


class PlaywrightPageFetcher(PageFetcher):
    """
    Fetcher rendering pages in a shared headless Chromium instance.

    One browser is launched per fetcher; every fetch opens its own page with
    freshly rotated request headers and closes it afterwards.
    """

    def __init__(
        self,
        headless: bool = True,
        identity: Optional[IdentityProvider] = None,
        navigation_timeout_ms: int = 60000,
    ):
        """
        Initialize the fetcher.

        Args:
            headless: Whether to run the browser in headless mode.
            identity: Source of per-request headers.
            navigation_timeout_ms: Navigation timeout in milliseconds (0 waits
                forever).
        """
        super().__init__(identity=identity, navigation_timeout_ms=navigation_timeout_ms)
        self.headless = headless
        self._playwright = None
        self._browser: Optional[Browser] = None

    async def _get_browser(self) -> Browser:
        """
        Initialize and return a Playwright browser instance.

        Returns:
            Browser: Initialized browser instance.
        """
        if not self._browser:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless
            )
            logger.info(f"Launched Chromium (headless={self.headless})")
        return self._browser

    async def start(self) -> None:
        await self._get_browser()

    @asynccontextmanager
    async def fetch(
        self,
        url: str,
        *,
        wait_for: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> AsyncIterator[RenderedPage]:
        browser = await self._get_browser()
        page = await browser.new_page(extra_http_headers=self.identity.next())
        page.on("pageerror", lambda err: logger.debug(f"Page error on {url}: {err}"))

        try:
            logger.debug(f"Navigating to {url}")
            try:
                response = await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.navigation_timeout_ms,
                )
            except PlaywrightTimeoutError as e:
                raise NavigationError(f"Navigation timed out: {str(e)}", url=url) from e
            except PlaywrightError as e:
                raise NavigationError(f"Navigation failed: {str(e)}", url=url) from e

            if response is not None and not response.ok:
                raise NavigationError(
                    f"HTTP error {response.status}: {response.status_text}", url=url
                )

            if wait_for:
                wait_ms = timeout_ms if timeout_ms is not None else self.navigation_timeout_ms
                try:
                    await page.wait_for_selector(wait_for, timeout=wait_ms)
                except PlaywrightTimeoutError as e:
                    raise FetchTimeout(
                        f"{wait_for!r} did not appear within {wait_ms} ms", url=url
                    ) from e
                except PlaywrightError as e:
                    raise PageQueryError(
                        f"Failed waiting for {wait_for!r}: {str(e)}", url=url
                    ) from e

            yield PlaywrightRenderedPage(page, page.url or url)
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.warning(f"Failed to close page for {url}: {str(e)}")

    async def close(self) -> None:
        """
        Close the browser and playwright instances.
        """
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
