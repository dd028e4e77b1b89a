"""
Plain HTTP fetcher for sites that render their listings server-side.

Pages are downloaded with aiohttp and queried with BeautifulSoup. Nothing is
executed, so a selector missing from the downloaded markup will never appear.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup

from ..exceptions import FetchTimeout, NavigationError, PageQueryError
from .fetcher import ElementSnapshot, PageFetcher, RenderedPage
from .identity import IdentityProvider

logger = logging.getLogger(__name__)


class StaticRenderedPage(RenderedPage):
    """A page backed by downloaded HTML."""

    def __init__(self, url: str, html: str):
        super().__init__(url)
        self.html = html
        self._soup = BeautifulSoup(html, "html.parser")

    def has(self, selector: str) -> bool:
        """Return True if at least one element matches the selector."""
        try:
            return self._soup.select_one(selector) is not None
        except Exception as e:
            raise PageQueryError(
                f"Failed to evaluate {selector!r}: {str(e)}", url=self.url
            ) from e

    async def query_all(self, selector: str) -> List[ElementSnapshot]:
        try:
            elements = self._soup.select(selector)
        except Exception as e:
            raise PageQueryError(
                f"Failed to evaluate {selector!r}: {str(e)}", url=self.url
            ) from e

        snapshots = []
        for el in elements:
            attributes = {
                name: " ".join(value) if isinstance(value, list) else value
                for name, value in el.attrs.items()
            }
            raw_href = attributes.get("href")
            snapshots.append(
                ElementSnapshot(
                    attributes=attributes,
                    # Mirror the browser's el.href: resolved against the page URL.
                    href=urljoin(self.url, raw_href) if raw_href else None,
                    text=el.get_text(strip=True),
                )
            )
        return snapshots


class HttpPageFetcher(PageFetcher):
    """Fetcher downloading pages over plain HTTP."""

    def __init__(
        self,
        identity: Optional[IdentityProvider] = None,
        navigation_timeout_ms: int = 60000,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            identity: Source of per-request headers.
            navigation_timeout_ms: Total request timeout in milliseconds (0
                waits forever).
            session: Existing session to use. Sessions created by the fetcher
                are closed by ``close``; injected ones are left open.
        """
        super().__init__(identity=identity, navigation_timeout_ms=navigation_timeout_ms)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def start(self) -> None:
        await self._get_session()

    @asynccontextmanager
    async def fetch(
        self,
        url: str,
        *,
        wait_for: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> AsyncIterator[RenderedPage]:
        session = await self._get_session()
        total = self.navigation_timeout_ms / 1000 if self.navigation_timeout_ms else None

        logger.debug(f"Requesting {url}")
        try:
            async with session.get(
                url,
                headers=self.identity.next(),
                timeout=aiohttp.ClientTimeout(total=total),
            ) as resp:
                if resp.status >= 400:
                    raise NavigationError(f"HTTP error {resp.status}: {resp.reason}", url=url)
                html = await resp.text()
                final_url = str(resp.url)
        except asyncio.TimeoutError as e:
            raise NavigationError(f"Request timed out after {total} s", url=url) from e
        except aiohttp.ClientError as e:
            raise NavigationError(f"Request failed: {str(e)}", url=url) from e

        page = StaticRenderedPage(final_url, html)
        if wait_for and not page.has(wait_for):
            raise FetchTimeout(f"{wait_for!r} not present in page markup", url=url)

        yield page

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
