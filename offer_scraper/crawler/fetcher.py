"""
Page fetcher contract.

A fetcher turns a URL into a rendered page that can be queried with CSS
selectors. Queries are evaluated in the page's own context, so a link's
``href`` is the absolute URL the browser resolved, not the raw attribute.
"""

import abc
import logging
from dataclasses import dataclass, field
from typing import AsyncContextManager, Dict, List, Optional

from .identity import IdentityProvider, RandomUserAgentProvider

logger = logging.getLogger(__name__)


@dataclass
class ElementSnapshot:
    """Values read from one element matched by a selector."""

    attributes: Dict[str, str] = field(default_factory=dict)
    href: Optional[str] = None
    text: str = ""

    def get(self, name: str) -> Optional[str]:
        """Return an attribute value, or None if the element lacks it."""
        return self.attributes.get(name)


class RenderedPage(abc.ABC):
    """A loaded page that can be queried with CSS selectors."""

    def __init__(self, url: str):
        self.url = url

    @abc.abstractmethod
    async def query_all(self, selector: str) -> List[ElementSnapshot]:
        """
        Snapshot every element matching a selector.

        Args:
            selector: CSS selector.

        Returns:
            Snapshots in document order.

        Raises:
            PageQueryError: If the selector cannot be evaluated.
        """
        pass

    async def query_one(self, selector: str) -> Optional[ElementSnapshot]:
        """Snapshot the first element matching a selector, if any."""
        matches = await self.query_all(selector)
        return matches[0] if matches else None


class PageFetcher(abc.ABC):
    """
    Abstract base class for page fetchers.

    ``fetch`` is an async context manager: the page it yields is released
    when the ``async with`` block exits, whether or not an error occurred.
    """

    def __init__(
        self,
        identity: Optional[IdentityProvider] = None,
        navigation_timeout_ms: int = 60000,
    ):
        """
        Initialize the fetcher.

        Args:
            identity: Source of per-request headers. Defaults to a random
                user agent per request.
            navigation_timeout_ms: Navigation timeout in milliseconds. 0 waits
                forever.
        """
        self.identity = identity or RandomUserAgentProvider()
        self.navigation_timeout_ms = navigation_timeout_ms

    @abc.abstractmethod
    def fetch(
        self,
        url: str,
        *,
        wait_for: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> AsyncContextManager[RenderedPage]:
        """
        Load a URL and yield the rendered page.

        Args:
            url: Page to load.
            wait_for: CSS selector that must appear before the page is
                returned.
            timeout_ms: Bound on the ``wait_for`` wait, in milliseconds.

        Raises:
            NavigationError: If the page could not be reached.
            FetchTimeout: If ``wait_for`` did not appear in time.
        """
        pass

    async def start(self) -> None:
        """Acquire the underlying engine. Called by ``__aenter__``."""
        pass

    async def close(self) -> None:
        """Release the underlying engine."""
        pass

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
