"""
Base storage interface for product persistence.

Products are keyed by their URL. The store is the deduplication authority:
the crawler may hand it the same URL any number of times and it keeps one
record per URL.
"""

import abc
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from ..models import Offer, Product, UpsertResult

logger = logging.getLogger(__name__)


class ProductStore(abc.ABC):
    """
    Abstract base class for product store implementations.

    Upserts to the same URL are serialized with a per-key lock; upserts to
    different URLs may run concurrently.
    """

    def __init__(self):
        # Only keys with a holder or a waiter have an entry.
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._key_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _key_lock(self, product_url: str) -> AsyncIterator[None]:
        lock = self._key_locks.get(product_url)
        if lock is None:
            lock = self._key_locks[product_url] = asyncio.Lock()
        self._key_users[product_url] = self._key_users.get(product_url, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._key_users[product_url] -= 1
            if not self._key_users[product_url]:
                del self._key_users[product_url]
                del self._key_locks[product_url]

    async def upsert(self, product_url: str, offers: List[Offer]) -> UpsertResult:
        """
        Create the product or replace its offers.

        Args:
            product_url: Absolute product page URL (unique key)
            offers: Offers to store; they replace any stored ones wholesale

        Returns:
            UpsertResult.CREATED if no record existed, UpsertResult.UPDATED otherwise

        Raises:
            StorageError: If the write fails
        """
        if not product_url:
            raise ValueError("product_url is required for upsert")

        async with self._key_lock(product_url):
            return await self._upsert(product_url, list(offers))

    @abc.abstractmethod
    async def _upsert(self, product_url: str, offers: List[Offer]) -> UpsertResult:
        """Write one product. Called with the key's lock held."""
        pass

    @abc.abstractmethod
    async def get_product(self, product_url: str) -> Optional[Product]:
        """
        Retrieve a product by URL.

        Args:
            product_url: The product URL

        Returns:
            The stored Product, or None if it was never stored

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abc.abstractmethod
    async def list_products(self) -> List[Product]:
        """
        List every stored product.

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    async def count(self) -> int:
        """Number of stored products."""
        return len(await self.list_products())

    async def close(self) -> None:
        """Release any resources held by the store."""
        pass


class StorageError(Exception):
    """Base exception for storage-related errors."""

    pass


class StorageConnectionError(StorageError):
    """Raised when there's an error connecting to the storage backend."""

    pass
