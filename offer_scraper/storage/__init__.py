"""
Storage layer for the offer scraper.

This package provides upsert-by-URL persistence for scraped products.
"""

from .base import ProductStore, StorageConnectionError, StorageError
from .factory import get_storage
from .json_storage import JSONProductStore
from .memory_storage import InMemoryProductStore

__all__ = [
    "ProductStore",
    "StorageError",
    "StorageConnectionError",
    "get_storage",
    "JSONProductStore",
    "InMemoryProductStore",
]
