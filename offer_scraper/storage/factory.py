"""
Factory for creating product stores.

This module provides a factory function to instantiate store backends based on configuration.
"""

import logging
from typing import Optional

from ..config import StorageConfig
from .base import ProductStore
from .json_storage import JSONProductStore
from .memory_storage import InMemoryProductStore

logger = logging.getLogger(__name__)

STORAGE_TYPES = ("json", "memory")


def get_storage(config: Optional[StorageConfig] = None) -> ProductStore:
    """
    Create a product store based on configuration.

    Every call builds a new store; the caller owns it and closes it when the
    run ends.

    Args:
        config: Storage configuration (optional)

    Returns:
        A store implementing the ProductStore interface

    Raises:
        ValueError: If storage type is unknown
        StorageConnectionError: If the backend cannot be opened
    """
    if config is None:
        from ..config import get_config

        config = get_config().storage

    storage_type = config.type.lower()

    if storage_type == "json":
        store = JSONProductStore(storage_dir=config.path)
    elif storage_type == "memory":
        store = InMemoryProductStore()
    else:
        raise ValueError(
            f"Unknown storage type: {storage_type} (expected one of {', '.join(STORAGE_TYPES)})"
        )

    logger.info(f"Initialized {storage_type} storage")
    return store
