"""
JSON file-based product store.

Each product is stored in its own JSON document, named after a hash of its
URL, so a URL always maps to the same file and can never be stored twice.
The documents are the source of truth. An ``index.json`` manifest maps
document ids back to product URLs for tools browsing the directory; the
store itself never reads it.
"""

import asyncio
import hashlib
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import filelock

from ..models import Offer, Product, UpsertResult
from .base import ProductStore, StorageConnectionError, StorageError

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10  # seconds
DOCUMENT_GLOB = "url_*.json"


class JSONProductStore(ProductStore):
    """
    File-based store implementation using one JSON file per product.

    Documents are written to a temporary file and renamed into place, so a
    reader never sees a half-written offers list. File locks keep separate
    processes sharing the directory from interleaving writes.
    """

    def __init__(self, storage_dir: str, create_if_missing: bool = True):
        """
        Initialize the JSON store.

        Args:
            storage_dir: Directory to store JSON files
            create_if_missing: Create the directory if it doesn't exist

        Raises:
            StorageConnectionError: If the directory is missing or unusable
        """
        super().__init__()
        self.storage_dir = Path(storage_dir)
        self._index_lock = asyncio.Lock()

        if not self.storage_dir.exists():
            if not create_if_missing:
                raise StorageConnectionError(
                    f"Storage directory does not exist: {self.storage_dir}"
                )
            try:
                self.storage_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageConnectionError(f"Failed to create storage directory: {e}")

        self.index_path = self.storage_dir / "index.json"
        self._index_file_lock = self._get_lock(self.index_path)
        if not self.index_path.exists():
            try:
                with open(self.index_path, "w") as f:
                    json.dump({}, f)
            except OSError as e:
                raise StorageConnectionError(f"Failed to create index file: {e}")

        logger.info(f"Initialized JSON storage at {self.storage_dir}")

    @staticmethod
    def _get_lock(file_path: Path) -> filelock.FileLock:
        """
        Get a lock for a file.

        Product file locks are created per write rather than cached, so the
        store holds nothing for products it is not currently writing. The
        per-key asyncio lock keeps two writes to one file in this process
        from overlapping.

        Args:
            file_path: Path to get a lock for

        Returns:
            filelock.FileLock: Lock for the file
        """
        return filelock.FileLock(f"{file_path}.lock")

    @staticmethod
    def product_id(product_url: str) -> str:
        """Stable document id for a product URL."""
        return f"url_{hashlib.md5(product_url.encode('utf-8')).hexdigest()}"

    def _get_file_path(self, product_id: str) -> Path:
        return self.storage_dir / f"{product_id}.json"

    async def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
        return json.loads(content) if content else None

    async def _write_json(self, path: Path, data: Any) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, ensure_ascii=False))
        os.replace(tmp_path, path)

    async def _update_index(self, product_id: str, entry: Dict[str, Any]) -> None:
        async with self._index_lock:
            try:
                with self._index_file_lock.acquire(timeout=LOCK_TIMEOUT):
                    index = await self._read_json(self.index_path) or {}
                    index[product_id] = entry
                    await self._write_json(self.index_path, index)
            except filelock.Timeout:
                raise StorageError("Timeout waiting for index lock")
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(f"Failed to save index: {e}")

    async def _upsert(self, product_url: str, offers: List[Offer]) -> UpsertResult:
        product_id = self.product_id(product_url)
        file_path = self._get_file_path(product_id)
        lock = self._get_lock(file_path)
        now = datetime.utcnow()

        try:
            with lock.acquire(timeout=LOCK_TIMEOUT):
                existing = await self._read_json(file_path)
                if existing:
                    created_at = Product.model_validate(existing).created_at
                    result = UpsertResult.UPDATED
                else:
                    created_at = now
                    result = UpsertResult.CREATED

                product = Product(
                    product_url=product_url,
                    offers=offers,
                    last_updated=now,
                    created_at=created_at,
                )
                document = product.to_document()
                await self._write_json(file_path, document)
        except filelock.Timeout:
            raise StorageError(f"Timeout waiting for file lock: {file_path}")
        except (OSError, ValueError) as e:
            # json.JSONDecodeError and pydantic's ValidationError are ValueErrors.
            raise StorageError(f"Failed to save product {product_url}: {e}")

        # The document is stored at this point; a stale manifest does not undo it.
        try:
            await self._update_index(
                product_id,
                {
                    "productUrl": product_url,
                    "createdAt": document["createdAt"],
                    "lastUpdated": document["lastUpdated"],
                    "offers": len(offers),
                },
            )
        except StorageError as e:
            logger.warning(f"Stored {product_url} but could not update the index: {str(e)}")

        logger.debug(f"{result.value.capitalize()} {product_id} for {product_url}")
        return result

    async def get_product(self, product_url: str) -> Optional[Product]:
        file_path = self._get_file_path(self.product_id(product_url))
        try:
            document = await self._read_json(file_path)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read product {product_url}: {e}")
        return Product.model_validate(document) if document else None

    def _document_paths(self) -> List[Path]:
        try:
            return sorted(self.storage_dir.glob(DOCUMENT_GLOB))
        except OSError as e:
            raise StorageError(f"Failed to list {self.storage_dir}: {e}")

    async def list_products(self) -> List[Product]:
        """List every stored product, oldest first."""
        products = []
        for path in self._document_paths():
            try:
                document = await self._read_json(path)
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(f"Failed to read product {path.stem}: {e}")
            if document:
                products.append(Product.model_validate(document))
        products.sort(key=lambda p: (p.created_at, p.product_url))
        return products

    async def count(self) -> int:
        return len(self._document_paths())
