"""
In-process product store.

Keeps products in a dict for the lifetime of the process. Useful for dry
runs and tests; nothing survives a restart.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from ..models import Offer, Product, UpsertResult
from .base import ProductStore

logger = logging.getLogger(__name__)


class InMemoryProductStore(ProductStore):
    """Store implementation backed by a dict keyed by product URL."""

    def __init__(self):
        super().__init__()
        self._products: Dict[str, Product] = {}

    async def _upsert(self, product_url: str, offers: List[Offer]) -> UpsertResult:
        now = datetime.utcnow()
        existing = self._products.get(product_url)
        # A fresh Product replaces the old one in a single assignment.
        self._products[product_url] = Product(
            product_url=product_url,
            offers=offers,
            last_updated=now,
            created_at=existing.created_at if existing else now,
        )
        return UpsertResult.UPDATED if existing else UpsertResult.CREATED

    async def get_product(self, product_url: str) -> Optional[Product]:
        product = self._products.get(product_url)
        return product.model_copy(deep=True) if product else None

    async def list_products(self) -> List[Product]:
        return [p.model_copy(deep=True) for p in self._products.values()]

    async def count(self) -> int:
        return len(self._products)
