"""
Extraction of product links from listing pages and offers from product pages.
"""

from .listing import ListingTraverser
from .offers import DetailExtractor, extract_price, normalize_shop_name

__all__ = [
    "ListingTraverser",
    "DetailExtractor",
    "extract_price",
    "normalize_shop_name",
]
