"""
Pydantic models for scraped offers and stored products.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Offer(BaseModel):
    """One shop's price and link for a product."""

    model_config = ConfigDict(populate_by_name=True)

    shop_name: str = Field(
        ..., alias="shopName", description="Shop name, alphanumerics and spaces only"
    )
    price: str = Field(
        ..., description="Currency-prefixed price text, or 'N/A' when unknown"
    )
    shop_link: str = Field(
        ..., alias="shopLink", description="Absolute link to the offer, or 'N/A'"
    )


class Product(BaseModel):
    """A stored product and the offers seen on its detail page."""

    model_config = ConfigDict(populate_by_name=True)

    product_url: str = Field(
        ..., alias="productUrl", description="Absolute product page URL (unique key)"
    )
    offers: List[Offer] = Field(
        default_factory=list, description="Offers in page order"
    )
    last_updated: datetime = Field(
        default_factory=datetime.utcnow,
        alias="lastUpdated",
        description="When the offers were last replaced",
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        alias="createdAt",
        description="When the product was first stored",
    )

    def to_document(self) -> dict:
        """Serialize to the stored document layout (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


class UpsertResult(str, Enum):
    """Outcome of a store upsert."""

    CREATED = "created"
    UPDATED = "updated"


class ExtractionStatus(str, Enum):
    """Outcome of a product page extraction."""

    OK = "ok"
    NO_OFFERS = "no_offers"
    FAILED = "failed"


class ExtractionResult(BaseModel):
    """Offers read from one product page, with the extraction outcome."""

    product_url: str
    offers: List[Offer] = Field(default_factory=list)
    status: ExtractionStatus = ExtractionStatus.OK
    error: Optional[str] = Field(None, description="Error message when not OK")


class ListingPage(BaseModel):
    """Links found on one listing page."""

    url: str
    product_links: List[str] = Field(default_factory=list)
    next_page: Optional[str] = None


class RunSummary(BaseModel):
    """Counters reported at the end of an ingest run."""

    categories: int = 0
    listing_pages: int = 0
    listing_failures: int = 0
    products_seen: int = 0
    products_scraped: int = 0
    products_without_offers: int = 0
    products_failed: int = 0
    created: int = 0
    updated: int = 0
    store_failures: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def failures(self) -> int:
        """Total number of failed pages and writes."""
        return self.listing_failures + self.products_failed + self.store_failures
