"""
Configuration module for the offer scraper.
"""

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/90.0.4430.212 Safari/537.36",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_6 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.1.1 Mobile/15E148 Safari/604.1",
]


def _env_list(name: str, default: List[str]) -> List[str]:
    # User agents contain commas, so the pool is "|"-separated.
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split("|") if item.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    return int(raw) if raw else None


class CrawlerConfig(BaseModel):
    """Crawler configuration settings."""

    headless: bool = Field(
        default=_env_bool("HEADLESS", "true"),
        description="Whether to run the browser in headless mode",
    )
    fetcher: str = Field(
        default=os.getenv("FETCHER", "playwright"),
        description="Page fetcher to use (playwright, http)",
    )
    user_agents: List[str] = Field(
        default_factory=lambda: _env_list("USER_AGENTS", DEFAULT_USER_AGENTS),
        min_length=1,
        description="Pool of user agents, one is picked at random per request",
    )
    navigation_timeout_ms: int = Field(
        default=int(os.getenv("NAVIGATION_TIMEOUT_MS", "60000")),
        ge=0,
        description="Navigation timeout in milliseconds (0 disables it)",
    )
    selector_timeout_ms: int = Field(
        default=int(os.getenv("SELECTOR_TIMEOUT_MS", "10000")),
        gt=0,
        description="How long a product page may take to show its offers",
    )
    max_concurrent_products: int = Field(
        default=int(os.getenv("MAX_CONCURRENT_PRODUCTS", "1")),
        gt=0,
        description="Number of product pages extracted in parallel",
    )
    max_listing_pages: Optional[int] = Field(
        default=_env_optional_int("MAX_LISTING_PAGES"),
        gt=0,
        description="Upper bound on listing pages per category (unset for no bound)",
    )
    max_retries: int = Field(
        default=int(os.getenv("FETCH_MAX_RETRIES", "2")),
        ge=0,
        description="Retries for navigation errors and selector timeouts",
    )
    retry_delay: float = Field(
        default=float(os.getenv("FETCH_RETRY_DELAY", "1.0")),
        ge=0,
        description="Initial delay between retries in seconds",
    )
    retry_strategy: str = Field(
        default=os.getenv("FETCH_RETRY_STRATEGY", "exponential"),
        pattern="^(fixed|linear|exponential|fibonacci)$",
        description="Backoff between retries (fixed, linear, exponential, fibonacci)",
    )
    currency_symbol: str = Field(
        default=os.getenv("CURRENCY_SYMBOL", "£"),
        description="Symbol prefixed to extracted prices",
    )
    store_empty_offers: bool = Field(
        default=_env_bool("STORE_EMPTY_OFFERS", "false"),
        description="Overwrite stored offers when a product page shows none",
    )


class SelectorConfig(BaseModel):
    """CSS selectors describing the crawled site's markup."""

    product_link: str = Field(
        default=os.getenv(
            "PRODUCT_LINK_SELECTOR", 'div[data-testid="resultItem"] a[data-testid]'
        ),
        description="Product links on a listing page",
    )
    next_page: str = Field(
        default=os.getenv("NEXT_PAGE_SELECTOR", 'a[aria-label="next page"]'),
        description="The listing page's next page control",
    )
    offer_link: str = Field(
        default=os.getenv("OFFER_LINK_SELECTOR", "a.productOffers-listItemOfferLink"),
        description="Offer links on a product page",
    )
    shop_name_attribute: str = Field(
        default=os.getenv("SHOP_NAME_ATTRIBUTE", "data-shop-name"),
        description="Offer link attribute holding the shop name",
    )


class StorageConfig(BaseModel):
    """Storage configuration settings."""

    type: str = Field(
        default=os.getenv("STORAGE_TYPE", "json"),
        description="Storage type (json, memory)",
    )
    path: str = Field(
        default=os.getenv("STORAGE_PATH", "./data/products"),
        description="Path for storage (directory for JSON storage)",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    seed_path: str = Field(
        default=os.getenv("SEED_PATH", "./Idealo Scrape UK.xlsx"),
        description="Spreadsheet listing the category URLs to crawl",
    )
    log_level: str = Field(
        default=os.getenv("LOG_LEVEL", "INFO"), description="Logging level"
    )
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the configuration to a dictionary."""
        return {
            "seed_path": self.seed_path,
            "log_level": self.log_level,
            "crawler": self.crawler.model_dump(),
            "selectors": self.selectors.model_dump(),
            "storage": self.storage.model_dump(),
        }


# Create a singleton instance of the configuration
config = AppConfig()


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    return config
