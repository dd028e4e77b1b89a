"""
Command-line interface for offer_scraper.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

from .config import AppConfig, get_config
from .crawler.factory import FETCHER_TYPES, get_fetcher
from .events import EventEmitter, LoggingEventListener
from .ingest import IngestCoordinator
from .models import RunSummary
from .seeds import SeedFileError, load_seed_urls
from .storage import StorageError, get_storage
from .storage.factory import STORAGE_TYPES

logger = logging.getLogger("offer_scraper")


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Crawl product listings and store the offers of every product"
    )
    parser.add_argument(
        "seed_path",
        nargs="?",
        default=None,
        help="Spreadsheet with a URL column of category pages (default: SEED_PATH env var)",
    )
    parser.add_argument(
        "--max-concurrent-products",
        type=int,
        help="Number of product pages extracted in parallel",
    )
    parser.add_argument(
        "--selector-timeout-ms",
        type=int,
        help="How long a product page may take to show its offers",
    )
    parser.add_argument(
        "--navigation-timeout-ms",
        type=int,
        help="Navigation timeout in milliseconds (0 disables it)",
    )
    parser.add_argument(
        "--max-listing-pages",
        type=int,
        help="Stop each category after this many listing pages",
    )
    parser.add_argument(
        "--fetcher",
        choices=FETCHER_TYPES,
        help="Page fetcher: a headless browser or plain HTTP",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--storage-type",
        choices=STORAGE_TYPES,
        help="Where to store products",
    )
    parser.add_argument(
        "--storage-path",
        help="Directory for the JSON store",
    )
    parser.add_argument(
        "--store-empty-offers",
        action="store_true",
        help="Overwrite stored offers when a product page shows none",
    )
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="Exit with status 1 if any page or write failed",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(args)


def build_config(args: argparse.Namespace, base: Optional[AppConfig] = None) -> AppConfig:
    """
    Apply command line overrides to the configuration.

    Raises:
        pydantic.ValidationError: If an override is out of range.
    """
    base = base or get_config()

    crawler: Dict[str, Any] = {}
    if args.max_concurrent_products is not None:
        crawler["max_concurrent_products"] = args.max_concurrent_products
    if args.selector_timeout_ms is not None:
        crawler["selector_timeout_ms"] = args.selector_timeout_ms
    if args.navigation_timeout_ms is not None:
        crawler["navigation_timeout_ms"] = args.navigation_timeout_ms
    if args.max_listing_pages is not None:
        crawler["max_listing_pages"] = args.max_listing_pages
    if args.fetcher:
        crawler["fetcher"] = args.fetcher
    if args.headful:
        crawler["headless"] = False
    if args.store_empty_offers:
        crawler["store_empty_offers"] = True

    storage: Dict[str, Any] = {}
    if args.storage_type:
        storage["type"] = args.storage_type
    if args.storage_path:
        storage["path"] = args.storage_path

    data = base.to_dict()
    data["crawler"].update(crawler)
    data["storage"].update(storage)
    if args.seed_path:
        data["seed_path"] = args.seed_path
    if args.log_level:
        data["log_level"] = args.log_level

    # Re-validate so overrides go through the same field constraints.
    return AppConfig.model_validate(data)


def handle_interrupt(coordinator: IngestCoordinator, task: asyncio.Task) -> None:
    """
    React to SIGINT/SIGTERM.

    The first signal lets in-flight pages finish; a second one cancels the
    run, which still closes the browser and store on the way out.
    """
    if coordinator.stop_requested:
        logger.warning("Interrupted again, cancelling the run")
        task.cancel()
    else:
        coordinator.request_stop()


async def run(config: AppConfig, seed_urls: List[str]) -> RunSummary:
    """Crawl the seeds with a fetcher and store built from configuration."""
    events = EventEmitter()
    events.subscribe(LoggingEventListener())
    store = get_storage(config.storage)
    loop = asyncio.get_running_loop()
    installed = []

    try:
        async with get_fetcher(config.crawler) as fetcher:
            coordinator = IngestCoordinator.from_config(fetcher, store, config, events=events)

            task = asyncio.current_task()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, handle_interrupt, coordinator, task)
                    installed.append(sig)
                except (NotImplementedError, RuntimeError):
                    # Not supported on this platform; Ctrl+C falls back to KeyboardInterrupt.
                    pass

            return await coordinator.run(seed_urls)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await store.close()


def main(args: Optional[List[str]] = None) -> int:
    """Main function to parse arguments and run the crawl."""
    parsed = parse_args(args)

    try:
        config = build_config(parsed)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        seed_urls = load_seed_urls(config.seed_path)
    except (FileNotFoundError, SeedFileError) as e:
        logger.error(str(e))
        return 2

    if not seed_urls:
        logger.warning(f"No seed URLs found in {config.seed_path}")
        return 0

    try:
        summary = asyncio.run(run(config, seed_urls))
    except StorageError as e:
        logger.error(f"Storage unavailable: {e}")
        return 2
    except asyncio.CancelledError:
        logger.error("Run cancelled before completion")
        return 130

    output = summary.model_dump(mode="json")
    output["failures"] = summary.failures
    print(json.dumps(output, indent=2))

    if parsed.fail_on_errors and summary.failures:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
