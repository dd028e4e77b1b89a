"""
Tests for the IngestCoordinator.
"""

import asyncio
from typing import List

import pytest

from conftest import BASE, FakePageFetcher, empty_product_html, listing_html, product_html
from offer_scraper.config import AppConfig
from offer_scraper.events import EventEmitter, EventType
from offer_scraper.exceptions import FetchTimeout, NavigationError
from offer_scraper.extraction.listing import ListingTraverser
from offer_scraper.extraction.offers import DetailExtractor
from offer_scraper.ingest import IngestCoordinator
from offer_scraper.models import Offer, UpsertResult
from offer_scraper.storage import InMemoryProductStore, StorageError

CATEGORY_A = f"{BASE}/cat/a"
CATEGORY_B = f"{BASE}/cat/b"


def product_url(n: int) -> str:
    return f"{BASE}/p/{n}"


def one_offer_page(shop: str = "Amazon", price: str = "10.00") -> str:
    return product_html([(shop, f"/offer?price={price}")])


class FailingStore(InMemoryProductStore):
    """Memory store whose writes fail for chosen URLs."""

    def __init__(self, failing: List[str]):
        super().__init__()
        self.failing = set(failing)

    async def _upsert(self, product_url, offers):
        if product_url in self.failing:
            raise StorageError(f"disk full while writing {product_url}")
        return await super()._upsert(product_url, offers)


def build(fetcher, store=None, **kwargs):
    events = EventEmitter()
    seen = []
    events.subscribe(seen.append)
    coordinator = IngestCoordinator(
        ListingTraverser(fetcher, events=events),
        DetailExtractor(fetcher),
        store if store is not None else InMemoryProductStore(),
        events=events,
        **kwargs,
    )
    return coordinator, seen


class TestIngestCoordinator:
    """Test suite for IngestCoordinator."""

    @pytest.mark.asyncio
    async def test_full_run_stores_every_product(self):
        fetcher = FakePageFetcher(
            {
                CATEGORY_A: listing_html(["/p/1", "/p/2"], next_href="/cat/a?page=2"),
                f"{CATEGORY_A}?page=2": listing_html(["/p/3"]),
                product_url(1): one_offer_page("Amazon.co.uk", "1.00"),
                product_url(2): one_offer_page("Argos", "2.00"),
                product_url(3): product_html(
                    [("Currys", "/offer?price=3.00"), ("ebay", "/offer?price=3.50")]
                ),
            }
        )
        store = InMemoryProductStore()
        coordinator, seen = build(fetcher, store)

        summary = await coordinator.run([CATEGORY_A])

        assert await store.count() == 3
        product = await store.get_product(product_url(3))
        assert [o.shop_name for o in product.offers] == ["Currys", "ebay"]
        assert (await store.get_product(product_url(1))).offers == [
            Offer(shop_name="Amazon", price="£1.00", shop_link=f"{BASE}/offer?price=1.00")
        ]

        assert summary.categories == 1
        assert summary.listing_pages == 2
        assert summary.products_seen == 3
        assert summary.products_scraped == 3
        assert summary.created == 3
        assert summary.updated == 0
        assert summary.failures == 0
        assert summary.finished_at >= summary.started_at

        types = [e.type for e in seen]
        assert types[0] == EventType.CATEGORY_STARTED
        assert types[-2:] == [EventType.CATEGORY_FINISHED, EventType.RUN_COMPLETED]
        assert seen[-1].data["created"] == 3

    @pytest.mark.asyncio
    async def test_one_failing_product_does_not_affect_the_others(self):
        pages = {CATEGORY_A: listing_html([f"/p/{n}" for n in range(1, 6)])}
        for n in range(1, 6):
            pages[product_url(n)] = one_offer_page()
        pages[product_url(2)] = FetchTimeout("offers did not render", url=product_url(2))
        pages[product_url(4)] = NavigationError("net::ERR_CONNECTION_RESET", url=product_url(4))
        store = InMemoryProductStore()
        coordinator, seen = build(FakePageFetcher(pages), store)

        summary = await coordinator.run([CATEGORY_A])

        stored = {p.product_url for p in await store.list_products()}
        assert stored == {product_url(1), product_url(3), product_url(5)}
        assert summary.products_seen == 5
        assert summary.products_scraped == 3
        assert summary.products_without_offers == 1
        assert summary.products_failed == 1
        assert summary.failures == 1
        skipped = [e.url for e in seen if e.type == EventType.PRODUCT_SKIPPED]
        failed = [e.url for e in seen if e.type == EventType.PRODUCT_FAILED]
        assert skipped == [product_url(2)]
        assert failed == [product_url(4)]

    @pytest.mark.asyncio
    async def test_empty_offers_keep_stored_record_by_default(self):
        pages = {
            CATEGORY_A: listing_html(["/p/1"]),
            product_url(1): [one_offer_page("Argos", "5.00"), empty_product_html()],
        }
        store = InMemoryProductStore()
        coordinator, _ = build(FakePageFetcher(pages), store)

        await coordinator.run([CATEGORY_A])
        summary = await coordinator.run([CATEGORY_A])

        product = await store.get_product(product_url(1))
        assert [o.price for o in product.offers] == ["£5.00"]
        assert summary.products_without_offers == 1
        assert summary.updated == 0

    @pytest.mark.asyncio
    async def test_empty_offers_overwrite_when_enabled(self):
        pages = {
            CATEGORY_A: listing_html(["/p/1"]),
            product_url(1): [one_offer_page(), empty_product_html()],
        }
        store = InMemoryProductStore()
        coordinator, _ = build(FakePageFetcher(pages), store, store_empty_offers=True)

        await coordinator.run([CATEGORY_A])
        summary = await coordinator.run([CATEGORY_A])

        product = await store.get_product(product_url(1))
        assert product.offers == []
        assert summary.updated == 1

    @pytest.mark.asyncio
    async def test_second_run_updates_instead_of_duplicating(self):
        pages = {
            CATEGORY_A: listing_html(["/p/1", "/p/2"]),
            product_url(1): [one_offer_page("Argos", "5.00"), one_offer_page("Argos", "4.50")],
            product_url(2): one_offer_page(),
        }
        store = InMemoryProductStore()
        coordinator, _ = build(FakePageFetcher(pages), store)

        first = await coordinator.run([CATEGORY_A])
        created_at = (await store.get_product(product_url(1))).created_at
        second = await coordinator.run([CATEGORY_A])

        assert (first.created, first.updated) == (2, 0)
        assert (second.created, second.updated) == (0, 2)
        assert await store.count() == 2
        product = await store.get_product(product_url(1))
        assert [o.price for o in product.offers] == ["£4.50"]
        assert product.created_at == created_at
        assert product.last_updated >= created_at

    @pytest.mark.asyncio
    async def test_duplicate_links_are_upserted_once_per_occurrence(self):
        pages = {
            CATEGORY_A: listing_html(["/p/1", "/p/1"]),
            product_url(1): one_offer_page(),
        }
        store = InMemoryProductStore()
        coordinator, _ = build(FakePageFetcher(pages), store)

        summary = await coordinator.run([CATEGORY_A])

        assert await store.count() == 1
        assert (summary.created, summary.updated) == (1, 1)

    @pytest.mark.asyncio
    async def test_store_failure_is_counted_and_run_continues(self):
        pages = {
            CATEGORY_A: listing_html(["/p/1", "/p/2", "/p/3"]),
            product_url(1): one_offer_page(),
            product_url(2): one_offer_page(),
            product_url(3): one_offer_page(),
        }
        store = FailingStore([product_url(2)])
        coordinator, seen = build(FakePageFetcher(pages), store)

        summary = await coordinator.run([CATEGORY_A])

        assert await store.count() == 2
        assert summary.store_failures == 1
        assert summary.created == 2
        assert summary.failures == 1
        assert [e.url for e in seen if e.type == EventType.STORE_FAILED] == [product_url(2)]

    @pytest.mark.asyncio
    async def test_listing_failure_only_ends_its_category(self):
        pages = {
            CATEGORY_A: NavigationError("HTTP error 500: Internal Server Error", url=CATEGORY_A),
            CATEGORY_B: listing_html(["/p/1"]),
            product_url(1): one_offer_page(),
        }
        store = InMemoryProductStore()
        coordinator, seen = build(FakePageFetcher(pages), store)

        summary = await coordinator.run([CATEGORY_A, CATEGORY_B])

        assert summary.categories == 2
        assert summary.listing_failures == 1
        assert summary.products_scraped == 1
        assert await store.get_product(product_url(1)) is not None
        finished = [e for e in seen if e.type == EventType.CATEGORY_FINISHED]
        assert [(e.url, e.data["products"]) for e in finished] == [
            (CATEGORY_A, 0),
            (CATEGORY_B, 1),
        ]

    @pytest.mark.asyncio
    async def test_sequential_by_default(self):
        pages = {CATEGORY_A: listing_html([f"/p/{n}" for n in range(1, 5)])}
        for n in range(1, 5):
            pages[product_url(n)] = one_offer_page()
        fetcher = FakePageFetcher(pages)
        coordinator, _ = build(fetcher)

        await coordinator.run([CATEGORY_A])

        assert fetcher.max_open_pages == 1
        assert fetcher.requests == [CATEGORY_A] + [product_url(n) for n in range(1, 5)]

    @pytest.mark.asyncio
    async def test_worker_pool_bounds_concurrency(self):
        active = 0
        peak = 0

        class SlowExtractor(DetailExtractor):
            async def extract(self, url):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                return await super().extract(url)

        pages = {CATEGORY_A: listing_html([f"/p/{n}" for n in range(1, 9)])}
        for n in range(1, 9):
            pages[product_url(n)] = one_offer_page()
        fetcher = FakePageFetcher(pages)
        events = EventEmitter()
        store = InMemoryProductStore()
        coordinator = IngestCoordinator(
            ListingTraverser(fetcher, events=events),
            SlowExtractor(fetcher),
            store,
            events=events,
            max_concurrent_products=3,
        )

        summary = await coordinator.run([CATEGORY_A])

        assert peak == 3
        assert summary.products_scraped == 8
        assert await store.count() == 8

    @pytest.mark.asyncio
    async def test_request_stop_prevents_new_categories(self):
        pages = {
            CATEGORY_A: listing_html(["/p/1", "/p/2"]),
            CATEGORY_B: listing_html(["/p/3"]),
            product_url(1): one_offer_page(),
            product_url(2): one_offer_page(),
            product_url(3): one_offer_page(),
        }
        fetcher = FakePageFetcher(pages)
        coordinator, seen = build(fetcher)

        def stop_after_first_store(event):
            if event.type == EventType.PRODUCT_STORED:
                coordinator.request_stop()

        coordinator.events.subscribe(stop_after_first_store)
        summary = await coordinator.run([CATEGORY_A, CATEGORY_B])

        assert coordinator.stop_requested
        assert summary.products_scraped == 1
        assert CATEGORY_B not in fetcher.requests
        assert seen[-1].type == EventType.RUN_COMPLETED

    @pytest.mark.asyncio
    async def test_process_product_returns_upsert_outcome_via_events(self):
        fetcher = FakePageFetcher({product_url(1): one_offer_page()})
        coordinator, seen = build(fetcher)

        await coordinator.process_product(product_url(1))
        await coordinator.process_product(product_url(1))

        stored = [e.data["result"] for e in seen if e.type == EventType.PRODUCT_STORED]
        assert stored == [UpsertResult.CREATED.value, UpsertResult.UPDATED.value]

    def test_rejects_empty_worker_pool(self):
        fetcher = FakePageFetcher({})
        with pytest.raises(ValueError):
            IngestCoordinator(
                ListingTraverser(fetcher),
                DetailExtractor(fetcher),
                InMemoryProductStore(),
                max_concurrent_products=0,
            )

    @pytest.mark.asyncio
    async def test_from_config(self):
        config = AppConfig.model_validate(
            {
                "crawler": {
                    "max_concurrent_products": 2,
                    "selector_timeout_ms": 1500,
                    "max_listing_pages": 4,
                    "max_retries": 0,
                    "store_empty_offers": True,
                    "retry_strategy": "linear",
                }
            }
        )
        fetcher = FakePageFetcher({})

        coordinator = IngestCoordinator.from_config(fetcher, InMemoryProductStore(), config)

        assert coordinator.max_concurrent_products == 2
        assert coordinator.store_empty_offers is True
        assert coordinator.traverser.max_pages == 4
        assert coordinator.extractor.selector_timeout_ms == 1500
        assert coordinator.extractor.retry_handler.strategy == "linear"
        assert coordinator.traverser.events is coordinator.events
