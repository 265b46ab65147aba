"""Tests for the realtime-synced product list and settings."""

import asyncio

import pytest
from conftest import QueueFeed, wait_for
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.config import settings as app_settings
from storefront.models.product import Product, ProductCreate
from storefront.models.realtime import ChangeEvent, LiveState, SubscriptionStatus
from storefront.models.result import FetchResult
from storefront.models.site_settings import SiteSettings
from storefront.services.catalog.product_repository import ProductRepository
from storefront.services.catalog.settings_store import SETTINGS_KEY, SettingsStore
from storefront.services.realtime.change_feed import (
    create_products_feed,
    create_settings_feed,
)
from storefront.services.realtime.live_collections import (
    LiveProducts,
    LiveSettings,
    create_live_catalog,
)


def _insert(product: Product) -> ChangeEvent:
    return ChangeEvent(
        event_type="INSERT", table="products", new=product.model_dump(mode="json")
    )


class _GatedRepository:
    """Repository whose first load waits until released."""

    def __init__(self, products: list[Product]) -> None:
        self.products = products
        self.release = asyncio.Event()

    async def fetch_all(self) -> FetchResult[list[Product]]:
        await self.release.wait()
        return FetchResult(list(self.products))


@pytest.mark.asyncio
async def test_products_start_loads_and_goes_live(repository, queue_feed):
    created = await repository.create(
        ProductCreate(name="Kit Desain", price=75000, description="Aset")
    )
    live = LiveProducts(repository, queue_feed)

    await live.start()

    assert live.state is LiveState.LIVE
    assert live.loading is False
    assert live.error is None
    assert [p.id for p in live.data] == [created.id]
    assert live.subscription is SubscriptionStatus.SUBSCRIBED
    await live.stop()


@pytest.mark.asyncio
async def test_products_apply_incoming_changes(repository, queue_feed):
    live = LiveProducts(repository, queue_feed)
    await live.start()

    queue_feed.push(_insert(Product(id="p-1", name="Baru", price=1000)))
    await wait_for(lambda: len(live.data) == 1)
    queue_feed.push(
        ChangeEvent(event_type="DELETE", table="products", old={"id": "p-1"})
    )
    await wait_for(lambda: live.data == [])

    assert live.status().size == 0
    await live.stop()


@pytest.mark.asyncio
async def test_events_during_load_are_replayed(queue_feed):
    existing = Product(id="old", name="Lama", price=1)
    gated = _GatedRepository([existing])
    live = LiveProducts(gated, queue_feed)

    start = asyncio.create_task(live.start())
    await wait_for(lambda: live.loading)
    queue_feed.push(_insert(Product(id="new", name="Baru", price=2)))
    await wait_for(lambda: len(live._pending) == 1)
    gated.release.set()
    await start

    assert [p.id for p in live.data] == ["new", "old"]
    await live.stop()


class _SnapshotRepository:
    """Repository that snapshots on entry and can be held before returning."""

    def __init__(self) -> None:
        self.products: list[Product] = []
        self.gates: list[asyncio.Event] = []

    async def fetch_all(self) -> FetchResult[list[Product]]:
        snapshot = list(self.products)
        if self.gates:
            await self.gates.pop(0).wait()
        return FetchResult(snapshot)


@pytest.mark.asyncio
async def test_overlapping_refetches_do_not_drop_changes(queue_feed):
    repository = _SnapshotRepository()
    live = LiveProducts(repository, queue_feed)
    await live.start()

    gate = asyncio.Event()
    repository.gates.append(gate)
    slow = asyncio.create_task(live.refetch())
    await wait_for(lambda: live.loading)
    fast = asyncio.create_task(live.refetch())
    await asyncio.sleep(0.05)

    created = Product(id="new", name="Baru", price=1)
    repository.products.append(created)
    queue_feed.push(_insert(created))
    await wait_for(lambda: len(live._pending) == 1)
    gate.set()
    await asyncio.gather(slow, fast)

    assert [p.id for p in live.data] == ["new"]
    assert live.loading is False
    await live.stop()


@pytest.mark.asyncio
async def test_initial_load_failure_leaves_empty_list_and_error(
    broken_redis, queue_feed
):
    live = LiveProducts(
        ProductRepository(broken_redis, create_products_feed(broken_redis)),
        queue_feed,
    )

    await live.start()

    assert live.data == []
    assert live.error
    assert live.state is LiveState.LIVE
    await live.stop()


@pytest.mark.asyncio
async def test_refetch_failure_keeps_previous_list(
    repository, broken_redis, queue_feed
):
    await repository.create(ProductCreate(name="Kit", price=1, description="x"))
    live = LiveProducts(repository, queue_feed)
    await live.start()

    live.repository = ProductRepository(
        broken_redis, create_products_feed(broken_redis)
    )
    await live.refetch()

    assert [p.name for p in live.data] == ["Kit"]
    assert live.error
    await live.stop()


@pytest.mark.asyncio
async def test_channel_error_is_reported_without_dropping_data(
    repository, queue_feed
):
    await repository.create(ProductCreate(name="Kit", price=1, description="x"))
    live = LiveProducts(repository, queue_feed)
    await live.start()

    queue_feed.fail(RedisConnectionError("gone"))
    await wait_for(lambda: live.subscription is SubscriptionStatus.CHANNEL_ERROR)

    assert live.error == "Connection error. Please refresh the page."
    assert len(live.data) == 1
    await live.stop()


@pytest.mark.asyncio
async def test_subscribe_timeout_message_survives_initial_load(repository, monkeypatch):
    monkeypatch.setattr(app_settings, "REALTIME_SUBSCRIBE_TIMEOUT_SECONDS", 0.01)
    feed = QueueFeed()
    feed.last_id_delay = 60
    live = LiveProducts(repository, feed)

    await live.start()

    assert live.subscription is SubscriptionStatus.TIMED_OUT
    assert live.error == "Connection timed out. Please refresh the page."
    await live.stop()


@pytest.mark.asyncio
async def test_stop_closes_without_error_and_ignores_late_events(
    repository, queue_feed
):
    live = LiveProducts(repository, queue_feed)
    await live.start()

    await live.stop()
    await live.apply(_insert(Product(id="late", name="Late", price=1)))

    assert live.state is LiveState.CLOSED
    assert live.subscription is SubscriptionStatus.CLOSED
    assert live.error is None
    assert live.data == []


@pytest.mark.asyncio
async def test_settings_refetch_on_any_change(settings_store, redis_client, queue_feed):
    live = LiveSettings(settings_store, queue_feed)
    await live.start()
    assert live.data == SiteSettings()

    await redis_client.hset(SETTINGS_KEY, "siteName", "TokoBaru")
    queue_feed.push(
        ChangeEvent(
            event_type="INSERT",
            table="site_settings",
            new={"key": "siteName", "value": "TokoBaru"},
        )
    )
    await wait_for(lambda: live.data.site_name == "TokoBaru")

    assert live.data.tagline == "Produk Digital Terbaik"
    await live.stop()


@pytest.mark.asyncio
async def test_settings_failure_falls_back_to_defaults(broken_redis, queue_feed):
    live = LiveSettings(
        SettingsStore(broken_redis, create_settings_feed(broken_redis)), queue_feed
    )

    await live.start()
    queue_feed.fail(RedisConnectionError("gone"))
    await wait_for(lambda: live.subscription is SubscriptionStatus.CHANNEL_ERROR)

    assert live.data == SiteSettings()
    assert live.error
    await live.stop()


@pytest.mark.asyncio
async def test_settings_channel_error_message(settings_store, queue_feed):
    live = LiveSettings(settings_store, queue_feed)
    await live.start()

    queue_feed.fail(RedisConnectionError("gone"))
    await wait_for(lambda: live.subscription is SubscriptionStatus.CHANNEL_ERROR)

    assert live.error == "Connection error. Settings may not update in real-time."
    await live.stop()


@pytest.mark.asyncio
async def test_live_catalog_lifecycle(repository, settings_store):
    catalog = create_live_catalog(
        repository, settings_store, QueueFeed("a"), QueueFeed("b")
    )
    assert not catalog.is_live

    await catalog.start()
    assert catalog.is_live
    status = catalog.status()
    assert status["products"].state is LiveState.LIVE
    assert status["settings"].subscription is SubscriptionStatus.SUBSCRIBED

    await catalog.stop()
    assert catalog.products.state is LiveState.CLOSED
    assert catalog.settings.state is LiveState.CLOSED
