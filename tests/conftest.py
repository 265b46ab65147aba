"""Pytest configuration and fixtures for the storefront service."""

import asyncio
import hashlib
import os
import tempfile

# Must be set before the settings module is imported.
os.environ.setdefault("REALTIME_ENABLED", "false")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="storefront-media-"))
os.environ.setdefault("SITE_URL", "https://hudzstore.test")

import pytest
import pytest_asyncio
from fakeredis import FakeServer
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient

from storefront.models.realtime import ChangeEvent
from storefront.services.admin.session_gate import AdminGate, get_admin_gate
from storefront.services.backend.redis_client import get_redis_client
from storefront.services.catalog.product_repository import ProductRepository
from storefront.services.catalog.settings_store import SettingsStore
from storefront.services.realtime.change_feed import (
    create_products_feed,
    create_settings_feed,
)
from storefront.services.storage.image_storage import ImageStorage, get_image_storage

ADMIN_PASSWORD = "rahasia-toko"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "asyncio: marks tests as async tests")


@pytest.fixture(autouse=True)
def admin_gate():
    """Use a known admin password regardless of the environment."""
    from storefront.main import app

    gate = AdminGate(hashlib.sha256(ADMIN_PASSWORD.encode("utf-8")).hexdigest())
    app.dependency_overrides[get_admin_gate] = lambda: gate
    yield gate
    app.dependency_overrides.pop(get_admin_gate, None)


@pytest.fixture()
def image_storage(tmp_path):
    """Write uploads into a per-test bucket."""
    from storefront.main import app

    storage = ImageStorage(root=tmp_path, bucket="product-images", public_base="/media")
    app.dependency_overrides[get_image_storage] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_image_storage, None)


@pytest_asyncio.fixture()
async def redis_client():
    """Provide a fake Redis client for each test."""
    from storefront.main import app

    client = fakeredis.FakeRedis(decode_responses=True)
    app.dependency_overrides[get_redis_client] = lambda: client
    try:
        yield client
    finally:
        await client.flushdb()
        await client.aclose()
        app.dependency_overrides.pop(get_redis_client, None)


@pytest_asyncio.fixture()
async def broken_redis():
    """A client whose every command fails with a connection error."""
    server = FakeServer()
    server.connected = False
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture()
def repository(redis_client):
    return ProductRepository(redis_client, create_products_feed(redis_client))


@pytest.fixture()
def settings_store(redis_client):
    return SettingsStore(redis_client, create_settings_feed(redis_client))


@pytest_asyncio.fixture()
async def client(redis_client):
    """Return an HTTPX async client pointing at the FastAPI app."""
    from storefront.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


@pytest_asyncio.fixture()
async def admin_client(client):
    """HTTPX client holding a logged-in admin session cookie."""
    response = await client.post("/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    yield client


class QueueFeed:
    """In-memory stand-in for a change feed, driven by the test."""

    def __init__(self, stream_key: str = "realtime:test") -> None:
        self.stream_key = stream_key
        self.last_id_delay = 0.0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._sequence = 0

    async def last_id(self) -> str:
        if self.last_id_delay:
            await asyncio.sleep(self.last_id_delay)
        return "0-0"

    async def read(self, last_id, block_ms=None, count=100):
        item = await self._queue.get()
        if isinstance(item, Exception):
            raise item
        return [item]

    def push(self, event: ChangeEvent | None) -> str:
        self._sequence += 1
        entry_id = f"{self._sequence}-0"
        self._queue.put_nowait((entry_id, event))
        return entry_id

    def fail(self, exc: Exception) -> None:
        self._queue.put_nowait(exc)


async def wait_for(predicate, timeout: float = 1.0) -> None:
    """Poll ``predicate`` until it is truthy or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture()
def queue_feed():
    return QueueFeed()


@pytest_asyncio.fixture()
async def live_catalog(repository, settings_store):
    """A started live catalog fed by in-memory feeds, installed on the app."""
    from storefront.main import app
    from storefront.services.realtime.live_collections import create_live_catalog

    products_feed = QueueFeed("realtime:products")
    settings_feed = QueueFeed("realtime:site_settings")
    catalog = create_live_catalog(
        repository, settings_store, products_feed, settings_feed
    )
    await catalog.start()
    app.state.live_catalog = catalog
    try:
        yield catalog, products_feed, settings_feed
    finally:
        await catalog.stop()
        app.state.live_catalog = None
