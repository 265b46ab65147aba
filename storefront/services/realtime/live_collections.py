"""Locally held product list and settings kept in sync with the backend."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Annotated, Generic, TypeVar

from fastapi import Depends, Request

from storefront.models.product import Product
from storefront.models.realtime import (
    ChangeEvent,
    LiveState,
    LiveStatus,
    SubscriptionStatus,
)
from storefront.models.site_settings import SiteSettings
from storefront.services.catalog.product_repository import ProductRepository
from storefront.services.catalog.settings_store import SettingsStore
from storefront.services.realtime.channel import RealtimeChannel
from storefront.services.realtime.change_feed import ChangeFeed
from storefront.services.realtime.reconcile import apply_product_change

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveCollection(ABC, Generic[T]):
    """Initial load plus change subscription for one table.

    ``data`` is only ever written by :meth:`refetch` and :meth:`apply`.
    Events that arrive while a load is in flight are held back and replayed
    on top of the loaded value.
    """

    name: str = "collection"
    channel_error_message = "Connection error. Please refresh the page."
    timed_out_message = "Connection timed out. Please refresh the page."

    def __init__(self, feed: ChangeFeed) -> None:
        self.feed = feed
        self.state = LiveState.UNINITIALIZED
        self.loading = False
        self._load_error: str | None = None
        self._channel_error: str | None = None
        self.data: T = self._empty()
        self._channel: RealtimeChannel | None = None
        self._pending: list[ChangeEvent] = []
        self._refetch_lock = asyncio.Lock()
        self._stopping = False

    @abstractmethod
    def _empty(self) -> T:
        """Value shown before the first load and after a failed one."""

    @abstractmethod
    async def _load(self) -> tuple[T | None, str | None]:
        """Authoritative read; returns ``(value, None)`` or ``(None, reason)``."""

    @abstractmethod
    async def _apply_live(self, event: ChangeEvent) -> None:
        """Patch ``data`` for a change received while live."""

    def _on_load_failed(self) -> None:
        """Hook deciding what ``data`` holds after a failed refetch."""

    @property
    def error(self) -> str | None:
        """Latest load failure, else the latest channel problem."""
        return self._load_error or self._channel_error

    @property
    def subscription(self) -> SubscriptionStatus | None:
        return self._channel.status if self._channel is not None else None

    async def start(self) -> None:
        """Subscribe, run the initial load and go live."""
        if self.state is not LiveState.UNINITIALIZED:
            return
        self.state = LiveState.LOADING
        self._channel = RealtimeChannel(
            self.feed,
            name=self.name,
            on_event=self.apply,
            on_status=self._on_status,
        )
        # Subscribing first pins the stream position, so nothing committed
        # during the initial load is missed.
        await self._channel.subscribe()
        await self.refetch()
        self.state = LiveState.LIVE

    async def refetch(self) -> None:
        """Reload ``data``; concurrent calls run one after another."""
        async with self._refetch_lock:
            self.loading = True
            self._load_error = None
            try:
                value, reason = await self._load()
                if reason is None:
                    self.data = value
                else:
                    self._load_error = reason
                    logger.error("Error fetching %s: %s", self.name, reason)
                    self._on_load_failed()
            finally:
                self.loading = False
            pending, self._pending = self._pending, []

        # Outside the lock: replaying a settings change calls refetch again.
        for event in pending:
            await self._apply_live(event)

    async def apply(self, event: ChangeEvent) -> None:
        if self.state is LiveState.CLOSED:
            return
        if self.loading:
            self._pending.append(event)
            return
        await self._apply_live(event)

    async def stop(self) -> None:
        """Tear down the subscription; always leaves the collection CLOSED."""
        self._stopping = True
        try:
            if self._channel is not None:
                await self._channel.unsubscribe()
        finally:
            self.state = LiveState.CLOSED

    def status(self) -> LiveStatus:
        return LiveStatus(
            state=self.state,
            loading=self.loading,
            error=self.error,
            subscription=self.subscription,
        )

    def _on_status(
        self, status: SubscriptionStatus, exc: Exception | None = None
    ) -> None:
        # Channel problems never reset data; the last good value stays.
        if status is SubscriptionStatus.SUBSCRIBED:
            self._channel_error = None
            logger.info("Successfully subscribed to %s changes", self.name)
        elif status is SubscriptionStatus.CHANNEL_ERROR:
            self._channel_error = self.channel_error_message
        elif status is SubscriptionStatus.TIMED_OUT:
            self._channel_error = self.timed_out_message
        elif status is SubscriptionStatus.CLOSED and not self._stopping:
            logger.warning("%s channel closed", self.name)
            self._channel_error = "Realtime channel closed."


class LiveProducts(LiveCollection[list[Product]]):
    """Product list patched incrementally from change events."""

    name = "products"

    def __init__(self, repository: ProductRepository, feed: ChangeFeed) -> None:
        self.repository = repository
        super().__init__(feed)

    def _empty(self) -> list[Product]:
        return []

    async def _load(self) -> tuple[list[Product] | None, str | None]:
        result = await self.repository.fetch_all()
        return (result.value, None) if result.ok else (None, result.error)

    async def _apply_live(self, event: ChangeEvent) -> None:
        self.data = apply_product_change(self.data, event)

    def status(self) -> LiveStatus:
        status = super().status()
        status.size = len(self.data)
        return status


class LiveSettings(LiveCollection[SiteSettings]):
    """Settings object re-read wholesale on any change."""

    name = "settings"
    channel_error_message = "Connection error. Settings may not update in real-time."
    timed_out_message = "Connection timed out. Settings may not update in real-time."

    def __init__(self, store: SettingsStore, feed: ChangeFeed) -> None:
        self.store = store
        super().__init__(feed)

    def _empty(self) -> SiteSettings:
        return SiteSettings()

    async def _load(self) -> tuple[SiteSettings | None, str | None]:
        result = await self.store.fetch()
        return (result.value, None) if result.ok else (None, result.error)

    def _on_load_failed(self) -> None:
        self.data = SiteSettings()

    async def _apply_live(self, event: ChangeEvent) -> None:
        await self.refetch()


class LiveCatalog:
    """Both live collections, owned for the lifetime of the application."""

    def __init__(self, products: LiveProducts, settings: LiveSettings) -> None:
        self.products = products
        self.settings = settings

    @property
    def is_live(self) -> bool:
        return (
            self.products.state is LiveState.LIVE
            and self.settings.state is LiveState.LIVE
        )

    async def start(self) -> None:
        await asyncio.gather(self.products.start(), self.settings.start())

    async def refetch(self) -> None:
        await asyncio.gather(self.products.refetch(), self.settings.refetch())

    async def stop(self) -> None:
        try:
            await self.products.stop()
        finally:
            await self.settings.stop()

    def status(self) -> dict[str, LiveStatus]:
        return {
            "products": self.products.status(),
            "settings": self.settings.status(),
        }


def create_live_catalog(
    repository: ProductRepository,
    store: SettingsStore,
    products_feed: ChangeFeed,
    settings_feed: ChangeFeed,
) -> LiveCatalog:
    """Factory function to create the live catalog."""
    return LiveCatalog(
        LiveProducts(repository, products_feed),
        LiveSettings(store, settings_feed),
    )


def get_live_catalog(request: Request) -> LiveCatalog | None:
    """FastAPI dependency; ``None`` when realtime sync is disabled."""

    return getattr(request.app.state, "live_catalog", None)


LiveCatalogDependency = Annotated[LiveCatalog | None, Depends(get_live_catalog)]
