"""Subscription to a table's change stream, run as a background task."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from redis.exceptions import RedisError  # type: ignore[import]

from storefront.config import settings
from storefront.models.realtime import ChangeEvent, SubscriptionStatus
from storefront.services.realtime.change_feed import ChangeFeed

logger = logging.getLogger(__name__)

EventHandler = Callable[[ChangeEvent], Awaitable[None]]
StatusHandler = Callable[[SubscriptionStatus, Exception | None], None]


class RealtimeChannel:
    """Delivers change events from a :class:`ChangeFeed` to a handler.

    Status transitions are reported through ``on_status``. A read failure
    reports ``CHANNEL_ERROR`` and ends the subscription; there is no
    automatic reconnect.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        name: str,
        on_event: EventHandler,
        on_status: StatusHandler | None = None,
        *,
        block_ms: int | None = None,
        subscribe_timeout: float | None = None,
    ) -> None:
        self.feed = feed
        self.name = name
        self.status: SubscriptionStatus | None = None
        self._on_event = on_event
        self._on_status = on_status
        self._block_ms = block_ms if block_ms is not None else settings.REALTIME_BLOCK_MS
        if self._block_ms <= 0:
            raise ValueError("block_ms must be positive; 0 would poll without blocking")
        self._subscribe_timeout = (
            subscribe_timeout
            if subscribe_timeout is not None
            else settings.REALTIME_SUBSCRIBE_TIMEOUT_SECONDS
        )
        self._shutdown_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    async def subscribe(self) -> SubscriptionStatus:
        """Start listening from the current end of the stream."""
        try:
            last_id = await asyncio.wait_for(
                self.feed.last_id(), timeout=self._subscribe_timeout
            )
        except TimeoutError:
            logger.error("Subscription to %s timed out", self.name)
            self._set_status(SubscriptionStatus.TIMED_OUT)
            return SubscriptionStatus.TIMED_OUT
        except RedisError as exc:
            logger.error("Subscription to %s failed: %s", self.name, exc)
            self._set_status(SubscriptionStatus.CHANNEL_ERROR, exc)
            return SubscriptionStatus.CHANNEL_ERROR

        self._set_status(SubscriptionStatus.SUBSCRIBED)
        self._task = asyncio.create_task(
            self._listen(last_id), name=f"realtime:{self.name}"
        )
        return SubscriptionStatus.SUBSCRIBED

    async def unsubscribe(self) -> None:
        """Stop the listener. Safe to call in any state."""
        self._shutdown_event.set()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self.status is not SubscriptionStatus.CLOSED:
            logger.info("Cleaning up %s subscription", self.name)
            self._set_status(SubscriptionStatus.CLOSED)

    async def _listen(self, last_id: str) -> None:
        logger.info(
            "Listening for changes",
            extra={"channel": self.name, "stream": self.feed.stream_key},
        )
        try:
            while not self._shutdown_event.is_set():
                try:
                    entries = await self.feed.read(last_id, block_ms=self._block_ms)
                except Exception as exc:
                    logger.error(
                        "Channel %s error: %s", self.name, exc, exc_info=True
                    )
                    self._set_status(SubscriptionStatus.CHANNEL_ERROR, exc)
                    return

                for entry_id, event in entries:
                    last_id = entry_id
                    if event is None:
                        continue
                    logger.debug(
                        "%s change received: %s %s",
                        self.name,
                        event.event_type,
                        event.record_id,
                    )
                    try:
                        await self._on_event(event)
                    except Exception:
                        logger.exception(
                            "Failed to apply change %s on %s", entry_id, self.name
                        )
        except asyncio.CancelledError:
            logger.debug("Channel %s cancelled", self.name)
            raise

    def _set_status(
        self, status: SubscriptionStatus, exc: Exception | None = None
    ) -> None:
        self.status = status
        logger.info("Subscription status for %s: %s", self.name, status.value)
        if self._on_status is not None:
            self._on_status(status, exc)
