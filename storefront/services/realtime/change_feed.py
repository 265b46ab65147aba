"""Redis stream carrying committed row changes for one table."""

from __future__ import annotations

import logging
from typing import Any, Literal

import redis.asyncio as redis  # type: ignore[import]
from pydantic import ValidationError

from storefront.config import settings
from storefront.models.realtime import ChangeEvent

logger = logging.getLogger(__name__)

PRODUCTS_TABLE = "products"
SETTINGS_TABLE = "site_settings"

# Position used when the stream has never been written to.
STREAM_START = "0-0"


class ChangeFeed:
    """Publishes and reads change events for a single table.

    Writers stage the event on the same MULTI/EXEC pipeline as the row
    write, so a change is published if and only if it was committed.
    """

    def __init__(
        self,
        client: redis.Redis,
        table: str,
        stream_key: str,
        maxlen: int | None = None,
    ) -> None:
        self.client = client
        self.table = table
        self.stream_key = stream_key
        self.maxlen = maxlen if maxlen is not None else settings.REALTIME_STREAM_MAXLEN

    def stage(
        self,
        pipe: Any,
        event_type: Literal["INSERT", "UPDATE", "DELETE"],
        *,
        new: dict[str, Any] | None = None,
        old: dict[str, Any] | None = None,
    ) -> ChangeEvent:
        """Queue an event on ``pipe``; it is written when the pipeline executes."""
        event = ChangeEvent(
            event_type=event_type,
            table=self.table,
            new=new or {},
            old=old or {},
        )
        pipe.xadd(
            self.stream_key,
            {"payload": event.model_dump_json()},
            maxlen=self.maxlen,
            approximate=True,
        )
        return event

    async def last_id(self) -> str:
        """Return the id of the newest entry, the point a new subscriber reads from."""
        entries = await self.client.xrevrange(self.stream_key, count=1)
        if not entries:
            return STREAM_START
        return entries[0][0]

    async def read(
        self,
        last_id: str,
        block_ms: int | None = None,
        count: int = 100,
    ) -> list[tuple[str, ChangeEvent | None]]:
        """Read entries newer than ``last_id``.

        Entries whose payload cannot be decoded are returned as ``None`` so
        the caller can still advance past them.
        """
        response = await self.client.xread(
            streams={self.stream_key: last_id},
            count=count,
            block=block_ms or None,
        )
        decoded: list[tuple[str, ChangeEvent | None]] = []
        for _stream, messages in response or []:
            for entry_id, fields in messages:
                decoded.append((entry_id, self._decode(entry_id, fields)))
        return decoded

    def _decode(self, entry_id: str, fields: dict[str, str]) -> ChangeEvent | None:
        payload = fields.get("payload")
        if payload is None:
            logger.warning("Missing payload for change %s on %s", entry_id, self.table)
            return None
        try:
            return ChangeEvent.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning(
                "Dropping malformed change %s on %s: %s", entry_id, self.table, exc
            )
            return None


def create_products_feed(client: redis.Redis) -> ChangeFeed:
    """Factory function for the ``products`` change feed."""
    return ChangeFeed(client, PRODUCTS_TABLE, settings.PRODUCTS_CHANGES_STREAM)


def create_settings_feed(client: redis.Redis) -> ChangeFeed:
    """Factory function for the ``site_settings`` change feed."""
    return ChangeFeed(client, SETTINGS_TABLE, settings.SETTINGS_CHANGES_STREAM)
