"""Key/value ``site_settings`` table materialized as :class:`SiteSettings`."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends
from redis.exceptions import RedisError

from storefront.models.result import FetchResult
from storefront.models.site_settings import SiteSettings, SiteSettingsUpdate
from storefront.services.backend.redis_client import RedisDependency
from storefront.services.realtime.change_feed import ChangeFeed, create_settings_feed

logger = logging.getLogger(__name__)

SETTINGS_KEY = "site_settings"
SETTINGS_UPDATED_KEY = "site_settings:updated_at"


class SettingsStore:
    """Reads always return a fully populated object; writes upsert per key."""

    def __init__(self, client: redis.Redis, feed: ChangeFeed) -> None:
        self._client = client
        self._feed = feed

    async def fetch(self) -> FetchResult[SiteSettings]:
        try:
            rows = await self._client.hgetall(SETTINGS_KEY)
        except RedisError as exc:
            logger.error("Error fetching settings: %s", exc)
            return FetchResult(SiteSettings(), error=str(exc))
        return FetchResult(SiteSettings.from_rows(rows or {}))

    async def get(self) -> SiteSettings:
        return (await self.fetch()).value

    async def update(
        self, changes: SiteSettingsUpdate | Mapping[str, str]
    ) -> SiteSettings:
        """Upsert each provided field as its own row, then re-read everything.

        Upserts are independent: a failure on one key is logged and does not
        roll back the others.
        """
        if not isinstance(changes, SiteSettingsUpdate):
            changes = SiteSettingsUpdate.model_validate(dict(changes))
        rows = changes.rows()

        results = await asyncio.gather(
            *(self._upsert(key, value) for key, value in rows.items()),
            return_exceptions=True,
        )
        for key, result in zip(rows, results):
            if isinstance(result, RedisError):
                logger.error("Error saving setting %s: %s", key, result)
            elif isinstance(result, BaseException):
                raise result

        return await self.get()

    async def _upsert(self, key: str, value: str) -> None:
        previous = await self._client.hget(SETTINGS_KEY, key)
        updated_at = datetime.now(UTC).isoformat()
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hset(SETTINGS_KEY, key, value)
            pipe.hset(SETTINGS_UPDATED_KEY, key, updated_at)
            self._feed.stage(
                pipe,
                "INSERT" if previous is None else "UPDATE",
                new={"key": key, "value": value, "updated_at": updated_at},
                old={} if previous is None else {"key": key, "value": previous},
            )
            await pipe.execute()
        logger.debug("Upserted setting %s", key)


def get_settings_store(client: RedisDependency) -> SettingsStore:
    """FastAPI dependency factory."""

    return SettingsStore(client, create_settings_feed(client))


SettingsStoreDependency = Annotated[SettingsStore, Depends(get_settings_store)]
