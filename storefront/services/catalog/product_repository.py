"""Redis-backed ``products`` table."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Annotated, Any

import redis.asyncio as redis
from fastapi import Depends
from pydantic import ValidationError
from redis.exceptions import RedisError

from storefront.models.product import (
    Category,
    Product,
    ProductCreate,
    ProductUpdate,
    generate_slug,
    normalize_discount,
)
from storefront.models.result import FetchResult
from storefront.services.backend.redis_client import RedisDependency
from storefront.services.realtime.change_feed import ChangeFeed, create_products_feed

logger = logging.getLogger(__name__)

PRODUCTS_KEY = "products"
CREATED_INDEX_KEY = "products:by_created"
SLUG_KEY_PREFIX = "products:slug:"

# Canonical 8-4-4-4-12 hex identifier.
_CANONICAL_ID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_NULLABLE_FIELDS = {"original_price", "image", "slug"}


def is_canonical_id(address: str) -> bool:
    return bool(_CANONICAL_ID.match(address))


class ProductRepository:
    """CRUD over products.

    Reads fail open (empty list / ``None``) and writes return ``None`` or
    ``False`` on backend errors; nothing here raises ``RedisError`` to the
    caller.
    """

    def __init__(self, client: redis.Redis, feed: ChangeFeed) -> None:
        self._client = client
        self._feed = feed

    async def fetch_all(self) -> FetchResult[list[Product]]:
        """All products, newest first, with the failure reason if the read failed."""
        try:
            ids = await self._client.zrevrange(CREATED_INDEX_KEY, 0, -1)
            rows = await self._client.hmget(PRODUCTS_KEY, ids) if ids else []
        except RedisError as exc:
            logger.error("Error fetching products: %s", exc)
            return FetchResult([], error=str(exc))
        return FetchResult(self._decode_rows(rows))

    async def list(self) -> list[Product]:
        return (await self.fetch_all()).value

    async def list_by_category(self, category: Category) -> list[Product]:
        return [p for p in await self.list() if p.category == category]

    async def get(self, product_id: str) -> Product | None:
        try:
            return await self._load(product_id)
        except RedisError as exc:
            logger.error("Error fetching product %s: %s", product_id, exc)
            return None

    async def get_by_address(self, address: str) -> Product | None:
        """Resolve a slug or identifier to a product.

        Canonical identifiers are looked up directly. Anything else is tried
        as a slug first and as an identifier second, so rows without a slug
        stay reachable.
        """
        address = address.strip()
        if not address:
            return None
        try:
            if not is_canonical_id(address):
                product = await self._find_by_slug(address)
                if product is not None:
                    return product
            product = await self._load(address)
        except RedisError as exc:
            logger.error("Error fetching product by slug/ID %s: %s", address, exc)
            return None

        if product is None:
            logger.info("Product not found for address %s", address)
        return product

    async def create(self, payload: ProductCreate) -> Product | None:
        fields = payload.model_dump()
        slug = (fields.pop("slug") or "").strip() or generate_slug(payload.name)
        fields = normalize_discount(fields)
        product = Product(
            id=str(uuid.uuid4()),
            slug=slug or None,
            created_at=datetime.now(UTC),
            **fields,
        )
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                self._stage_write(pipe, product)
                self._feed.stage(pipe, "INSERT", new=_row(product))
                await pipe.execute()
        except RedisError as exc:
            logger.error("Error adding product %s: %s", product.name, exc)
            return None

        logger.info("Created product %s (slug=%s)", product.id, product.slug)
        return product

    async def update(self, product_id: str, payload: ProductUpdate) -> Product | None:
        """Apply a partial update; returns ``None`` for unknown ids or failures."""
        changes = {
            key: value
            for key, value in payload.changes().items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        try:
            current = await self._load(product_id)
            if current is None:
                logger.warning("Cannot update missing product %s", product_id)
                return None

            merged = current.model_dump()
            merged.update(changes)
            if "slug" in changes:
                slug = (changes["slug"] or "").strip() or generate_slug(merged["name"])
                merged["slug"] = slug or None
            updated = Product.model_validate(normalize_discount(merged))

            async with self._client.pipeline(transaction=True) as pipe:
                self._stage_write(pipe, updated, previous=current)
                self._feed.stage(pipe, "UPDATE", new=_row(updated), old=_row(current))
                await pipe.execute()
        except RedisError as exc:
            logger.error("Error updating product %s: %s", product_id, exc)
            return None

        logger.info("Updated product %s fields=%s", product_id, sorted(changes))
        return updated

    async def remove(self, product_id: str) -> bool:
        try:
            current = await self._load(product_id)
            if current is None:
                logger.warning("Cannot delete missing product %s", product_id)
                return False
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hdel(PRODUCTS_KEY, product_id)
                pipe.zrem(CREATED_INDEX_KEY, product_id)
                if current.slug:
                    pipe.srem(_slug_key(current.slug), product_id)
                self._feed.stage(pipe, "DELETE", old=_row(current))
                await pipe.execute()
        except RedisError as exc:
            logger.error("Error deleting product %s: %s", product_id, exc)
            return False

        logger.info("Deleted product %s", product_id)
        return True

    async def _load(self, product_id: str) -> Product | None:
        raw = await self._client.hget(PRODUCTS_KEY, product_id)
        if raw is None:
            return None
        products = self._decode_rows([raw])
        return products[0] if products else None

    async def _find_by_slug(self, slug: str) -> Product | None:
        ids = list(await self._client.smembers(_slug_key(slug)))
        if not ids:
            return None
        candidates = self._decode_rows(await self._client.hmget(PRODUCTS_KEY, ids))
        if len(candidates) > 1:
            logger.warning("Slug %s is shared by %d products", slug, len(candidates))
        # Slugs are unique by convention only; the newest row wins.
        return max(candidates, key=lambda p: p.created_at, default=None)

    def _stage_write(
        self, pipe: Any, product: Product, previous: Product | None = None
    ) -> None:
        pipe.hset(PRODUCTS_KEY, product.id, product.model_dump_json())
        pipe.zadd(CREATED_INDEX_KEY, {product.id: product.created_at.timestamp()})
        if previous is not None and previous.slug and previous.slug != product.slug:
            pipe.srem(_slug_key(previous.slug), product.id)
        if product.slug:
            pipe.sadd(_slug_key(product.slug), product.id)

    @staticmethod
    def _decode_rows(rows: Iterable[str | None]) -> list[Product]:
        products: list[Product] = []
        for raw in rows:
            if raw is None:
                continue
            try:
                products.append(Product.model_validate_json(raw))
            except ValidationError as exc:
                logger.warning("Skipping undecodable product row: %s", exc)
        return products


def _slug_key(slug: str) -> str:
    return f"{SLUG_KEY_PREFIX}{slug}"


def _row(product: Product) -> dict[str, Any]:
    return product.model_dump(mode="json")


def get_product_repository(client: RedisDependency) -> ProductRepository:
    """FastAPI dependency factory."""

    return ProductRepository(client, create_products_feed(client))


ProductRepositoryDependency = Annotated[
    ProductRepository, Depends(get_product_repository)
]
