"""Incremental patching of a locally held product list from change events."""

from __future__ import annotations

import logging

from storefront.models.product import Product
from storefront.models.realtime import ChangeEvent

logger = logging.getLogger(__name__)


def apply_product_change(items: list[Product], event: ChangeEvent) -> list[Product]:
    """Return ``items`` with ``event`` applied.

    * INSERT of an id already present is ignored (duplicate delivery).
    * UPDATE replaces the matching item in place; unknown ids are ignored,
      so a late update never resurrects a deleted product.
    * DELETE removes the matching item if present.

    The input list is never mutated.
    """
    if event.event_type == "INSERT":
        product = Product.model_validate(event.new)
        if _index_of(items, product.id) is not None:
            return items
        return _insert_newest_first(items, product)

    if event.event_type == "UPDATE":
        product = Product.model_validate(event.new)
        position = _index_of(items, product.id)
        if position is None:
            logger.debug("Ignoring update for unknown product %s", product.id)
            return items
        patched = list(items)
        patched[position] = product
        return patched

    if event.event_type == "DELETE":
        product_id = event.record_id
        if _index_of(items, product_id) is None:
            return items
        return [p for p in items if p.id != product_id]

    return items


def _index_of(items: list[Product], product_id: str | None) -> int | None:
    for position, product in enumerate(items):
        if product.id == product_id:
            return position
    return None


def _insert_newest_first(items: list[Product], product: Product) -> list[Product]:
    # Inserts normally arrive in creation order and go to the head; a late
    # one is placed by created_at so the list stays newest first.
    if not items or product.created_at >= items[0].created_at:
        return [product, *items]
    position = next(
        (i for i, p in enumerate(items) if p.created_at <= product.created_at),
        len(items),
    )
    return [*items[:position], product, *items[position:]]
