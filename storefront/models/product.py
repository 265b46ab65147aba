"""Product domain models and API schemas."""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Category = Literal["produk", "gratis"]

DEFAULT_CTA_LABELS: dict[str, str] = {
    "produk": "Beli Sekarang",
    "gratis": "Ambil Gratis",
}

CATEGORY_NAMES: dict[str, str] = {
    "produk": "Produk Premium",
    "gratis": "Produk Gratis",
}

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def calculate_discount_percentage(original_price: int, current_price: int) -> int:
    """Return the whole-number discount of ``current_price`` against ``original_price``."""

    if original_price <= current_price or original_price == 0:
        return 0
    # Half-up rounding, not banker's rounding.
    return math.floor((original_price - current_price) / original_price * 100 + 0.5)


def generate_slug(name: str) -> str:
    """Turn a display name into a URL slug (``"Kit Desain!"`` -> ``"kit-desain"``)."""

    return _SLUG_SEPARATORS.sub("-", name.lower()).strip("-")


def normalize_discount(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop discount fields that do not describe a real discount.

    ``fields`` must carry ``price``, ``original_price`` and ``category``.
    """

    price = fields.get("price") or 0
    original = fields.get("original_price")
    valid = (
        original is not None
        and original > price
        and fields.get("category", "produk") != "gratis"
    )
    normalized = dict(fields)
    if valid:
        normalized["discount_percentage"] = calculate_discount_percentage(
            original, price
        )
    else:
        normalized["original_price"] = None
        normalized["discount_percentage"] = None
    return normalized


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: int = Field(0, ge=0, description="Price in rupiah, no decimals")
    original_price: int | None = Field(None, ge=0)
    category: Category = "produk"
    image: str | None = None
    marketplace_link: str = ""
    button_text: str = ""


class ProductCreate(ProductBase):
    """Payload accepted by the admin panel when adding a product."""

    slug: str | None = None


class ProductUpdate(BaseModel):
    """Partial update; only fields the caller actually sent are applied."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    price: int | None = Field(None, ge=0)
    original_price: int | None = Field(None, ge=0)
    category: Category | None = None
    image: str | None = None
    marketplace_link: str | None = None
    button_text: str | None = None
    slug: str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Product(ProductBase):
    """A stored catalog row."""

    id: str
    slug: str | None = None
    discount_percentage: int | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_discount(self) -> bool:
        return bool(self.original_price) and self.original_price > self.price

    @property
    def effective_discount(self) -> int:
        """Stored discount when present, otherwise computed on read."""
        if not self.has_discount:
            return 0
        return self.discount_percentage or calculate_discount_percentage(
            self.original_price, self.price
        )

    @property
    def cta_label(self) -> str:
        return self.button_text or DEFAULT_CTA_LABELS[self.category]

    @property
    def address(self) -> str:
        return self.slug or self.id
