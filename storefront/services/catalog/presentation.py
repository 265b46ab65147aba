"""View models for the public catalog pages."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from storefront.models.product import CATEGORY_NAMES, Category, Product
from storefront.models.site_settings import SiteSettings
from storefront.services.seo import structured_data

RELATED_PRODUCTS_LIMIT = 3


def format_rupiah(amount: int) -> str:
    """``75000`` -> ``"Rp 75.000"`` (Indonesian thousands separator)."""
    return f"Rp {amount:,}".replace(",", ".")


class ProductCard(BaseModel):
    """Display-ready product, as rendered in listings and on the detail page."""

    id: str
    address: str
    name: str
    description: str
    category: Category
    category_name: str
    image: str | None = None
    price: int
    price_label: str
    original_price_label: str | None = None
    discount_percentage: int = 0
    show_discount: bool = False
    cta_label: str
    marketplace_link: str

    @classmethod
    def from_product(cls, product: Product) -> ProductCard:
        free = product.category == "gratis"
        # Free products ignore price and discount for display.
        show_discount = not free and product.has_discount and product.effective_discount > 0
        return cls(
            id=product.id,
            address=product.address,
            name=product.name,
            description=product.description,
            category=product.category,
            category_name=CATEGORY_NAMES[product.category],
            image=product.image,
            price=product.price,
            price_label="Gratis" if free else format_rupiah(product.price),
            original_price_label=(
                format_rupiah(product.original_price) if show_discount else None
            ),
            discount_percentage=product.effective_discount if show_discount else 0,
            show_discount=show_discount,
            cta_label=product.cta_label,
            marketplace_link=product.marketplace_link,
        )


def partition_by_category(products: list[Product]) -> dict[str, list[Product]]:
    """Split a newest-first list into paid and free, preserving order."""
    sections: dict[str, list[Product]] = {"produk": [], "gratis": []}
    for product in products:
        sections[product.category].append(product)
    return sections


def related_products(
    product: Product, products: list[Product], limit: int = RELATED_PRODUCTS_LIMIT
) -> list[Product]:
    return [
        p for p in products if p.category == product.category and p.id != product.id
    ][:limit]


class HomePage(BaseModel):
    settings: SiteSettings
    products: list[ProductCard] = Field(default_factory=list)
    free_products: list[ProductCard] = Field(default_factory=list)
    structured_data: list[dict[str, Any]] = Field(default_factory=list)


class ProductPage(BaseModel):
    settings: SiteSettings
    product: ProductCard
    related: list[ProductCard] = Field(default_factory=list)
    structured_data: list[dict[str, Any]] = Field(default_factory=list)


def build_home_page(
    settings: SiteSettings, products: list[Product], site_url: str
) -> HomePage:
    sections = partition_by_category(products)
    return HomePage(
        settings=settings,
        products=[ProductCard.from_product(p) for p in sections["produk"]],
        free_products=[ProductCard.from_product(p) for p in sections["gratis"]],
        structured_data=structured_data.home_documents(settings, products, site_url),
    )


def build_product_page(
    product: Product,
    settings: SiteSettings,
    products: list[Product],
    site_url: str,
) -> ProductPage:
    return ProductPage(
        settings=settings,
        product=ProductCard.from_product(product),
        related=[
            ProductCard.from_product(p) for p in related_products(product, products)
        ],
        structured_data=structured_data.product_documents(product, settings, site_url),
    )
