"""schema.org JSON-LD documents derived from products and site settings."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

from storefront.models.product import CATEGORY_NAMES, Product
from storefront.models.site_settings import SiteSettings

SCHEMA_CONTEXT = "https://schema.org"
CURRENCY = "IDR"
ITEM_LIST_LIMIT = 20
DEFAULT_DESCRIPTION = "Marketplace produk digital premium terpercaya di Indonesia"


def product_url(site_url: str, product: Product) -> str:
    return f"{site_url}/produk/{product.address}"


def _price_valid_until(today: date | None = None) -> str:
    today = today or datetime.now(UTC).date()
    return (today + timedelta(days=365)).isoformat()


def _offer(product: Product, url: str) -> dict[str, Any]:
    offer: dict[str, Any] = {
        "@type": "Offer",
        "price": product.price,
        "priceCurrency": CURRENCY,
        "availability": "https://schema.org/InStock",
        "url": url,
        "priceValidUntil": _price_valid_until(),
    }
    if product.has_discount:
        offer["priceSpecification"] = {
            "@type": "UnitPriceSpecification",
            "price": product.price,
            "priceCurrency": CURRENCY,
            "referenceQuantity": {"@type": "QuantitativeValue", "value": 1},
        }
        offer["wasPrice"] = product.original_price
    return offer


def organization(settings: SiteSettings, site_url: str) -> dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "@id": f"{site_url}/#organization",
        "name": settings.site_name,
        "description": settings.tagline or DEFAULT_DESCRIPTION,
        "url": site_url,
        "logo": {
            "@type": "ImageObject",
            "url": f"{site_url}/logo.png",
            "width": 512,
            "height": 512,
        },
        "sameAs": [settings.community_link] if settings.community_link else [],
        "contactPoint": {
            "@type": "ContactPoint",
            "contactType": "Customer Service",
            "availableLanguage": ["Indonesian", "English"],
        },
        "areaServed": {"@type": "Country", "name": "Indonesia"},
    }


def website(settings: SiteSettings, site_url: str) -> dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "WebSite",
        "@id": f"{site_url}/#website",
        "name": settings.site_name,
        "url": site_url,
        "description": settings.tagline or DEFAULT_DESCRIPTION,
        "publisher": {"@id": f"{site_url}/#organization"},
        "inLanguage": "id-ID",
        "potentialAction": {
            "@type": "SearchAction",
            "target": {
                "@type": "EntryPoint",
                "urlTemplate": f"{site_url}/search?q={{search_term_string}}",
            },
            "query-input": "required name=search_term_string",
        },
    }


def item_list(
    products: list[Product], settings: SiteSettings, site_url: str
) -> dict[str, Any]:
    elements = []
    for position, product in enumerate(products[:ITEM_LIST_LIMIT], start=1):
        url = product_url(site_url, product)
        item: dict[str, Any] = {
            "@type": "Product",
            "@id": url,
            "name": product.name,
            "description": product.description
            or f"Beli {product.name} dengan harga terbaik",
            "category": CATEGORY_NAMES[product.category],
            "brand": {"@type": "Brand", "name": settings.site_name},
            "offers": _offer(product, url),
            "url": url,
        }
        if product.image:
            item["image"] = [product.image]
        elements.append({"@type": "ListItem", "position": position, "item": item})

    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "ItemList",
        "@id": f"{site_url}/#itemlist",
        "name": "Daftar Produk Digital Premium",
        "description": "Koleksi produk digital premium terbaik dengan harga terjangkau",
        "numberOfItems": len(products),
        "itemListElement": elements,
    }


def product_document(
    product: Product, settings: SiteSettings, site_url: str
) -> dict[str, Any]:
    url = product_url(site_url, product)
    offer = {
        "@id": f"{url}#offer",
        **_offer(product, url),
        "itemCondition": "https://schema.org/NewCondition",
        "seller": {"@type": "Organization", "name": settings.site_name},
    }
    document: dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": "Product",
        "@id": f"{url}#product",
        "name": product.name,
        "description": product.description
        or f"Beli {product.name} dengan harga terbaik di {settings.site_name}",
        "category": CATEGORY_NAMES[product.category],
        "brand": {"@type": "Brand", "name": settings.site_name},
        "sku": product.id,
        "mpn": product.address,
        "offers": offer,
        "url": url,
    }
    if product.image:
        document["image"] = [product.image]
    if product.has_discount:
        document["aggregateOffer"] = {
            "@type": "AggregateOffer",
            "priceCurrency": CURRENCY,
            "lowPrice": product.price,
            "highPrice": product.original_price,
            "offerCount": 1,
        }
    return document


def breadcrumbs(site_url: str, product: Product | None = None) -> dict[str, Any]:
    elements: list[dict[str, Any]] = [
        {"@type": "ListItem", "position": 1, "name": "Home", "item": site_url}
    ]
    if product is not None:
        elements.append(
            {
                "@type": "ListItem",
                "position": 2,
                "name": CATEGORY_NAMES[product.category],
                "item": f"{site_url}#{product.category}",
            }
        )
        elements.append(
            {
                "@type": "ListItem",
                "position": 3,
                "name": product.name,
                "item": product_url(site_url, product),
            }
        )
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": elements,
    }


def home_documents(
    settings: SiteSettings, products: list[Product], site_url: str
) -> list[dict[str, Any]]:
    return [
        organization(settings, site_url),
        website(settings, site_url),
        item_list(products, settings, site_url),
        breadcrumbs(site_url),
    ]


def product_documents(
    product: Product, settings: SiteSettings, site_url: str
) -> list[dict[str, Any]]:
    return [
        product_document(product, settings, site_url),
        breadcrumbs(site_url, product),
    ]
