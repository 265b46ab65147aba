"""Tests for structured data, sitemap and robots generation."""

from datetime import UTC, datetime, timedelta

import pytest

from storefront.models.product import Product
from storefront.models.site_settings import SiteSettings
from storefront.services.catalog.presentation import (
    ProductCard,
    build_home_page,
    build_product_page,
    format_rupiah,
    related_products,
)
from storefront.services.seo import structured_data
from storefront.services.seo.sitemap import (
    product_priority,
    render_robots,
    render_sitemap,
    sitemap_entries,
)

SITE = "https://hudzstore.test"
NOW = datetime(2024, 12, 1, tzinfo=UTC)


def _product(ident: str, days_old: int = 0, **overrides) -> Product:
    fields = {
        "id": ident,
        "name": f"Produk {ident}",
        "slug": f"produk-{ident}",
        "price": 50000,
        "created_at": NOW - timedelta(days=days_old),
    }
    fields.update(overrides)
    return Product(**fields)


def test_format_rupiah():
    assert format_rupiah(75000) == "Rp 75.000"
    assert format_rupiah(1250000) == "Rp 1.250.000"
    assert format_rupiah(0) == "Rp 0"


def test_card_for_discounted_paid_product():
    card = ProductCard.from_product(
        _product("a", original_price=100000, price=75000, discount_percentage=25)
    )

    assert card.show_discount
    assert card.discount_percentage == 25
    assert card.price_label == "Rp 75.000"
    assert card.original_price_label == "Rp 100.000"
    assert card.cta_label == "Beli Sekarang"


def test_card_for_free_product_hides_price_and_discount():
    card = ProductCard.from_product(
        _product("f", category="gratis", price=0, original_price=10000)
    )

    assert card.price_label == "Gratis"
    assert not card.show_discount
    assert card.original_price_label is None
    assert card.cta_label == "Ambil Gratis"
    assert card.category_name == "Produk Gratis"


def test_related_products_same_category_excluding_self():
    target = _product("a")
    others = [
        target,
        _product("b"),
        _product("free", category="gratis"),
        _product("c"),
        _product("d"),
        _product("e"),
    ]

    related = related_products(target, others)

    assert [p.id for p in related] == ["b", "c", "d"]


def test_home_page_partitions_and_documents():
    products = [_product("a"), _product("free", category="gratis", price=0)]

    page = build_home_page(SiteSettings(), products, SITE)

    assert [c.id for c in page.products] == ["a"]
    assert [c.id for c in page.free_products] == ["free"]
    types = [doc["@type"] for doc in page.structured_data]
    assert types == ["Organization", "WebSite", "ItemList", "BreadcrumbList"]


def test_product_page_documents():
    product = _product("a", original_price=100000, price=75000)

    page = build_product_page(product, SiteSettings(), [product], SITE)

    document, crumbs = page.structured_data
    assert document["@id"] == f"{SITE}/produk/produk-a#product"
    assert document["aggregateOffer"]["highPrice"] == 100000
    assert [e["name"] for e in crumbs["itemListElement"]] == [
        "Home",
        "Produk Premium",
        "Produk a",
    ]
    assert page.related == []


def test_offer_without_discount_has_no_was_price():
    document = structured_data.product_document(_product("a"), SiteSettings(), SITE)

    assert "wasPrice" not in document["offers"]
    assert "aggregateOffer" not in document
    assert document["offers"]["priceCurrency"] == "IDR"


def test_product_url_falls_back_to_id_without_slug():
    product = _product("a", slug=None)
    assert structured_data.product_url(SITE, product) == f"{SITE}/produk/a"


def test_item_list_caps_elements_but_counts_all():
    products = [_product(str(i)) for i in range(25)]

    document = structured_data.item_list(products, SiteSettings(), SITE)

    assert document["numberOfItems"] == 25
    assert len(document["itemListElement"]) == 20
    assert document["itemListElement"][0]["position"] == 1


def test_organization_uses_settings():
    settings = SiteSettings(siteName="TokoKu", communityLink="")

    document = structured_data.organization(settings, SITE)

    assert document["name"] == "TokoKu"
    assert document["sameAs"] == []


@pytest.mark.parametrize(
    "days_old,category,expected",
    [
        (1, "produk", 0.95),
        (1, "gratis", 0.9),
        (45, "produk", 0.9),
        (45, "gratis", 0.85),
        (200, "produk", 0.85),
        (200, "gratis", 0.8),
    ],
)
def test_product_priority(days_old, category, expected):
    product = _product("a", days_old=days_old, category=category)
    assert product_priority(product, NOW) == expected


def test_sitemap_entries_sorted_by_priority():
    products = [
        _product("old", days_old=200, category="gratis"),
        _product("new", days_old=1),
    ]

    entries = sitemap_entries(products, SITE, now=NOW)

    assert [e.url for e in entries] == [
        SITE,
        f"{SITE}/produk/produk-new",
        f"{SITE}/produk/produk-old",
    ]
    assert entries[0].change_frequency == "daily"
    assert entries[1].change_frequency == "weekly"


def test_render_sitemap_escapes_urls():
    entries = sitemap_entries([_product("a", slug="a&b")], SITE, now=NOW)

    xml = render_sitemap(entries)

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<loc>https://hudzstore.test/produk/a&amp;b</loc>" in xml
    assert "<priority>1.00</priority>" in xml


def test_render_robots():
    robots = render_robots(SITE)

    assert "User-Agent: *" in robots
    assert "Disallow: /admin/" in robots
    assert "Host: hudzstore.test" in robots
    assert robots.rstrip().endswith(f"Sitemap: {SITE}/sitemap.xml")
