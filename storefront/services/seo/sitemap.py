"""sitemap.xml entries and robots.txt policy."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from xml.sax.saxutils import escape

from storefront.models.product import Product
from storefront.services.seo.structured_data import product_url

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"

# (user agent, disallowed paths)
ROBOTS_RULES: list[tuple[str, list[str]]] = [
    ("*", ["/admin/", "/api/", "/static/", "/media/"]),
    ("Googlebot", ["/admin/", "/api/"]),
    ("Bingbot", ["/admin/", "/api/"]),
]


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    last_modified: datetime
    change_frequency: str
    priority: float


def product_priority(product: Product, now: datetime) -> float:
    """Newer products rank higher; paid products get a small bump."""
    age_days = (now - product.created_at).total_seconds() / 86400
    if age_days < 30:
        priority = 0.9
    elif age_days < 90:
        priority = 0.85
    else:
        priority = 0.8
    if product.category == "produk":
        priority = min(priority + 0.05, 0.95)
    return round(priority, 2)


def sitemap_entries(
    products: list[Product], site_url: str, now: datetime | None = None
) -> list[SitemapEntry]:
    now = now or datetime.now(UTC)
    entries = [SitemapEntry(site_url, now, "daily", 1.0)]
    for product in products:
        entries.append(
            SitemapEntry(
                url=product_url(site_url, product),
                last_modified=product.created_at,
                change_frequency="weekly",
                priority=product_priority(product, now),
            )
        )
    # Stable sort keeps newest-first order within a priority band.
    entries.sort(key=lambda entry: entry.priority, reverse=True)
    return entries


def render_sitemap(entries: list[SitemapEntry]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<urlset xmlns="{SITEMAP_NAMESPACE}">',
    ]
    for entry in entries:
        lines.extend(
            [
                "  <url>",
                f"    <loc>{escape(entry.url)}</loc>",
                f"    <lastmod>{entry.last_modified.isoformat()}</lastmod>",
                f"    <changefreq>{entry.change_frequency}</changefreq>",
                f"    <priority>{entry.priority:.2f}</priority>",
                "  </url>",
            ]
        )
    lines.append("</urlset>")
    return "\n".join(lines) + "\n"


def render_robots(site_url: str) -> str:
    lines: list[str] = []
    for user_agent, disallowed in ROBOTS_RULES:
        lines.append(f"User-Agent: {user_agent}")
        lines.append("Allow: /")
        lines.extend(f"Disallow: {path}" for path in disallowed)
        lines.append("")
    lines.append(f"Host: {site_url.split('://', 1)[-1]}")
    lines.append(f"Sitemap: {site_url}/sitemap.xml")
    return "\n".join(lines) + "\n"
