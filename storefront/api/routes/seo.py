"""Crawler-facing sitemap and robots policy."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response

from storefront.config import settings
from storefront.services.catalog.product_repository import ProductRepositoryDependency
from storefront.services.seo.sitemap import (
    render_robots,
    render_sitemap,
    sitemap_entries,
)

router = APIRouter(tags=["seo"])


@router.get("/sitemap.xml", response_class=Response)
async def sitemap(repository: ProductRepositoryDependency) -> Response:
    products = await repository.list()
    body = render_sitemap(sitemap_entries(products, settings.site_url))
    return Response(content=body, media_type="application/xml")


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots() -> PlainTextResponse:
    return PlainTextResponse(render_robots(settings.site_url))
