"""Public catalog pages and read-only catalog API."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException, status

from storefront.config import settings
from storefront.models.product import Category, Product
from storefront.models.realtime import LiveCatalogView
from storefront.models.site_settings import SiteSettings
from storefront.services.catalog.presentation import (
    HomePage,
    ProductPage,
    build_home_page,
    build_product_page,
)
from storefront.services.catalog.product_repository import ProductRepositoryDependency
from storefront.services.catalog.settings_store import SettingsStoreDependency
from storefront.services.realtime.live_collections import LiveCatalogDependency

router = APIRouter(tags=["catalog"])
api_router = APIRouter(prefix="/api", tags=["catalog-api"])


@router.get("/", response_model=HomePage, summary="Home page with both catalog sections")
async def home_page(
    repository: ProductRepositoryDependency,
    store: SettingsStoreDependency,
    live: LiveCatalogDependency,
) -> HomePage:
    if live is not None and live.is_live:
        products, site_settings = live.products.data, live.settings.data
    else:
        products, site_settings = await asyncio.gather(repository.list(), store.get())
    return build_home_page(site_settings, products, settings.site_url)


@router.get(
    "/produk/{address}",
    response_model=ProductPage,
    summary="Product detail page addressed by slug or id",
)
async def product_page(
    address: str,
    repository: ProductRepositoryDependency,
    store: SettingsStoreDependency,
) -> ProductPage:
    product, site_settings, products = await asyncio.gather(
        repository.get_by_address(address),
        store.get(),
        repository.list(),
    )
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Produk tidak ditemukan"
        )
    return build_product_page(product, site_settings, products, settings.site_url)


@api_router.get("/products", response_model=list[Product])
async def list_products(
    repository: ProductRepositoryDependency,
    category: Category | None = None,
) -> list[Product]:
    if category is not None:
        return await repository.list_by_category(category)
    return await repository.list()


@api_router.get("/products/{address}", response_model=Product)
async def get_product(
    address: str,
    repository: ProductRepositoryDependency,
) -> Product:
    product = await repository.get_by_address(address)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return product


@api_router.get("/settings", response_model=SiteSettings)
async def get_site_settings(store: SettingsStoreDependency) -> SiteSettings:
    return await store.get()


@api_router.get(
    "/live",
    response_model=LiveCatalogView,
    summary="State of the realtime-synced catalog",
)
async def live_status(live: LiveCatalogDependency) -> LiveCatalogView:
    if live is None:
        return LiveCatalogView(enabled=False)
    return LiveCatalogView(enabled=True, collections=live.status())
