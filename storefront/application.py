"""FastAPI application factory and bootstrap helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from storefront.api.routes import include_api_routes
from storefront.config import settings
from storefront.services.backend.redis_client import (
    close_redis_client,
    get_redis_client,
)
from storefront.services.catalog.product_repository import ProductRepository
from storefront.services.catalog.settings_store import SettingsStore
from storefront.services.realtime.change_feed import (
    create_products_feed,
    create_settings_feed,
)
from storefront.services.realtime.live_collections import create_live_catalog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the realtime-synced catalog and tear it down on shutdown."""
    if not settings.admin_configured:
        logger.warning("ADMIN_PASSWORD is not set; admin login is disabled")

    live = None
    if settings.REALTIME_ENABLED:
        client = get_redis_client()
        products_feed = create_products_feed(client)
        settings_feed = create_settings_feed(client)
        live = create_live_catalog(
            ProductRepository(client, products_feed),
            SettingsStore(client, settings_feed),
            products_feed,
            settings_feed,
        )
        await live.start()
        logger.info("Live catalog started")
    else:
        logger.info("Realtime sync disabled; pages read the backend directly")
    app.state.live_catalog = live

    try:
        yield
    finally:
        try:
            if live is not None:
                await live.stop()
        finally:
            await close_redis_client()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="HudzStore",
        description="Digital-goods storefront with a password-gated admin panel",
        version="1.0.0",
        lifespan=lifespan,
    )

    _configure_cors(app)
    _mount_media(app)
    include_api_routes(app)

    return app


def _configure_cors(app: FastAPI) -> None:
    """Allow broad access in non-production environments."""

    if settings.is_production:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _mount_media(app: FastAPI) -> None:
    """Serve uploaded product images."""

    media_root = Path(settings.MEDIA_ROOT)
    media_root.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.MEDIA_URL_PATH,
        StaticFiles(directory=media_root),
        name="media",
    )
