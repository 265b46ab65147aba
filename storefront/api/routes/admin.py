"""Password-gated admin panel: login, dashboard data and catalog CRUD."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)

from storefront.config import settings
from storefront.models.admin import (
    AdminPageView,
    AdminSessionView,
    ImageUploadResponse,
    LoginRequest,
)
from storefront.models.product import Product, ProductCreate, ProductUpdate
from storefront.models.realtime import LiveCatalogView
from storefront.models.site_settings import SiteSettings, SiteSettingsUpdate
from storefront.services.admin.session_gate import (
    AdminGateDependency,
    AdminSession,
    LoginThrottleDependency,
    SessionStoreDependency,
    client_ident,
    session_token,
)
from storefront.services.catalog.product_repository import ProductRepositoryDependency
from storefront.services.catalog.settings_store import SettingsStoreDependency
from storefront.services.realtime.live_collections import LiveCatalogDependency
from storefront.services.storage.image_storage import (
    ImageRejected,
    ImageStorage,
    get_image_storage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

ImageStorageDependency = Annotated[ImageStorage, Depends(get_image_storage)]


@router.get("", response_model=AdminPageView, summary="Login form or dashboard")
async def admin_page(
    request: Request,
    sessions: SessionStoreDependency,
    repository: ProductRepositoryDependency,
    store: SettingsStoreDependency,
) -> AdminPageView:
    if not await sessions.is_logged_in(session_token(request)):
        return AdminPageView(view="login")
    products, site_settings = await asyncio.gather(repository.list(), store.get())
    return AdminPageView(view="dashboard", products=products, settings=site_settings)


@router.post("/login", response_model=AdminSessionView)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    gate: AdminGateDependency,
    sessions: SessionStoreDependency,
    throttle: LoginThrottleDependency,
) -> AdminSessionView:
    if not gate.configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin login is not configured",
        )
    ident = client_ident(request)
    if await throttle.is_blocked(ident):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Terlalu banyak percobaan. Coba lagi nanti.",
        )
    if not gate.verify(payload.password):
        await throttle.record_failure(ident)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Password salah!"
        )

    await throttle.reset(ident)
    token = await sessions.set_logged_in(None, True)
    # No max_age: the cookie ends with the browser session.
    response.set_cookie(
        settings.ADMIN_SESSION_COOKIE,
        token,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )
    return AdminSessionView(logged_in=True)


@router.post("/logout", response_model=AdminSessionView)
async def logout(
    request: Request,
    response: Response,
    sessions: SessionStoreDependency,
) -> AdminSessionView:
    await sessions.set_logged_in(session_token(request), False)
    response.delete_cookie(settings.ADMIN_SESSION_COOKIE)
    return AdminSessionView(logged_in=False)


@router.get("/api/products", response_model=list[Product])
async def admin_list_products(
    _: AdminSession,
    repository: ProductRepositoryDependency,
) -> list[Product]:
    return await repository.list()


@router.post(
    "/api/products",
    response_model=Product,
    status_code=status.HTTP_201_CREATED,
)
async def admin_create_product(
    payload: ProductCreate,
    _: AdminSession,
    repository: ProductRepositoryDependency,
) -> Product:
    product = await repository.create(payload)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Gagal menyimpan produk"
        )
    return product


@router.patch("/api/products/{product_id}", response_model=Product)
async def admin_update_product(
    product_id: str,
    payload: ProductUpdate,
    _: AdminSession,
    repository: ProductRepositoryDependency,
) -> Product:
    if await repository.get(product_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    product = await repository.update(product_id, payload)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Gagal menyimpan produk"
        )
    return product


@router.delete("/api/products/{product_id}")
async def admin_delete_product(
    product_id: str,
    _: AdminSession,
    repository: ProductRepositoryDependency,
) -> dict[str, bool]:
    if await repository.get(product_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if not await repository.remove(product_id):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Gagal menghapus produk"
        )
    return {"ok": True}


@router.put("/api/settings", response_model=SiteSettings)
async def admin_update_settings(
    payload: SiteSettingsUpdate,
    _: AdminSession,
    store: SettingsStoreDependency,
) -> SiteSettings:
    return await store.update(payload)


@router.post("/api/images", response_model=ImageUploadResponse)
async def admin_upload_image(
    _: AdminSession,
    storage: ImageStorageDependency,
    file: UploadFile = File(...),
) -> ImageUploadResponse:
    data = await file.read()
    try:
        url = await asyncio.to_thread(
            storage.upload, file.filename or "upload", data, file.content_type
        )
    except ImageRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except OSError as exc:
        logger.error("Upload error: %s", exc, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Gagal mengupload gambar. Silakan coba lagi.",
        )
    return ImageUploadResponse(url=url)


@router.post("/api/live/refresh", response_model=LiveCatalogView)
async def admin_refresh_live(
    _: AdminSession,
    live: LiveCatalogDependency,
) -> LiveCatalogView:
    if live is None:
        return LiveCatalogView(enabled=False)
    await live.refetch()
    return LiveCatalogView(enabled=True, collections=live.status())
