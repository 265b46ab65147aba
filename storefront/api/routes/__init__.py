"""API route registration."""

from fastapi import FastAPI

from storefront.api.routes import admin, catalog, seo, system


def include_api_routes(app: FastAPI) -> None:
    """Attach all API routers to the application."""

    app.include_router(system.router)
    app.include_router(seo.router)
    app.include_router(catalog.api_router)
    app.include_router(admin.router)
    app.include_router(catalog.router)
