"""Schemas for the admin panel routes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from storefront.models.product import Product
from storefront.models.site_settings import SiteSettings


class LoginRequest(BaseModel):
    password: str = Field(..., min_length=1)


class AdminSessionView(BaseModel):
    logged_in: bool


class AdminPageView(BaseModel):
    """The single gated admin route: either the login form or the dashboard."""

    view: Literal["login", "dashboard"]
    products: list[Product] = Field(default_factory=list)
    settings: SiteSettings | None = None


class ImageUploadResponse(BaseModel):
    url: str
