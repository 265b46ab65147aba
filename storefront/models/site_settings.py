"""Site settings record materialized from key/value rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class SiteSettings(BaseModel):
    """Fixed set of site-wide strings.

    Storage keys are the camelCase aliases (``siteName``, ``heroTitle`` ...);
    every field has a hardcoded default used when its row is missing.
    """

    model_config = ConfigDict(populate_by_name=True)

    site_name: str = Field("HudzStore", alias="siteName")
    tagline: str = Field("Produk Digital Terbaik", alias="tagline")
    community_link: str = Field("https://t.me/yourgroup", alias="communityLink")
    hero_title: str = Field("Produk Digital Premium", alias="heroTitle")
    hero_subtitle: str = Field(
        "Temukan berbagai produk digital berkualitas dengan harga terjangkau",
        alias="heroSubtitle",
    )

    @classmethod
    def storage_keys(cls) -> list[str]:
        return [field.alias or name for name, field in cls.model_fields.items()]

    @classmethod
    def from_rows(
        cls, rows: Mapping[str, str] | Iterable[tuple[str, str]]
    ) -> SiteSettings:
        """Overlay stored key/value rows on the defaults, ignoring unknown keys."""

        pairs = rows.items() if isinstance(rows, Mapping) else rows
        known = set(cls.storage_keys())
        values: dict[str, str] = {}
        for key, value in pairs:
            if key in known:
                values[key] = value
            else:
                logger.debug("Ignoring unknown settings key %s", key)
        return cls(**values)

    def as_rows(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class SiteSettingsUpdate(BaseModel):
    """Partial settings change; unknown keys are rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    site_name: str | None = Field(None, alias="siteName")
    tagline: str | None = Field(None, alias="tagline")
    community_link: str | None = Field(None, alias="communityLink")
    hero_title: str | None = Field(None, alias="heroTitle")
    hero_subtitle: str | None = Field(None, alias="heroSubtitle")

    def rows(self) -> dict[str, str]:
        """Key/value rows for the fields the caller provided."""
        return {
            key: value
            for key, value in self.model_dump(by_alias=True, exclude_unset=True).items()
            if value is not None
        }
