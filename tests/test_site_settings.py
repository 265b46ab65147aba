"""Tests for the fixed site settings record."""

import pytest
from pydantic import ValidationError

from storefront.models.site_settings import SiteSettings, SiteSettingsUpdate


def test_defaults_when_no_rows():
    settings = SiteSettings.from_rows({})
    assert settings.site_name == "HudzStore"
    assert settings.tagline == "Produk Digital Terbaik"
    assert settings.community_link == "https://t.me/yourgroup"


def test_rows_overlay_defaults_and_unknown_keys_are_ignored():
    settings = SiteSettings.from_rows(
        [("siteName", "Toko Baru"), ("maintenanceMode", "on")]
    )
    assert settings.site_name == "Toko Baru"
    assert settings.hero_title == "Produk Digital Premium"
    assert "maintenanceMode" not in settings.as_rows()


def test_serializes_with_storage_keys():
    rows = SiteSettings().as_rows()
    assert set(rows) == {
        "siteName",
        "tagline",
        "communityLink",
        "heroTitle",
        "heroSubtitle",
    }


def test_update_rows_contain_only_provided_fields():
    update = SiteSettingsUpdate.model_validate({"siteName": "NewName"})
    assert update.rows() == {"siteName": "NewName"}


def test_update_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        SiteSettingsUpdate.model_validate({"theme": "dark"})
