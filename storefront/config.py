"""
Configuration settings for the storefront.
"""

import hashlib
import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    SITE_URL: str = os.getenv("SITE_URL", "https://hudzstore.com")

    # Redis (tables + realtime change streams)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    PRODUCTS_CHANGES_STREAM: str = os.getenv(
        "PRODUCTS_CHANGES_STREAM", "realtime:products"
    )
    SETTINGS_CHANGES_STREAM: str = os.getenv(
        "SETTINGS_CHANGES_STREAM", "realtime:site_settings"
    )
    REALTIME_STREAM_MAXLEN: int = int(os.getenv("REALTIME_STREAM_MAXLEN", "1000"))

    # Realtime sync
    REALTIME_ENABLED: bool = os.getenv("REALTIME_ENABLED", "true").lower() == "true"
    REALTIME_BLOCK_MS: int = int(os.getenv("REALTIME_BLOCK_MS", "5000"))
    REALTIME_SUBSCRIBE_TIMEOUT_SECONDS: float = float(
        os.getenv("REALTIME_SUBSCRIBE_TIMEOUT_SECONDS", "10")
    )

    # Admin gate
    ADMIN_PASSWORD: str | None = os.getenv("ADMIN_PASSWORD")
    ADMIN_PASSWORD_SHA256: str | None = os.getenv("ADMIN_PASSWORD_SHA256")
    ADMIN_SESSION_COOKIE: str = os.getenv("ADMIN_SESSION_COOKIE", "admin_session")
    ADMIN_SESSION_TTL_SECONDS: int = int(
        os.getenv("ADMIN_SESSION_TTL_SECONDS", str(12 * 60 * 60))
    )
    ADMIN_LOGIN_MAX_ATTEMPTS: int = int(os.getenv("ADMIN_LOGIN_MAX_ATTEMPTS", "5"))
    ADMIN_LOGIN_WINDOW_SECONDS: int = int(
        os.getenv("ADMIN_LOGIN_WINDOW_SECONDS", "300")
    )

    # Object storage
    MEDIA_ROOT: str = os.getenv("MEDIA_ROOT", "media")
    MEDIA_URL_PATH: str = os.getenv("MEDIA_URL_PATH", "/media")
    IMAGE_BUCKET: str = os.getenv("IMAGE_BUCKET", "product-images")
    MAX_IMAGE_BYTES: int = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.
        """
        return self.ENVIRONMENT.lower() == "production"

    @property
    def admin_password_digest(self) -> str | None:
        """SHA-256 hex digest the admin password is checked against."""
        if self.ADMIN_PASSWORD_SHA256:
            return self.ADMIN_PASSWORD_SHA256.strip().lower()
        if self.ADMIN_PASSWORD:
            return hashlib.sha256(self.ADMIN_PASSWORD.encode("utf-8")).hexdigest()
        return None

    @property
    def admin_configured(self) -> bool:
        """Indicates whether an admin credential has been provided."""
        return self.admin_password_digest is not None

    @property
    def site_url(self) -> str:
        return self.SITE_URL.rstrip("/")

    def __init__(self):
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(level=self.log_level)
        self.logger = logging.getLogger(__name__)

        self.logger.debug(
            f"Config initialized with environment={self.ENVIRONMENT}, "
            f"debug={self.debug}, log_level={self.log_level}"
        )


# Create a global settings instance for import
settings = Settings()
