"""Product image bucket stored on the local filesystem."""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path, PurePosixPath

from storefront.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

# Extensions accepted from the client filename for each content type.
_EXTENSIONS = {
    "image/jpeg": {"jpg", "jpeg"},
    "image/png": {"png"},
    "image/gif": {"gif"},
    "image/webp": {"webp"},
}

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class ImageRejected(ValueError):
    """Raised when an upload is not an acceptable product image."""


def _base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def build_object_name(filename: str, content_type: str) -> str:
    """``{epoch-ms}-{random-base36}.{ext}``.

    The uploaded extension is kept only when it matches ``content_type``.
    """
    ext = PurePosixPath(filename).suffix.lower().lstrip(".")
    if ext not in _EXTENSIONS[content_type]:
        ext = ALLOWED_CONTENT_TYPES[content_type].lstrip(".")
    suffix = _base36(secrets.randbits(52))
    return f"{int(time.time() * 1000)}-{suffix}.{ext}"


class ImageStorage:
    """Write-once bucket; every object gets a fresh name and is never overwritten."""

    def __init__(
        self,
        root: str | Path,
        bucket: str,
        prefix: str = "products",
        public_base: str = "/media",
        max_bytes: int | None = None,
    ) -> None:
        self.root = Path(root)
        self.bucket = bucket
        self.prefix = prefix
        self.public_base = public_base.rstrip("/")
        self.max_bytes = max_bytes or settings.MAX_IMAGE_BYTES

    @property
    def directory(self) -> Path:
        return self.root / self.bucket / self.prefix

    def validate(self, data: bytes, content_type: str | None) -> None:
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ImageRejected(
                "Format file tidak didukung. Gunakan JPG, PNG, GIF, atau WebP."
            )
        if not data:
            raise ImageRejected("Empty file")
        if len(data) > self.max_bytes:
            raise ImageRejected(
                f"Ukuran file maksimal {self.max_bytes // (1024 * 1024)}MB."
            )

    def upload(self, filename: str, data: bytes, content_type: str | None) -> str:
        """Store ``data`` and return its public URL."""
        self.validate(data, content_type)
        self.directory.mkdir(parents=True, exist_ok=True)

        object_name = build_object_name(filename or "upload", content_type)
        destination = self.directory / object_name
        # "xb" refuses to replace an existing object.
        with destination.open("xb") as handle:
            handle.write(data)

        logger.info(
            "Stored product image",
            extra={"bucket": self.bucket, "object": object_name, "bytes": len(data)},
        )
        return self.public_url(object_name)

    def public_url(self, object_name: str) -> str:
        return f"{self.public_base}/{self.bucket}/{self.prefix}/{object_name}"


def get_image_storage() -> ImageStorage:
    """FastAPI dependency factory."""

    return ImageStorage(
        root=settings.MEDIA_ROOT,
        bucket=settings.IMAGE_BUCKET,
        public_base=settings.MEDIA_URL_PATH,
    )
