from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from .errors import UploadFailedError
from .settings import Settings

logger = logging.getLogger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


# PUBLIC_INTERFACE
class ImageHost(ABC):
    """External service that stores an image and hands back a durable URL."""

    @abstractmethod
    def upload(self, data: bytes, *, filename: str, content_type: str) -> str:
        """Store ``data`` and return its public URL. Raise UploadFailedError on failure."""


class CloudinaryImageHost(ImageHost):
    """
    Unsigned Cloudinary upload. One POST per image, no retries.
    """

    def __init__(
        self,
        cloud_name: str,
        upload_preset: str,
        *,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = CLOUDINARY_UPLOAD_URL.format(cloud_name=cloud_name)
        self.upload_preset = upload_preset
        self.timeout = timeout
        self.session = session or requests.Session()

    def upload(self, data: bytes, *, filename: str, content_type: str) -> str:
        try:
            r = self.session.post(
                self.url,
                data={"upload_preset": self.upload_preset},
                files={"file": (filename, data, content_type)},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Image upload request failed: %s", exc)
            raise UploadFailedError("Upload failed") from exc

        if not r.ok:
            logger.warning("Image upload rejected: %s %s", r.status_code, r.text[:200])
            raise UploadFailedError(f"Upload failed: {r.status_code}")

        try:
            payload = r.json()
        except ValueError as exc:
            raise UploadFailedError("Upload failed: response was not JSON") from exc

        url = payload.get("secure_url") if isinstance(payload, dict) else None
        if not url:
            raise UploadFailedError("Upload failed: no URL in response")
        logger.debug("Image uploaded url=%s bytes=%s", url, len(data))
        return str(url)


# PUBLIC_INTERFACE
def get_image_host(settings: Settings) -> Optional[ImageHost]:
    """Return the configured image host, or None when uploads are not configured."""
    if not settings.uploads_configured:
        logger.info("Photo upload not configured; comments with photos will be rejected")
        return None
    return CloudinaryImageHost(
        settings.cloudinary_cloud_name or "",
        settings.cloudinary_upload_preset or "",
        timeout=settings.upload_timeout_seconds,
    )
