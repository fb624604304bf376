from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List, Optional

from .errors import UploadFailedError, UploadNotConfiguredError, ValidationError
from .models import CommentEntity
from .repositories import CommentRepository
from .schemas import CommentCreate
from .settings import DEFAULT_MAX_ATTACHMENT_BYTES, Settings
from .uploads import ImageHost

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES: FrozenSet[str] = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp", "image/heic", "image/heif"}
)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Attachment:
    """Raw photo bytes received with a comment."""

    data: bytes
    content_type: str
    filename: str = "photo"

    @property
    def size(self) -> int:
        return len(self.data)


# PUBLIC_INTERFACE
class AttachmentPipeline:
    """
    Creates comments, uploading an optional photo first.

    The comment is written only after the upload has returned a URL. A
    photo supplied without a configured image host is an error rather than
    being dropped.
    """

    def __init__(
        self,
        repo: CommentRepository,
        image_host: Optional[ImageHost],
        *,
        max_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        allowed_content_types: FrozenSet[str] = ALLOWED_IMAGE_TYPES,
    ) -> None:
        self.repo = repo
        self.image_host = image_host
        self.max_bytes = max_bytes
        self.allowed_content_types = allowed_content_types

    @classmethod
    def from_settings(
        cls, repo: CommentRepository, image_host: Optional[ImageHost], settings: Settings
    ) -> "AttachmentPipeline":
        return cls(repo, image_host, max_bytes=settings.max_attachment_bytes)

    def _now(self) -> datetime:
        return datetime.now()

    def _validate_attachment(self, attachment: Attachment) -> None:
        if attachment.size == 0:
            raise ValidationError("Photo is empty.")
        if attachment.size > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise ValidationError(f"Photo too large (max {limit_mb:g}MB).")
        content_type = (attachment.content_type or "").split(";")[0].strip().lower()
        if not content_type.startswith("image/") or content_type not in self.allowed_content_types:
            raise ValidationError("Only image uploads are allowed.")

    def create(self, draft: CommentCreate, attachment: Optional[Attachment] = None) -> CommentEntity:
        text = (draft.text or "").strip()
        if not text and attachment is None:
            raise ValidationError("Write a comment or add a photo.")

        photo_url: Optional[str] = None
        if attachment is not None:
            self._validate_attachment(attachment)
            if self.image_host is None:
                raise UploadNotConfiguredError(
                    "Image upload not configured. Set CLOUDINARY_CLOUD_NAME and CLOUDINARY_UPLOAD_PRESET."
                )
            # No store lock is held here; the comment is written after the upload returns
            try:
                photo_url = self.image_host.upload(
                    attachment.data,
                    filename=attachment.filename,
                    content_type=attachment.content_type,
                )
            except UploadFailedError:
                raise
            except Exception as exc:
                logger.exception("Image host raised unexpectedly")
                raise UploadFailedError("Upload failed") from exc
            if not photo_url:
                raise UploadFailedError("Upload failed: no URL returned")

        name = None if draft.anonymous else ((draft.name or "").strip() or None)
        entity: CommentEntity = {
            "id": uuid.uuid4().hex,
            "date": draft.date,
            "name": name,
            "anonymous": bool(draft.anonymous),
            "text": text,
            "photo_url": photo_url,
            "created_at": self._now(),
        }
        stored = self.repo.insert(entity)
        logger.debug("Comment created id=%s date=%s photo=%s", stored["id"], stored["date"], bool(photo_url))
        return stored

    def list(self) -> List[CommentEntity]:
        return self.repo.list_all()
