import logging
import re
import time
from typing import Protocol

from minglr.core.config import settings
from minglr.core.errors import InvalidInput
from minglr.core.session import SessionContext

logger = logging.getLogger(__name__)

VALID_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}


class BlobStore(Protocol):
    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        ...


def validate_image(content_type: str, size: int, max_bytes: int | None = None) -> None:
    """
    Check an image before uploading it.

    Args:
        content_type (str): MIME type reported for the file.
        size (int): Size of the file in bytes.
        max_bytes (int | None): Upper size limit, the configured one by default.
    """
    max_bytes = max_bytes or settings.upload_max_bytes
    if content_type not in VALID_IMAGE_TYPES:
        raise InvalidInput("Please upload a valid image file (JPEG, PNG, GIF, or WebP)")
    if size == 0:
        raise InvalidInput("Empty file received")
    if size > max_bytes:
        raise InvalidInput(f"Image size must be less than {max_bytes // (1024 * 1024)}MB")


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.]", "_", filename or "image")


class StorageService:
    def __init__(self, blobs: BlobStore, session: SessionContext):
        self.blobs = blobs
        self.session = session

    async def _upload(self, bucket: str, data: bytes, filename: str, content_type: str) -> str:
        user = self.session.require_user()
        validate_image(content_type, len(data))
        path = f"{user.id}/{int(time.time() * 1000)}_{sanitize_filename(filename)}"
        url = await self.blobs.upload(bucket, path, data, content_type)
        logger.info("Uploaded %s/%s", bucket, path)
        return url

    async def upload_profile_picture(self, data: bytes, filename: str, content_type: str) -> str:
        return await self._upload(settings.avatar_bucket, data, filename, content_type)

    async def upload_post_image(self, data: bytes, filename: str, content_type: str) -> str:
        return await self._upload(settings.post_image_bucket, data, filename, content_type)
