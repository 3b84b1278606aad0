"""
S3 helper for note image attachments.

We keep this module small and focused:
- deterministic, user-scoped object keys
- upload / delete of image bytes
- public URLs for stored images

Routes should not talk to boto3 directly; they go through ``ImageStore``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from ..config import Config
from ..errors import ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024

_MIME_TO_EXT: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/pjpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/avif": ".avif",
    "image/heic": ".heic",
    "image/svg+xml": ".svg",
}


def base_mime(mime_type: str) -> str:
    """Normalize a MIME type (drops parameters, lowercases)."""
    return (mime_type or "").split(";")[0].strip().lower()


def image_folder(user_id: str, prefix: str = "") -> str:
    folder = f"notes/{user_id}"
    prefix = (prefix or "").strip("/")
    return f"{prefix}/{folder}" if prefix else folder


def object_key_for_image(*, user_id: str, image_id: str, mime_type: str, prefix: str = "") -> str:
    ext = _MIME_TO_EXT.get(base_mime(mime_type), "")
    return f"{image_folder(user_id, prefix)}/{image_id}{ext}"


@dataclass(frozen=True)
class StoredImage:
    id: str
    url: str
    public_id: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "url": self.url, "publicId": self.public_id}


class ImageStore:
    """
    Image uploads against an S3-compatible bucket.

    The boto3 client is created on first use so the app can start (and
    tests can run) without S3 credentials.
    """

    def __init__(
        self,
        *,
        bucket: str | None = None,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        key_prefix: str = "",
        client: Any = None,
    ):
        self.bucket = bucket
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self.key_prefix = key_prefix
        self._s3 = client

    @classmethod
    def from_config(cls) -> "ImageStore":
        return cls(
            bucket=Config.S3_BUCKET,
            region=Config.AWS_REGION,
            access_key_id=Config.AWS_ACCESS_KEY_ID,
            secret_access_key=Config.AWS_SECRET_ACCESS_KEY,
            endpoint_url=Config.S3_ENDPOINT_URL,
            public_base_url=Config.S3_PUBLIC_BASE_URL,
            key_prefix=Config.S3_KEY_PREFIX,
        )

    def _client(self):
        if not self.bucket:
            raise ValueError("S3_BUCKET is required for image storage")
        if self._s3 is None:
            import boto3  # type: ignore

            self._s3 = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
                endpoint_url=self.endpoint_url,
            )
        return self._s3

    def public_url(self, storage_key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{storage_key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{storage_key}"
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{storage_key}"

    def owns(self, user_id: str, public_id: str) -> bool:
        """True if ``public_id`` lives in the user's image folder."""
        return bool(public_id) and public_id.startswith(image_folder(user_id, self.key_prefix) + "/")

    def upload(self, *, user_id: str, data: bytes, content_type: str) -> StoredImage:
        """
        Store image bytes under the user's folder.

        Raises:
            ValidationError: empty body, oversized body, or not an image.
        """
        if not data:
            raise ValidationError("No image data provided")
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError("Image is too large")
        mime = base_mime(content_type)
        if mime not in _MIME_TO_EXT:
            raise ValidationError("Only image uploads are supported")

        storage_key = object_key_for_image(
            user_id=user_id, image_id=str(uuid4()), mime_type=mime, prefix=self.key_prefix
        )
        self._client().put_object(
            Bucket=self.bucket, Key=storage_key, Body=data, ContentType=mime
        )
        logger.info("Uploaded image %s (%d bytes)", storage_key, len(data))
        return StoredImage(id=storage_key, url=self.public_url(storage_key), public_id=storage_key)

    def delete(self, public_id: str) -> None:
        """
        Delete an image.

        Note: S3 delete is idempotent; deleting a non-existent key is not an error.
        """
        if not public_id:
            raise ValidationError("publicId is required")
        self._client().delete_object(Bucket=self.bucket, Key=public_id)
        logger.info("Deleted image %s", public_id)
