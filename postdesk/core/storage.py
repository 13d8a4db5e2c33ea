"""
Object storage for uploaded post images (AWS S3 or Cloudflare R2).

Uploads return both the object key and the public URL; the key is stored
alongside the URL so deletions never have to reverse-engineer a URL.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

POSTS_PREFIX = "posts"
ALLOWED_IMAGE_EXTENSIONS = frozenset({"jpeg", "jpg", "png", "gif", "webp"})
ALLOWED_IMAGE_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/pjpeg", "image/png", "image/gif", "image/webp"}
)
MAX_IMAGE_BYTES = 10 * 1024 * 1024


class StorageError(Exception):
    """Raised when the object store rejects an operation."""


class StorageNotConfiguredError(StorageError):
    def __init__(self):
        super().__init__(
            "S3/R2 bucket is not configured. Please set R2_POSTS_BUCKET, "
            "R2_BUCKET, or AWS_BUCKET in your .env file."
        )


@dataclass(frozen=True)
class StoredBlob:
    key: str
    url: str


class BlobStore(Protocol):
    async def store(
        self,
        prefix: str,
        content: bytes,
        extension: str,
        content_type: str | None = None,
    ) -> StoredBlob: ...

    async def delete(self, key: str) -> None: ...


def build_public_url(
    key: str,
    *,
    bucket: str,
    region: str,
    public_url: str | None = None,
    custom_url: str | None = None,
    endpoint: str | None = None,
    use_path_style: bool = False,
) -> str:
    """Derive the public URL of ``key``.

    Priority: dedicated public URL for post images, then the custom base URL,
    then the endpoint (with the bucket appended for path-style addressing),
    then the standard AWS virtual-hosted URL.
    """
    if public_url:
        return f"{public_url.rstrip('/')}/{key}"
    if custom_url:
        return f"{custom_url.rstrip('/')}/{key}"
    if endpoint:
        if use_path_style:
            return f"{endpoint.rstrip('/')}/{bucket}/{key}"
        return f"{endpoint.rstrip('/')}/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


class S3BlobStore:
    """boto3-backed blob store. The client is created on first use."""

    def __init__(self, settings: Any):
        self.settings = settings
        self._client = None

    @property
    def bucket_name(self) -> str:
        bucket = self.settings.s3_bucket
        if not bucket:
            raise StorageNotConfiguredError()
        return bucket

    def _get_client(self):
        if self._client is None:
            addressing_style = (
                "path" if self.settings.s3_use_path_style_endpoint else "auto"
            )
            self._client = boto3.client(
                "s3",
                aws_access_key_id=self.settings.s3_access_key_id,
                aws_secret_access_key=self.settings.s3_secret_access_key,
                region_name=self.settings.s3_region,
                endpoint_url=self.settings.s3_endpoint,
                config=Config(s3={"addressing_style": addressing_style}),
            )
        return self._client

    def public_url(self, key: str) -> str:
        return build_public_url(
            key,
            bucket=self.bucket_name,
            region=self.settings.s3_region,
            public_url=self.settings.s3_public_url_posts,
            custom_url=self.settings.s3_url,
            endpoint=self.settings.s3_endpoint,
            use_path_style=self.settings.s3_use_path_style_endpoint,
        )

    async def store(
        self,
        prefix: str,
        content: bytes,
        extension: str,
        content_type: str | None = None,
    ) -> StoredBlob:
        bucket = self.bucket_name
        key = f"{prefix.strip('/')}/{uuid.uuid4().hex}.{extension.lower()}"
        put_kwargs = {"Bucket": bucket, "Key": key, "Body": content}
        if content_type:
            put_kwargs["ContentType"] = content_type
        try:
            await asyncio.to_thread(self._get_client().put_object, **put_kwargs)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload {key} to bucket {bucket}: {e}")
            raise StorageError(f"Failed to upload image: {e}") from e
        logger.info(f"Uploaded {key} ({len(content)} bytes) to bucket {bucket}")
        return StoredBlob(key=key, url=self.public_url(key))

    async def delete(self, key: str) -> None:
        bucket = self.bucket_name
        try:
            await asyncio.to_thread(
                self._get_client().delete_object, Bucket=bucket, Key=key
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete {key} from bucket {bucket}: {e}")
            raise StorageError(f"Failed to delete image: {e}") from e
        logger.info(f"Deleted {key} from bucket {bucket}")


async def discard_blob(store: BlobStore, key: str | None) -> bool:
    """Delete ``key`` if set. Failures are logged and reported as ``False``."""
    if not key:
        return False
    try:
        await store.delete(key)
        return True
    except Exception as e:
        logger.warning(f"Could not delete stored image {key}: {e}")
        return False
