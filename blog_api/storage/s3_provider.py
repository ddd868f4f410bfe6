# blog_api/storage/s3_provider.py
"""
S3 storage provider implementation using boto3.

Supports:
- AWS S3
- S3-compatible services (Qiniu Kodo, MinIO, Cloudflare R2, etc.)
"""

import logging
from datetime import datetime, timezone
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from blog_api.config import get_settings
from blog_api.logging_config import log_storage_operation
from blog_api.storage.base import StorageConfigError, StoredObject, StorageProvider

logger = logging.getLogger(__name__)

# CDN suffixes of Qiniu's default test/bucket domains
QINIU_HOST_SUFFIXES = ("qiniudn.com", "qbox.me", "clouddn.com")


class S3StorageProvider(StorageProvider):
    """
    S3/S3-compatible storage provider.

    Configuration via environment:
    - S3_BUCKET: Bucket name (required)
    - S3_ENDPOINT_URL: Custom endpoint for S3-compatible services
    - S3_REGION: Region (default: us-east-1)
    - S3_PUBLIC_BASE_URL: Public URL prefix (CDN domain) for uploaded objects
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: Credentials (read by boto3)
    """

    def __init__(
        self,
        bucket: str | None = None,
        endpoint_url: str | None = None,
        region: str | None = None,
        public_base_url: str | None = None,
        client=None,
    ):
        settings = get_settings()
        self._bucket = bucket or settings.S3_BUCKET
        if not self._bucket:
            raise StorageConfigError("S3", ["S3_BUCKET"])

        self._endpoint_url = endpoint_url or settings.S3_ENDPOINT_URL
        self._region = region or settings.S3_REGION
        self._public_base_url = (public_base_url or settings.S3_PUBLIC_BASE_URL or "").rstrip("/")

        if client is not None:
            self._client = client
        else:
            # Retries are handled by the upload pipeline; keep botocore's own to one attempt.
            config = Config(
                retries={"max_attempts": 1, "mode": "standard"},
                connect_timeout=5,
                read_timeout=30,
            )
            self._client = boto3.client(
                "s3",
                endpoint_url=self._endpoint_url,
                region_name=self._region,
                config=config,
            )

        logger.info(f"S3 storage initialized: bucket={self._bucket}")

    @property
    def name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    def public_url(self, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    def owned_hosts(self) -> list[str]:
        hosts = list(super().owned_hosts())
        if self._endpoint_url:
            endpoint_host = urlparse(self._endpoint_url).hostname
            if endpoint_host:
                hosts.append(endpoint_host)
        hosts.extend(QINIU_HOST_SUFFIXES)
        return hosts

    def upload(self, key: str, content: bytes, content_type: str) -> StoredObject:
        """Upload content to S3."""
        with log_storage_operation("upload", key, self.name) as metrics:
            try:
                response = self._client.put_object(
                    Bucket=self._bucket,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                )
            except ClientError as e:
                logger.error(f"S3 upload failed for {key}: {e}")
                raise
            metrics["size_bytes"] = len(content)

        return StoredObject(
            key=key,
            url=self.public_url(key),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(timezone.utc),
            metadata={"etag": str(response.get("ETag", "")).strip('"')},
        )

    def exists(self, key: str) -> bool:
        """Check if object exists in S3."""
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("404", "NoSuchKey"):
                return False
            raise

    def delete(self, key: str) -> bool:
        """Delete object from S3."""
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
            logger.debug(f"Deleted from S3: {key}")
            return True
        except ClientError as e:
            logger.error(f"S3 delete failed for {key}: {e}")
            return False
