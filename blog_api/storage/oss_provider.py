# blog_api/storage/oss_provider.py
"""
Aliyun OSS storage provider implementation using oss2.
"""

import logging
from datetime import datetime, timezone

import oss2
from oss2.exceptions import NoSuchKey, OssError

from blog_api.config import get_settings
from blog_api.logging_config import log_storage_operation
from blog_api.storage.base import StorageConfigError, StoredObject, StorageProvider

logger = logging.getLogger(__name__)

# Hostname suffixes of Aliyun OSS public endpoints
OSS_HOST_SUFFIX = "aliyuncs.com"


class OSSStorageProvider(StorageProvider):
    """
    Aliyun OSS provider.

    Configuration via environment:
    - OSS_REGION: Region endpoint prefix (e.g., oss-cn-beijing)
    - OSS_ACCESS_KEY_ID / OSS_ACCESS_KEY_SECRET: Credentials
    - OSS_BUCKET: Bucket name
    """

    def __init__(
        self,
        region: str | None = None,
        access_key_id: str | None = None,
        access_key_secret: str | None = None,
        bucket: str | None = None,
        bucket_client: oss2.Bucket | None = None,
    ):
        settings = get_settings()
        config = {
            "OSS_REGION": region or settings.OSS_REGION,
            "OSS_ACCESS_KEY_ID": access_key_id or settings.OSS_ACCESS_KEY_ID,
            "OSS_ACCESS_KEY_SECRET": access_key_secret or settings.OSS_ACCESS_KEY_SECRET,
            "OSS_BUCKET": bucket or settings.OSS_BUCKET,
        }
        missing = [name for name, value in config.items() if not value]
        if missing:
            raise StorageConfigError("OSS", missing)

        self._region = config["OSS_REGION"]
        self._bucket_name = config["OSS_BUCKET"]

        if bucket_client is not None:
            self._bucket = bucket_client
        else:
            auth = oss2.Auth(config["OSS_ACCESS_KEY_ID"], config["OSS_ACCESS_KEY_SECRET"])
            endpoint = f"https://{self._region}.{OSS_HOST_SUFFIX}"
            self._bucket = oss2.Bucket(auth, endpoint, self._bucket_name, connect_timeout=10)

        logger.info(f"OSS storage initialized: bucket={self._bucket_name} region={self._region}")

    @property
    def name(self) -> str:
        return "oss"

    @property
    def bucket(self) -> str:
        return self._bucket_name

    def public_url(self, key: str) -> str:
        return f"https://{self._bucket_name}.{self._region}.{OSS_HOST_SUFFIX}/{key}"

    def owned_hosts(self) -> list[str]:
        # Any OSS bucket host counts, not only the configured one.
        return [OSS_HOST_SUFFIX]

    def upload(self, key: str, content: bytes, content_type: str) -> StoredObject:
        """Upload content to OSS."""
        with log_storage_operation("upload", key, self.name) as metrics:
            try:
                result = self._bucket.put_object(key, content, headers={"Content-Type": content_type})
            except OssError as e:
                logger.error(f"OSS upload failed for {key}: {e}")
                raise
            metrics["size_bytes"] = len(content)

        return StoredObject(
            key=key,
            url=self.public_url(key),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(timezone.utc),
            metadata={"etag": getattr(result, "etag", "") or ""},
        )

    def exists(self, key: str) -> bool:
        return self._bucket.object_exists(key)

    def delete(self, key: str) -> bool:
        try:
            self._bucket.delete_object(key)
            logger.debug(f"Deleted from OSS: {key}")
            return True
        except NoSuchKey:
            return False
        except OssError as e:
            logger.error(f"OSS delete failed for {key}: {e}")
            return False
