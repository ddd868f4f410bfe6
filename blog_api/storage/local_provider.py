# blog_api/storage/local_provider.py
"""
Local filesystem storage provider for development and testing.

Mimics object storage but writes files under a local directory.
NOT for production use.
"""

import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from blog_api.config import get_settings
from blog_api.logging_config import log_storage_operation
from blog_api.storage.base import StoredObject, StorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """
    Local filesystem storage provider.

    Configuration:
    - LOCAL_STORAGE_PATH: Base directory (default: ./storage)
    - LOCAL_PUBLIC_BASE_URL: URL prefix the files are served under
    """

    def __init__(self, base_path: str | None = None, public_base_url: str | None = None):
        settings = get_settings()
        self._base_path = Path(base_path or settings.LOCAL_STORAGE_PATH)
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._public_base_url = (public_base_url or settings.LOCAL_PUBLIC_BASE_URL).rstrip("/")
        self._metadata_suffix = ".meta.json"

        logger.info(f"Local storage initialized: {self._base_path}")

    @property
    def name(self) -> str:
        return "local"

    def _get_path(self, key: str) -> Path:
        """Get filesystem path for key, with path traversal protection."""
        resolved = (self._base_path / key).resolve()
        if not resolved.is_relative_to(self._base_path.resolve()):
            raise ValueError("Path traversal detected")
        return resolved

    def _get_metadata_path(self, key: str) -> Path:
        return self._get_path(f"{key}{self._metadata_suffix}")

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{key}"

    def upload(self, key: str, content: bytes, content_type: str) -> StoredObject:
        """Write content to the local filesystem."""
        with log_storage_operation("upload", key, self.name) as metrics:
            file_path = self._get_path(key)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
            metrics["size_bytes"] = len(content)

            stored = StoredObject(
                key=key,
                url=self.public_url(key),
                content_type=content_type,
                size_bytes=len(content),
                uploaded_at=datetime.now(timezone.utc),
            )
            self._get_metadata_path(key).write_text(
                json.dumps(
                    {
                        "key": key,
                        "content_type": content_type,
                        "size_bytes": stored.size_bytes,
                        "uploaded_at": stored.uploaded_at.isoformat(),
                    },
                    indent=2,
                )
            )

        return stored

    def read(self, key: str) -> bytes | None:
        """Return stored bytes, or None if the key does not exist."""
        file_path = self._get_path(key)
        if not file_path.exists():
            return None
        return file_path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    def delete(self, key: str) -> bool:
        """Delete object and metadata."""
        file_path = self._get_path(key)
        meta_path = self._get_metadata_path(key)

        deleted = False
        if file_path.exists():
            file_path.unlink()
            deleted = True
        if meta_path.exists():
            meta_path.unlink()

        return deleted

    def cleanup(self) -> None:
        """Remove all stored content (for testing)."""
        if self._base_path.exists():
            shutil.rmtree(self._base_path)
            self._base_path.mkdir(parents=True, exist_ok=True)
