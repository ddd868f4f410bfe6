# blog_api/storage/base.py
"""
Storage provider interface for uploaded media.

Design principles:
- Uploaded files (markdown, images, video) live in object storage, not MongoDB
- MongoDB stores only the public URL of each object
- Objects are written as-is (no compression) so they can be served directly
- Every provider can tell whether a URL already points into its storage
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlparse


class StorageError(Exception):
    """Base error for storage providers."""


class StorageConfigError(StorageError):
    """Raised when a provider is requested but its configuration is incomplete."""

    def __init__(self, provider: str, missing: list[str]):
        self.provider = provider
        self.missing = missing
        super().__init__(
            f"{provider} storage not configured. Missing environment variables: {', '.join(missing)}"
        )


@dataclass
class StoredObject:
    """Result of a successful upload."""
    key: str
    url: str
    content_type: str
    size_bytes: int
    uploaded_at: datetime
    metadata: dict[str, str] = field(default_factory=dict)


class StorageProvider(ABC):
    """
    Abstract interface for object storage.

    Implementations must handle:
    - Upload of raw bytes under a caller-chosen key
    - Public URL construction for a key
    - Recognition of URLs that already belong to this storage
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'oss', 's3', 'local')."""
        pass

    @abstractmethod
    def upload(self, key: str, content: bytes, content_type: str) -> StoredObject:
        """
        Upload content to storage.

        Args:
            key: Object key (e.g., "images/friendsAvatar/<uuid>.png")
            content: Raw bytes
            content_type: MIME type sent along with the object

        Returns:
            StoredObject with the public URL
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if object exists."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete object from storage.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL under which the object is served."""
        pass

    def owned_hosts(self) -> list[str]:
        """Hostnames that serve this provider's objects."""
        host = urlparse(self.public_url("")).hostname
        return [host] if host else []

    def owns_url(self, url: str) -> bool:
        """True when the URL is served from this provider's storage."""
        host = (urlparse(url).hostname or "").lower()
        if not host:
            return False
        return any(host == h.lower() or host.endswith("." + h.lower()) for h in self.owned_hosts())
