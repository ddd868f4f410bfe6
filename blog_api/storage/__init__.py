# blog_api/storage/__init__.py
"""
Storage provider abstraction for uploaded media.

Markdown articles, images and videos are stored in object storage (Aliyun OSS
or an S3-compatible service); MongoDB keeps only their public URLs.
Provider modules are imported lazily by the factory so that only the SDK of
the configured provider is loaded.
"""

from blog_api.storage.base import (
    StorageConfigError,
    StorageError,
    StoredObject,
    StorageProvider,
)
from blog_api.storage.factory import (
    get_storage_provider,
    reset_storage_provider,
    set_storage_provider,
)

__all__ = [
    "StorageProvider",
    "StoredObject",
    "StorageError",
    "StorageConfigError",
    "get_storage_provider",
    "set_storage_provider",
    "reset_storage_provider",
]
