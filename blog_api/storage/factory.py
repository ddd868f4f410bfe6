# blog_api/storage/factory.py
"""
Factory function for creating storage providers.
"""

import logging

from blog_api.config import get_settings
from blog_api.storage.base import StorageProvider

logger = logging.getLogger(__name__)

AVAILABLE_PROVIDERS = ("oss", "s3", "local")

# Global singleton instance
_storage_provider: StorageProvider | None = None


def get_storage_provider(
    provider_name: str | None = None,
    **kwargs,
) -> StorageProvider:
    """
    Get or create the storage provider instance.

    Args:
        provider_name: 'oss', 's3' or 'local' (default from STORAGE_PROVIDER)
        **kwargs: Additional arguments for the provider

    Returns:
        StorageProvider instance (singleton)

    Raises:
        StorageConfigError: if the chosen provider is missing configuration
        ValueError: for an unknown provider name
    """
    global _storage_provider

    if _storage_provider is not None:
        return _storage_provider

    name = (provider_name or get_settings().STORAGE_PROVIDER).lower().strip()

    if name == "oss":
        from blog_api.storage.oss_provider import OSSStorageProvider
        _storage_provider = OSSStorageProvider(**kwargs)
    elif name == "s3":
        from blog_api.storage.s3_provider import S3StorageProvider
        _storage_provider = S3StorageProvider(**kwargs)
    elif name == "local":
        from blog_api.storage.local_provider import LocalStorageProvider
        _storage_provider = LocalStorageProvider(**kwargs)
    else:
        raise ValueError(f"Unknown storage provider: {name}. Available: {', '.join(AVAILABLE_PROVIDERS)}")

    logger.info(f"Storage provider initialized: {_storage_provider.name}")
    return _storage_provider


def set_storage_provider(provider: StorageProvider) -> None:
    """
    Set a custom storage provider (useful for testing).
    """
    global _storage_provider
    _storage_provider = provider


def reset_storage_provider() -> None:
    """
    Reset the storage provider singleton (for testing).
    """
    global _storage_provider
    _storage_provider = None
