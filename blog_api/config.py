# blog_api/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Storage credentials are optional here; the storage factory reports which ones
are missing when a provider is actually requested.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    MONGODB_URI: str = Field(
        default="mongodb://localhost:27017/blog",
        description="MongoDB connection URI",
    )
    MONGODB_DB: str | None = Field(
        default=None,
        description="Database name (defaults to the database in MONGODB_URI)",
    )

    # Authentication
    ADMIN_TOKEN: str | None = Field(
        default=None,
        description="Bearer token required by admin (mutating) endpoints",
    )

    # Storage
    STORAGE_PROVIDER: str = Field(
        default="oss",
        description="Storage provider: oss, s3, local",
    )
    OSS_REGION: str | None = None
    OSS_ACCESS_KEY_ID: str | None = None
    OSS_ACCESS_KEY_SECRET: str | None = None
    OSS_BUCKET: str | None = None

    S3_BUCKET: str | None = None
    S3_ENDPOINT_URL: str | None = Field(
        default=None,
        description="Custom endpoint for S3-compatible services (Qiniu Kodo, MinIO)",
    )
    S3_REGION: str = "us-east-1"
    S3_PUBLIC_BASE_URL: str | None = Field(
        default=None,
        description="Public URL prefix for uploaded objects (CDN domain)",
    )

    LOCAL_STORAGE_PATH: str = Field(
        default="./storage",
        description="Path for local storage provider",
    )
    LOCAL_PUBLIC_BASE_URL: str = Field(
        default="http://localhost:8000/media",
        description="Public URL prefix for objects stored by the local provider",
    )

    # Uploads
    UPLOAD_MAX_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted upload size in bytes",
    )
    OWNED_MEDIA_HOSTS: str = Field(
        default="",
        description="Comma-separated extra hostnames whose URLs count as already-owned storage",
    )

    # Content proxy
    PROXY_ALLOWED_DOMAINS: str = Field(
        default="qiniudn.com,qbox.me,clouddn.com",
        description="Comma-separated domains the content proxy may fetch from",
    )
    QINIU_DOMAIN_HOSTNAME: str | None = None

    # Client
    API_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL used by blog_api.client when talking to this API",
    )

    # CORS
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs (False for human-readable)",
    )

    @field_validator("STORAGE_PROVIDER")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.lower().strip()

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def owned_media_hosts(self) -> list[str]:
        return _split_csv(self.OWNED_MEDIA_HOSTS)

    @property
    def oss_host(self) -> str | None:
        """Virtual-hosted bucket hostname, e.g. my-bucket.oss-cn-beijing.aliyuncs.com."""
        if not (self.OSS_BUCKET and self.OSS_REGION):
            return None
        return f"{self.OSS_BUCKET}.{self.OSS_REGION}.aliyuncs.com"

    @property
    def proxy_allowed_domains(self) -> list[str]:
        domains = _split_csv(self.PROXY_ALLOWED_DOMAINS)
        for extra in (self.oss_host, self.QINIU_DOMAIN_HOSTNAME):
            if extra and extra not in domains:
                domains.append(extra)
        return domains

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
