# blog_api/services/upload_service.py
"""
Upload pipeline for media files.

Flow:
1. Validate the file against the type allowlist (markdown, plain text,
   image/*, video/*) and the size limit
2. Derive the storage key: {category}/{directory}/{uuid}.{ext}
3. Upload through the configured storage provider, retrying with capped
   exponential backoff
4. Return the public URL

Every failure is an ApiError subclass so routers can answer with its status.
"""

import logging
import mimetypes
import re
import time
import uuid
from collections.abc import Callable
from urllib.parse import urlparse

from blog_api.config import get_settings
from blog_api.responses import ApiError
from blog_api.services.remote_fetch import RemoteFetcher
from blog_api.services.resilience import with_sync_retry
from blog_api.storage import StorageConfigError, StoredObject, StorageProvider, get_storage_provider

logger = logging.getLogger(__name__)

ALLOWED_TYPE_PREFIXES = ("text/markdown", "text/plain", "image/", "video/")
DEFAULT_DIRECTORY = "articles"
DIRECTORY_RE = re.compile(r"^[A-Za-z0-9_-]+(/[A-Za-z0-9_-]+)*$")
EXTENSION_RE = re.compile(r"^[a-z0-9]{1,10}$")

# Retry policy for provider uploads
MAX_ATTEMPTS = 3
INITIAL_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 5.0


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


class UploadError(ApiError):
    """Base class for upload pipeline failures."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message, code=self.status, status_code=self.status)


class DisallowedFileTypeError(UploadError):
    status = 400

    def __init__(self, message: str = "Only markdown, image and video files are allowed"):
        super().__init__(message)


class InvalidExtensionError(UploadError):
    status = 400

    def __init__(self, message: str = "Invalid file extension"):
        super().__init__(message)


class InvalidUploadError(UploadError):
    """Empty or oversized file, or an unsafe directory."""

    status = 400


class StorageNotConfiguredError(UploadError):
    status = 500


class UpstreamStorageError(UploadError):
    """The provider kept failing after all retries."""

    status = 500


# -----------------------------------------------------------------------------
# Validation & key derivation
# -----------------------------------------------------------------------------


def is_allowed_file(filename: str, content_type: str | None) -> bool:
    content_type = (content_type or "").lower()
    if any(content_type.startswith(prefix) for prefix in ALLOWED_TYPE_PREFIXES):
        return True
    return filename.lower().endswith(".md")


def file_extension(filename: str) -> str | None:
    """Lower-cased text after the last dot, or None when there is none."""
    if "." not in filename:
        return None
    extension = filename.rsplit(".", 1)[1].lower()
    return extension or None


def storage_category(content_type: str | None) -> str:
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return "images"
    if content_type.startswith("video/"):
        return "videos"
    return "articles"


def normalize_directory(directory: str | None) -> str:
    directory = (directory or "").strip().strip("/")
    if not directory:
        return DEFAULT_DIRECTORY
    if not DIRECTORY_RE.match(directory):
        raise InvalidUploadError(f"Invalid directory: {directory}")
    return directory


def build_storage_key(
    filename: str,
    content_type: str | None,
    directory: str | None = None,
    unique_id: str | None = None,
) -> str:
    """
    Build the object key for an upload.

    Format: {images|videos|articles}/{directory}/{uuid}.{ext}
    """
    extension = file_extension(filename)
    if not extension:
        raise InvalidExtensionError()
    return f"{storage_category(content_type)}/{normalize_directory(directory)}/{unique_id or uuid.uuid4()}.{extension}"


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class UploadService:
    """
    Validate and upload files to object storage.

    Usage:
        service = UploadService()
        stored = service.upload("cover.png", "image/png", data, directory="posts")
        stored.url
    """

    def __init__(
        self,
        provider: StorageProvider | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        initial_delay: float = INITIAL_DELAY_SECONDS,
        max_delay: float = MAX_DELAY_SECONDS,
        max_bytes: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._provider = provider
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.max_bytes = max_bytes if max_bytes is not None else get_settings().UPLOAD_MAX_BYTES
        self._sleep = sleep

    @property
    def provider(self) -> StorageProvider:
        if self._provider is None:
            try:
                self._provider = get_storage_provider()
            except StorageConfigError as e:
                raise StorageNotConfiguredError(str(e))
        return self._provider

    def validate(self, filename: str, content_type: str | None, content: bytes) -> None:
        if not is_allowed_file(filename, content_type):
            raise DisallowedFileTypeError()
        if not file_extension(filename):
            raise InvalidExtensionError()
        if not content:
            raise InvalidUploadError("File is empty")
        if len(content) > self.max_bytes:
            raise InvalidUploadError(self.size_limit_message())

    def size_limit_message(self) -> str:
        return f"File exceeds the {self.max_bytes // (1024 * 1024)}MB limit"

    def upload(
        self,
        filename: str,
        content_type: str | None,
        content: bytes,
        directory: str | None = DEFAULT_DIRECTORY,
    ) -> StoredObject:
        """
        Validate and upload a file.

        Raises:
            DisallowedFileTypeError, InvalidExtensionError, InvalidUploadError: 400
            StorageNotConfiguredError, UpstreamStorageError: 500
        """
        self.validate(filename, content_type, content)
        key = build_storage_key(filename, content_type, directory)
        provider = self.provider
        mime = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

        upload_with_retry = with_sync_retry(
            max_attempts=self.max_attempts,
            min_wait=self.initial_delay,
            max_wait=self.max_delay,
            sleep=self._sleep,
        )(provider.upload)

        try:
            stored = upload_with_retry(key, content, mime)
        except Exception as e:
            logger.error(
                f"Upload to {provider.name} failed for {key}: {e}",
                extra={"event": "upload_failed", "provider": provider.name, "key": key},
            )
            raise UpstreamStorageError(str(e) or "Upload failed") from e

        logger.info(
            f"Uploaded {filename} to {provider.name}: {key}",
            extra={"event": "upload_complete", "provider": provider.name, "key": key, "size_bytes": len(content)},
        )
        return stored

    def is_owned_url(self, url: str) -> bool:
        """True for URLs already served from our storage (or a configured owned host)."""
        host = (urlparse(url).hostname or "").lower()
        if not host:
            return False
        if host in (h.lower() for h in get_settings().owned_media_hosts):
            return True
        try:
            return self.provider.owns_url(url)
        except StorageNotConfiguredError:
            return False

    def migrate_remote_image(self, url: str, fetcher: RemoteFetcher, directory: str = "friendsAvatar") -> str:
        """
        Copy an externally hosted image into our storage and return its new URL.

        URLs that already point into our storage are returned unchanged.
        """
        if self.is_owned_url(url):
            return url

        remote = fetcher.fetch(url)
        content_type = remote.content_type.split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            raise DisallowedFileTypeError(f"Remote file is not an image: {content_type or 'unknown'}")

        stored = self.upload(f"avatar.{_image_extension(url, content_type)}", content_type, remote.content, directory)
        logger.info(f"Migrated remote image {url} -> {stored.url}", extra={"event": "image_migrated", "url": url})
        return stored.url


def _image_extension(url: str, content_type: str) -> str:
    """Extension from the URL path, else from the MIME type, else jpg."""
    extension = file_extension(urlparse(url).path.rsplit("/", 1)[-1])
    if extension and EXTENSION_RE.match(extension):
        return extension
    guessed = mimetypes.guess_extension(content_type)
    if guessed:
        return guessed.lstrip(".")
    return "jpg"


def get_upload_service() -> UploadService:
    """FastAPI dependency."""
    return UploadService()
