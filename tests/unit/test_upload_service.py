"""Tests for the upload pipeline: validation, key derivation, retry and avatar migration."""

import re
from unittest.mock import patch

import pytest

from blog_api.services.remote_fetch import RemoteContent
from blog_api.services.upload_service import (
    DisallowedFileTypeError,
    InvalidExtensionError,
    InvalidUploadError,
    StorageNotConfiguredError,
    UploadService,
    UpstreamStorageError,
    build_storage_key,
    file_extension,
    is_allowed_file,
    normalize_directory,
    storage_category,
)
from blog_api.storage import StorageConfigError
from tests.conftest import FakeFetcher, RecordingStorage

KEY_RE = re.compile(r"^(images|videos|articles)/[A-Za-z0-9_/-]+/[0-9a-f-]{36}\.[a-z0-9]+$")


def _service(storage, **kwargs):
    sleeps = []
    service = UploadService(provider=storage, sleep=sleeps.append, **kwargs)
    return service, sleeps


class TestAllowlist:
    @pytest.mark.parametrize(
        "filename,content_type",
        [
            ("post.md", "text/markdown"),
            ("notes.txt", "text/plain"),
            ("cover.png", "image/png"),
            ("clip.mp4", "video/mp4"),
            ("post.md", "application/octet-stream"),
            ("POST.MD", None),
        ],
    )
    def test_allowed(self, filename, content_type):
        assert is_allowed_file(filename, content_type)

    @pytest.mark.parametrize(
        "filename,content_type",
        [
            ("doc.pdf", "application/pdf"),
            ("page.html", "text/html"),
            ("run.exe", None),
        ],
    )
    def test_rejected(self, filename, content_type):
        assert not is_allowed_file(filename, content_type)


class TestKeyDerivation:
    def test_extension(self):
        assert file_extension("photo.JPG") == "jpg"
        assert file_extension("archive.tar.gz") == "gz"
        assert file_extension("README") is None
        assert file_extension("trailing.") is None

    def test_category(self):
        assert storage_category("image/webp") == "images"
        assert storage_category("video/webm") == "videos"
        assert storage_category("text/markdown") == "articles"
        assert storage_category(None) == "articles"

    def test_directory_defaults_to_articles(self):
        assert normalize_directory(None) == "articles"
        assert normalize_directory("  ") == "articles"
        assert normalize_directory("/posts/2024/") == "posts/2024"

    @pytest.mark.parametrize("directory", ["../etc", "a/../b", "with space", "a//b"])
    def test_unsafe_directory(self, directory):
        with pytest.raises(InvalidUploadError):
            normalize_directory(directory)

    def test_key_format(self):
        key = build_storage_key("cover.PNG", "image/png", "friendsAvatar", unique_id="u1")
        assert key == "images/friendsAvatar/u1.png"

    def test_key_has_uuid(self):
        key = build_storage_key("post.md", "text/markdown")
        assert KEY_RE.match(key)
        assert key.startswith("articles/articles/")

    def test_keys_are_unique(self):
        assert build_storage_key("a.png", "image/png") != build_storage_key("a.png", "image/png")

    def test_missing_extension(self):
        with pytest.raises(InvalidExtensionError):
            build_storage_key("README", "text/plain")


class TestValidation:
    def test_disallowed_type_is_400(self, storage):
        service, _ = _service(storage)
        with pytest.raises(DisallowedFileTypeError) as exc_info:
            service.upload("doc.pdf", "application/pdf", b"%PDF")
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Only markdown, image and video files are allowed"
        assert storage.calls == []

    def test_missing_extension_is_400(self, storage):
        service, _ = _service(storage)
        with pytest.raises(InvalidExtensionError) as exc_info:
            service.upload("image", "image/png", b"x")
        assert exc_info.value.status_code == 400

    def test_empty_file(self, storage):
        service, _ = _service(storage)
        with pytest.raises(InvalidUploadError, match="empty"):
            service.upload("a.md", "text/markdown", b"")

    def test_size_limit(self, storage):
        service, _ = _service(storage, max_bytes=1024 * 1024)
        with pytest.raises(InvalidUploadError, match="1MB"):
            service.upload("a.md", "text/markdown", b"x" * (1024 * 1024 + 1))


class TestUploadRetry:
    def test_success_first_attempt(self, storage):
        service, sleeps = _service(storage)
        stored = service.upload("cover.png", "image/png", b"png-bytes", directory="posts")

        assert len(storage.calls) == 1
        key, content, content_type = storage.calls[0]
        assert key.startswith("images/posts/")
        assert content == b"png-bytes"
        assert content_type == "image/png"
        assert stored.url == f"https://cdn.blog.test/{key}"
        assert sleeps == []

    def test_recovers_below_attempt_limit(self):
        storage = RecordingStorage(failures=2)
        service, sleeps = _service(storage)

        stored = service.upload("a.md", "text/markdown", b"# a")

        assert len(storage.calls) == 3
        assert stored.url.startswith("https://cdn.blog.test/articles/articles/")
        assert sleeps == [1.0, 2.0]

    def test_surfaces_last_error_after_limit(self):
        storage = RecordingStorage(failures=3, error=ConnectionError("bucket unreachable"))
        service, sleeps = _service(storage)

        with pytest.raises(UpstreamStorageError) as exc_info:
            service.upload("a.md", "text/markdown", b"# a")

        assert len(storage.calls) == 3
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "bucket unreachable"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert sleeps == [1.0, 2.0]

    def test_delay_capped(self):
        storage = RecordingStorage(failures=5)
        service, sleeps = _service(storage, max_attempts=5)

        with pytest.raises(UpstreamStorageError):
            service.upload("a.md", "text/markdown", b"# a")

        assert sleeps == [1.0, 2.0, 4.0, 5.0]

    def test_markdown_without_mime_guessed(self, storage):
        service, _ = _service(storage)
        service.upload("post.md", None, b"# a")
        assert storage.calls[0][2] in ("text/markdown", "application/octet-stream")

    def test_unconfigured_provider(self):
        service = UploadService(sleep=lambda _: None)
        with patch(
            "blog_api.services.upload_service.get_storage_provider",
            side_effect=StorageConfigError("OSS", ["OSS_BUCKET"]),
        ):
            with pytest.raises(StorageNotConfiguredError) as exc_info:
                service.upload("a.md", "text/markdown", b"# a")
        assert exc_info.value.status_code == 500
        assert "OSS_BUCKET" in exc_info.value.message


class TestMigrateRemoteImage:
    def test_owned_url_unchanged(self, storage):
        service, _ = _service(storage)
        fetcher = FakeFetcher()

        url = "https://cdn.blog.test/images/friendsAvatar/x.png"
        assert service.migrate_remote_image(url, fetcher) == url
        assert fetcher.fetched == []
        assert storage.calls == []

    def test_configured_owned_host_unchanged(self, storage, monkeypatch):
        from blog_api.config import get_settings

        monkeypatch.setattr(get_settings(), "OWNED_MEDIA_HOSTS", "img.blog.test")
        service, _ = _service(storage)
        fetcher = FakeFetcher()

        url = "https://img.blog.test/a.png"
        assert service.migrate_remote_image(url, fetcher) == url
        assert fetcher.fetched == []

    def test_external_image_copied(self, storage):
        url = "https://avatars.example.com/u/1.png?size=64"
        fetcher = FakeFetcher({url: RemoteContent(url, b"png", "image/png", 200)})
        service, _ = _service(storage)

        new_url = service.migrate_remote_image(url, fetcher)

        key, content, content_type = storage.calls[0]
        assert key.startswith("images/friendsAvatar/")
        assert key.endswith(".png")
        assert content == b"png"
        assert content_type == "image/png"
        assert new_url == f"https://cdn.blog.test/{key}"

    def test_extension_from_content_type(self, storage):
        url = "https://avatars.example.com/u/1"
        fetcher = FakeFetcher({url: RemoteContent(url, b"jpeg", "image/jpeg; charset=binary", 200)})
        service, _ = _service(storage)

        service.migrate_remote_image(url, fetcher)

        key = storage.calls[0][0]
        assert key.rsplit(".", 1)[1] in ("jpg", "jpeg", "jpe")
        assert storage.calls[0][2] == "image/jpeg"

    def test_non_image_rejected(self, storage):
        url = "https://example.com/page"
        fetcher = FakeFetcher({url: RemoteContent(url, b"<html>", "text/html", 200)})
        service, _ = _service(storage)

        with pytest.raises(DisallowedFileTypeError, match="not an image"):
            service.migrate_remote_image(url, fetcher)
        assert storage.calls == []
