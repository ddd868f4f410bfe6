"""Tests for LocalStorageProvider."""

import json
import os
import tempfile

import pytest

from blog_api.storage.local_provider import LocalStorageProvider


class TestPathTraversal:
    """Verify _get_path rejects keys that escape the storage directory."""

    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.provider = LocalStorageProvider(base_path=self.tmpdir, public_base_url="http://media.test/media")

    def test_traversal_with_dotdot(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_path("../../../etc/passwd")

    def test_traversal_with_absolute(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_path("/etc/passwd")

    def test_nested_key_succeeds(self):
        path = self.provider._get_path("images/friendsAvatar/abc123.png")
        assert str(path).startswith(self.tmpdir)

    def test_metadata_traversal(self):
        with pytest.raises(ValueError, match="Path traversal detected"):
            self.provider._get_metadata_path("../../../etc/passwd")


class TestLocalUpload:
    def setup_method(self):
        self.tmpdir = os.path.realpath(tempfile.mkdtemp())
        self.provider = LocalStorageProvider(base_path=self.tmpdir, public_base_url="http://media.test/media/")

    def teardown_method(self):
        self.provider.cleanup()

    def test_upload_writes_bytes_and_metadata(self):
        stored = self.provider.upload("articles/a.md", b"# hello", "text/markdown")

        assert stored.url == "http://media.test/media/articles/a.md"
        assert stored.size_bytes == 7
        assert self.provider.read("articles/a.md") == b"# hello"

        meta = json.loads(self.provider._get_metadata_path("articles/a.md").read_text())
        assert meta["content_type"] == "text/markdown"
        assert meta["size_bytes"] == 7

    def test_exists_and_delete(self):
        self.provider.upload("images/images/x.png", b"\x89PNG", "image/png")
        assert self.provider.exists("images/images/x.png")

        assert self.provider.delete("images/images/x.png") is True
        assert not self.provider.exists("images/images/x.png")
        assert self.provider.delete("images/images/x.png") is False

    def test_read_missing_returns_none(self):
        assert self.provider.read("nope.txt") is None

    def test_owns_own_urls_only(self):
        assert self.provider.owns_url("http://media.test/media/articles/a.md")
        assert not self.provider.owns_url("https://example.com/a.png")
        assert not self.provider.owns_url("not a url")
