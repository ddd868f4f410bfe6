# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
import tempfile
from datetime import datetime, timezone

import pytest

# Set test environment before any blog_api module reads settings
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "blog-api-test-storage"))
os.environ.setdefault("LOCAL_PUBLIC_BASE_URL", "http://media.test/media")
os.environ.setdefault("LOG_JSON", "false")

from bson import ObjectId  # noqa: E402

from blog_api.responses import to_mongo  # noqa: E402
from blog_api.services.remote_fetch import RemoteContent  # noqa: E402
from blog_api.storage import reset_storage_provider  # noqa: E402
from blog_api.storage.base import StoredObject, StorageProvider  # noqa: E402

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}


class FakeFriendRepository:
    """In-memory stand-in for FriendRepository."""

    def __init__(self):
        self.docs: dict[ObjectId, dict] = {}

    def _oid(self, friend_id: str) -> ObjectId:
        from blog_api.repositories.friends import parse_object_id

        return parse_object_id(friend_id)

    def list(self, approved_only: bool = False) -> list[dict]:
        docs = [dict(d) for d in self.docs.values()]
        if approved_only:
            docs = [d for d in docs if d.get("isApproved")]
        return docs

    def get(self, friend_id: str) -> dict | None:
        doc = self.docs.get(self._oid(friend_id))
        return dict(doc) if doc else None

    def create(self, data: dict) -> dict:
        doc = {**to_mongo(data), "_id": ObjectId()}
        self.docs[doc["_id"]] = doc
        return dict(doc)

    def update(self, friend_id: str, changes: dict) -> dict | None:
        oid = self._oid(friend_id)
        if oid not in self.docs:
            return None
        self.docs[oid].update(to_mongo(changes))
        return dict(self.docs[oid])

    def delete(self, friend_id: str) -> bool:
        return self.docs.pop(self._oid(friend_id), None) is not None


class RecordingStorage(StorageProvider):
    """Provider that records uploads and fails a configurable number of times first."""

    def __init__(self, failures: int = 0, error: Exception | None = None):
        self.failures = failures
        self.error = error or ConnectionError("provider unavailable")
        self.calls: list[tuple[str, bytes, str]] = []
        self.objects: dict[str, bytes] = {}

    @property
    def name(self) -> str:
        return "recording"

    def public_url(self, key: str) -> str:
        return f"https://cdn.blog.test/{key}"

    def upload(self, key: str, content: bytes, content_type: str) -> StoredObject:
        self.calls.append((key, content, content_type))
        if len(self.calls) <= self.failures:
            raise self.error
        self.objects[key] = content
        return StoredObject(
            key=key,
            url=self.public_url(key),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(timezone.utc),
        )

    def exists(self, key: str) -> bool:
        return key in self.objects

    def delete(self, key: str) -> bool:
        return self.objects.pop(key, None) is not None


class FakeFetcher:
    """RemoteFetcher stand-in returning canned content per URL."""

    def __init__(self, responses: dict[str, RemoteContent] | None = None, error: Exception | None = None):
        self.responses = responses or {}
        self.error = error
        self.fetched: list[str] = []

    def fetch(self, url: str) -> RemoteContent:
        self.fetched.append(url)
        if self.error is not None:
            raise self.error
        return self.responses[url]


@pytest.fixture(autouse=True)
def _reset_storage():
    reset_storage_provider()
    yield
    reset_storage_provider()


@pytest.fixture
def fake_repo():
    return FakeFriendRepository()


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
