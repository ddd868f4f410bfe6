"""Tests for the shared MongoDB client."""

import threading
from unittest.mock import MagicMock, patch

from blog_api import database


def test_client_created_once_across_threads():
    database.close_client()
    created = []

    def make_client(*args, **kwargs):
        client = MagicMock()
        created.append(client)
        return client

    seen = []
    with patch("blog_api.database.MongoClient", side_effect=make_client):
        threads = [threading.Thread(target=lambda: seen.append(database.get_client())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        try:
            assert len(created) == 1
            assert all(client is created[0] for client in seen)
        finally:
            database.close_client()

    created[0].close.assert_called_once()


def test_close_client_resets():
    with patch("blog_api.database.MongoClient", side_effect=lambda *a, **kw: MagicMock()):
        first = database.get_client()
        database.close_client()
        second = database.get_client()
        database.close_client()

    assert first is not second
