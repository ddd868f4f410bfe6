"""
MongoDB connection handling.

A single pooled MongoClient is shared by the whole process; pymongo manages
the pool, so handlers only ask for the Database.
"""

import logging
import threading
import time

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from blog_api.config import get_settings

logger = logging.getLogger(__name__)

CLIENT_OPTIONS = {
    # Pool
    "maxPoolSize": 10,
    "minPoolSize": 2,
    "maxIdleTimeMS": 60_000,
    # Timeouts
    "serverSelectionTimeoutMS": 5_000,
    "socketTimeoutMS": 45_000,
    "connectTimeoutMS": 10_000,
    # Retries
    "retryWrites": True,
    "retryReads": True,
}

_client: MongoClient | None = None
_client_lock = threading.Lock()


def get_client() -> MongoClient:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                logger.info("[MongoDB] Creating client")
                start = time.time()
                _client = MongoClient(get_settings().MONGODB_URI, **CLIENT_OPTIONS)
                logger.info(
                    f"[MongoDB] Client ready in {int((time.time() - start) * 1000)}ms",
                    extra={"event": "mongo_client_ready"},
                )
    return _client


def get_database() -> Database:
    """Database named by MONGODB_DB, or the default database of the URI."""
    settings = get_settings()
    client = get_client()
    if settings.MONGODB_DB:
        return client[settings.MONGODB_DB]
    return client.get_default_database(default="blog")


def get_db():
    """
    FastAPI dependency that gives you the Database handle.
    """
    return get_database()


def check_connection() -> bool:
    """Ping the server; False on any driver error."""
    try:
        get_database().command("ping")
        return True
    except PyMongoError as e:
        logger.error(f"[MongoDB] Ping failed: {e}")
        return False


def close_client() -> None:
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("[MongoDB] Client closed")
