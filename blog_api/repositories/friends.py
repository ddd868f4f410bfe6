# blog_api/repositories/friends.py
"""
MongoDB access for the `friends` collection.

Documents keep the wire field names (camelCase). Methods return raw
documents with ObjectId `_id`s; conversion for clients happens in the
response layer.
"""

import logging
from datetime import datetime, timezone

from bson import ObjectId
from fastapi import Depends
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from blog_api.database import get_db
from blog_api.responses import ApiErrors, to_mongo

logger = logging.getLogger(__name__)

COLLECTION_NAME = "friends"


def parse_object_id(value: str | None) -> ObjectId:
    if not value or not ObjectId.is_valid(value):
        raise ApiErrors.bad_request(f"Invalid friend id: {value!r}")
    return ObjectId(value)


class FriendRepository:
    """CRUD operations over the friends collection."""

    def __init__(self, collection: Collection):
        self._collection = collection

    def list(self, approved_only: bool = False) -> list[dict]:
        query = {"isApproved": True} if approved_only else {}
        try:
            return list(self._collection.find(query).sort("_id", ASCENDING))
        except PyMongoError as e:
            logger.error(f"Failed to list friends: {e}")
            raise ApiErrors.database_error()

    def get(self, friend_id: str) -> dict | None:
        oid = parse_object_id(friend_id)
        try:
            return self._collection.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Failed to load friend {friend_id}: {e}")
            raise ApiErrors.database_error()

    def create(self, data: dict) -> dict:
        now = datetime.now(timezone.utc)
        doc = {**to_mongo(data), "createdAt": now, "updatedAt": now}
        try:
            result = self._collection.insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Failed to create friend: {e}")
            raise ApiErrors.database_error()
        logger.info(f"Created friend {result.inserted_id}", extra={"event": "friend_created"})
        return {**doc, "_id": result.inserted_id}

    def update(self, friend_id: str, changes: dict) -> dict | None:
        """Apply changes and return the updated document, or None if absent."""
        oid = parse_object_id(friend_id)
        update = {**to_mongo(changes), "updatedAt": datetime.now(timezone.utc)}
        try:
            return self._collection.find_one_and_update(
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Failed to update friend {friend_id}: {e}")
            raise ApiErrors.database_error()

    def delete(self, friend_id: str) -> bool:
        oid = parse_object_id(friend_id)
        try:
            result = self._collection.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Failed to delete friend {friend_id}: {e}")
            raise ApiErrors.database_error()
        return result.deleted_count == 1


def get_friend_repository(db: Database = Depends(get_db)) -> FriendRepository:
    """FastAPI dependency."""
    return FriendRepository(db[COLLECTION_NAME])
