"""
MongoDB access for the finance tracker.

Configured from the environment (DATABASE_URL, DATABASE_NAME). When either is
missing, ``db`` stays None and the API reports the database as not configured.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from logging_setup import get_logger

logger = get_logger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db = None
if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]
    logger.info("using database %s", DATABASE_NAME)


class PersistenceError(Exception):
    """Any failure reported by the data store."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_data(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude={"id"}, exclude_none=False)
    return {k: v for k, v in data.items() if k != "id"}


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Replace Mongo's ``_id`` with a string ``id``."""
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id")) if doc.get("_id") is not None else None
    return doc


def _object_id(record_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError):
        return None


class MongoStore:
    """Per-user record storage over a pymongo database.

    Every record carries a ``user_id``; reads and writes are scoped by it.
    """

    def __init__(self, database):
        self.database = database

    def fetch_all(self, collection: str, user_id: str, order_by: str = "created_at", descending: bool = True) -> List[Dict[str, Any]]:
        direction = DESCENDING if descending else ASCENDING
        try:
            cursor = self.database[collection].find({"user_id": user_id}).sort(order_by, direction)
            return [serialize(d) for d in cursor]
        except PyMongoError as exc:
            raise PersistenceError(f"fetch from {collection} failed: {exc}") from exc

    def insert(self, collection: str, user_id: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
        doc = _to_data(data)
        doc["user_id"] = user_id
        doc["created_at"] = doc["updated_at"] = _now()
        try:
            result = self.database[collection].insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError(f"insert into {collection} failed: {exc}") from exc
        doc["_id"] = result.inserted_id
        return serialize(doc)

    def update(self, collection: str, user_id: str, record_id: str, data: Union[BaseModel, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        changes = _to_data(data)
        for key in ("user_id", "created_at"):
            changes.pop(key, None)
        changes["updated_at"] = _now()
        try:
            doc = self.database[collection].find_one_and_update(
                {"_id": oid, "user_id": user_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise PersistenceError(f"update of {collection}/{record_id} failed: {exc}") from exc
        return serialize(doc)

    def delete(self, collection: str, user_id: str, record_id: str) -> bool:
        oid = _object_id(record_id)
        if oid is None:
            return False
        try:
            result = self.database[collection].delete_one({"_id": oid, "user_id": user_id})
        except PyMongoError as exc:
            raise PersistenceError(f"delete of {collection}/{record_id} failed: {exc}") from exc
        return result.deleted_count > 0
