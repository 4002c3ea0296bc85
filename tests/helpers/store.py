"""In-memory stand-in for ``database.MongoStore`` used by the tests."""
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from database import PersistenceError

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class InMemoryStore:
    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_on = set()
        self._ids = itertools.count(1)

    def _check(self, operation: str, collection: str) -> None:
        if operation in self.fail_on or f"{operation}:{collection}" in self.fail_on:
            raise PersistenceError(f"{operation} on {collection} failed")

    @staticmethod
    def _data(data) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        return {k: v for k, v in data.items() if k != "id"}

    def fetch_all(self, collection: str, user_id: str, order_by: str = "created_at", descending: bool = True) -> List[Dict[str, Any]]:
        self._check("fetch", collection)
        rows = [dict(r) for r in self.collections.get(collection, []) if r["user_id"] == user_id]
        rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        return rows

    def insert(self, collection: str, user_id: str, data) -> Dict[str, Any]:
        self._check("insert", collection)
        n = next(self._ids)
        doc = self._data(data)
        doc["id"] = f"rec{n}"
        doc["user_id"] = user_id
        doc["created_at"] = doc["updated_at"] = (_EPOCH + timedelta(seconds=n)).isoformat()
        self.collections.setdefault(collection, []).append(doc)
        return dict(doc)

    def update(self, collection: str, user_id: str, record_id: str, data) -> Optional[Dict[str, Any]]:
        self._check("update", collection)
        for doc in self.collections.get(collection, []):
            if doc["id"] == record_id and doc["user_id"] == user_id:
                changes = self._data(data)
                for key in ("user_id", "created_at"):
                    changes.pop(key, None)
                doc.update(changes)
                return dict(doc)
        return None

    def delete(self, collection: str, user_id: str, record_id: str) -> bool:
        self._check("delete", collection)
        rows = self.collections.get(collection, [])
        for i, doc in enumerate(rows):
            if doc["id"] == record_id and doc["user_id"] == user_id:
                rows.pop(i)
                return True
        return False
