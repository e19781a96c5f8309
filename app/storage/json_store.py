from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
import json
import threading
import uuid
from typing import Any, Dict, List


class StoreError(Exception):
    """Raised when a collection cannot be read or written."""


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonStore:
    """Simple JSON-on-disk collections: one file per collection (id -> row)."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> Dict[str, Any]:
        p = self._path(collection)
        if not p.exists():
            return {}
        try:
            with p.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Failed to read collection {collection}: {e}") from e

    def _save(self, collection: str, obj: Dict[str, Any]):
        p = self._path(collection)
        try:
            with p.open("w", encoding="utf-8") as f:
                json.dump(obj, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreError(f"Failed to write collection {collection}: {e}") from e

    @contextmanager
    def transaction(self):
        """Serialize every store call made inside the block against other threads."""
        with self._lock:
            yield self

    def list(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._load(collection).values())

    def get(self, collection: str, key: str):
        with self._lock:
            return self._load(collection).get(key)

    def upsert(self, collection: str, key: str, value: Dict[str, Any]):
        with self._lock:
            data = self._load(collection)
            data[key] = value
            self._save(collection, data)

    def delete(self, collection: str, key: str):
        with self._lock:
            data = self._load(collection)
            data.pop(key, None)
            self._save(collection, data)

    # --- filtered access -------------------------------------------------

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        return all(row.get(k) == v for k, v in filters.items() if v is not None)

    @staticmethod
    def _require_filters(op: str, collection: str, filters: Dict[str, Any]):
        if not any(v is not None for v in filters.values()):
            raise StoreError(f"Refusing unfiltered {op} on {collection}")

    def find(self, collection: str, order_by: str | None = None, descending: bool = False,
             limit: int | None = None, **filters) -> List[Dict[str, Any]]:
        """Rows matching every equality filter; ``None`` filters are ignored."""
        rows = [r for r in self.list(collection) if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is not None, r.get(order_by) or ""), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def find_one(self, collection: str, **filters):
        rows = self.find(collection, limit=1, **filters)
        return rows[0] if rows else None

    def insert(self, collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(row)
        row.setdefault("id", uuid.uuid4().hex)
        row.setdefault("created_at", utcnow_iso())
        with self._lock:
            data = self._load(collection)
            data[str(row["id"])] = row
            self._save(collection, data)
        return row

    def update(self, collection: str, patch: Dict[str, Any], exclude_id: str | None = None,
               **filters) -> List[Dict[str, Any]]:
        """Apply ``patch`` to every matching row (except ``exclude_id``); returns the updated rows."""
        self._require_filters("update", collection, filters)
        updated = []
        with self._lock:
            data = self._load(collection)
            for key, row in data.items():
                if exclude_id is not None and str(row.get("id")) == str(exclude_id):
                    continue
                if self._matches(row, filters):
                    row.update(patch)
                    updated.append(row)
            if updated:
                self._save(collection, data)
        return updated

    def delete_where(self, collection: str, **filters) -> int:
        self._require_filters("delete", collection, filters)
        with self._lock:
            data = self._load(collection)
            doomed = [k for k, row in data.items() if self._matches(row, filters)]
            for k in doomed:
                del data[k]
            if doomed:
                self._save(collection, data)
        return len(doomed)
