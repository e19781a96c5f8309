"""
Keeps "at most one default record per (user, provider)" for any collection
whose rows carry ``user_id``, ``provider`` and ``is_default``.

Writes are two-phase (clear the partition, then write the target). Both
phases run inside ``store.transaction()`` so concurrent requests handled by
this process cannot interleave between them. The clearing and promotion
phases stay best-effort: their failures are logged and the primary mutation
still completes.
"""
import logging

from ..errors import NotFoundError
from ..storage.json_store import JsonStore, StoreError

logger = logging.getLogger(__name__)


class DefaultRecordMaintainer:
    def __init__(self, store: JsonStore, collection: str):
        self.store = store
        self.collection = collection

    def _unset_others(self, user_id: str, provider: str, exclude_id: str | None = None):
        try:
            self.store.update(
                self.collection, {"is_default": False},
                exclude_id=exclude_id, user_id=user_id, provider=provider,
            )
        except StoreError:
            logger.exception("Failed to unset other defaults in %s for %s/%s",
                             self.collection, user_id, provider)

    def _promote_latest(self, user_id: str, provider: str):
        try:
            remaining = self.store.find(
                self.collection, order_by="created_at", descending=True, limit=1,
                user_id=user_id, provider=provider,
            )
            if not remaining:
                logger.info("No remaining %s rows for %s/%s; no default left",
                            self.collection, user_id, provider)
                return None
            promoted = remaining[0]
            self.store.update(self.collection, {"is_default": True},
                              id=promoted["id"], user_id=user_id)
            logger.info("Promoted %s %s to default", self.collection, promoted["id"])
            return promoted["id"]
        except StoreError:
            logger.exception("Failed to promote a new default in %s for %s/%s",
                             self.collection, user_id, provider)
            return None

    def get_owned(self, user_id: str, record_id: str, label: str = "Record") -> dict:
        row = None
        if record_id and user_id:
            row = self.store.find_one(self.collection, id=record_id, user_id=user_id)
        if not row:
            raise NotFoundError(f"{label} not found")
        return row

    def create(self, user_id: str, provider: str, fields: dict, requested_default: bool = False) -> dict:
        """Insert a row; the first row of a provider is always the default."""
        with self.store.transaction():
            is_first = not self.store.find(self.collection, user_id=user_id, provider=provider)
            is_default = is_first or bool(requested_default)
            if is_default:
                self._unset_others(user_id, provider)
            row = dict(fields, user_id=user_id, provider=provider, is_default=is_default)
            return self.store.insert(self.collection, row)

    def update(self, user_id: str, record_id: str, patch: dict, label: str = "Record") -> dict:
        with self.store.transaction():
            current = self.get_owned(user_id, record_id, label)
            if patch.get("is_default") is True:
                self._unset_others(user_id, current["provider"], exclude_id=record_id)
            if not patch:
                return current
            updated = self.store.update(self.collection, patch, id=record_id, user_id=user_id)
            return updated[0] if updated else current

    def delete(self, user_id: str, record_id: str, label: str = "Record") -> dict:
        """Delete a row; when it was the default, the newest sibling takes over."""
        with self.store.transaction():
            current = self.get_owned(user_id, record_id, label)
            self.store.delete_where(self.collection, id=record_id, user_id=user_id)
            if current.get("is_default"):
                self._promote_latest(user_id, current["provider"])
            return current
