from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from db.engine import lock_for, new_id, quarantine, read_json_document, resolve_data_dir, write_json_document
from schemas.domain import MutationResult
from services.logs import get_logger

logger = get_logger(__name__)


class DocumentStore:
    """A cached collection persisted as ``{collection_key: [...]}`` in one JSON file.

    The cache is only swapped after the file has been rewritten, so it always
    matches the last successful write. Callers get copies, never the cached
    objects.
    """

    file_name: str = ""
    collection_key: str = ""
    model: type[BaseModel] = BaseModel

    def __init__(self, base_path: str | Path | None = None):
        self.base_path = resolve_data_dir(base_path)
        self.path = self.base_path / self.file_name
        self.lock = lock_for(self.path)
        self._items: list = []

    def initialize(self) -> None:
        with self.lock:
            self.base_path.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self._save([])
                return
            try:
                payload = read_json_document(self.path)
                items = [self.model.model_validate(item) for item in payload.get(self.collection_key, [])]
            except (OSError, TypeError, ValueError) as exc:
                moved = quarantine(self.path)
                logger.error("document_quarantined", path=str(self.path), moved_to=str(moved), error=str(exc))
                self._save([])
                return
            self._items = items

    def reload(self) -> None:
        self.initialize()

    def all(self) -> list:
        with self.lock:
            return [item.model_copy(deep=True) for item in self._items]

    def get(self, item_id: str):
        with self.lock:
            for item in self._items:
                if item.id == item_id:
                    return item.model_copy(deep=True)
        return None

    def _insert(self, build):
        with self.lock:
            item = build(new_id({i.id for i in self._items}))
            self._save(self._items + [item])
            return item.model_copy(deep=True)

    def _replace(self, item) -> MutationResult:
        with self.lock:
            for idx, existing in enumerate(self._items):
                if existing.id == item.id:
                    items = list(self._items)
                    items[idx] = item
                    self._save(items)
                    return MutationResult.UPDATED
        return MutationResult.NOT_FOUND

    def _remove(self, item_id: str) -> MutationResult:
        with self.lock:
            kept = [i for i in self._items if i.id != item_id]
            if len(kept) == len(self._items):
                return MutationResult.NOT_FOUND
            self._save(kept)
        return MutationResult.DELETED

    def _save(self, items: list) -> None:
        write_json_document(self.path, {self.collection_key: [item.to_document() for item in items]})
        self._items = list(items)
