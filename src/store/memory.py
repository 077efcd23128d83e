"""In-memory record store."""

import copy
import threading

from src.store.base import COLLECTION_KEYS, RecordStore, check_collection


class MemoryStore(RecordStore):
    """Holds each collection as a list of dicts in process memory.

    Args:
        collections: Optional initial rows, keyed by collection name.
            Rows are deep-copied so the caller's fixtures stay untouched.
    """

    def __init__(self, collections: dict[str, list[dict]] | None = None):
        self._lock = threading.Lock()
        self._data: dict[str, list[dict]] = {name: [] for name in COLLECTION_KEYS}
        for name, rows in (collections or {}).items():
            self._data[check_collection(name)] = copy.deepcopy(list(rows))

    def _records(self, collection: str) -> list[dict]:
        with self._lock:
            return copy.deepcopy(self._data[collection])

    def _save(self, collection: str, records: list[dict]) -> None:
        with self._lock:
            self._data[collection] = copy.deepcopy(records)

    def insert(self, collection: str, record: dict) -> None:
        """Append a raw row to a collection."""
        check_collection(collection)
        with self._lock:
            self._data[collection].append(copy.deepcopy(record))
