"""Record store interface consumed by the risk engine.

The engine only ever reads whole collections of plain dict records and,
from the admin layer, updates a record by key. Concrete stores:

  - MemoryStore  (src.store.memory): in-process lists, used by tests
  - JsonFileStore (src.store.json_store): one ``<collection>.json`` per
    collection under a data directory

Stores return raw dicts; validation into pydantic models happens in the
engine so one malformed row can be skipped without failing the batch.
"""

import abc
import copy

COLLECTION_KEYS: dict[str, str] = {
    "hazards": "hazard_id",
    "multipliers": "name",
    "strategies": "strategy_id",
    "business_types": "business_type_id",
    "locations": "location_id",
}
"""Store collections and the field identifying a record in each."""


class StoreUnavailableError(Exception):
    """The backing data for a collection cannot be read or written.

    Propagates through the engine unchanged; there is no retry.
    """

    def __init__(self, collection: str, reason: str):
        self.collection = collection
        self.reason = reason
        super().__init__(f"Store collection '{collection}' unavailable: {reason}")


class RecordNotFoundError(KeyError):
    """``update`` addressed a key that does not exist in the collection."""

    def __init__(self, collection: str, key: str):
        self.collection = collection
        self.key = key
        super().__init__(f"No record '{key}' in collection '{collection}'")


def check_collection(collection: str) -> str:
    if collection not in COLLECTION_KEYS:
        raise ValueError(
            f"Unknown collection '{collection}'. Known: {sorted(COLLECTION_KEYS)}"
        )
    return collection


def matches_filters(record: dict, filters: dict) -> bool:
    """Equality match of every filter field against the record."""
    return all(record.get(field) == value for field, value in filters.items())


class RecordStore(abc.ABC):
    """Abstract record provider over the engine's typed collections.

    Subclasses implement ``_records`` (raw rows of one collection) and
    ``_save`` (persist a whole collection). ``find``/``count``/``update``
    are shared.
    """

    @abc.abstractmethod
    def _records(self, collection: str) -> list[dict]:
        """Return the live rows of ``collection``.

        Raises:
            StoreUnavailableError: If the collection cannot be read.
        """

    @abc.abstractmethod
    def _save(self, collection: str, records: list[dict]) -> None:
        """Persist ``records`` as the full content of ``collection``."""

    def find(self, collection: str, **filters) -> list[dict]:
        """Return deep copies of the records matching every ``field=value`` filter."""
        check_collection(collection)
        return [
            copy.deepcopy(record)
            for record in self._records(collection)
            if matches_filters(record, filters)
        ]

    def count(self, collection: str, **filters) -> int:
        check_collection(collection)
        return sum(1 for r in self._records(collection) if matches_filters(r, filters))

    def update(self, collection: str, key: str, changes: dict) -> dict:
        """Apply ``changes`` to the record identified by ``key``.

        Returns:
            A copy of the updated record.

        Raises:
            RecordNotFoundError: If no record has that key.
        """
        key_field = COLLECTION_KEYS[check_collection(collection)]
        records = [dict(r) for r in self._records(collection)]
        for record in records:
            if record.get(key_field) == key:
                record.update(changes)
                record[key_field] = key
                self._save(collection, records)
                return dict(record)
        raise RecordNotFoundError(collection, key)
