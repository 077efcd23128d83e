"""JSON-file record store.

Each collection lives in ``<data_dir>/<collection>.json`` shaped as::

    {"records": [ {...}, {...} ]}

Files are read lazily on first access and re-read whenever their
modification time changes, so an edit made by another process is picked
up by the next cache refresh. Updates are written atomically (temp file in
the same directory, then ``os.replace``); the temp file is removed if the
write fails.
"""

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from src.paths import DATA_DIR, collection_path
from src.store.base import RecordStore, StoreUnavailableError

logger = logging.getLogger(__name__)


class JsonFileStore(RecordStore):
    """Record store backed by one JSON file per collection.

    Args:
        data_dir: Directory holding the collection files. Defaults to
            ``data/`` under the project root.
    """

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir) if data_dir else DATA_DIR
        self._lock = threading.Lock()
        # collection -> (mtime_ns, records)
        self._loaded: dict[str, tuple[int, list[dict]]] = {}

    def path_for(self, collection: str) -> Path:
        return collection_path(collection, self.data_dir)

    def _read_file(self, collection: str, path: Path) -> list[dict]:
        try:
            with open(path, encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError as exc:
            raise StoreUnavailableError(collection, f"missing file {path}") from exc
        except json.JSONDecodeError as exc:
            raise StoreUnavailableError(collection, f"invalid JSON in {path}: {exc}") from exc
        except OSError as exc:
            raise StoreUnavailableError(collection, f"cannot read {path}: {exc}") from exc

        records = payload.get("records") if isinstance(payload, dict) else None
        if not isinstance(records, list):
            raise StoreUnavailableError(collection, f"{path} has no 'records' list")

        rows = [r for r in records if isinstance(r, dict)]
        if len(rows) != len(records):
            logger.warning(
                "%s: skipped %d non-object entries", path.name, len(records) - len(rows)
            )
        logger.info("Loaded %d %s records from %s", len(rows), collection, path)
        return rows

    def _records(self, collection: str) -> list[dict]:
        path = self.path_for(collection)
        try:
            mtime = path.stat().st_mtime_ns
        except FileNotFoundError as exc:
            raise StoreUnavailableError(collection, f"missing file {path}") from exc

        with self._lock:
            cached = self._loaded.get(collection)
            if cached is not None and cached[0] == mtime:
                return cached[1]
            rows = self._read_file(collection, path)
            self._loaded[collection] = (mtime, rows)
            return rows

    def _save(self, collection: str, records: list[dict]) -> None:
        path = self.path_for(collection)
        path.parent.mkdir(parents=True, exist_ok=True)

        with self._lock:
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, suffix=".tmp", prefix=f"{path.stem}_"
            )
            try:
                with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                    json.dump({"records": records}, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            except OSError as exc:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
                raise StoreUnavailableError(collection, f"cannot write {path}: {exc}") from exc
            # Force a re-read so the stored mtime matches the new file
            self._loaded.pop(collection, None)
        logger.info("Wrote %d %s records to %s", len(records), collection, path)
