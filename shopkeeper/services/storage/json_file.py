"""
JSON File Snapshot Store

One file per key in a data directory: data/inventory_records.json,
data/pos_products.json and so on. Writes go to a temporary file first and
are moved into place, so a crash mid-write leaves the old file intact.
"""

import os
import re
from pathlib import Path
from typing import Optional

from shopkeeper.services.storage.interface import (
    SnapshotStoreInterface,
    StorageError,
)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_\-]+$")


class JsonFileSnapshotStore(SnapshotStoreInterface):
    """Stores each blob as <data_dir>/<key>.json."""

    def __init__(self, data_dir: str = "data"):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid blob key: {key!r}")
        return self._data_dir / f"{key}.json"

    async def read_blob(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    async def write_blob(self, key: str, blob: str) -> bool:
        path = self._path(key)
        tmp_path = path.parent / f"{key}.json.tmp"
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(blob, encoding="utf-8")
            os.replace(tmp_path, path)
            return True
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")

    async def delete_blob(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")
