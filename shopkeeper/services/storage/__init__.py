"""
Storage Services Package

Provides the snapshot store interface and its implementations: in-memory,
JSON files and Google Sheets. All backends store the same named blobs.
"""

from shopkeeper.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    SnapshotStoreInterface,
    StorageError,
)
from shopkeeper.services.storage.json_file import JsonFileSnapshotStore
from shopkeeper.services.storage.memory import InMemorySnapshotStore
from shopkeeper.services.storage.snapshot import (
    SNAPSHOT_KEYS,
    ShopSnapshot,
    decode_snapshot,
    encode_snapshot,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    # Interface
    "SnapshotStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    # Snapshot
    "SNAPSHOT_KEYS",
    "ShopSnapshot",
    "decode_snapshot",
    "encode_snapshot",
    "load_snapshot",
    "save_snapshot",
]
