"""In-memory snapshot store for tests and throwaway sessions."""

from typing import Optional

from shopkeeper.services.storage.interface import SnapshotStoreInterface


class InMemorySnapshotStore(SnapshotStoreInterface):
    """Dictionary-backed store. Contents are lost with the process."""

    def __init__(self, blobs: Optional[dict[str, str]] = None):
        self._blobs: dict[str, str] = dict(blobs or {})

    @property
    def keys(self) -> list[str]:
        return sorted(self._blobs)

    async def read_blob(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    async def write_blob(self, key: str, blob: str) -> bool:
        self._blobs[key] = blob
        return True

    async def delete_blob(self, key: str) -> bool:
        return self._blobs.pop(key, None) is not None
