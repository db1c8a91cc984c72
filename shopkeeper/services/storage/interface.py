"""
Abstract Snapshot Store Interface

DESIGN DECISION: The shop state is mirrored as a handful of named blobs
(records, products, credits, config), not as rows of domain objects. This
allows us to:
1. Keep the same layout on every backend (memory, files, Google Sheets)
2. Use in-memory storage for testing
3. Keep domain logic decoupled from the storage implementation

The store never interprets a blob. Parsing and defaults live in
shopkeeper.services.storage.snapshot.
"""

from abc import ABC, abstractmethod
from typing import Optional


class SnapshotStoreInterface(ABC):
    """
    Abstract key -> text blob store.

    Any storage implementation (files, Google Sheets, a database) must
    implement these methods.
    """

    @abstractmethod
    async def read_blob(self, key: str) -> Optional[str]:
        """
        Read a blob.

        Returns:
            The stored text, or None if the key was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def write_blob(self, key: str, blob: str) -> bool:
        """
        Create or replace a blob.

        Returns:
            True if written successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_blob(self, key: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if deleted, False if the key did not exist
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
