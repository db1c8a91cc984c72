"""
Services package.

External collaborators: AI readers and snapshot storage. The Gemini and
Google Sheets implementations are imported from their own modules.
"""

from shopkeeper.services.ai import (
    AIServiceError,
    ProductRecognitionError,
    ProductRecognizerInterface,
    QuotaExceededError,
    ReceiptReaderInterface,
    UnrecognizedReceiptError,
)
from shopkeeper.services.storage import (
    ConnectionError,
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    NotFoundError,
    ShopSnapshot,
    SnapshotStoreInterface,
    StorageError,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    # AI collaborators
    "AIServiceError",
    "ProductRecognitionError",
    "ProductRecognizerInterface",
    "QuotaExceededError",
    "ReceiptReaderInterface",
    "UnrecognizedReceiptError",
    # Storage
    "ConnectionError",
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    "NotFoundError",
    "ShopSnapshot",
    "SnapshotStoreInterface",
    "StorageError",
    "load_snapshot",
    "save_snapshot",
]
