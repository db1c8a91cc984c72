"""
Shop Snapshot

The complete persisted state of one device: records, products, AI credit
balance and shop config, each stored as its own JSON blob.

GUARANTEES:
- Loading never fails. A missing blob means "fresh install" and gets the
  default; a malformed blob is logged and replaced by the default
- One bad record or product is skipped, not the whole collection
- Saving writes every blob even if an earlier one failed, then reports
  the failures together
"""

import json
from typing import Any, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from shopkeeper.models.catalog import Product, ShopConfig
from shopkeeper.models.records import TransactionRecord
from shopkeeper.services.storage.interface import SnapshotStoreInterface, StorageError


RECORDS_KEY = "inventory_records"
PRODUCTS_KEY = "pos_products"
CREDITS_KEY = "ai_credits"
CONFIG_KEY = "sync_config"

SNAPSHOT_KEYS = (RECORDS_KEY, PRODUCTS_KEY, CREDITS_KEY, CONFIG_KEY)

DEFAULT_CREDITS = 100

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ShopSnapshot(BaseModel):
    """Everything the assistant needs to restart where it left off."""

    records: list[TransactionRecord] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)
    credit_balance: int = Field(default=DEFAULT_CREDITS, ge=0)
    config: ShopConfig = Field(default_factory=ShopConfig)


# =============================================================================
# ENCODING
# =============================================================================

def encode_snapshot(snapshot: ShopSnapshot) -> dict[str, str]:
    """Snapshot -> {key: json text}."""
    return {
        RECORDS_KEY: json.dumps(
            [record.model_dump(mode="json") for record in snapshot.records],
            ensure_ascii=False,
        ),
        PRODUCTS_KEY: json.dumps(
            [product.model_dump(mode="json") for product in snapshot.products],
            ensure_ascii=False,
        ),
        CREDITS_KEY: json.dumps(snapshot.credit_balance),
        CONFIG_KEY: snapshot.config.model_dump_json(),
    }


def _parse_list(key: str, blob: str, parse: Callable[[Any], T]) -> list[T]:
    data = json.loads(blob)
    if not isinstance(data, list):
        raise ValueError(f"expected a list, got {type(data).__name__}")

    parsed = []
    for position, entry in enumerate(data):
        try:
            parsed.append(parse(entry))
        except ValidationError as e:
            logger.warning(
                "snapshot_entry_skipped",
                key=key,
                position=position,
                error=str(e),
            )
    return parsed


def _parse_credits(blob: str) -> int:
    value = json.loads(blob)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    return max(0, int(float(value)))


def decode_snapshot(blobs: dict[str, Optional[str]]) -> ShopSnapshot:
    """{key: json text or None} -> snapshot, with defaults for anything unusable."""
    snapshot = ShopSnapshot()

    decoders = {
        RECORDS_KEY: lambda blob: _parse_list(
            RECORDS_KEY, blob, TransactionRecord.model_validate
        ),
        PRODUCTS_KEY: lambda blob: _parse_list(
            PRODUCTS_KEY, blob, Product.model_validate
        ),
        CREDITS_KEY: _parse_credits,
        CONFIG_KEY: ShopConfig.model_validate_json,
    }
    fields = {
        RECORDS_KEY: "records",
        PRODUCTS_KEY: "products",
        CREDITS_KEY: "credit_balance",
        CONFIG_KEY: "config",
    }

    for key, decode in decoders.items():
        blob = blobs.get(key)
        if blob is None or not blob.strip():
            continue
        try:
            setattr(snapshot, fields[key], decode(blob))
        except (ValueError, TypeError, OverflowError) as e:
            # json.JSONDecodeError and pydantic ValidationError are ValueErrors
            logger.warning("snapshot_blob_malformed", key=key, error=str(e))

    return snapshot


# =============================================================================
# STORE I/O
# =============================================================================

async def load_snapshot(store: SnapshotStoreInterface) -> ShopSnapshot:
    """
    Read every blob from the store.

    A blob that cannot be read (StorageError) is treated like a missing one.
    """
    blobs: dict[str, Optional[str]] = {}
    for key in SNAPSHOT_KEYS:
        try:
            blobs[key] = await store.read_blob(key)
        except StorageError as e:
            logger.warning("snapshot_blob_unreadable", key=key, error=str(e))
            blobs[key] = None
    return decode_snapshot(blobs)


async def save_snapshot(store: SnapshotStoreInterface, snapshot: ShopSnapshot) -> None:
    """
    Write every blob.

    Raises:
        StorageError: naming every key that failed, after all were attempted
    """
    failures = []
    for key, blob in encode_snapshot(snapshot).items():
        try:
            await store.write_blob(key, blob)
        except StorageError as e:
            failures.append(f"{key}: {e}")

    if failures:
        raise StorageError("Failed to save snapshot: " + "; ".join(failures))
