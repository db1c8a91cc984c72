"""Tests for snapshot stores and snapshot encoding."""

import asyncio
import json
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from shopkeeper.models import (
    ActorRole,
    IceCounters,
    LineItem,
    Product,
    RecordCategory,
    ShopConfig,
    TransactionRecord,
)
from shopkeeper.services.storage import (
    SNAPSHOT_KEYS,
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    ShopSnapshot,
    StorageError,
    load_snapshot,
    save_snapshot,
)
from shopkeeper.services.storage.google_sheets import GoogleSheetsSnapshotStore, split_blob


class FailingStore(InMemorySnapshotStore):
    """Store whose writes fail for some keys."""

    def __init__(self, failing_keys):
        super().__init__()
        self.failing_keys = set(failing_keys)

    async def write_blob(self, key, blob):
        if key in self.failing_keys:
            raise StorageError(f"cannot write {key}")
        return await super().write_blob(key, blob)


def sample_snapshot() -> ShopSnapshot:
    return ShopSnapshot(
        records=[
            TransactionRecord(
                timestamp=datetime(2024, 6, 15, 9, 0),
                category=RecordCategory.ICE,
                items=[LineItem(name="Ice bag", quantity=10, unit_price=40, total_price=400)],
                ice_metrics=IceCounters(delivered=10, returned=2),
                notes="ร้านป้าแดง",
            ),
        ],
        products=[Product(name="Coca-Cola 1.25L", price=25, stock_quantity=12, min_stock_level=5)],
        credit_balance=42,
        config=ShopConfig(shop_id="shop-1", role=ActorRole.STAFF, owner_pin="1234"),
    )


class TestInMemorySnapshotStore:
    """Tests for the in-memory store."""

    def test_read_write_delete(self):
        store = InMemorySnapshotStore()

        async def scenario():
            assert await store.read_blob("ai_credits") is None
            await store.write_blob("ai_credits", "7")
            assert await store.read_blob("ai_credits") == "7"
            assert await store.delete_blob("ai_credits") is True
            assert await store.delete_blob("ai_credits") is False

        asyncio.run(scenario())


class TestJsonFileSnapshotStore:
    """Tests for the one-file-per-key store."""

    def test_read_write_delete(self, tmp_path):
        store = JsonFileSnapshotStore(str(tmp_path / "data"))

        async def scenario():
            assert await store.read_blob("pos_products") is None
            await store.write_blob("pos_products", "[]")
            assert (tmp_path / "data" / "pos_products.json").read_text(encoding="utf-8") == "[]"
            assert await store.read_blob("pos_products") == "[]"
            assert await store.delete_blob("pos_products") is True
            assert await store.delete_blob("pos_products") is False

        asyncio.run(scenario())

    def test_rejects_path_like_keys(self, tmp_path):
        store = JsonFileSnapshotStore(str(tmp_path))
        with pytest.raises(StorageError):
            asyncio.run(store.write_blob("../escape", "{}"))


class TestSnapshotRoundTrip:
    """Tests for load_snapshot / save_snapshot."""

    def test_save_then_load(self):
        store = InMemorySnapshotStore()
        original = sample_snapshot()

        asyncio.run(save_snapshot(store, original))
        loaded = asyncio.run(load_snapshot(store))

        assert store.keys == sorted(SNAPSHOT_KEYS)
        assert loaded.credit_balance == 42
        assert loaded.config.role == ActorRole.STAFF
        assert loaded.config.owner_pin == "1234"
        assert loaded.products[0].name == "Coca-Cola 1.25L"
        assert loaded.products[0].id == original.products[0].id
        record = loaded.records[0]
        assert record.id == original.records[0].id
        assert record.total_cost == Decimal("400.00")
        assert record.ice_metrics == IceCounters(delivered=10, returned=2)
        assert record.notes == "ร้านป้าแดง"
        assert record.timestamp == datetime(2024, 6, 15, 9, 0)

    def test_empty_store_gives_fresh_install(self):
        loaded = asyncio.run(load_snapshot(InMemorySnapshotStore()))
        assert loaded.records == []
        assert loaded.products == []
        assert loaded.credit_balance == 100
        assert loaded.config == ShopConfig()

    def test_malformed_blobs_fall_back_to_defaults(self):
        good = Product(name="Pepsi", price=24).model_dump(mode="json")
        store = InMemorySnapshotStore({
            "inventory_records": "{not json",
            "pos_products": json.dumps([good, {"name": "", "price": -1}, "junk"]),
            "ai_credits": json.dumps({"credits": 5}),
            "sync_config": json.dumps({"role": "MANAGER"}),
        })

        loaded = asyncio.run(load_snapshot(store))

        assert loaded.records == []
        assert [product.name for product in loaded.products] == ["Pepsi"]
        assert loaded.credit_balance == 100
        assert loaded.config == ShopConfig()

    def test_stored_totals_are_recomputed(self):
        record = {
            "category": "BEVERAGE",
            "items": [{"name": "Cola", "quantity": 2, "unit_price": "25", "total_price": "50"}],
            "total_cost": "9999",
        }
        store = InMemorySnapshotStore({"inventory_records": json.dumps([record])})
        loaded = asyncio.run(load_snapshot(store))
        assert loaded.records[0].total_cost == Decimal("50.00")

    def test_save_attempts_every_key(self):
        """One failing blob does not stop the others from being written."""
        store = FailingStore(failing_keys=["inventory_records"])
        with pytest.raises(StorageError) as exc_info:
            asyncio.run(save_snapshot(store, sample_snapshot()))

        assert "inventory_records" in str(exc_info.value)
        assert store.keys == ["ai_credits", "pos_products", "sync_config"]


class TestGoogleSheetsSnapshotStore:
    """Tests for the Sheets store against a mocked worksheet."""

    def make_store(self, rows):
        sheet = MagicMock()
        sheet.get_all_values.return_value = rows
        client = MagicMock()
        client.get_snapshot_sheet.return_value = sheet
        return GoogleSheetsSnapshotStore(client), sheet

    def test_split_blob(self):
        assert split_blob("abcdefg", size=3) == ["abc", "def", "g"]
        assert split_blob("") == [""]

    def test_read_joins_chunks(self):
        store, _ = self.make_store([
            ["key", "updated_at", "blob"],
            ["ai_credits", "2024-06-15T09:00:00", "4", "2"],
        ])
        assert asyncio.run(store.read_blob("ai_credits")) == "42"
        assert asyncio.run(store.read_blob("pos_products")) is None

    def test_write_replaces_row(self):
        store, sheet = self.make_store([
            ["key", "updated_at", "blob"],
            ["pos_products", "2024-06-15T09:00:00", "[]"],
        ])

        assert asyncio.run(store.write_blob("pos_products", "[1]")) is True

        appended = sheet.append_row.call_args[0][0]
        assert appended[0] == "pos_products"
        assert appended[2:] == ["[1]"]
        sheet.delete_rows.assert_called_once_with(2)

    def test_delete_missing_key(self):
        store, sheet = self.make_store([["key", "updated_at", "blob"]])
        assert asyncio.run(store.delete_blob("sync_config")) is False
        sheet.delete_rows.assert_not_called()
