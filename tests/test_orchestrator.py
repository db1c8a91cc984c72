"""End-to-end tests for the shop assistant facade with fake AI collaborators."""

import asyncio
import json
from datetime import datetime
from decimal import Decimal

import pytest

from shopkeeper.config import AppSettings
from shopkeeper.errors import PermissionDeniedError
from shopkeeper.models import (
    ActorRole,
    Product,
    ReceiptReading,
    RecognizedProduct,
    RecordCategory,
    RecordKind,
    ShopConfig,
    ShopEventType,
)
from shopkeeper.orchestrator import ShopAssistant
from shopkeeper.services.ai import (
    ProductRecognitionError,
    ProductRecognizerInterface,
    QuotaExceededError,
    ReceiptReaderInterface,
    UnrecognizedReceiptError,
)
from shopkeeper.services.storage import (
    InMemorySnapshotStore,
    ShopSnapshot,
    StorageError,
    save_snapshot,
)
from shopkeeper.sessions import SessionState


NOW = datetime(2024, 6, 15, 10, 0)


class FakeReceiptReader(ReceiptReaderInterface):
    """Returns a canned reading or raises a canned error."""

    def __init__(self, reading=None, error=None):
        self.reading = reading
        self.error = error
        self.calls = 0

    async def read_receipt(self, image_bytes, mime_type="image/jpeg"):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.reading


class FakeProductRecognizer(ProductRecognizerInterface):
    """Returns a canned label or raises a canned error."""

    def __init__(self, label="", error=None):
        self.label = label
        self.error = error
        self.known_names = None

    async def recognize_product(self, image_bytes, known_names=(), mime_type="image/jpeg"):
        self.known_names = list(known_names)
        if self.error is not None:
            raise self.error
        return RecognizedProduct(name=self.label)


class BrokenStore(InMemorySnapshotStore):
    """Store whose writes always fail."""

    async def write_blob(self, key, blob):
        raise StorageError("disk full")


def app_settings(**overrides) -> AppSettings:
    values = {
        "initial_credits": 100,
        "credits_per_scan": 1,
        "credit_top_up_amount": 50,
        "placeholder_item_name": "Receipt item",
        "max_line_amount": 100000.0,
    }
    values.update(overrides)
    return AppSettings(**values)


def make_assistant(products=(), credits=100, store=None, reader=None, recognizer=None, config=None):
    snapshot = ShopSnapshot(
        products=list(products),
        credit_balance=credits,
        config=config or ShopConfig(),
    )
    return ShopAssistant(
        store=store if store is not None else InMemorySnapshotStore(),
        receipt_reader=reader,
        product_recognizer=recognizer,
        settings=app_settings(),
        snapshot=snapshot,
    )


def event_types(assistant):
    return [event.event_type for event in assistant.events.recent_events(limit=100)]


def cola_reading(quantity=12):
    return ReceiptReading.model_validate({
        "category": "BEVERAGE",
        "items": [{
            "name": "Coca-Cola 1.25L",
            "quantity": quantity,
            "unitPrice": 20,
            "totalPrice": 20 * quantity,
        }],
    })


class TestIntakeFlow:
    """Receipt photo to committed record."""

    def test_scan_review_commit_increments_stock(self):
        cola = Product(name="Coca-Cola 1.25L", price=25, stock_quantity=4)
        store = InMemorySnapshotStore()
        reader = FakeReceiptReader(reading=cola_reading())
        assistant = make_assistant([cola], store=store, reader=reader)

        async def scenario():
            outcome = await assistant.start_intake_session(b"jpeg-bytes")
            assert outcome.recognized
            assert outcome.has_draft
            assert assistant.credit_balance == 99
            return await assistant.commit(outcome.session, now=NOW)

        record = asyncio.run(scenario())

        assert record.kind == RecordKind.INTAKE
        assert record.category == RecordCategory.BEVERAGE
        assert record.total_cost == Decimal("240.00")
        assert assistant.current_ledger() == [record]
        assert assistant.current_catalog()[0].stock_quantity == 16
        assert assistant.last_stock_adjustments[0].delta == 12
        assert json.loads(asyncio.run(store.read_blob("ai_credits"))) == 99
        assert len(json.loads(asyncio.run(store.read_blob("inventory_records")))) == 1

    def test_user_edits_before_commit(self):
        cola = Product(name="Coca-Cola 1.25L", price=25, stock_quantity=0)
        assistant = make_assistant([cola], reader=FakeReceiptReader(reading=cola_reading()))

        async def scenario():
            outcome = await assistant.start_intake_session(b"jpeg-bytes")
            assistant.edit_item(outcome.session, 0, quantity=10)
            return await assistant.commit(outcome.session, now=NOW)

        record = asyncio.run(scenario())
        assert record.items[0].quantity == 10
        assert record.total_cost == Decimal("200.00")
        assert assistant.current_catalog()[0].stock_quantity == 10

    def test_no_image_opens_blank_draft(self):
        reader = FakeReceiptReader(reading=cola_reading())
        assistant = make_assistant(reader=reader)

        outcome = asyncio.run(assistant.start_intake_session())

        assert outcome.has_draft
        assert not outcome.recognized
        assert reader.calls == 0
        assert assistant.credit_balance == 100
        assert outcome.session.state == SessionState.DRAFT_PENDING

    def test_unreadable_receipt_falls_back_to_manual_entry(self):
        reader = FakeReceiptReader(error=UnrecognizedReceiptError("no JSON in response"))
        assistant = make_assistant(reader=reader)

        outcome = asyncio.run(assistant.start_intake_session(b"blurry"))

        assert outcome.has_draft
        assert not outcome.recognized
        assert outcome.error_message == "no JSON in response"
        assert [item.name for item in outcome.session.items] == [""]
        assert assistant.credit_balance == 100
        assert ShopEventType.RECEIPT_UNRECOGNIZED in event_types(assistant)

    def test_quota_error_opens_no_session(self):
        reader = FakeReceiptReader(error=QuotaExceededError("429 quota"))
        assistant = make_assistant(reader=reader)

        outcome = asyncio.run(assistant.start_intake_session(b"jpeg-bytes"))

        assert outcome.quota_exceeded
        assert not outcome.has_draft
        assert assistant.credit_balance == 100
        assert assistant.current_ledger() == []
        assert ShopEventType.AI_QUOTA_EXCEEDED in event_types(assistant)

    def test_zero_credits_skips_the_reader(self):
        reader = FakeReceiptReader(reading=cola_reading())
        assistant = make_assistant(credits=0, reader=reader)

        outcome = asyncio.run(assistant.start_intake_session(b"jpeg-bytes"))

        assert outcome.quota_exceeded
        assert reader.calls == 0

    def test_overlong_item_name_still_opens_draft(self):
        """A 250-character name from the reader is cut to fit a line item."""
        reading = ReceiptReading.model_validate({
            "category": "OTHERS",
            "items": [{"name": "X" * 250, "quantity": 1, "unitPrice": 10, "totalPrice": 10}],
        })
        assistant = make_assistant(reader=FakeReceiptReader(reading=reading))

        outcome = asyncio.run(assistant.start_intake_session(b"jpeg-bytes"))

        assert outcome.has_draft
        assert outcome.recognized
        assert outcome.session.items[0].name == "X" * 200
        assert assistant.credit_balance == 99

    def test_discard_changes_nothing(self):
        cola = Product(name="Coca-Cola 1.25L", price=25, stock_quantity=4)
        store = InMemorySnapshotStore()
        assistant = make_assistant([cola], store=store)

        async def scenario():
            outcome = await assistant.start_intake_session()
            outcome.session.add_item("Coca-Cola 1.25L", 12, 20)
            assistant.discard(outcome.session)

        asyncio.run(scenario())

        assert assistant.current_ledger() == []
        assert assistant.current_catalog()[0].stock_quantity == 4
        assert store.keys == []
        assert ShopEventType.SESSION_DISCARDED in event_types(assistant)

    def test_review_flags_duplicate_receipt(self):
        cola = Product(name="Coca-Cola 1.25L", price=25)
        assistant = make_assistant([cola], reader=FakeReceiptReader(reading=cola_reading()))

        async def scenario():
            first = await assistant.start_intake_session(b"jpeg-bytes")
            await assistant.commit(first.session, now=NOW)
            return await assistant.start_intake_session(b"jpeg-bytes")

        second = asyncio.run(scenario())
        assert "potential_duplicate" in {issue.issue_type for issue in second.review.issues}


class TestSaleFlow:
    """Cart to committed sale."""

    def test_sale_decrements_stock_and_warns_low(self):
        product = Product(name="P", price=10, stock_quantity=10, min_stock_level=5)
        assistant = make_assistant([product])

        async def scenario():
            session = assistant.start_sale_session()
            session.add_product(assistant.current_catalog()[0], 7)
            return await assistant.commit(session, now=NOW, cash_received=100)

        record = asyncio.run(scenario())

        assert record.kind == RecordKind.SALE
        assert record.total_cost == Decimal("70.00")
        assert assistant.current_catalog()[0].stock_quantity == 3
        assert assistant.low_stock_products()[0].id == product.id
        assert ShopEventType.LOW_STOCK in event_types(assistant)

    def test_summary_after_sale(self):
        """A sale an hour ago counts in every sale window and no investment window."""
        product = Product(name="Ice bag", price=150, stock_quantity=5)
        assistant = make_assistant([product], credits=42)

        async def scenario():
            session = assistant.start_sale_session()
            session.add_product(product)
            await assistant.commit(session, now=datetime(2024, 6, 15, 9, 0))

        asyncio.run(scenario())
        stats = assistant.summarize(now=datetime(2024, 6, 15, 10, 0))

        assert stats.daily == Decimal("150.00")
        assert stats.weekly >= Decimal("150.00")
        assert stats.yearly >= Decimal("150.00")
        assert stats.daily_investment == Decimal("0.00")
        assert stats.total_sales == Decimal("150.00")
        assert stats.ai_credits == 42

    def test_scan_matches_catalog(self):
        cola = Product(name="Coca-Cola 1.25L", price=25)
        recognizer = FakeProductRecognizer(label="coca cola 1.25l")
        assistant = make_assistant([cola], recognizer=recognizer)

        outcome = asyncio.run(assistant.scan_product(b"photo"))

        assert outcome.product.id == cola.id
        assert recognizer.known_names == ["Coca-Cola 1.25L"]
        assert assistant.credit_balance == 99

    def test_scan_unregistered_label(self):
        assistant = make_assistant(
            [Product(name="Coca-Cola 1.25L", price=25)],
            recognizer=FakeProductRecognizer(label="xyz-unknown-item"),
        )

        outcome = asyncio.run(assistant.scan_product(b"photo"))

        assert outcome.product is None
        assert outcome.unregistered_label == "xyz-unknown-item"
        assert ShopEventType.PRODUCT_UNREGISTERED in event_types(assistant)

    def test_scan_with_overlong_label(self):
        """A rambling label still yields an outcome instead of an exception."""
        cola = Product(name="Coca-Cola 1.25L", price=25)
        recognizer = FakeProductRecognizer(label="coca cola 1.25l " + "z" * 480)
        assistant = make_assistant([cola], recognizer=recognizer)

        outcome = asyncio.run(assistant.scan_product(b"photo"))

        assert outcome.product.id == cola.id
        assert len(outcome.label) == 200
        assert assistant.credit_balance == 99
        assert ShopEventType.PRODUCT_RECOGNIZED in event_types(assistant)

    def test_scan_failure(self):
        assistant = make_assistant(recognizer=FakeProductRecognizer(error=ProductRecognitionError("nothing there")))

        outcome = asyncio.run(assistant.scan_product(b"photo"))

        assert outcome.failed
        assert assistant.credit_balance == 100


class TestOwnerOperations:
    """Role checks and owner-only edits."""

    def test_staff_cannot_delete_record(self):
        assistant = make_assistant(config=ShopConfig(role=ActorRole.STAFF))

        async def scenario():
            outcome = await assistant.start_intake_session()
            outcome.session.add_item("Ice", 1, 40)
            record = await assistant.commit(outcome.session, now=NOW)
            with pytest.raises(PermissionDeniedError):
                await assistant.delete_record(record.id)
            return record

        record = asyncio.run(scenario())
        assert assistant.current_ledger() == [record]
        assert ShopEventType.PERMISSION_DENIED in event_types(assistant)

    def test_owner_delete_keeps_stock(self):
        """Deleting a record does not reverse its stock change."""
        cola = Product(name="Coca-Cola 1.25L", price=25, stock_quantity=4)
        assistant = make_assistant([cola], reader=FakeReceiptReader(reading=cola_reading()))

        async def scenario():
            outcome = await assistant.start_intake_session(b"jpeg-bytes")
            record = await assistant.commit(outcome.session, now=NOW)
            return await assistant.delete_record(record.id)

        assert asyncio.run(scenario()) is True
        assert assistant.current_ledger() == []
        assert assistant.current_catalog()[0].stock_quantity == 16

    def test_staff_cannot_edit_catalog(self):
        assistant = make_assistant(config=ShopConfig(role=ActorRole.STAFF))
        with pytest.raises(PermissionDeniedError):
            asyncio.run(assistant.add_product("Ice", 20))
        assert assistant.current_catalog() == []

    def test_switch_back_to_owner_needs_pin(self):
        assistant = make_assistant(config=ShopConfig(owner_pin="1234"))

        asyncio.run(assistant.set_role(ActorRole.STAFF))
        assert assistant.role == ActorRole.STAFF

        with pytest.raises(PermissionDeniedError):
            asyncio.run(assistant.set_role(ActorRole.OWNER, pin="0000"))
        assert assistant.role == ActorRole.STAFF

        asyncio.run(assistant.set_role(ActorRole.OWNER, pin="1234"))
        assert assistant.role == ActorRole.OWNER

    def test_settings_are_owner_only(self):
        assistant = make_assistant(config=ShopConfig(role=ActorRole.STAFF))
        with pytest.raises(PermissionDeniedError):
            asyncio.run(assistant.update_config(sync_enabled=True))
        assert assistant.config.sync_enabled is False

    def test_sync_flag_marks_records(self):
        assistant = make_assistant()

        async def scenario():
            await assistant.update_config(sync_enabled=True)
            outcome = await assistant.start_intake_session()
            outcome.session.add_item("Ice", 1, 40)
            return await assistant.commit(outcome.session, now=NOW)

        record = asyncio.run(scenario())
        assert record.is_synced is True
        assert assistant.config.last_sync is not None

    def test_top_up(self):
        assistant = make_assistant(credits=3)
        assert asyncio.run(assistant.top_up_credits()) == 53
        with pytest.raises(ValueError):
            asyncio.run(assistant.top_up_credits(0))
        assert assistant.credit_balance == 53


class TestPersistence:
    """Snapshot mirroring."""

    def test_failed_write_keeps_the_commit(self):
        assistant = make_assistant(store=BrokenStore())

        async def scenario():
            outcome = await assistant.start_intake_session()
            outcome.session.add_item("Ice", 1, 40)
            return await assistant.commit(outcome.session, now=NOW)

        record = asyncio.run(scenario())

        assert assistant.current_ledger() == [record]
        assert ShopEventType.PERSISTENCE_FAILED in event_types(assistant)

    def test_load_restores_state(self):
        store = InMemorySnapshotStore()
        saved = ShopSnapshot(
            products=[Product(name="Pepsi 1.45L", price=24, stock_quantity=6)],
            credit_balance=7,
            config=ShopConfig(shop_id="corner-shop", role=ActorRole.STAFF),
        )
        asyncio.run(save_snapshot(store, saved))

        assistant = ShopAssistant(store=store, settings=app_settings())
        asyncio.run(assistant.load())

        assert assistant.credit_balance == 7
        assert assistant.role == ActorRole.STAFF
        assert assistant.config.shop_id == "corner-shop"
        assert [product.name for product in assistant.current_catalog()] == ["Pepsi 1.45L"]
        assert ShopEventType.SNAPSHOT_LOADED in event_types(assistant)

    def test_fresh_assistant_uses_initial_credits(self):
        assistant = ShopAssistant(store=InMemorySnapshotStore(), settings=app_settings(initial_credits=25))
        assert assistant.credit_balance == 25
