"""
Shop Assistant Orchestrator

This module ties together all the components and defines the end-to-end
flows for:
1. Intake (receipt photo -> AI reading -> draft -> review -> commit -> stock up)
2. Sale (scan or tap products -> cart -> checkout -> stock down)
3. Dashboard (ledger -> summary figures)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger without an explicit session commit
- AI failures degrade to manual entry, never to an error screen
- Owner-only actions are checked before anything changes
- Persistence is best-effort: the in-memory state is the truth, the
  store is a mirror that may lag behind after a failed write

This is the complete surface a presentation layer talks to.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict

from shopkeeper.catalog import FuzzyLabelMatcher, ProductCatalog, build_intake_matcher
from shopkeeper.config import get_settings
from shopkeeper.config.settings import AppSettings, StorageBackend
from shopkeeper.errors import PermissionDeniedError
from shopkeeper.events import EventLogger, create_correlation_id
from shopkeeper.ledger import StockAdjustment, StockReconciler, TransactionLedger
from shopkeeper.ledger import aggregator
from shopkeeper.models import (
    ActorRole,
    AiPersona,
    Product,
    ReceiptReading,
    ShopConfig,
    ShopEventBuilder,
    SummaryStatistics,
    TransactionRecord,
    ValidationResult,
)
from shopkeeper.permissions import MANAGE_SETTINGS, SWITCH_TO_OWNER, require_owner
from shopkeeper.services.ai import (
    AIServiceError,
    ProductRecognizerInterface,
    QuotaExceededError,
    ReceiptReaderInterface,
)
from shopkeeper.services.storage import (
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    ShopSnapshot,
    SnapshotStoreInterface,
    StorageError,
    load_snapshot,
    save_snapshot,
)
from shopkeeper.sessions import IntakeSession, SaleSession
from shopkeeper.validation import DraftValidator


logger = structlog.get_logger(__name__)


# =============================================================================
# FLOW OUTCOMES
# =============================================================================

class ReceiptScanOutcome(BaseModel):
    """
    Result of starting an intake session.

    quota_exceeded: no draft was opened; the user must top up or wait
    recognized: False when the draft is a blank manual-entry form
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session: Optional[IntakeSession] = None
    reading: Optional[ReceiptReading] = None
    recognized: bool = False
    quota_exceeded: bool = False
    error_message: Optional[str] = None
    review: Optional[ValidationResult] = None

    @property
    def has_draft(self) -> bool:
        return self.session is not None


class ProductScanOutcome(BaseModel):
    """
    Result of scanning a product at the till.

    Exactly one of: product matched, unregistered_label set (recognized
    but not in the catalog), failed, quota_exceeded.
    """

    product: Optional[Product] = None
    label: Optional[str] = None
    unregistered_label: Optional[str] = None
    failed: bool = False
    quota_exceeded: bool = False
    error_message: Optional[str] = None


class ShopAssistant:
    """
    Application facade.

    Owns one catalog and one ledger. Sessions belong to the caller that
    opened them; the assistant only sees them again at commit or discard.
    """

    def __init__(
        self,
        store: Optional[SnapshotStoreInterface] = None,
        receipt_reader: Optional[ReceiptReaderInterface] = None,
        product_recognizer: Optional[ProductRecognizerInterface] = None,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[AppSettings] = None,
        snapshot: Optional[ShopSnapshot] = None,
    ):
        self._store = store
        self._receipt_reader = receipt_reader
        self._product_recognizer = product_recognizer
        self._events = event_logger or EventLogger()
        self._settings = settings or get_settings().app

        self._reconciler = StockReconciler(
            build_intake_matcher(self._settings.intake_match_policy)
        )
        self._label_matcher = FuzzyLabelMatcher()
        self.last_stock_adjustments: list[StockAdjustment] = []

        self._apply_snapshot(snapshot or ShopSnapshot(
            credit_balance=self._settings.initial_credits,
        ))

    def _apply_snapshot(self, snapshot: ShopSnapshot) -> None:
        self._catalog = ProductCatalog(snapshot.products)
        self._ledger = TransactionLedger(snapshot.records)
        self._credits = snapshot.credit_balance
        self._config = snapshot.config

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def load(self) -> ShopSnapshot:
        """Replace in-memory state with what the store holds."""
        if self._store is None:
            return self.snapshot()

        snapshot = await load_snapshot(self._store)
        self._apply_snapshot(snapshot)
        self._events.log(ShopEventBuilder.snapshot_loaded(
            record_count=len(snapshot.records),
            product_count=len(snapshot.products),
        ))
        return snapshot

    def snapshot(self) -> ShopSnapshot:
        return ShopSnapshot(
            records=list(self._ledger),
            products=self._catalog.products(),
            credit_balance=self._credits,
            config=self._config,
        )

    async def persist(self, correlation_id: Optional[UUID] = None) -> bool:
        """
        Mirror the current state to the store.

        Returns False (and logs) on failure; the in-memory change stands.
        """
        if self._store is None:
            return False
        try:
            await save_snapshot(self._store, self.snapshot())
            return True
        except StorageError as e:
            self._events.log(ShopEventBuilder.persistence_failed(
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            return False

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def config(self) -> ShopConfig:
        return self._config

    @property
    def role(self) -> ActorRole:
        return self._config.role

    @property
    def credit_balance(self) -> int:
        return self._credits

    @property
    def events(self) -> EventLogger:
        return self._events

    def current_catalog(self) -> list[Product]:
        return self._catalog.products()

    def quick_select_products(self) -> list[Product]:
        return self._catalog.quick_select_products()

    def current_ledger(self, newest_first: bool = True) -> list[TransactionRecord]:
        return self._ledger.list(newest_first=newest_first)

    def summarize(self, now: Optional[datetime] = None) -> SummaryStatistics:
        """Dashboard figures for now (defaults to the current local time)."""
        return aggregator.summarize(
            self._ledger,
            now or datetime.now(),
            week_start=self._settings.week_start,
            credit_balance=self._credits,
        )

    def ice_balance(self) -> int:
        return self._ledger.ice_balance()

    def low_stock_products(self) -> list[Product]:
        return aggregator.low_stock_products(self._catalog)

    # =========================================================================
    # INTAKE FLOW
    # =========================================================================

    def _consume_credits(self) -> None:
        self._credits = max(0, self._credits - self._settings.credits_per_scan)

    def _has_credits(self) -> bool:
        return self._credits >= self._settings.credits_per_scan

    async def start_intake_session(
        self,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
        image_url: Optional[str] = None,
    ) -> ReceiptScanOutcome:
        """
        Open an intake session, seeded from a receipt photo if given.

        Without a photo (or without a configured reader) the session opens
        as a blank manual-entry draft. An unreadable receipt or an AI
        failure also falls back to the blank draft. Running out of quota
        opens no session at all.
        """
        correlation_id = create_correlation_id()
        session = IntakeSession(placeholder_item_name=self._settings.placeholder_item_name)
        session.correlation_id = correlation_id

        if image_bytes is None or self._receipt_reader is None:
            session.seed_blank()
            self._log_session_started(session)
            return ReceiptScanOutcome(session=session, review=self.review(session))

        if not self._has_credits():
            self._events.log(ShopEventBuilder.quota_exceeded(
                service="receipt_reader",
                credits=self._credits,
                correlation_id=correlation_id,
            ))
            return ReceiptScanOutcome(
                quota_exceeded=True,
                error_message="No AI credits left. Top up to keep scanning.",
            )

        try:
            reading = await self._receipt_reader.read_receipt(image_bytes, mime_type)
        except QuotaExceededError as e:
            self._events.log(ShopEventBuilder.quota_exceeded(
                service="receipt_reader",
                credits=self._credits,
                correlation_id=correlation_id,
            ))
            return ReceiptScanOutcome(quota_exceeded=True, error_message=str(e))
        except AIServiceError as e:
            self._events.log(ShopEventBuilder.receipt_unrecognized(
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            session.seed_blank()
            self._log_session_started(session)
            return ReceiptScanOutcome(
                session=session,
                error_message=str(e),
                review=self.review(session),
            )

        session.seed_from_reading(reading, image_url=image_url)
        self._consume_credits()
        self._events.log(ShopEventBuilder.receipt_read(
            category=reading.category.value,
            item_count=len(reading.items),
            correlation_id=correlation_id,
        ))
        self._log_session_started(session)
        await self.persist(correlation_id)

        return ReceiptScanOutcome(
            session=session,
            reading=reading,
            recognized=True,
            review=self.review(session),
        )

    def review(self, session: IntakeSession) -> ValidationResult:
        """Review checks for an intake draft, including duplicate detection."""
        validator = DraftValidator(
            max_line_amount=self._settings.max_line_amount,
            recent_records=self._ledger,
        )
        return validator.validate(session.draft)

    def edit_item(
        self,
        session: IntakeSession,
        index: int,
        name: Optional[str] = None,
        quantity: Optional[int] = None,
        unit_price=None,
        total_price=None,
    ):
        """Edit one draft line. Rejections leave the draft as it was."""
        return session.edit_item(
            index,
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
        )

    # =========================================================================
    # SALE FLOW
    # =========================================================================

    def start_sale_session(self) -> SaleSession:
        session = SaleSession()
        self._log_session_started(session)
        return session

    async def scan_product(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> ProductScanOutcome:
        """
        Recognize a product photo and match it against the catalog.

        The caller adds the matched product to its sale session.
        """
        correlation_id = create_correlation_id()

        if self._product_recognizer is None:
            return ProductScanOutcome(failed=True, error_message="Product recognition is not configured")

        if not self._has_credits():
            self._events.log(ShopEventBuilder.quota_exceeded(
                service="product_recognizer",
                credits=self._credits,
                correlation_id=correlation_id,
            ))
            return ProductScanOutcome(
                quota_exceeded=True,
                error_message="No AI credits left. Top up to keep scanning.",
            )

        try:
            recognized = await self._product_recognizer.recognize_product(
                image_bytes,
                known_names=self._catalog.names(),
                mime_type=mime_type,
            )
        except QuotaExceededError as e:
            self._events.log(ShopEventBuilder.quota_exceeded(
                service="product_recognizer",
                credits=self._credits,
                correlation_id=correlation_id,
            ))
            return ProductScanOutcome(quota_exceeded=True, error_message=str(e))
        except AIServiceError as e:
            self._events.log(ShopEventBuilder.ai_service_error(
                service="product_recognizer",
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            return ProductScanOutcome(failed=True, error_message=str(e))

        self._consume_credits()
        await self.persist(correlation_id)

        product = self._label_matcher.match(recognized.name, self._catalog)
        if product is None:
            self._events.log(ShopEventBuilder.product_unregistered(
                label=recognized.name,
                correlation_id=correlation_id,
            ))
            return ProductScanOutcome(
                label=recognized.name,
                unregistered_label=recognized.name,
            )

        self._events.log(ShopEventBuilder.product_recognized(
            label=recognized.name,
            product_id=product.id,
            product_name=product.name,
            correlation_id=correlation_id,
        ))
        return ProductScanOutcome(product=product, label=recognized.name)

    # =========================================================================
    # COMMIT / DISCARD
    # =========================================================================

    async def commit(
        self,
        session: Union[IntakeSession, SaleSession],
        now: Optional[datetime] = None,
        cash_received=None,
    ) -> TransactionRecord:
        """
        Commit a session: one ledger record, then stock reconciliation,
        then a snapshot write.

        Raises whatever the session raises (SessionStateError,
        DraftValidationError, InsufficientPaymentError); in that case
        nothing has changed.
        """
        now = now or datetime.now()
        device_id = self._settings.device_id or None
        correlation_id = session.correlation_id

        if isinstance(session, SaleSession):
            record = session.commit(
                now,
                sync_enabled=self._config.sync_enabled,
                cash_received=cash_received,
                device_id=device_id,
            )
            self._ledger.append(record)
            adjustments = self._reconciler.apply_sale(self._catalog, session.cart_lines)
        else:
            record = session.commit(
                now,
                sync_enabled=self._config.sync_enabled,
                device_id=device_id,
            )
            self._ledger.append(record)
            adjustments = self._reconciler.apply_intake(self._catalog, record.items)

        self._events.log(ShopEventBuilder.record_committed(
            record_id=record.id,
            kind=record.kind.value,
            category=record.category.value,
            total=record.total_cost,
            item_count=len(record.items),
            correlation_id=correlation_id,
        ))
        self._log_adjustments(adjustments, correlation_id)
        self.last_stock_adjustments = adjustments

        await self.persist(correlation_id)
        return record

    def discard(self, session: Union[IntakeSession, SaleSession]) -> None:
        """Abandon a session. Nothing is written anywhere."""
        session.discard()
        self._events.log(ShopEventBuilder.session_discarded(
            session_id=session.id,
            session_kind=session.kind,
            correlation_id=session.correlation_id,
        ))

    # =========================================================================
    # OWNER OPERATIONS
    # =========================================================================

    def _guarded(self, operation, *args, **kwargs):
        """Run an owner-only operation, logging a denial before re-raising."""
        try:
            return operation(*args, **kwargs)
        except PermissionDeniedError as e:
            self._events.log(ShopEventBuilder.permission_denied(
                action=e.action,
                role=e.role,
            ))
            raise

    async def delete_record(self, record_id: UUID) -> bool:
        """
        Delete a ledger record (owner only).

        Stock is not reversed; the owner corrects counts by stock-take.
        """
        removed = self._guarded(self._ledger.remove, record_id, self.role)
        if removed:
            self._events.log(ShopEventBuilder.record_deleted(
                record_id=record_id,
                role=self.role.value,
            ))
            await self.persist()
        return removed

    async def add_product(
        self,
        name: str,
        price,
        cost_price=Decimal("0.00"),
        stock_quantity: int = 0,
        min_stock_level: int = 0,
        is_quick_select: bool = False,
        barcode: str = "",
        image_url: Optional[str] = None,
    ) -> Product:
        """Add a catalog product (owner only)."""
        product = Product(
            name=name,
            price=price,
            cost_price=cost_price,
            stock_quantity=stock_quantity,
            min_stock_level=min_stock_level,
            is_quick_select=is_quick_select,
            barcode=barcode,
            image_url=image_url,
        )
        self._guarded(self._catalog.add, product, self.role)
        self._events.log(ShopEventBuilder.product_added(
            product_id=product.id,
            name=product.name,
        ))
        await self.persist()
        return product

    async def update_product(self, product_id: UUID, **changes) -> Product:
        """Edit name, prices, minimum level, quick-select or barcode (owner only)."""
        product = self._guarded(self._catalog.update, product_id, self.role, **changes)
        await self.persist()
        return product

    async def count_stock(self, product_id: UUID, quantity: int) -> Product:
        """Overwrite a stock level after a physical count (owner only)."""
        product = self._guarded(self._catalog.count_stock, product_id, quantity, self.role)
        await self.persist()
        return product

    async def delete_product(self, product_id: UUID) -> bool:
        """Remove a catalog product (owner only). Past records keep its name."""
        removed = self._guarded(self._catalog.remove, product_id, self.role)
        if removed:
            self._events.log(ShopEventBuilder.product_deleted(product_id=product_id))
            await self.persist()
        return removed

    async def set_role(self, role: ActorRole, pin: Optional[str] = None) -> ActorRole:
        """
        Switch who is operating the device.

        Dropping to STAFF is always allowed. Returning to OWNER needs the
        owner PIN when one is set.
        """
        role = ActorRole(role)
        old_role = self._config.role

        if (
            role == ActorRole.OWNER
            and old_role != ActorRole.OWNER
            and self._config.owner_pin
            and pin != self._config.owner_pin
        ):
            self._events.log(ShopEventBuilder.permission_denied(
                action=SWITCH_TO_OWNER,
                role=old_role.value,
            ))
            raise PermissionDeniedError(SWITCH_TO_OWNER, old_role.value)

        self._config = self._config.model_copy(update={"role": role})
        if role != old_role:
            self._events.log(ShopEventBuilder.role_changed(
                old_role=old_role.value,
                new_role=role.value,
            ))
            await self.persist()
        return role

    async def update_config(
        self,
        shop_id: Optional[str] = None,
        sync_enabled: Optional[bool] = None,
        owner_pin: Optional[str] = None,
        ai_persona: Optional[AiPersona] = None,
    ) -> ShopConfig:
        """Change shop settings (owner only). The result is fully revalidated."""
        self._guarded(require_owner, self.role, MANAGE_SETTINGS)

        changes = {
            "shop_id": shop_id,
            "sync_enabled": sync_enabled,
            "owner_pin": owner_pin,
            "ai_persona": ai_persona,
        }
        data = self._config.model_dump()
        data.update({key: value for key, value in changes.items() if value is not None})
        if sync_enabled:
            data["last_sync"] = datetime.now()
        self._config = ShopConfig.model_validate(data)

        await self.persist()
        return self._config

    async def top_up_credits(self, amount: Optional[int] = None) -> int:
        """Add AI scan credits. Returns the new balance."""
        amount = self._settings.credit_top_up_amount if amount is None else amount
        if amount <= 0:
            raise ValueError("Top-up amount must be positive")
        self._credits += amount
        self._events.log(ShopEventBuilder.credits_topped_up(
            amount=amount,
            balance=self._credits,
        ))
        await self.persist()
        return self._credits

    # =========================================================================
    # LOGGING HELPERS
    # =========================================================================

    def _log_session_started(self, session) -> None:
        self._events.log(ShopEventBuilder.session_started(
            session_id=session.id,
            session_kind=session.kind,
            correlation_id=session.correlation_id,
        ))

    def _log_adjustments(
        self,
        adjustments: list[StockAdjustment],
        correlation_id: Optional[UUID],
    ) -> None:
        for adjustment in adjustments:
            self._events.log(ShopEventBuilder.stock_adjusted(
                product_id=adjustment.product_id,
                name=adjustment.product_name,
                before=adjustment.before,
                after=adjustment.after,
                source=adjustment.source,
                correlation_id=correlation_id,
            ))
            product = self._catalog.get(adjustment.product_id)
            if product is not None and product.is_low_stock:
                self._events.log(ShopEventBuilder.low_stock(
                    product_id=product.id,
                    name=product.name,
                    stock=product.stock_quantity,
                    minimum=product.min_stock_level,
                    correlation_id=correlation_id,
                ))


# =============================================================================
# FACTORY
# =============================================================================

def create_snapshot_store() -> SnapshotStoreInterface:
    """Snapshot store selected by StorageSettings.backend."""
    settings = get_settings()
    storage = settings.storage

    if storage.backend == StorageBackend.MEMORY:
        return InMemorySnapshotStore()
    if storage.backend == StorageBackend.GOOGLE_SHEETS:
        from shopkeeper.services.storage.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsSnapshotStore,
        )
        return GoogleSheetsSnapshotStore(GoogleSheetsClient(settings.google_sheets))
    return JsonFileSnapshotStore(storage.data_dir)


def create_app_components(use_ai: bool = True) -> ShopAssistant:
    """
    Factory function to create a fully wired assistant.

    Args:
        use_ai: Whether to set up the Gemini collaborators.
                Without them every intake starts as manual entry.

    Call `await assistant.load()` before use.
    """
    receipt_reader = None
    product_recognizer = None

    if use_ai:
        try:
            from shopkeeper.services.ai.gemini_service import (
                GeminiClient,
                GeminiProductRecognizer,
                GeminiReceiptReader,
            )
            client = GeminiClient()
            receipt_reader = GeminiReceiptReader(client)
            product_recognizer = GeminiProductRecognizer(client)
        except Exception as e:
            # AI not configured - continue with manual entry only
            logger.warning("ai_not_configured", error=str(e))

    return ShopAssistant(
        store=create_snapshot_store(),
        receipt_reader=receipt_reader,
        product_recognizer=product_recognizer,
    )
