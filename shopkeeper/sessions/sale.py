"""
Sale Session

An open cart at the till. Products go in by identity (tapped on the
quick-select grid or recognized by the camera), so reconciliation never
has to guess which product was sold.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from shopkeeper.errors import DraftValidationError, InsufficientPaymentError, ProductNotFoundError
from shopkeeper.ledger.reconciler import CartLine
from shopkeeper.models.catalog import Product, to_money
from shopkeeper.models.records import (
    LineItem,
    RecordCategory,
    RecordKind,
    TransactionRecord,
)
from shopkeeper.sessions.state import Session, SessionState


class SaleSession(Session):
    """
    Cart -> checkout for one customer.

    The first product added opens the draft (EMPTY -> DRAFT_PENDING).
    Removing the last line keeps the session pending; an empty cart just
    cannot be committed.
    """

    kind = "sale"

    def __init__(self):
        super().__init__()
        # product id -> (product as added, quantity); dicts keep insertion order
        self._lines: dict[UUID, tuple[Product, int]] = {}

    @property
    def cart_lines(self) -> list[CartLine]:
        return [
            CartLine(product_id=product_id, quantity=quantity)
            for product_id, (_, quantity) in self._lines.items()
        ]

    @property
    def line_items(self) -> list[LineItem]:
        """Cart as record lines, priced at the product's sell price."""
        return [
            LineItem(
                name=product.name,
                quantity=quantity,
                unit_price=product.price,
                total_price=product.price * quantity,
            )
            for product, quantity in self._lines.values()
        ]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total(self) -> Decimal:
        return sum(
            (to_money(product.price * quantity) for product, quantity in self._lines.values()),
            Decimal("0.00"),
        )

    def quantity_of(self, product_id: UUID) -> int:
        line = self._lines.get(product_id)
        return 0 if line is None else line[1]

    def change_due(self, cash_received) -> Decimal:
        """Cash minus total. Negative means the customer has not paid enough."""
        return to_money(cash_received) - self.total

    def add_product(self, product: Product, quantity: int = 1) -> int:
        """Add units of a product, merging with an existing line. Returns the line quantity."""
        self._require("add a product to", SessionState.EMPTY, SessionState.DRAFT_PENDING)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise DraftValidationError("quantity", "must be a whole number of at least 1")

        current = self.quantity_of(product.id)
        self._lines[product.id] = (product, current + quantity)
        self._state = SessionState.DRAFT_PENDING
        return current + quantity

    def set_quantity(self, product_id: UUID, quantity: int) -> None:
        """Set a line's quantity; zero removes the line."""
        self._require_pending("change quantities in")
        if product_id not in self._lines:
            raise ProductNotFoundError(product_id, f"Product not in cart: {product_id}")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise DraftValidationError("quantity", "must not be negative")
        if quantity == 0:
            del self._lines[product_id]
            return
        product, _ = self._lines[product_id]
        self._lines[product_id] = (product, quantity)

    def remove_line(self, product_id: UUID) -> bool:
        self._require_pending("remove a line from")
        return self._lines.pop(product_id, None) is not None

    def commit(
        self,
        now: datetime,
        sync_enabled: bool = False,
        cash_received=None,
        device_id: Optional[str] = None,
    ) -> TransactionRecord:
        """
        Build the SALE record. DRAFT_PENDING -> COMMITTED.

        cash_received is optional (card or exact money). When given it must
        cover the total.
        """
        self._require_pending("commit")
        if self.is_empty:
            raise DraftValidationError("items", "cannot check out an empty cart")
        if cash_received is not None and self.change_due(cash_received) < 0:
            raise InsufficientPaymentError(float(self.total), float(to_money(cash_received)))

        record = TransactionRecord(
            timestamp=now,
            kind=RecordKind.SALE,
            category=RecordCategory.SALE,
            items=tuple(self.line_items),
            is_synced=sync_enabled,
            device_id=device_id or None,
        )
        self._state = SessionState.COMMITTED
        return record
