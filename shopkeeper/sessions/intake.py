"""
Intake Session

A typed draft for one received delivery. The AI reading (or a blank form)
seeds the draft, the shopkeeper corrects it, and commit turns it into a
single INTAKE record.

CRITICAL: Nothing in the draft is trusted at commit time. Blank lines are
dropped and the record total is recomputed from the remaining lines.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from shopkeeper.errors import DraftValidationError
from shopkeeper.models.catalog import NAME_MAX_LENGTH, to_money
from shopkeeper.models.drafts import ReceiptReading
from shopkeeper.models.records import (
    INTAKE_CATEGORIES,
    IceCounters,
    LineItem,
    RecordCategory,
    RecordKind,
    TransactionRecord,
)
from shopkeeper.sessions.state import Session, SessionState


DEFAULT_PLACEHOLDER_NAME = "Receipt item"


class IntakeDraft(BaseModel):
    """Editable contents of an intake session."""

    category: RecordCategory = RecordCategory.OTHERS
    items: list[LineItem] = Field(default_factory=list)
    ice_metrics: IceCounters = Field(default_factory=IceCounters)
    notes: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def total(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0.00"))


def _check_amount(field: str, value) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError:
        raise DraftValidationError(field, f"not a number: {value!r}")
    if amount < 0:
        raise DraftValidationError(field, "must not be negative")
    return amount


def _check_count(field: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DraftValidationError(field, f"must be a whole number, got {value!r}")
    if value < 0:
        raise DraftValidationError(field, "must not be negative")
    return value


def _check_name(value) -> str:
    if not isinstance(value, str):
        raise DraftValidationError("name", f"must be text, got {value!r}")
    name = value.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise DraftValidationError("name", f"must be at most {NAME_MAX_LENGTH} characters")
    return name


def _check_category(category) -> RecordCategory:
    try:
        category = RecordCategory(category)
    except ValueError:
        raise DraftValidationError("category", f"unknown category {category!r}")
    if category not in INTAKE_CATEGORIES:
        raise DraftValidationError("category", "SALE is reserved for sale records")
    return category


class IntakeSession(Session):
    """
    Draft -> review -> commit for a receipt or delivery slip.

    Edits are accepted only while the session is DRAFT_PENDING.
    """

    kind = "intake"

    def __init__(self, placeholder_item_name: str = DEFAULT_PLACEHOLDER_NAME):
        super().__init__()
        self._placeholder_item_name = placeholder_item_name
        self._draft = IntakeDraft()

    # -------------------------------------------------------------------------
    # Seeding (EMPTY -> DRAFT_PENDING)
    # -------------------------------------------------------------------------

    def seed(self, draft: IntakeDraft) -> None:
        self._require("seed", SessionState.EMPTY)
        _check_category(draft.category)
        self._draft = draft.model_copy(deep=True)
        self._state = SessionState.DRAFT_PENDING

    def seed_from_reading(
        self,
        reading: ReceiptReading,
        image_url: Optional[str] = None,
    ) -> None:
        """
        Seed from an AI reading.

        A reading with no items still gets one placeholder line so the
        user has something to correct.
        """
        items = [
            LineItem(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for item in reading.items
        ]
        if not items:
            items = [LineItem(name=self._placeholder_item_name, quantity=1)]

        ice = IceCounters()
        if reading.ice_metrics is not None:
            ice = IceCounters(
                delivered=reading.ice_metrics.delivered,
                returned=reading.ice_metrics.returned,
            )

        self.seed(IntakeDraft(
            category=reading.category,
            items=items,
            ice_metrics=ice,
            notes=reading.notes,
            image_url=image_url,
        ))

    def seed_blank(self) -> None:
        """Manual entry form: one empty line, OTHERS, no ice."""
        self.seed(IntakeDraft(items=[LineItem(name="", quantity=1)]))

    # -------------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------------

    @property
    def draft(self) -> IntakeDraft:
        """Copy of the current draft."""
        return self._draft.model_copy(deep=True)

    @property
    def items(self) -> list[LineItem]:
        return list(self._draft.items)

    @property
    def category(self) -> RecordCategory:
        return self._draft.category

    @property
    def ice_metrics(self) -> IceCounters:
        return self._draft.ice_metrics

    @property
    def pending_total(self) -> Decimal:
        """Live total of the draft as currently edited."""
        return self._draft.total

    # -------------------------------------------------------------------------
    # Edits (DRAFT_PENDING only)
    # -------------------------------------------------------------------------

    def add_item(
        self,
        name: str = "",
        quantity: int = 1,
        unit_price=Decimal("0.00"),
        total_price=None,
    ) -> int:
        """Append a line and return its index. Total defaults to qty x price."""
        self._require_pending("add an item to")
        name = _check_name(name)
        quantity = _check_count("quantity", quantity)
        unit_price = _check_amount("unit_price", unit_price)
        if total_price is None:
            total_price = unit_price * quantity
        total_price = _check_amount("total_price", total_price)

        self._draft.items.append(LineItem(
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
        ))
        return len(self._draft.items) - 1

    def remove_item(self, index: int) -> LineItem:
        self._require_pending("remove an item from")
        self._check_index(index)
        return self._draft.items.pop(index)

    def edit_item(
        self,
        index: int,
        name: Optional[str] = None,
        quantity: Optional[int] = None,
        unit_price=None,
        total_price=None,
    ) -> LineItem:
        """
        Change fields of one line.

        When quantity or unit price changes and no total is given, the total
        follows them unless the user had already overridden it by hand.
        """
        self._require_pending("edit")
        self._check_index(index)
        current = self._draft.items[index]

        new_quantity = current.quantity if quantity is None else _check_count("quantity", quantity)
        new_unit = current.unit_price if unit_price is None else _check_amount("unit_price", unit_price)

        if total_price is not None:
            new_total = _check_amount("total_price", total_price)
        elif current.total_price == to_money(current.unit_price * current.quantity):
            new_total = to_money(new_unit * new_quantity)
        else:
            new_total = current.total_price

        updated = LineItem(
            name=current.name if name is None else _check_name(name),
            quantity=new_quantity,
            unit_price=new_unit,
            total_price=new_total,
        )
        self._draft.items[index] = updated
        return updated

    def set_category(self, category: RecordCategory) -> None:
        self._require_pending("change the category of")
        self._draft.category = _check_category(category)

    def set_ice_counters(self, delivered: int, returned: int) -> IceCounters:
        self._require_pending("set ice counters on")
        self._draft.ice_metrics = IceCounters(
            delivered=_check_count("delivered", delivered),
            returned=_check_count("returned", returned),
        )
        return self._draft.ice_metrics

    def adjust_ice(self, delivered_delta: int = 0, returned_delta: int = 0) -> IceCounters:
        """Counter buttons: step either counter, never below zero."""
        self._require_pending("adjust ice counters on")
        current = self._draft.ice_metrics
        self._draft.ice_metrics = IceCounters(
            delivered=max(0, current.delivered + delivered_delta),
            returned=max(0, current.returned + returned_delta),
        )
        return self._draft.ice_metrics

    def set_notes(self, notes: Optional[str]) -> None:
        self._require_pending("edit notes on")
        text = (notes or "").strip()
        if len(text) > 1000:
            raise DraftValidationError("notes", "must be at most 1000 characters")
        self._draft.notes = text or None

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def commit(
        self,
        now: datetime,
        sync_enabled: bool = False,
        device_id: Optional[str] = None,
    ) -> TransactionRecord:
        """
        Build the INTAKE record. DRAFT_PENDING -> COMMITTED.

        A draft whose lines are all blank still commits as an empty
        record with total 0.
        """
        self._require_pending("commit")
        draft = self._draft

        ice = draft.ice_metrics
        attach_ice = draft.category == RecordCategory.ICE or not ice.is_empty

        record = TransactionRecord(
            timestamp=now,
            kind=RecordKind.INTAKE,
            category=draft.category,
            items=tuple(item for item in draft.items if item.has_name),
            ice_metrics=ice if attach_ice else None,
            notes=draft.notes,
            is_synced=sync_enabled,
            device_id=device_id or None,
            image_url=draft.image_url,
        )
        self._state = SessionState.COMMITTED
        return record

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._draft.items):
            raise DraftValidationError("items", f"no line at index {index}")
