"""
AI Output Models

CRITICAL: These models represent what the AI THINKS it saw.
They are PROPOSED data that a shopkeeper reviews in a session before
anything reaches the ledger.

Unlike the ledger models these are deliberately lenient. Model output
arrives with numbers as strings, currency symbols, thousands separators,
missing keys and categories we never asked for. Every field falls back to
a safe default instead of failing the whole reading.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from shopkeeper.models.catalog import NAME_MAX_LENGTH, to_money
from shopkeeper.models.records import INTAKE_CATEGORIES, RecordCategory


_NUMBER_CHARS = re.compile(r"[^0-9.\-]")


def lenient_decimal(value: Any) -> Decimal:
    """
    Best-effort conversion of model output to a non-negative amount.

    '฿1,250.50' -> 1250.50, None -> 0, garbage -> 0, negatives -> 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0.00")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        raw = _NUMBER_CHARS.sub("", str(value))
    try:
        amount = to_money(raw) if raw else Decimal("0.00")
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if not amount.is_finite() or amount < 0:
        return Decimal("0.00")
    return amount


def lenient_name(value: Any) -> str:
    """Model text as a stripped name, cut to the catalog name limit."""
    if value is None:
        return ""
    return str(value).strip()[:NAME_MAX_LENGTH].strip()


def lenient_int(value: Any, default: int = 0) -> int:
    """Best-effort conversion to a non-negative whole number."""
    amount = lenient_decimal(value)
    if amount == 0 and value not in (0, "0"):
        return default
    return int(amount)


class ReadingLineItem(BaseModel):
    """One line item as returned by the receipt reader."""

    name: str = ""
    quantity: int = 1
    unit_price: Decimal = Field(
        default=Decimal("0.00"),
        validation_alias=AliasChoices("unit_price", "unitPrice", "price"),
    )
    total_price: Decimal = Field(
        default=Decimal("0.00"),
        validation_alias=AliasChoices("total_price", "totalPrice", "total"),
    )

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return lenient_name(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v):
        return lenient_int(v, default=1)

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return lenient_decimal(v)


class ReadingIceMetrics(BaseModel):
    """Ice bag counters as returned by the receipt reader."""

    delivered: int = 0
    returned: int = 0

    @field_validator("delivered", "returned", mode="before")
    @classmethod
    def coerce_count(cls, v):
        return lenient_int(v)


class ReceiptReading(BaseModel):
    """
    Structured guess for one photographed receipt.

    An empty items list is valid here; the intake session substitutes a
    placeholder line so the user has something to edit.
    """

    category: RecordCategory = RecordCategory.OTHERS
    items: list[ReadingLineItem] = Field(default_factory=list)
    ice_metrics: Optional[ReadingIceMetrics] = Field(
        default=None,
        validation_alias=AliasChoices("ice_metrics", "iceMetrics"),
    )
    notes: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        """Unknown categories and SALE fall back to OTHERS."""
        if v is None:
            return RecordCategory.OTHERS
        label = str(v).strip().upper()
        for category in INTAKE_CATEGORIES:
            if category.value == label:
                return category
        return RecordCategory.OTHERS

    @field_validator("items", mode="before")
    @classmethod
    def coerce_items(cls, v):
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @field_validator("ice_metrics", mode="before")
    @classmethod
    def coerce_ice(cls, v):
        return v if isinstance(v, dict) else None

    @field_validator("notes", mode="before")
    @classmethod
    def coerce_notes(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text[:1000] or None


class RecognizedProduct(BaseModel):
    """The product recognizer's best guess for a photographed item."""

    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return lenient_name(v)
