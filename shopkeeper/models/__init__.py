"""
Data Models Package

This package contains all Pydantic models used by the shop ledger.
Ledger models are strict; AI output models are lenient and only ever
feed an editable session draft.
"""

from shopkeeper.models.catalog import (
    ActorRole,
    AiPersona,
    Product,
    ShopConfig,
    to_money,
)
from shopkeeper.models.records import (
    INTAKE_CATEGORIES,
    IceCounters,
    LineItem,
    RecordCategory,
    RecordKind,
    SummaryStatistics,
    TransactionRecord,
    ValidationIssue,
    ValidationResult,
)
from shopkeeper.models.drafts import (
    ReadingIceMetrics,
    ReadingLineItem,
    ReceiptReading,
    RecognizedProduct,
)
from shopkeeper.models.events import (
    EventSeverity,
    ShopEvent,
    ShopEventBuilder,
    ShopEventType,
)

__all__ = [
    # Catalog models
    "ActorRole",
    "AiPersona",
    "Product",
    "ShopConfig",
    "to_money",
    # Ledger models
    "INTAKE_CATEGORIES",
    "IceCounters",
    "LineItem",
    "RecordCategory",
    "RecordKind",
    "SummaryStatistics",
    "TransactionRecord",
    "ValidationIssue",
    "ValidationResult",
    # AI output models
    "ReadingIceMetrics",
    "ReadingLineItem",
    "ReceiptReading",
    "RecognizedProduct",
    # Event models
    "EventSeverity",
    "ShopEvent",
    "ShopEventBuilder",
    "ShopEventType",
]
