"""
Shop Event Models

Every significant action in the shop flow produces a structured event.
Events exist for:
1. Debugging when a stock count looks wrong
2. Tracing one user action across AI call, session and ledger
3. Surfacing collaborator failures that were recovered silently

DESIGN DECISION: Events are logged, not stored. The ledger itself is the
only durable history.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from shopkeeper.models.catalog import NAME_MAX_LENGTH


class ShopEventType(str, Enum):
    """
    Types of events we log.

    Each step of the receipt and till flows has its own event type.
    """
    # AI collaborators
    RECEIPT_READ = "receipt_read"
    RECEIPT_UNRECOGNIZED = "receipt_unrecognized"
    PRODUCT_RECOGNIZED = "product_recognized"
    PRODUCT_UNREGISTERED = "product_unregistered"
    AI_QUOTA_EXCEEDED = "ai_quota_exceeded"
    AI_SERVICE_ERROR = "ai_service_error"
    CREDITS_TOPPED_UP = "credits_topped_up"

    # Sessions
    SESSION_STARTED = "session_started"
    SESSION_DISCARDED = "session_discarded"

    # Ledger
    RECORD_COMMITTED = "record_committed"
    RECORD_DELETED = "record_deleted"

    # Catalog and stock
    PRODUCT_ADDED = "product_added"
    PRODUCT_DELETED = "product_deleted"
    STOCK_ADJUSTED = "stock_adjusted"
    LOW_STOCK = "low_stock"

    # Access
    PERMISSION_DENIED = "permission_denied"
    ROLE_CHANGED = "role_changed"

    # Persistence
    SNAPSHOT_LOADED = "snapshot_loaded"
    PERSISTENCE_FAILED = "persistence_failed"


class EventSeverity(str, Enum):
    """Severity level for shop events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ShopEvent(BaseModel):
    """A single shop event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )
    event_type: ShopEventType
    severity: EventSeverity = EventSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'product', 'session')"
    )
    entity_id: Optional[UUID] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Ties together the events of one user action"
    )
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class ShopEventBuilder:
    """
    Helper class to build shop events with common patterns.

    Usage:
        event = ShopEventBuilder.record_committed(record_id, kind, total, correlation_id)
    """

    @staticmethod
    def receipt_read(
        category: str,
        item_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.RECEIPT_READ,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt read: {item_count} items, category {category}",
            details={
                "category": category,
                "item_count": item_count,
            },
        )

    @staticmethod
    def receipt_unrecognized(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.RECEIPT_UNRECOGNIZED,
            severity=EventSeverity.WARNING,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt could not be read; seeded a blank draft",
            error_message=error_message,
        )

    @staticmethod
    def product_recognized(
        label: str,
        product_id: UUID,
        product_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        label = label[:NAME_MAX_LENGTH]
        return ShopEvent(
            event_type=ShopEventType.PRODUCT_RECOGNIZED,
            entity_type="product",
            entity_id=product_id,
            correlation_id=correlation_id,
            description=f"Scanned '{label}' matched {product_name}",
            details={"label": label, "product_name": product_name},
        )

    @staticmethod
    def product_unregistered(
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        label = label[:NAME_MAX_LENGTH]
        return ShopEvent(
            event_type=ShopEventType.PRODUCT_UNREGISTERED,
            severity=EventSeverity.WARNING,
            entity_type="product",
            correlation_id=correlation_id,
            description=f"Scanned '{label}' matches no catalog product",
            details={"label": label},
        )

    @staticmethod
    def quota_exceeded(
        service: str,
        credits: int,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.AI_QUOTA_EXCEEDED,
            severity=EventSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"AI quota exceeded for {service}",
            details={"service": service, "credits": credits},
        )

    @staticmethod
    def ai_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.AI_SERVICE_ERROR,
            severity=EventSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"AI service error: {service}",
            error_message=error_message,
            details={"service": service},
        )

    @staticmethod
    def credits_topped_up(amount: int, balance: int) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.CREDITS_TOPPED_UP,
            description=f"Added {amount} AI credits",
            details={"amount": amount, "balance": balance},
            is_user_action=True,
        )

    @staticmethod
    def session_started(
        session_id: UUID,
        session_kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.SESSION_STARTED,
            entity_type="session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{session_kind.capitalize()} session started",
            details={"session_kind": session_kind},
            is_user_action=True,
        )

    @staticmethod
    def session_discarded(
        session_id: UUID,
        session_kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.SESSION_DISCARDED,
            entity_type="session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{session_kind.capitalize()} session discarded",
            details={"session_kind": session_kind},
            is_user_action=True,
        )

    @staticmethod
    def record_committed(
        record_id: UUID,
        kind: str,
        category: str,
        total: Decimal,
        item_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.RECORD_COMMITTED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{kind} record committed: {total}",
            details={
                "kind": kind,
                "category": category,
                "total_cost": str(total),
                "item_count": item_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(record_id: UUID, role: str) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.RECORD_DELETED,
            entity_type="record",
            entity_id=record_id,
            description="Record deleted",
            details={"role": role},
            is_user_action=True,
        )

    @staticmethod
    def product_added(product_id: UUID, name: str) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.PRODUCT_ADDED,
            entity_type="product",
            entity_id=product_id,
            description=f"Product added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def product_deleted(product_id: UUID) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.PRODUCT_DELETED,
            entity_type="product",
            entity_id=product_id,
            description="Product deleted",
            is_user_action=True,
        )

    @staticmethod
    def stock_adjusted(
        product_id: UUID,
        name: str,
        before: int,
        after: int,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.STOCK_ADJUSTED,
            entity_type="product",
            entity_id=product_id,
            correlation_id=correlation_id,
            description=f"Stock of {name}: {before} -> {after}",
            details={"before": before, "after": after, "source": source},
        )

    @staticmethod
    def low_stock(
        product_id: UUID,
        name: str,
        stock: int,
        minimum: int,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.LOW_STOCK,
            severity=EventSeverity.WARNING,
            entity_type="product",
            entity_id=product_id,
            correlation_id=correlation_id,
            description=f"{name} is low on stock ({stock} left, minimum {minimum})",
            details={"stock_quantity": stock, "min_stock_level": minimum},
        )

    @staticmethod
    def permission_denied(action: str, role: str) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.PERMISSION_DENIED,
            severity=EventSeverity.WARNING,
            description=f"Role {role} may not {action}",
            details={"action": action, "role": role},
            is_user_action=True,
        )

    @staticmethod
    def role_changed(old_role: str, new_role: str) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.ROLE_CHANGED,
            description=f"Role changed from {old_role} to {new_role}",
            details={"old_role": old_role, "new_role": new_role},
            is_user_action=True,
        )

    @staticmethod
    def snapshot_loaded(record_count: int, product_count: int) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.SNAPSHOT_LOADED,
            description=f"Loaded {record_count} records and {product_count} products",
            details={"record_count": record_count, "product_count": product_count},
        )

    @staticmethod
    def persistence_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ShopEvent:
        return ShopEvent(
            event_type=ShopEventType.PERSISTENCE_FAILED,
            severity=EventSeverity.ERROR,
            correlation_id=correlation_id,
            description="Snapshot write failed; in-memory state kept",
            error_message=error_message,
        )
