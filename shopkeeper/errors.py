"""
Core exceptions for the ledger engine.

None of these is fatal. Each one means an operation was rejected and the
state it would have touched is exactly as it was before the call.
"""

from typing import Optional
from uuid import UUID


class ShopkeeperError(Exception):
    """Base exception for the ledger engine."""
    pass


class PermissionDeniedError(ShopkeeperError):
    """A non-owner attempted an owner-only operation."""

    def __init__(self, action: str, role: str):
        self.action = action
        self.role = role
        super().__init__(f"Role '{role}' is not allowed to {action}")


class SessionStateError(ShopkeeperError):
    """Operation is not valid in the session's current state."""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} a session in state {state}")


class DraftValidationError(ShopkeeperError):
    """An edit was rejected at the edit boundary."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InsufficientPaymentError(ShopkeeperError):
    """Cash received does not cover the cart total."""

    def __init__(self, total: float, cash_received: float):
        self.total = total
        self.cash_received = cash_received
        super().__init__(
            f"Cash received ({cash_received:,.2f}) is less than total ({total:,.2f})"
        )


class ProductNotFoundError(ShopkeeperError):
    """No catalog product with the given id."""

    def __init__(self, product_id: UUID, message: Optional[str] = None):
        self.product_id = product_id
        super().__init__(message or f"Product not found: {product_id}")
