"""
Catalog and Shop Configuration Models

The catalog is entered by hand by the shop owner, so product names drift
(extra spaces, mixed case, brand spelled three ways). The models strip
whitespace but never rewrite names; matching logic lives in
shopkeeper.catalog.matching.

DESIGN DECISION: Stock is an integer count that never goes below zero.
Over-selling is allowed at the till and simply clamps the count.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


MONEY_QUANTUM = Decimal("0.01")

NAME_MAX_LENGTH = 200


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a two-place Decimal."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        return amount.quantize(MONEY_QUANTUM)
    except InvalidOperation:
        raise ValueError(f"Not an amount: {value!r}")


class ActorRole(str, Enum):
    """
    Who is operating the device.

    CRITICAL: Only OWNER may delete records or change the catalog.
    """
    OWNER = "OWNER"
    STAFF = "STAFF"


class AiPersona(str, Enum):
    """Voice persona used by the presentation layer."""
    GRANDMA = "GRANDMA"
    GIRLFRIEND = "GIRLFRIEND"
    BOYFRIEND = "BOYFRIEND"
    PROFESSIONAL = "PROFESSIONAL"


class Product(BaseModel):
    """
    A sellable product in the shop catalog.

    Mutated only by the stock reconciler (stock_quantity) and by
    owner-initiated catalog edits.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Opaque product identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=NAME_MAX_LENGTH,
        description="Display name as entered by the owner"
    )
    barcode: str = Field(
        default="",
        max_length=64,
        description="Barcode if known"
    )
    price: Decimal = Field(
        ...,
        ge=0,
        description="Unit sell price"
    )
    cost_price: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        description="Unit cost"
    )
    stock_quantity: int = Field(
        default=0,
        ge=0,
        description="Units currently on the shelf"
    )
    min_stock_level: int = Field(
        default=0,
        ge=0,
        description="Warn when stock falls to this level"
    )
    is_quick_select: bool = Field(
        default=False,
        description="Shown as a quick-access button at the till"
    )
    image_url: Optional[str] = None
    is_retail_product: Optional[bool] = None

    @field_validator("price", "cost_price", mode="before")
    @classmethod
    def quantize_amounts(cls, v):
        if v is None:
            return v
        return to_money(v)

    @property
    def is_low_stock(self) -> bool:
        """True once stock has fallen to the minimum level."""
        return self.stock_quantity <= self.min_stock_level

    @property
    def unit_margin(self) -> Decimal:
        return self.price - self.cost_price


class ShopConfig(BaseModel):
    """
    Device-level shop settings persisted with the snapshot.

    sync_enabled only marks records; there is no multi-device sync.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    shop_id: str = Field(default="", max_length=100)
    role: ActorRole = Field(default=ActorRole.OWNER)
    sync_enabled: bool = Field(
        default=False,
        description="Cross-device sync switch (records are flagged with it)"
    )
    last_sync: Optional[datetime] = None
    owner_pin: Optional[str] = Field(
        default=None,
        max_length=12,
        description="PIN required to switch back to the OWNER role"
    )
    ai_persona: AiPersona = Field(default=AiPersona.GRANDMA)

    @property
    def is_owner(self) -> bool:
        return self.role == ActorRole.OWNER
