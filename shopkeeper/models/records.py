"""
Ledger Record Models

These models define the canonical shape of everything the ledger stores.
They are designed to:
1. Be immutable once committed
2. Recompute totals from line items instead of trusting upstream values
3. Round-trip through the JSON snapshot without loss

DESIGN DECISION: total_cost is a computed field. A record cannot carry a
total that disagrees with its items, whatever the AI or an old snapshot said.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from shopkeeper.models.catalog import NAME_MAX_LENGTH, to_money


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """
    What a ledger record represents.

    INTAKE records are goods bought in (money invested in stock).
    SALE records are goods sold at the till.
    """
    INTAKE = "INVESTMENT"
    SALE = "SALE"


class RecordCategory(str, Enum):
    """
    Fixed record categories.

    SALE is reserved for sale records; intake records use the others.
    """
    ICE = "ICE"
    BEVERAGE = "BEVERAGE"
    OTHERS = "OTHERS"
    SALE = "SALE"


INTAKE_CATEGORIES = (
    RecordCategory.ICE,
    RecordCategory.BEVERAGE,
    RecordCategory.OTHERS,
)


# =============================================================================
# RECORD MODELS
# =============================================================================

class LineItem(BaseModel):
    """
    One line of a record.

    total_price is NOT required to equal quantity * unit_price; shopkeepers
    correct AI output by hand and their figure wins.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(
        default="",
        max_length=NAME_MAX_LENGTH,
        description="Item name as confirmed by the user"
    )
    quantity: int = Field(
        default=1,
        ge=0,
        description="Units"
    )
    unit_price: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        description="Price per unit"
    )
    total_price: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        description="Line total"
    )

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def quantize_amounts(cls, v):
        return to_money(v)

    @property
    def has_name(self) -> bool:
        return bool(self.name.strip())


class IceCounters(BaseModel):
    """Ice bag counters written on an ice delivery slip."""
    model_config = ConfigDict(frozen=True)

    delivered: int = Field(default=0, ge=0, description="Bags delivered")
    returned: int = Field(default=0, ge=0, description="Bags taken back")

    @property
    def outstanding(self) -> int:
        """Net bags left at the shop by this delivery (may be negative)."""
        return self.delivered - self.returned

    @property
    def is_empty(self) -> bool:
        return self.delivered == 0 and self.returned == 0


class TransactionRecord(BaseModel):
    """
    A committed ledger record.

    CRITICAL: Records are created only by committing a session and are
    never updated in place. The only way out of the ledger is an
    owner-initiated delete.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the record was committed (shop local time)"
    )
    kind: RecordKind = Field(
        default=RecordKind.INTAKE,
        description="Intake or sale"
    )
    category: RecordCategory = Field(
        ...,
        description="Record category"
    )
    items: tuple[LineItem, ...] = Field(
        default=(),
        description="Ordered line items"
    )
    ice_metrics: Optional[IceCounters] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-text note"
    )
    is_synced: bool = Field(
        default=False,
        description="Committed while cross-device sync was switched on"
    )
    device_id: Optional[str] = None
    image_url: Optional[str] = None

    @computed_field
    @property
    def total_cost(self) -> Decimal:
        """Sum of line totals."""
        return sum((item.total_price for item in self.items), Decimal("0.00"))

    @model_validator(mode="before")
    @classmethod
    def drop_stored_total(cls, data):
        """Snapshots carry total_cost; it is always recomputed from items."""
        if isinstance(data, dict) and "total_cost" in data:
            data = {k: v for k, v in data.items() if k != "total_cost"}
        return data

    @model_validator(mode="after")
    def validate_kind_category(self) -> "TransactionRecord":
        """SALE kind always pairs with the SALE category and vice versa."""
        if self.kind == RecordKind.SALE and self.category != RecordCategory.SALE:
            raise ValueError("Sale records must use the SALE category")
        if self.kind == RecordKind.INTAKE and self.category == RecordCategory.SALE:
            raise ValueError("Intake records cannot use the SALE category")
        return self

    @property
    def is_sale(self) -> bool:
        return self.kind == RecordKind.SALE


# =============================================================================
# SUMMARY MODELS
# =============================================================================

def _empty_by_category() -> dict[RecordCategory, Decimal]:
    return {category: Decimal("0.00") for category in RecordCategory}


class SummaryStatistics(BaseModel):
    """
    Derived dashboard figures.

    Never stored. Recomputed from the full record set for an explicit
    instant, so two calls with the same inputs are equal.
    """

    computed_at: datetime = Field(
        ...,
        description="The 'now' these windows are anchored to"
    )

    # Sale totals
    daily: Decimal = Decimal("0.00")
    weekly: Decimal = Decimal("0.00")
    monthly: Decimal = Decimal("0.00")
    yearly: Decimal = Decimal("0.00")

    # Intake (investment) totals
    daily_investment: Decimal = Decimal("0.00")
    weekly_investment: Decimal = Decimal("0.00")
    monthly_investment: Decimal = Decimal("0.00")
    yearly_investment: Decimal = Decimal("0.00")

    by_category: dict[RecordCategory, Decimal] = Field(
        default_factory=_empty_by_category,
        description="All-time intake totals per category"
    )
    total_sales: Decimal = Field(
        default=Decimal("0.00"),
        description="All-time sale total"
    )
    ai_credits: int = Field(
        default=0,
        description="AI scan credits remaining"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single issue found while reviewing a draft."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'blank_name', 'total_override', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    item_index: Optional[int] = Field(
        default=None,
        description="Line item the issue refers to, if any"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested action for the user"
    )


class ValidationResult(BaseModel):
    """Result of reviewing a draft before commit."""

    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
