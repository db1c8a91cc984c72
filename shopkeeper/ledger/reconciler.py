"""
Stock Reconciler

Applies committed records to catalog stock levels.

GUARANTEES:
- Intake increments stock of products matched by name; unmatched items
  are skipped without error (they are still in the ledger)
- Sales decrement by product identity, never by name
- Stock is clamped at zero; over-selling is allowed
- Every change is returned as a StockAdjustment for logging
"""

from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shopkeeper.catalog.catalog import ProductCatalog
from shopkeeper.catalog.matching import ExactNameMatcher, ProductMatcher
from shopkeeper.models.records import LineItem


class CartLine(BaseModel):
    """One product line of an open sale."""
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int = Field(default=1, ge=1)


class StockAdjustment(BaseModel):
    """One stock change made by the reconciler."""
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_name: str
    before: int
    after: int
    source: str = Field(
        ...,
        pattern="^(intake|sale)$",
        description="Which kind of record caused the change"
    )

    @property
    def delta(self) -> int:
        return self.after - self.before


class StockReconciler:
    """
    Moves catalog stock in response to committed records.

    The intake matcher is a named strategy (exact by default). Sales never
    use a matcher; the cart already holds product ids.
    """

    def __init__(self, intake_matcher: Optional[ProductMatcher] = None):
        self._intake_matcher = intake_matcher or ExactNameMatcher()

    @property
    def intake_matcher(self) -> ProductMatcher:
        return self._intake_matcher

    def apply_intake(
        self,
        catalog: ProductCatalog,
        line_items: Iterable[LineItem],
    ) -> list[StockAdjustment]:
        """Add received quantities to matching products."""
        adjustments = []
        for item in line_items:
            if not item.has_name or item.quantity == 0:
                continue
            product = self._intake_matcher.match(item.name, catalog)
            if product is None:
                continue
            before = product.stock_quantity
            updated = catalog.set_stock(product.id, before + item.quantity)
            adjustments.append(StockAdjustment(
                product_id=updated.id,
                product_name=updated.name,
                before=before,
                after=updated.stock_quantity,
                source="intake",
            ))
        return adjustments

    def apply_sale(
        self,
        catalog: ProductCatalog,
        cart_lines: Iterable[CartLine],
    ) -> list[StockAdjustment]:
        """
        Remove sold quantities from the products in the cart.

        Lines whose product has since left the catalog are skipped.
        """
        adjustments = []
        for line in cart_lines:
            product = catalog.get(line.product_id)
            if product is None:
                continue
            before = product.stock_quantity
            updated = catalog.set_stock(product.id, before - line.quantity)
            adjustments.append(StockAdjustment(
                product_id=updated.id,
                product_name=updated.name,
                before=before,
                after=updated.stock_quantity,
                source="sale",
            ))
        return adjustments
