"""
Product Catalog

The catalog is the set of products the shop sells. It is a plain in-memory
collection owned by the ShopAssistant and mirrored to the snapshot store
after every change.

Catalog edits are owner-only. Stock levels are the exception: the stock
reconciler moves them on every committed record, whoever committed it.
"""

from decimal import Decimal
from typing import Iterable, Iterator, Optional
from uuid import UUID

from shopkeeper.catalog.matching import ExactNameMatcher
from shopkeeper.errors import ProductNotFoundError
from shopkeeper.models.catalog import ActorRole, Product
from shopkeeper.permissions import MANAGE_CATALOG, require_owner


class ProductCatalog:
    """
    Ordered collection of products.

    Catalog order is insertion order; the fuzzy matcher breaks ties by it.
    """

    def __init__(self, products: Optional[Iterable[Product]] = None):
        self._products: list[Product] = list(products or [])

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: object) -> bool:
        return any(product.id == product_id for product in self._products)

    def products(self) -> list[Product]:
        """Copy of the product list in catalog order."""
        return list(self._products)

    def names(self) -> list[str]:
        """Product names, passed to the recognizer as hints."""
        return [product.name for product in self._products]

    def get(self, product_id: UUID) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def require(self, product_id: UUID) -> Product:
        product = self.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def find_by_name(self, name: str) -> Optional[Product]:
        """Case and whitespace insensitive name lookup."""
        return ExactNameMatcher().match(name, self._products)

    def quick_select_products(self) -> list[Product]:
        return [product for product in self._products if product.is_quick_select]

    def low_stock_products(self) -> list[Product]:
        return [product for product in self._products if product.is_low_stock]

    # -------------------------------------------------------------------------
    # Owner-only edits
    # -------------------------------------------------------------------------

    def add(self, product: Product, role: ActorRole) -> Product:
        """Add a product. Raises PermissionDeniedError for staff."""
        require_owner(role, MANAGE_CATALOG)
        self._products.append(product)
        return product

    def remove(self, product_id: UUID, role: ActorRole) -> bool:
        """
        Remove a product.

        Returns False if no such product. Raises PermissionDeniedError
        for staff, leaving the catalog unchanged.
        """
        require_owner(role, MANAGE_CATALOG)
        for index, product in enumerate(self._products):
            if product.id == product_id:
                del self._products[index]
                return True
        return False

    def update(
        self,
        product_id: UUID,
        role: ActorRole,
        name: Optional[str] = None,
        price: Optional[Decimal] = None,
        cost_price: Optional[Decimal] = None,
        min_stock_level: Optional[int] = None,
        is_quick_select: Optional[bool] = None,
        barcode: Optional[str] = None,
    ) -> Product:
        """
        Edit product details.

        The new product is validated in full before it replaces the old one,
        so a bad value leaves the catalog unchanged.
        """
        require_owner(role, MANAGE_CATALOG)
        product = self.require(product_id)

        changes = {
            "name": name,
            "price": price,
            "cost_price": cost_price,
            "min_stock_level": min_stock_level,
            "is_quick_select": is_quick_select,
            "barcode": barcode,
        }
        data = product.model_dump()
        data.update({key: value for key, value in changes.items() if value is not None})
        updated = Product.model_validate(data)

        self._replace(updated)
        return updated

    def count_stock(self, product_id: UUID, quantity: int, role: ActorRole) -> Product:
        """Owner stock-take: overwrite the stock level with a counted figure."""
        require_owner(role, MANAGE_CATALOG)
        product = self.require(product_id)
        product.stock_quantity = quantity
        return product

    # -------------------------------------------------------------------------
    # Reconciler hook
    # -------------------------------------------------------------------------

    def set_stock(self, product_id: UUID, quantity: int) -> Product:
        """Set stock without a role check. Only the stock reconciler calls this."""
        product = self.require(product_id)
        product.stock_quantity = max(0, quantity)
        return product

    def _replace(self, updated: Product) -> None:
        for index, product in enumerate(self._products):
            if product.id == updated.id:
                self._products[index] = updated
                return
        raise ProductNotFoundError(updated.id)
