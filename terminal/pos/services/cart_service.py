# Overview: Service-layer operations for the cart; stock-gated add/remove and totals.

"""
Cart Store

WHY: The cart is edited freely at the counter, but an operator should never
be able to ring up more units than the selected slot still has. Every add is
checked against the slot inventory at the moment of the add.

Rules:
- Lines are keyed by product id; adding again increments, never duplicates.
- The price is snapshotted when the line is created.
- Removing decrements by one; a line that reaches zero is deleted.
- The total is derived on every read, never stored.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..validation import ValidationError
from .types import InventoryRecord, OrderItemInput, Product


class CartError(ValidationError):
    """Raised when a cart mutation is rejected."""
    title = "Cannot add item"


class NoInventoryError(CartError):
    """The product is not offered in the selected sales slot."""
    title = "Not available"

    def __init__(self, product_id: str):
        super().__init__("This product is not sold in the current time slot")
        self.product_id = product_id


class OutOfStockError(CartError):
    title = "Sold out"

    def __init__(self, product_id: str):
        super().__init__("This product is sold out")
        self.product_id = product_id


class InsufficientStockError(CartError):
    title = "Not enough stock"

    def __init__(self, product_id: str, available: int):
        super().__init__(f"Only {available} left in stock for this product")
        self.product_id = product_id
        self.available = available


@dataclass
class CartLine:
    product_id: str
    name: str
    price: int
    quantity: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "line_total": self.line_total,
        }


def validate_add(product_id: str, current_quantity: int, record: InventoryRecord | None) -> None:
    """
    Check that one more unit of product_id fits in the slot's availability.

    Raises:
        NoInventoryError: no inventory row for the product in this slot
        OutOfStockError: available <= 0
        InsufficientStockError: current_quantity + 1 > available
    """
    if record is None:
        raise NoInventoryError(product_id)

    available = record.available_quantity
    if available <= 0:
        raise OutOfStockError(product_id)

    if current_quantity + 1 > available:
        raise InsufficientStockError(product_id, available)


class Cart:
    def __init__(self) -> None:
        self._lines: list[CartLine] = []

    def _find(self, product_id: str) -> CartLine | None:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_amount(self) -> int:
        return sum(line.price * line.quantity for line in self._lines)

    def quantity_of(self, product_id: str) -> int:
        line = self._find(product_id)
        return line.quantity if line else 0

    def add(self, product: Product, record: InventoryRecord | None) -> CartLine:
        """Add one unit of product, gated by its inventory record."""
        line = self._find(product.id)
        validate_add(product.id, line.quantity if line else 0, record)

        if line:
            line.quantity += 1
            return line

        line = CartLine(product_id=product.id, name=product.name, price=product.price, quantity=1)
        self._lines.append(line)
        return line

    def remove(self, product_id: str) -> CartLine | None:
        """Remove one unit. Returns the remaining line, or None if it is gone."""
        line = self._find(product_id)
        if line is None:
            return None

        if line.quantity > 1:
            line.quantity -= 1
            return line

        self._lines.remove(line)
        return None

    def clear(self) -> None:
        self._lines = []

    def order_items(self) -> tuple[OrderItemInput, ...]:
        return tuple(OrderItemInput(product_id=line.product_id, quantity=line.quantity) for line in self._lines)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines],
            "item_count": self.item_count,
            "total_amount": self.total_amount,
        }
