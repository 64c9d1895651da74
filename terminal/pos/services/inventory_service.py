# Overview: Service-layer operations for slot inventory; normalization and availability.

"""
Slot inventory (authoritative notes)

Inventory model:
- One InventoryRecord per (product, sales slot).
- available = initial - sold - reserved. Never clamped; a negative value is
  reported as-is and logged as a data-integrity warning.
- The backend is authoritative. Availability here only gates the cart so the
  operator is not surprised at checkout.

Lifecycle:
- The index is replaced wholesale on every successful fetch (slot selection,
  after an order, after a settings change). It is never patched.
- All three triggers go through normalize_inventory(); there is no other
  mapping from the backend's shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .types import InventoryRecord, Product, pick, as_datetime


logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 5

STATUS_NOT_OFFERED = "not_offered"
STATUS_SOLD_OUT = "sold_out"
STATUS_LOW = "low"
STATUS_IN_STOCK = "in_stock"


class InventoryDataError(Exception):
    """Inventory response was empty or did not have the expected shape."""


# =============================================================================
# NORMALIZATION
# =============================================================================

def _required_int(row: dict, index: int, *keys: str) -> int:
    value = pick(row, *keys)
    if value is None:
        raise InventoryDataError(f"inventory row {index} is missing {keys[0]}")
    if isinstance(value, bool):
        raise InventoryDataError(f"inventory row {index} has a non-integer {keys[0]}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InventoryDataError(f"inventory row {index} has a non-integer {keys[0]}")


def _nested_product(row: dict) -> Product | None:
    raw = pick(row, "Product", "product")
    if not isinstance(raw, dict):
        return None
    try:
        return Product.from_api(raw)
    except (TypeError, ValueError):
        return None


def normalize_inventory(raw: Any) -> list[InventoryRecord]:
    """
    Map the backend's slot inventory rows to InventoryRecord objects.

    Accepts the capitalized ORM shape ("ProductID", "InitialQuantity",
    nested "Product") and the camelCase shape ("productId", ...).

    Raises:
        InventoryDataError: payload is not a list, is empty, or a row lacks
        its product id or a quantity.
    """
    if not isinstance(raw, list):
        raise InventoryDataError("Inventory data could not be loaded")
    if not raw:
        raise InventoryDataError("Inventory data could not be loaded")

    records: list[InventoryRecord] = []
    for index, row in enumerate(raw):
        if not isinstance(row, dict):
            raise InventoryDataError(f"inventory row {index} is not an object")

        product = _nested_product(row)
        product_id = pick(row, "ProductID", "productId")
        if product_id is None and product is not None:
            product_id = product.id
        if product_id is None or str(product_id).strip() == "":
            raise InventoryDataError(f"inventory row {index} is missing ProductID")

        record_id = pick(row, "ID", "id")
        slot_id = pick(row, "SalesSlotID", "salesSlotId")
        try:
            created_at = as_datetime(pick(row, "CreatedAt", "createdAt"))
            updated_at = as_datetime(pick(row, "UpdatedAt", "updatedAt"))
        except ValueError:
            raise InventoryDataError(f"inventory row {index} has an invalid timestamp")
        records.append(
            InventoryRecord(
                id=str(record_id) if record_id is not None else None,
                product_id=str(product_id),
                sales_slot_id=str(slot_id) if slot_id is not None else None,
                initial_quantity=_required_int(row, index, "InitialQuantity", "initialQuantity"),
                sold_quantity=_required_int(row, index, "SoldQuantity", "soldQuantity"),
                reserved_quantity=_required_int(row, index, "ReservedQuantity", "reservedQuantity"),
                created_at=created_at,
                updated_at=updated_at,
                product=product,
            )
        )

        if records[-1].available_quantity < 0:
            logger.warning(
                "Negative availability for product %s in slot %s: initial=%s sold=%s reserved=%s",
                records[-1].product_id,
                records[-1].sales_slot_id,
                records[-1].initial_quantity,
                records[-1].sold_quantity,
                records[-1].reserved_quantity,
            )

    return records


def products_from_inventory(records: Iterable[InventoryRecord]) -> list[Product]:
    """Unique products carried by the inventory rows, first occurrence wins."""
    seen: dict[str, Product] = {}
    for record in records:
        if record.product is None:
            logger.debug("Inventory row %s has no product data", record.id)
            continue
        if record.product.id not in seen:
            seen[record.product.id] = record.product
    return list(seen.values())


# =============================================================================
# INDEX
# =============================================================================

class InventoryIndex:
    """product id -> InventoryRecord for the selected sales slot."""

    def __init__(self, records: Iterable[InventoryRecord] = ()) -> None:
        self._by_product: dict[str, InventoryRecord] = {}
        self.replace(records)

    def replace(self, records: Iterable[InventoryRecord]) -> None:
        # Later rows win on duplicate product ids, matching a dict built in order
        self._by_product = {record.product_id: record for record in records}

    def get(self, product_id: str) -> InventoryRecord | None:
        return self._by_product.get(product_id)

    def records(self) -> list[InventoryRecord]:
        return list(self._by_product.values())

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._by_product

    def __len__(self) -> int:
        return len(self._by_product)


# =============================================================================
# AVAILABILITY
# =============================================================================

def available_quantity(record: InventoryRecord) -> int:
    """initial - sold - reserved, unclamped."""
    return record.available_quantity


@dataclass(frozen=True)
class ProductAvailability:
    """A product merged with its slot inventory, as rendered on the product grid."""
    product: Product
    inventory_id: str | None
    available_quantity: int
    has_inventory: bool
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD

    @property
    def status(self) -> str:
        # "not offered in this slot" and "sold out" must stay distinguishable
        if not self.has_inventory:
            return STATUS_NOT_OFFERED
        if self.available_quantity <= 0:
            return STATUS_SOLD_OUT
        if self.available_quantity < self.low_stock_threshold:
            return STATUS_LOW
        return STATUS_IN_STOCK

    @property
    def can_add(self) -> bool:
        return self.status in (STATUS_LOW, STATUS_IN_STOCK)

    def to_dict(self) -> dict:
        return {
            **self.product.to_dict(),
            "inventory_id": self.inventory_id,
            "available_quantity": self.available_quantity,
            "has_inventory": self.has_inventory,
            "status": self.status,
            "can_add": self.can_add,
        }


def availability_for(
    product: Product,
    record: InventoryRecord | None,
    *,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> ProductAvailability:
    if record is None:
        return ProductAvailability(
            product=product,
            inventory_id=None,
            available_quantity=0,
            has_inventory=False,
            low_stock_threshold=low_stock_threshold,
        )
    return ProductAvailability(
        product=product,
        inventory_id=record.id,
        available_quantity=available_quantity(record),
        has_inventory=True,
        low_stock_threshold=low_stock_threshold,
    )


def merge_products(
    products: Iterable[Product],
    index: InventoryIndex,
    *,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> list[ProductAvailability]:
    """Availability for each product, in product order."""
    return [
        availability_for(product, index.get(product.id), low_stock_threshold=low_stock_threshold)
        for product in products
    ]
