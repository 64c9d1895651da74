# Overview: Domain records exchanged with the festival backend.

"""
Backend Data Types

WHY: The backend answers with two naming conventions: typed endpoints use
camelCase ("productId"), while the slot inventory endpoint serializes its
ORM rows directly and uses capitalized names ("ProductID"). Every record
here parses both, so the rest of the terminal only sees snake_case.

Prices are integers in the smallest currency unit (yen).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any

from pos.time_utils import parse_iso_datetime, to_utc_z, format_slot_time
from pos.validation import ValidationError, coerce_int


class PaymentMethod(IntEnum):
    """Wire values of the backend's payment method enum."""
    UNKNOWN = 0
    CASH = 1
    PAYPAY = 2
    SQUARE = 3

    @property
    def label(self) -> str:
        return _PAYMENT_LABELS[self]

    @property
    def requires_transaction_id(self) -> bool:
        """Card payments must report the processor's transaction id first."""
        return self is PaymentMethod.SQUARE

    @classmethod
    def parse(cls, value: Any) -> "PaymentMethod":
        """Accept the wire integer or the enum name ("CASH", "paypay")."""
        if isinstance(value, PaymentMethod):
            return value
        if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValidationError(f"Unknown payment method: {value}")
        number = coerce_int(value, "payment_method")
        try:
            return cls(number)
        except ValueError:
            raise ValidationError(f"Unknown payment method: {value}")


_PAYMENT_LABELS = {
    PaymentMethod.UNKNOWN: "Unknown",
    PaymentMethod.CASH: "Cash",
    PaymentMethod.PAYPAY: "PayPay",
    PaymentMethod.SQUARE: "Square",
}

SELECTABLE_PAYMENT_METHODS = (PaymentMethod.CASH, PaymentMethod.PAYPAY, PaymentMethod.SQUARE)


ORDER_STATUS_RESERVED = "RESERVED"


def pick(data: dict, *keys: str, default: Any = None) -> Any:
    """First present key wins; used to read camelCase or capitalized fields."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _as_id(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return parse_iso_datetime(str(value))


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Product":
        product_id = _as_id(pick(data, "id", "ID"))
        if product_id is None:
            raise ValueError("product is missing its id")
        return cls(
            id=product_id,
            name=str(pick(data, "name", "Name", default="")),
            price=int(pick(data, "price", "Price", default=0)),
            created_at=as_datetime(pick(data, "createdAt", "CreatedAt")),
            updated_at=as_datetime(pick(data, "updatedAt", "UpdatedAt")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@dataclass(frozen=True)
class SalesSlot:
    id: str
    start_time: datetime | None
    end_time: datetime | None
    is_active: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict) -> "SalesSlot":
        slot_id = _as_id(pick(data, "id", "ID"))
        if slot_id is None:
            raise ValueError("sales slot is missing its id")
        return cls(
            id=slot_id,
            start_time=as_datetime(pick(data, "startTime", "StartTime")),
            end_time=as_datetime(pick(data, "endTime", "EndTime")),
            is_active=bool(pick(data, "isActive", "IsActive", default=False)),
            created_at=as_datetime(pick(data, "createdAt", "CreatedAt")),
            updated_at=as_datetime(pick(data, "updatedAt", "UpdatedAt")),
        )

    @property
    def label(self) -> str:
        return f"{format_slot_time(self.start_time)} - {format_slot_time(self.end_time)}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "is_active": self.is_active,
            "label": self.label,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@dataclass(frozen=True)
class InventoryRecord:
    """One (product, sales slot) allotment."""
    id: str | None
    product_id: str
    sales_slot_id: str | None
    initial_quantity: int
    sold_quantity: int
    reserved_quantity: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    product: Product | None = None

    @property
    def available_quantity(self) -> int:
        # Not clamped: a negative value means the backend data is inconsistent
        return self.initial_quantity - self.sold_quantity - self.reserved_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sales_slot_id": self.sales_slot_id,
            "initial_quantity": self.initial_quantity,
            "sold_quantity": self.sold_quantity,
            "reserved_quantity": self.reserved_quantity,
            "available_quantity": self.available_quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@dataclass(frozen=True)
class OrderItemInput:
    product_id: str
    quantity: int

    def to_payload(self) -> dict:
        return {"productId": self.product_id, "quantity": self.quantity}


@dataclass(frozen=True)
class OrderRequest:
    """Body of POST /orders. Prices are never sent; the backend prices the order."""
    sales_slot_id: str
    ticket_number: str
    payment_method: PaymentMethod
    items: tuple[OrderItemInput, ...]

    def to_payload(self) -> dict:
        return {
            "salesSlotId": self.sales_slot_id,
            "ticketNumber": self.ticket_number,
            "paymentMethod": int(self.payment_method),
            "items": [item.to_payload() for item in self.items],
        }


@dataclass(frozen=True)
class OrderLine:
    id: str | None
    product_id: str
    quantity: int
    price: int

    @classmethod
    def from_api(cls, data: dict) -> "OrderLine":
        return cls(
            id=_as_id(pick(data, "id", "ID")),
            product_id=str(pick(data, "productId", "ProductID", default="")),
            quantity=int(pick(data, "quantity", "Quantity", default=0)),
            price=int(pick(data, "price", "Price", default=0)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
        }


@dataclass(frozen=True)
class Order:
    id: str
    ticket_number: str
    sales_slot_id: str | None
    status: str
    is_paid: bool = False
    is_delivered: bool = False
    payment_method: str | None = None
    transaction_id: str | None = None
    total_amount: int = 0
    items: tuple[OrderLine, ...] = field(default_factory=tuple)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Order":
        order_id = _as_id(pick(data, "id", "ID"))
        if order_id is None:
            raise ValueError("order is missing its id")
        raw_items = pick(data, "items", "Items", default=[]) or []
        payment_method = pick(data, "paymentMethod", "PaymentMethod")
        return cls(
            id=order_id,
            ticket_number=str(pick(data, "ticketNumber", "TicketNumber", default="")),
            sales_slot_id=_as_id(pick(data, "salesSlotId", "SalesSlotID")),
            status=str(pick(data, "status", "Status", default=ORDER_STATUS_RESERVED)),
            is_paid=bool(pick(data, "isPaid", "IsPaid", default=False)),
            is_delivered=bool(pick(data, "isDelivered", "IsDelivered", default=False)),
            payment_method=str(payment_method) if payment_method is not None else None,
            transaction_id=pick(data, "transactionId", "TransactionID"),
            total_amount=int(pick(data, "totalAmount", "TotalAmount", default=0)),
            items=tuple(OrderLine.from_api(item) for item in raw_items),
            created_at=as_datetime(pick(data, "createdAt", "CreatedAt")),
            updated_at=as_datetime(pick(data, "updatedAt", "UpdatedAt")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_number": self.ticket_number,
            "sales_slot_id": self.sales_slot_id,
            "status": self.status,
            "is_paid": self.is_paid,
            "is_delivered": self.is_delivered,
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "total_amount": self.total_amount,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
