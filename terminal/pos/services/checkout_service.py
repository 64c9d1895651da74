# Overview: Checkout state machine; preconditions, payment selection and order submission.

"""
Checkout Flow

States:
    IDLE -> VALIDATING -> AWAITING_PAYMENT_SELECTION
         -> AWAITING_PAYMENT_CONFIRMATION -> SUBMITTING -> COMPLETED | (IDLE on failure)

DESIGN PRINCIPLES:
- Preconditions fail closed: empty cart, blank ticket number or no sales
  slot keeps the payment dialog shut. Checks always run in that order and
  the first failure is the one reported.
- Cash and PayPay go straight to confirmation. Square hands off to the card
  sub-flow, which must report a transaction id before confirm proceeds.
- Cancel is allowed any time before SUBMITTING; nothing exists server-side
  until the order is posted.
- Submission happens once. A failure leaves the cart untouched so the
  operator can try again; the backend is never retried automatically.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from ..validation import ValidationError
from .cart_service import Cart
from .types import Order, OrderItemInput, OrderRequest, PaymentMethod, SELECTABLE_PAYMENT_METHODS


logger = logging.getLogger(__name__)


class CheckoutError(ValidationError):
    """Raised when a checkout step is not allowed."""
    def __init__(self, message: str, title: str = "Cannot check out"):
        super().__init__(message)
        self.title = title


class CheckoutState(str, Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    AWAITING_PAYMENT_SELECTION = "AWAITING_PAYMENT_SELECTION"
    AWAITING_PAYMENT_CONFIRMATION = "AWAITING_PAYMENT_CONFIRMATION"
    SUBMITTING = "SUBMITTING"
    COMPLETED = "COMPLETED"


DIALOG_STATES = {
    CheckoutState.AWAITING_PAYMENT_SELECTION,
    CheckoutState.AWAITING_PAYMENT_CONFIRMATION,
    CheckoutState.SUBMITTING,
}

# (title, message) per precondition, in evaluation order
PRECONDITION_CART_EMPTY = ("Cart is empty", "Add items first")
PRECONDITION_TICKET_MISSING = ("Ticket number required", "Enter a ticket number")
PRECONDITION_SLOT_MISSING = ("No time slot selected", "Select a time slot")


def check_preconditions(cart: Cart, ticket_number: str | None, sales_slot_id: str | None) -> list[tuple[str, str]]:
    """All failing preconditions, in fixed order: cart, ticket number, slot."""
    failures = []
    if cart.is_empty:
        failures.append(PRECONDITION_CART_EMPTY)
    if not (ticket_number or "").strip():
        failures.append(PRECONDITION_TICKET_MISSING)
    if not sales_slot_id:
        failures.append(PRECONDITION_SLOT_MISSING)
    return failures


def build_order_request(
    *,
    sales_slot_id: str,
    ticket_number: str,
    payment_method: PaymentMethod,
    items: tuple[OrderItemInput, ...],
) -> OrderRequest:
    return OrderRequest(
        sales_slot_id=sales_slot_id,
        ticket_number=ticket_number.strip(),
        payment_method=payment_method,
        items=tuple(items),
    )


class CheckoutFlow:
    def __init__(self) -> None:
        self.state = CheckoutState.IDLE
        self.payment_method: PaymentMethod | None = None
        self.transaction_id: str | None = None
        self.last_order: Order | None = None
        self.last_error: str | None = None

    @property
    def is_dialog_open(self) -> bool:
        return self.state in DIALOG_STATES

    @property
    def is_cancellable(self) -> bool:
        return self.state in (CheckoutState.AWAITING_PAYMENT_SELECTION, CheckoutState.AWAITING_PAYMENT_CONFIRMATION)

    def _reset(self, state: CheckoutState = CheckoutState.IDLE) -> None:
        self.state = state
        self.payment_method = None
        self.transaction_id = None

    def _require(self, *states: CheckoutState) -> None:
        if self.state not in states:
            raise CheckoutError(f"Not allowed while checkout is {self.state.value}")

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def begin(self, cart: Cart, ticket_number: str | None, sales_slot_id: str | None) -> None:
        """Validate preconditions and open the payment dialog."""
        self._require(CheckoutState.IDLE, CheckoutState.COMPLETED)
        self.state = CheckoutState.VALIDATING
        self.last_error = None

        failures = check_preconditions(cart, ticket_number, sales_slot_id)
        if failures:
            self._reset()
            title, message = failures[0]
            raise CheckoutError(message, title=title)

        self.state = CheckoutState.AWAITING_PAYMENT_SELECTION

    def select_payment_method(self, method: PaymentMethod, transaction_id: str | None = None) -> None:
        self._require(CheckoutState.AWAITING_PAYMENT_SELECTION)
        if method not in SELECTABLE_PAYMENT_METHODS:
            raise CheckoutError(f"Payment method {method.name} cannot be selected", title="Invalid payment method")

        self.payment_method = method
        self.transaction_id = None
        self.state = CheckoutState.AWAITING_PAYMENT_CONFIRMATION
        if transaction_id:
            self.report_card_transaction(transaction_id)

    def report_card_transaction(self, transaction_id: str) -> None:
        """The card sub-flow reports the processor's transaction id."""
        self._require(CheckoutState.AWAITING_PAYMENT_CONFIRMATION)
        if self.payment_method is None or not self.payment_method.requires_transaction_id:
            raise CheckoutError("Only card payments carry a transaction id", title="Invalid payment method")
        if not transaction_id or not transaction_id.strip():
            raise CheckoutError("Enter the transaction id", title="Transaction id required")
        self.transaction_id = transaction_id.strip()

    def back(self) -> None:
        """Return from confirmation to method selection."""
        self._require(CheckoutState.AWAITING_PAYMENT_CONFIRMATION)
        self.payment_method = None
        self.transaction_id = None
        self.state = CheckoutState.AWAITING_PAYMENT_SELECTION

    def cancel(self) -> None:
        if not self.is_cancellable:
            raise CheckoutError(f"Not allowed while checkout is {self.state.value}")
        self._reset()

    def confirm(
        self,
        cart: Cart,
        ticket_number: str,
        sales_slot_id: str | None,
        submit: Callable[[OrderRequest], Order],
    ) -> Order:
        """
        Submit the order.

        Returns the created order on success (state COMPLETED). On failure
        the error is recorded, state goes back to IDLE, and the exception
        propagates to the caller. The cart is never touched here.
        """
        self._require(CheckoutState.AWAITING_PAYMENT_CONFIRMATION)
        method = self.payment_method
        if method is None:
            raise CheckoutError("Select a payment method", title="Payment method required")
        if method.requires_transaction_id and not self.transaction_id:
            raise CheckoutError("Complete the card payment and enter its transaction id", title="Transaction id required")

        # The cart may have changed while the dialog was open
        failures = check_preconditions(cart, ticket_number, sales_slot_id)
        if failures:
            self._reset()
            title, message = failures[0]
            raise CheckoutError(message, title=title)

        order_request = build_order_request(
            sales_slot_id=sales_slot_id,
            ticket_number=ticket_number,
            payment_method=method,
            items=cart.order_items(),
        )

        self.state = CheckoutState.SUBMITTING
        try:
            order = submit(order_request)
        except Exception as exc:
            logger.warning("Order submission failed for ticket %s: %s", order_request.ticket_number, exc)
            self.last_error = str(exc)
            self._reset()
            raise

        self.last_order = order
        self.last_error = None
        self.state = CheckoutState.COMPLETED
        return order

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "is_dialog_open": self.is_dialog_open,
            "payment_method": self.payment_method.name if self.payment_method is not None else None,
            "requires_transaction_id": bool(self.payment_method and self.payment_method.requires_transaction_id),
            "transaction_id": self.transaction_id,
            "last_order_id": self.last_order.id if self.last_order else None,
            "last_error": self.last_error,
        }
