# Overview: Pytest coverage for the checkout state machine.

"""
Checkout Flow Tests

Covers:
- Preconditions (empty cart, blank ticket, no slot) alone and combined
- Payment method selection and the card transaction sub-flow
- Back / cancel transitions and their guards
- Submission: payload shape, success, and failure leaving the cart intact
"""

import pytest

from pos.services.api_client import ApiError
from pos.services.cart_service import Cart
from pos.services.checkout_service import (
    PRECONDITION_CART_EMPTY,
    PRECONDITION_SLOT_MISSING,
    PRECONDITION_TICKET_MISSING,
    CheckoutError,
    CheckoutFlow,
    CheckoutState,
    build_order_request,
    check_preconditions,
)
from pos.services.inventory_service import normalize_inventory
from pos.services.types import Order, OrderItemInput, PaymentMethod, Product

from fake_backend import inventory_row


@pytest.fixture
def cart():
    cart = Cart()
    record = normalize_inventory([inventory_row("p-1", initial=10)])[0]
    product = Product(id="p-1", name="Yakisoba", price=500)
    cart.add(product, record)
    cart.add(product, record)
    return cart


@pytest.fixture
def flow():
    return CheckoutFlow()


def make_order(order_request):
    return Order(
        id="order-1",
        ticket_number=order_request.ticket_number,
        sales_slot_id=order_request.sales_slot_id,
        status="RESERVED",
    )


class TestPreconditions:
    def test_all_satisfied(self, cart):
        assert check_preconditions(cart, "A12", "slot-1") == []

    @pytest.mark.parametrize(
        "empty_cart,ticket,slot,expected",
        [
            (True, "A12", "slot-1", [PRECONDITION_CART_EMPTY]),
            (False, "", "slot-1", [PRECONDITION_TICKET_MISSING]),
            (False, "   ", "slot-1", [PRECONDITION_TICKET_MISSING]),
            (False, "A12", None, [PRECONDITION_SLOT_MISSING]),
            (True, "", None, [PRECONDITION_CART_EMPTY, PRECONDITION_TICKET_MISSING, PRECONDITION_SLOT_MISSING]),
            (False, None, "", [PRECONDITION_TICKET_MISSING, PRECONDITION_SLOT_MISSING]),
        ],
    )
    def test_failures_in_fixed_order(self, cart, empty_cart, ticket, slot, expected):
        if empty_cart:
            cart.clear()
        assert check_preconditions(cart, ticket, slot) == expected

    def test_begin_reports_first_failure_and_stays_closed(self, flow):
        with pytest.raises(CheckoutError) as exc_info:
            flow.begin(Cart(), "", None)

        assert exc_info.value.title == "Cart is empty"
        assert str(exc_info.value) == "Add items first"
        assert flow.state is CheckoutState.IDLE
        assert not flow.is_dialog_open

    def test_begin_opens_dialog(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        assert flow.state is CheckoutState.AWAITING_PAYMENT_SELECTION
        assert flow.is_dialog_open


class TestPaymentSelection:
    def test_cash_goes_to_confirmation(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.CASH)

        assert flow.state is CheckoutState.AWAITING_PAYMENT_CONFIRMATION
        assert flow.payment_method is PaymentMethod.CASH

    def test_unknown_method_rejected(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        with pytest.raises(CheckoutError):
            flow.select_payment_method(PaymentMethod.UNKNOWN)
        assert flow.state is CheckoutState.AWAITING_PAYMENT_SELECTION

    def test_select_requires_open_dialog(self, flow):
        with pytest.raises(CheckoutError):
            flow.select_payment_method(PaymentMethod.CASH)

    def test_square_needs_transaction_id_before_confirm(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.SQUARE)

        with pytest.raises(CheckoutError, match="transaction id"):
            flow.confirm(cart, "A12", "slot-1", make_order)
        assert flow.state is CheckoutState.AWAITING_PAYMENT_CONFIRMATION

        flow.report_card_transaction("  sq-123 ")
        assert flow.transaction_id == "sq-123"
        assert flow.confirm(cart, "A12", "slot-1", make_order).id == "order-1"

    def test_transaction_id_only_for_card(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.PAYPAY)
        with pytest.raises(CheckoutError):
            flow.report_card_transaction("sq-1")

    def test_back_clears_method(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.SQUARE, "sq-1")
        flow.back()

        assert flow.state is CheckoutState.AWAITING_PAYMENT_SELECTION
        assert flow.payment_method is None
        assert flow.transaction_id is None

    def test_cancel_resets(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.CASH)
        flow.cancel()

        assert flow.state is CheckoutState.IDLE
        assert flow.payment_method is None

    def test_cancel_when_idle_rejected(self, flow):
        with pytest.raises(CheckoutError):
            flow.cancel()


class TestSubmission:
    def test_order_request_shape(self, cart):
        order_request = build_order_request(
            sales_slot_id="slot-1",
            ticket_number=" A12 ",
            payment_method=PaymentMethod.PAYPAY,
            items=cart.order_items(),
        )

        assert order_request.items == (OrderItemInput(product_id="p-1", quantity=2),)
        assert order_request.to_payload() == {
            "salesSlotId": "slot-1",
            "ticketNumber": "A12",
            "paymentMethod": 2,
            "items": [{"productId": "p-1", "quantity": 2}],
        }

    def test_success(self, flow, cart):
        sent = []

        def submit(order_request):
            sent.append(order_request)
            return make_order(order_request)

        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.CASH)
        order = flow.confirm(cart, "A12", "slot-1", submit)

        assert len(sent) == 1
        assert sent[0].payment_method is PaymentMethod.CASH
        assert order.ticket_number == "A12"
        assert flow.state is CheckoutState.COMPLETED
        assert flow.last_order is order
        assert not flow.is_dialog_open
        # The flow never touches the cart
        assert cart.item_count == 2

    def test_failure_resets_to_idle_and_keeps_cart(self, flow, cart):
        def submit(order_request):
            raise ApiError(status=409, message="Insufficient stock")

        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.CASH)
        with pytest.raises(ApiError):
            flow.confirm(cart, "A12", "slot-1", submit)

        assert flow.state is CheckoutState.IDLE
        assert flow.last_error == "Insufficient stock"
        assert cart.item_count == 2

    def test_confirm_rechecks_preconditions(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.CASH)
        cart.clear()

        with pytest.raises(CheckoutError, match="Add items first"):
            flow.confirm(cart, "A12", "slot-1", make_order)
        assert flow.state is CheckoutState.IDLE

    def test_can_begin_again_after_completion(self, flow, cart):
        flow.begin(cart, "A12", "slot-1")
        flow.select_payment_method(PaymentMethod.CASH)
        flow.confirm(cart, "A12", "slot-1", make_order)

        flow.begin(cart, "B7", "slot-1")
        assert flow.state is CheckoutState.AWAITING_PAYMENT_SELECTION
        assert flow.to_dict()["last_order_id"] == "order-1"
