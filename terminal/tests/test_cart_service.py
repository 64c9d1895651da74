# Overview: Pytest coverage for the stock-gated cart.

import pytest

from pos.services.cart_service import (
    Cart,
    InsufficientStockError,
    NoInventoryError,
    OutOfStockError,
    validate_add,
)
from pos.services.inventory_service import normalize_inventory
from pos.services.types import OrderItemInput, Product

from fake_backend import inventory_row


def record_for(product_id, **quantities):
    return normalize_inventory([inventory_row(product_id, **quantities)])[0]


@pytest.fixture
def yakisoba():
    return Product(id="p-1", name="Yakisoba", price=500)


@pytest.fixture
def ramune():
    return Product(id="p-2", name="Ramune", price=200)


class TestValidateAdd:
    def test_no_inventory_row(self):
        with pytest.raises(NoInventoryError):
            validate_add("p-1", 0, None)

    def test_sold_out(self):
        with pytest.raises(OutOfStockError):
            validate_add("p-1", 0, record_for("p-1", initial=3, sold=3))

    def test_negative_availability_counts_as_sold_out(self):
        with pytest.raises(OutOfStockError):
            validate_add("p-1", 0, record_for("p-1", initial=1, sold=2))

    def test_last_unit_allowed(self):
        validate_add("p-1", 2, record_for("p-1", initial=3))

    def test_one_past_available(self):
        with pytest.raises(InsufficientStockError) as exc_info:
            validate_add("p-1", 3, record_for("p-1", initial=3))
        assert exc_info.value.available == 3
        assert "Only 3 left" in str(exc_info.value)


class TestCart:
    def test_five_adds_then_sixth_rejected(self, yakisoba):
        """initial=10 sold=3 reserved=2 leaves 5 units to sell."""
        cart = Cart()
        record = record_for("p-1", initial=10, sold=3, reserved=2)

        for expected in range(1, 6):
            cart.add(yakisoba, record)
            assert cart.quantity_of("p-1") == expected

        with pytest.raises(InsufficientStockError) as exc_info:
            cart.add(yakisoba, record)
        assert exc_info.value.available == 5
        assert cart.quantity_of("p-1") == 5

    def test_add_increments_single_line(self, yakisoba):
        cart = Cart()
        record = record_for("p-1")
        cart.add(yakisoba, record)
        cart.add(yakisoba, record)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2
        assert cart.item_count == 2

    def test_price_snapshotted_at_line_creation(self, yakisoba):
        cart = Cart()
        record = record_for("p-1")
        cart.add(yakisoba, record)
        cart.add(Product(id="p-1", name="Yakisoba", price=900), record)

        assert cart.lines[0].price == 500
        assert cart.total_amount == 1000

    def test_remove_decrements_then_deletes(self, yakisoba):
        cart = Cart()
        record = record_for("p-1")
        cart.add(yakisoba, record)
        cart.add(yakisoba, record)

        assert cart.remove("p-1").quantity == 1
        assert cart.remove("p-1") is None
        assert cart.is_empty
        assert cart.remove("p-1") is None

    @pytest.mark.parametrize("adds,removes", [(3, 1), (2, 2), (1, 4), (0, 2)])
    def test_add_remove_sequences(self, yakisoba, adds, removes):
        cart = Cart()
        record = record_for("p-1", initial=10)
        for _ in range(adds):
            cart.add(yakisoba, record)
        for _ in range(removes):
            cart.remove("p-1")

        expected = max(adds - removes, 0)
        assert cart.quantity_of("p-1") == expected
        assert ("p-1" in [line.product_id for line in cart.lines]) == (expected > 0)

    def test_total_tracks_every_mutation(self, yakisoba, ramune):
        cart = Cart()
        cart.add(yakisoba, record_for("p-1"))
        cart.add(ramune, record_for("p-2"))
        cart.add(ramune, record_for("p-2"))
        assert cart.total_amount == 500 + 2 * 200

        before = cart.total_amount
        cart.add(yakisoba, record_for("p-1"))
        cart.remove("p-1")
        assert cart.total_amount == before
        assert cart.total_amount == sum(line.price * line.quantity for line in cart.lines)

    def test_order_items_and_clear(self, yakisoba, ramune):
        cart = Cart()
        cart.add(yakisoba, record_for("p-1"))
        cart.add(yakisoba, record_for("p-1"))
        cart.add(ramune, record_for("p-2"))

        assert cart.order_items() == (
            OrderItemInput(product_id="p-1", quantity=2),
            OrderItemInput(product_id="p-2", quantity=1),
        )

        cart.clear()
        assert cart.is_empty
        assert cart.to_dict() == {"lines": [], "item_count": 0, "total_amount": 0}
