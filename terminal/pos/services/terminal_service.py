# Overview: Service-layer state of one POS screen; slot, inventory, cart, checkout, toasts.

"""
POS Terminal Session

WHY: The stall runs one POS screen per terminal. This object owns everything
that screen shows and funnels each operator action through the cart and
checkout rules, so the browser front end stays a thin renderer.

Inventory refresh triggers (all through load_inventory):
- a sales slot is selected or changed
- an order was submitted successfully
- settings were saved or reset while a slot is selected

Concurrency:
- State mutations run under a re-entrant lock.
- Inventory fetches run outside the lock and are tagged by a RequestSequencer;
  only the latest fetch for the current slot may replace the index.
- is_loading stays set while any inventory fetch is outstanding, stale or not.
- A client replaced by new settings is closed once no call is using it.
- Every failure is caught at the call site, logged, and surfaced as a
  notification. None is fatal and none is retried.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterator

from flask import current_app

from pos.time_utils import utcnow, to_utc_z
from .api_client import ApiError, TimeseatsClient
from .cart_service import Cart, CartError, CartLine, NoInventoryError
from .checkout_service import CheckoutError, CheckoutFlow
from .concurrency import RequestSequencer
from .inventory_service import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    InventoryDataError,
    InventoryIndex,
    ProductAvailability,
    merge_products,
    normalize_inventory,
    products_from_inventory,
)
from . import settings_service
from .settings_service import TerminalSettings
from .types import Order, PaymentMethod, Product, SalesSlot, SELECTABLE_PAYMENT_METHODS
from ..validation import ValidationError, normalize_ticket_number


logger = logging.getLogger(__name__)

EXTENSION_KEY = "pos_terminal"
INVENTORY_RESOURCE = "inventory"

# Oldest toasts are dropped once this many are waiting to be drained
MAX_PENDING_NOTIFICATIONS = 50

VARIANT_DEFAULT = "default"
VARIANT_DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    """Transient toast shown by the front end, then dropped."""
    title: str
    description: str
    variant: str = VARIANT_DEFAULT
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
            "created_at": to_utc_z(self.created_at),
        }


ClientFactory = Callable[[TerminalSettings], TimeseatsClient]


class PosTerminal:
    def __init__(
        self,
        settings: TerminalSettings,
        *,
        client_factory: ClientFactory,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> None:
        self._lock = threading.RLock()
        self._sequencer = RequestSequencer()
        self._client_factory = client_factory
        self.low_stock_threshold = low_stock_threshold

        self.settings = settings
        self.client = client_factory(settings)
        self._active_calls = 0
        self._retired_clients: list[TimeseatsClient] = []

        self.sales_slots: list[SalesSlot] = []
        self.selected_slot_id: str | None = None
        self.inventory = InventoryIndex()
        # None until the first successful inventory load
        self.products: list[Product] | None = None
        self.is_loading = False
        self._pending_inventory_loads = 0

        self.cart = Cart()
        self.ticket_number = ""
        self.checkout = CheckoutFlow()

        self._notifications: deque[Notification] = deque(maxlen=MAX_PENDING_NOTIFICATIONS)

    @contextmanager
    def _borrow_client(self) -> Iterator[TimeseatsClient]:
        """The current client, kept open for the duration of a call made outside the lock."""
        with self._lock:
            client = self.client
            self._active_calls += 1
        try:
            yield client
        finally:
            with self._lock:
                self._active_calls -= 1
                retired = []
                if self._active_calls == 0:
                    retired, self._retired_clients = self._retired_clients, []
            for old_client in retired:
                old_client.close()

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def notify(self, title: str, description: str, variant: str = VARIANT_DEFAULT) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        with self._lock:
            self._notifications.append(notification)
        return notification

    def notify_error(self, title: str, description: str) -> Notification:
        return self.notify(title, description, VARIANT_DESTRUCTIVE)

    def drain_notifications(self) -> list[Notification]:
        with self._lock:
            pending = list(self._notifications)
            self._notifications.clear()
        return pending

    # =========================================================================
    # SALES SLOTS & INVENTORY
    # =========================================================================

    def load_sales_slots(self) -> list[SalesSlot]:
        """Fetch slots; auto-select the active slot (else the first) if none is chosen."""
        try:
            with self._borrow_client() as client:
                slots = client.list_sales_slots()
        except ApiError as exc:
            logger.warning("Failed to load sales slots: %s", exc)
            self.notify_error("Error", "Failed to load sales time slots")
            return self.sales_slots

        auto_select = None
        with self._lock:
            self.sales_slots = slots
            if not self.selected_slot_id and slots:
                active = next((slot for slot in slots if slot.is_active), None)
                auto_select = (active or slots[0]).id

        if auto_select:
            logger.info("Auto-selecting sales slot %s", auto_select)
            self.select_slot(auto_select)
        return slots

    def select_slot(self, slot_id: str) -> bool:
        """
        Select a sales slot and load its inventory.

        Changing to a different slot clears the cart and ticket number: cart
        lines were validated against the old slot's allotment.
        """
        slot_id = (slot_id or "").strip()
        if not slot_id:
            raise ValidationError("slot_id required")

        with self._lock:
            if self.sales_slots and slot_id not in {slot.id for slot in self.sales_slots}:
                raise ValidationError(f"Unknown sales slot: {slot_id}")

            if slot_id != self.selected_slot_id:
                if self.selected_slot_id is not None:
                    self._clear_cart_locked()
                if self.checkout.is_cancellable:
                    self.checkout.cancel()
                self.selected_slot_id = slot_id
                self.inventory = InventoryIndex()
                self.products = None

        return self.load_inventory()

    def load_inventory(self) -> bool:
        """
        Fetch and apply the selected slot's inventory.

        Returns True when the index was replaced. Network errors, empty or
        malformed data, and superseded responses return False; the previous
        index and product list stay in place.
        """
        with self._lock:
            slot_id = self.selected_slot_id
            if not slot_id:
                return False
            ticket = self._sequencer.issue(INVENTORY_RESOURCE)
            self._pending_inventory_loads += 1
            self.is_loading = True

        try:
            try:
                with self._borrow_client() as client:
                    records = normalize_inventory(client.list_slot_inventory(slot_id))
            except (ApiError, InventoryDataError) as exc:
                logger.warning("Failed to load inventory for slot %s: %s", slot_id, exc)
                with self._lock:
                    if self._sequencer.is_latest(ticket):
                        self.notify_error("API error", f"Failed to load data from the API: {exc}")
                return False

            with self._lock:
                if not self._sequencer.is_latest(ticket) or slot_id != self.selected_slot_id:
                    logger.debug("Discarding stale inventory response for slot %s (seq %s)", slot_id, ticket.sequence)
                    return False
                self.inventory = InventoryIndex(records)
                self.products = products_from_inventory(records)
                logger.info("Loaded %d inventory rows for slot %s", len(records), slot_id)
            return True
        finally:
            with self._lock:
                self._pending_inventory_loads -= 1
                self.is_loading = self._pending_inventory_loads > 0

    def product_availability(self) -> list[ProductAvailability] | None:
        with self._lock:
            if self.products is None:
                return None
            return merge_products(self.products, self.inventory, low_stock_threshold=self.low_stock_threshold)

    # =========================================================================
    # CART
    # =========================================================================

    def _find_product(self, product_id: str) -> Product | None:
        for product in self.products or []:
            if product.id == product_id:
                return product
        return None

    def add_to_cart(self, product_id: str) -> CartLine:
        with self._lock:
            try:
                if self.checkout.is_dialog_open:
                    raise CheckoutError("Finish or cancel the payment first", title="Checkout in progress")
                product = self._find_product(product_id)
                if product is None:
                    raise NoInventoryError(product_id)
                return self.cart.add(product, self.inventory.get(product_id))
            except (CartError, CheckoutError) as exc:
                self.notify_error(exc.title, str(exc))
                raise

    def remove_from_cart(self, product_id: str) -> CartLine | None:
        with self._lock:
            if self.checkout.is_dialog_open:
                exc = CheckoutError("Finish or cancel the payment first", title="Checkout in progress")
                self.notify_error(exc.title, str(exc))
                raise exc
            return self.cart.remove(product_id)

    def _clear_cart_locked(self) -> None:
        self.cart.clear()
        self.ticket_number = ""

    def clear_cart(self) -> None:
        with self._lock:
            if self.checkout.is_cancellable:
                self.checkout.cancel()
            self._clear_cart_locked()

    def set_ticket_number(self, value: str) -> str:
        with self._lock:
            self.ticket_number = normalize_ticket_number(value)
            return self.ticket_number

    # =========================================================================
    # CHECKOUT
    # =========================================================================

    def _checkout_step(self, step: Callable[[], None]) -> None:
        with self._lock:
            try:
                step()
            except CheckoutError as exc:
                self.notify_error(exc.title, str(exc))
                raise

    def begin_checkout(self) -> None:
        self._checkout_step(lambda: self.checkout.begin(self.cart, self.ticket_number, self.selected_slot_id))

    def select_payment_method(self, method: PaymentMethod, transaction_id: str | None = None) -> None:
        self._checkout_step(lambda: self.checkout.select_payment_method(method, transaction_id))

    def report_card_transaction(self, transaction_id: str) -> None:
        self._checkout_step(lambda: self.checkout.report_card_transaction(transaction_id))

    def back_to_payment_selection(self) -> None:
        self._checkout_step(self.checkout.back)

    def cancel_checkout(self) -> None:
        self._checkout_step(self.checkout.cancel)

    def confirm_payment(self) -> Order:
        """
        Submit the order for the current cart.

        Success: cart and ticket cleared, dialog closed, success toast with
        the server order id, inventory re-fetched for the current slot.
        Failure: error toast, checkout back to IDLE, cart kept.
        """
        with self._lock:
            method = self.checkout.payment_method
            transaction_id = self.checkout.transaction_id
            try:
                order = self.checkout.confirm(self.cart, self.ticket_number, self.selected_slot_id, self.client.create_order)
            except CheckoutError as exc:
                self.notify_error(exc.title, str(exc))
                raise
            except ApiError as exc:
                self.notify_error("Error", f"Failed to process the order: {exc}")
                raise

            self._clear_cart_locked()
            self.notify("Order complete", f"Order number: {order.id}")
            logger.info("Order %s created for ticket %s", order.id, order.ticket_number)

        if method is PaymentMethod.SQUARE and transaction_id:
            try:
                with self._borrow_client() as client:
                    order = client.update_payment(order.id, transaction_id)
            except ApiError as exc:
                # The order exists server-side; only the payment record is missing
                logger.warning("Failed to record transaction %s for order %s: %s", transaction_id, order.id, exc)
                self.notify_error("Payment not recorded", f"Order {order.id}: {exc}")

        self.load_inventory()
        return order

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def apply_settings(self, settings: TerminalSettings) -> None:
        """
        Swap the API client to new settings; cart and ticket are kept.

        Responses still in flight from the old client are discarded. The old
        client is closed right away when idle, otherwise by the last call
        still using it.
        """
        with self._lock:
            old_client = self.client
            self.client = self._client_factory(settings)
            self.settings = settings
            self._sequencer.invalidate(INVENTORY_RESOURCE)
            if self._active_calls:
                self._retired_clients.append(old_client)
                old_client = None
        if old_client is not None:
            old_client.close()

    def change_settings(self, settings: TerminalSettings, *, title: str = "Settings saved") -> TerminalSettings:
        """Apply already-persisted settings and reload the selected slot's inventory from the new backend."""
        self.apply_settings(settings)
        self.notify(title, "Application settings were updated")
        logger.info("Terminal now talks to %s", settings.api_base_url)

        if self.selected_slot_id:
            self.load_inventory()
        return settings

    def save_settings(self, payload: dict) -> TerminalSettings:
        """Validate, persist, rebuild the client and reload the slot's inventory."""
        try:
            settings = settings_service.save_settings(settings_service.validate_settings(payload))
        except ValidationError as exc:
            self.notify_error("Error", str(exc))
            raise
        return self.change_settings(settings)

    def reset_settings(self, default_api_base_url: str | None = None) -> TerminalSettings:
        """Forget the saved settings and go back to the configured default backend."""
        settings = settings_service.reset_settings(default_api_base_url)
        return self.change_settings(settings, title="Settings reset")

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def snapshot(self) -> dict:
        with self._lock:
            availability = self.product_availability()
            return {
                "settings": self.settings.to_dict(),
                "sales_slots": [slot.to_dict() for slot in self.sales_slots],
                "selected_slot_id": self.selected_slot_id,
                "is_loading": self.is_loading,
                "products": None if availability is None else [item.to_dict() for item in availability],
                "cart": self.cart.to_dict(),
                "ticket_number": self.ticket_number,
                "checkout": self.checkout.to_dict(),
                "payment_methods": [
                    {"value": int(method), "name": method.name, "label": method.label}
                    for method in SELECTABLE_PAYMENT_METHODS
                ],
                "pending_notifications": len(self._notifications),
            }

    def close(self) -> None:
        with self._lock:
            clients, self._retired_clients = [self.client, *self._retired_clients], []
        for client in clients:
            client.close()


def build_terminal(app) -> PosTerminal:
    """Create the terminal for app from its config and persisted settings."""
    timeout = app.config.get("POS_HTTP_TIMEOUT")
    transport = app.config.get("POS_HTTP_TRANSPORT")

    def client_factory(settings: TerminalSettings) -> TimeseatsClient:
        return TimeseatsClient(settings.api_base_url, timeout=timeout, transport=transport)

    settings = settings_service.load_settings(app.config.get("POS_API_BASE_URL"))
    return PosTerminal(
        settings,
        client_factory=client_factory,
        low_stock_threshold=app.config.get("POS_LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD),
    )


def get_terminal() -> PosTerminal:
    return current_app.extensions[EXTENSION_KEY]
