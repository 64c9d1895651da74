# Overview: In-process stand-in for the festival backend, served through httpx.MockTransport.

"""
Fake festival backend.

Answers the endpoints the terminal calls with canned data and records every
request so tests can assert on what was sent. Inventory answers can be
replaced per slot, and failures injected per endpoint.
"""

from __future__ import annotations

import json

import httpx


BASE_URL = "http://backend.test/api/v1"


def product_row(product_id, name="Yakisoba", price=500):
    return {"ID": product_id, "Name": name, "Price": price, "CreatedAt": "2024-05-01T08:00:00Z"}


def inventory_row(product_id, *, name="Yakisoba", price=500, initial=10, sold=0, reserved=0, slot_id="slot-1"):
    """Slot inventory row in the capitalized shape the backend serializes."""
    return {
        "ID": f"inv-{slot_id}-{product_id}",
        "SalesSlotID": slot_id,
        "ProductID": product_id,
        "InitialQuantity": initial,
        "SoldQuantity": sold,
        "ReservedQuantity": reserved,
        "CreatedAt": "2024-05-01T08:00:00.123456789Z",
        "UpdatedAt": "2024-05-01T08:30:00Z",
        "Product": product_row(product_id, name, price),
    }


def slot_row(slot_id, *, start="2024-05-01T10:00:00Z", end="2024-05-01T11:00:00Z", active=False):
    return {"id": slot_id, "startTime": start, "endTime": end, "isActive": active}


class FakeBackend:
    def __init__(self):
        self.slots = [
            slot_row("slot-1", active=True),
            slot_row("slot-2", start="2024-05-01T11:00:00Z", end="2024-05-01T12:00:00Z"),
        ]
        self.inventory = {
            "slot-1": [
                inventory_row("p-1", name="Yakisoba", price=500, initial=10, sold=3, reserved=2),
                inventory_row("p-2", name="Ramune", price=200, initial=3),
                inventory_row("p-3", name="Takoyaki", price=600, initial=4, sold=4),
            ],
            "slot-2": [
                inventory_row("p-1", name="Yakisoba", price=500, initial=20, slot_id="slot-2"),
            ],
        }
        self.orders = {}
        self.requests = []
        self.order_payloads = []
        # (status, json body) to answer with, keyed by "METHOD /path"
        self.failures = {}
        # Called with the slot id before an inventory response is built
        self.on_inventory = None
        self._next_order = 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def fail(self, method, path, status=500, body=None):
        self.failures[f"{method} {path}"] = (status, body)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/api/v1", 1)[-1]
        key = f"{request.method} {path}"
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if key in self.failures:
            status, payload = self.failures[key]
            if isinstance(payload, Exception):
                raise payload
            if payload is None:
                return httpx.Response(status, text="boom")
            return httpx.Response(status, json=payload)

        parts = [part for part in path.split("/") if part]

        if parts == ["sales-slots"] and request.method == "GET":
            return httpx.Response(200, json=self.slots)

        if len(parts) == 3 and parts[0] == "sales-slots" and parts[2] == "products":
            slot_id = parts[1]
            if self.on_inventory is not None:
                self.on_inventory(slot_id)
            return httpx.Response(200, json=self.inventory.get(slot_id, []))

        if parts[:1] == ["products"] and request.method == "GET":
            products = {}
            for rows in self.inventory.values():
                for row in rows:
                    products.setdefault(row["ProductID"], row["Product"])
            if len(parts) == 1:
                return httpx.Response(200, json=list(products.values()))
            if parts[1] in products:
                return httpx.Response(200, json=products[parts[1]])
            return httpx.Response(404, json={"message": "Product not found"})

        if parts == ["orders"] and request.method == "POST":
            return self._create_order(body)

        if parts[:1] == ["orders"]:
            return self._order_route(request.method, parts[1:], body)

        return httpx.Response(404, json={"message": f"no route for {key}"})

    # =========================================================================
    # ORDERS
    # =========================================================================

    def _price_of(self, slot_id, product_id):
        for row in self.inventory.get(slot_id, []):
            if row["ProductID"] == product_id:
                return row["Product"]["Price"]
        return 0

    def _create_order(self, body):
        self.order_payloads.append(body)
        order_id = f"order-{self._next_order}"
        self._next_order += 1
        items = [
            {
                "id": f"{order_id}-{index}",
                "productId": item["productId"],
                "quantity": item["quantity"],
                "price": self._price_of(body["salesSlotId"], item["productId"]),
            }
            for index, item in enumerate(body["items"])
        ]
        order = {
            "id": order_id,
            "ticketNumber": body["ticketNumber"],
            "salesSlotId": body["salesSlotId"],
            "status": "RESERVED",
            "isPaid": False,
            "isDelivered": False,
            "paymentMethod": body["paymentMethod"],
            "totalAmount": sum(item["price"] * item["quantity"] for item in items),
            "items": items,
            "createdAt": "2024-05-01T10:05:00Z",
        }
        self.orders[order_id] = order
        return httpx.Response(201, json=order)

    def _order_route(self, method, parts, body):
        if method == "GET" and len(parts) == 2 and parts[0] == "number":
            for order in self.orders.values():
                if order["ticketNumber"] == parts[1]:
                    return httpx.Response(200, json=order)
            return httpx.Response(404, json={"message": "Order not found"})

        order = self.orders.get(parts[0]) if parts else None
        if order is None:
            return httpx.Response(404, json={"message": "Order not found"})

        if method == "GET" and len(parts) == 1:
            return httpx.Response(200, json=order)

        if method == "PUT" and len(parts) == 2:
            action = parts[1]
            if action == "payment":
                order.update(transactionId=body["transactionId"], isPaid=True)
            elif action == "confirm":
                order.update(status="CONFIRMED")
            elif action == "cancel":
                order.update(status="CANCELLED")
            elif action == "delivery":
                order.update(isDelivered=True)
            else:
                return httpx.Response(404, json={"message": "no such action"})
            return httpx.Response(200, json=order)

        return httpx.Response(405, json={"message": "method not allowed"})
