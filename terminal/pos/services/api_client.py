# Overview: HTTP client for the festival backend REST API.

"""
Backend REST Client

WHY: Every call the terminal makes to the backend goes through one client
object, constructed with an explicit base URL and timeout. Settings are
injected here when the client is built instead of being re-read from storage
on every request; changing settings builds a new client.

Failure contract:
- Non-2xx responses raise ApiError with the backend's "message" field when
  the body is JSON, else "API request failed with status N".
- Transport failures (connection refused, timeouts) raise ApiError with
  status=None.
- Nothing is retried; order submission carries no idempotency key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .types import Order, OrderRequest, Product, SalesSlot


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass(eq=False)
class ApiError(Exception):
    """Network or HTTP-level failure talking to the backend."""

    status: Optional[int]
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:
        return self.message


def _normalise_base_url(base_url: str) -> str:
    """Strip trailing slashes so "/products" joins cleanly."""
    return base_url.rstrip("/")


def _error_message(response: httpx.Response) -> str:
    fallback = f"API request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return fallback


def _parse(factory, data: Any):
    """Build a record from a response body; malformed bodies surface as ApiError."""
    try:
        return factory(data)
    except (TypeError, ValueError, KeyError) as exc:
        raise ApiError(status=None, message=f"Backend returned malformed data: {exc}", details=data) from exc


class TimeseatsClient:
    """Typed wrapper over the backend endpoints used by the POS screen."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = _normalise_base_url(base_url)
        self.timeout = timeout
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TimeseatsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = self._http.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("%s %s%s failed: %s", method, self.base_url, path, exc)
            raise ApiError(status=None, message=f"Could not reach the backend: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s%s -> %s %s", method, self.base_url, path, response.status_code, message)
            raise ApiError(status=response.status_code, message=message, details=response.text[:1000])

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                status=response.status_code,
                message="Backend returned a non-JSON response",
                details=response.text[:1000],
            ) from exc

    # =========================================================================
    # PRODUCTS & SALES SLOTS
    # =========================================================================

    def list_products(self) -> list[Product]:
        data = self._request("GET", "/products") or []
        return [_parse(Product.from_api, item) for item in data]

    def get_product(self, product_id: str) -> Product:
        return _parse(Product.from_api, self._request("GET", f"/products/{product_id}"))

    def list_sales_slots(self) -> list[SalesSlot]:
        data = self._request("GET", "/sales-slots") or []
        return [_parse(SalesSlot.from_api, item) for item in data]

    def list_slot_inventory(self, sales_slot_id: str) -> Any:
        """
        Raw inventory rows for a slot.

        Returned untouched: shape checking and normalization happen in
        inventory_service.normalize_inventory so every caller shares one path.
        """
        return self._request("GET", f"/sales-slots/{sales_slot_id}/products")

    # =========================================================================
    # ORDERS
    # =========================================================================

    def create_order(self, order_request: OrderRequest) -> Order:
        return _parse(Order.from_api, self._request("POST", "/orders", json=order_request.to_payload()))

    def get_order(self, order_id: str) -> Order:
        return _parse(Order.from_api, self._request("GET", f"/orders/{order_id}"))

    def get_order_by_ticket(self, ticket_number: str) -> Order:
        return _parse(Order.from_api, self._request("GET", f"/orders/number/{ticket_number}"))

    def update_payment(self, order_id: str, transaction_id: str) -> Order:
        data = self._request("PUT", f"/orders/{order_id}/payment", json={"transactionId": transaction_id})
        return _parse(Order.from_api, data)

    def confirm_order(self, order_id: str) -> Order:
        return _parse(Order.from_api, self._request("PUT", f"/orders/{order_id}/confirm"))

    def cancel_order(self, order_id: str) -> Order:
        return _parse(Order.from_api, self._request("PUT", f"/orders/{order_id}/cancel"))

    def mark_delivered(self, order_id: str) -> Order:
        return _parse(Order.from_api, self._request("PUT", f"/orders/{order_id}/delivery"))


__all__ = ["ApiError", "TimeseatsClient", "DEFAULT_TIMEOUT"]
