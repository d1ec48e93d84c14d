"""Clients for the catalog, notification and payment services, with offline stand-ins."""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.request
import uuid
from typing import Any, Callable, Iterable, Optional, TypeVar
from urllib.parse import quote

from courierhub.order_models import (
    OrderItemReq,
    OrderValidation,
    PaymentInfo,
    PaymentResult,
    Product,
    ServiceError,
    ValidatedItem,
)

_log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
MOCK_PRICE = 12.99

_T = TypeVar("_T")


def _service_url(env_key: str, default: str) -> str:
    return os.environ.get(env_key) or default


def _exchange(
    method: str, url: str, payload: Any, timeout: float, action: str
) -> tuple[int, bytes]:
    body = None
    headers = {}
    if payload is not None:
        body = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    request = urllib.request.Request(url, data=body, headers=headers, method=method)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return response.status, response.read()
    except urllib.error.HTTPError as exc:
        try:
            return exc.code, exc.read()
        finally:
            exc.close()
    except OSError as exc:
        raise ServiceError(f"failed to {action}: {exc}") from exc


def _decode(raw: bytes, parse: Callable[[Any], _T], what: str) -> _T:
    try:
        return parse(json.loads(raw))
    except ValueError as exc:
        raise ServiceError(f"failed to decode {what} response: {exc}") from exc


class CatalogClient:
    """Talks to the catalog service over HTTP."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = (base_url or _service_url("CATALOG_SERVICE_URL", "http://localhost:8003")).rstrip("/")
        self.timeout = timeout

    def get_product(self, product_id: str) -> Product:
        """Fetch one product; raise ServiceError on any failure."""
        url = f"{self.base_url}/api/v1/products/{quote(product_id, safe='')}"
        status, raw = _exchange("GET", url, None, self.timeout, "get product")
        if status != 200:
            raise ServiceError(f"product service returned status {status}")
        return _decode(raw, Product.from_dict, "product")

    def validate_order(self, merchant_id: str, items: Iterable[OrderItemReq]) -> OrderValidation:
        """Ask the catalog to price and check the requested items."""
        url = f"{self.base_url}/api/v1/stores/{quote(merchant_id, safe='')}/validate-order"
        payload = {"items": [item.to_dict() for item in items]}
        status, raw = _exchange("POST", url, payload, self.timeout, "validate order")
        if status != 200:
            raise ServiceError(f"catalog service returned status {status}")
        return _decode(raw, OrderValidation.from_dict, "validation")


class NotificationClient:
    """Talks to the notification service over HTTP."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = (
            base_url or _service_url("NOTIFICATION_SERVICE_URL", "http://localhost:8008")
        ).rstrip("/")
        self.timeout = timeout

    def send_order_notification(self, order_id: str, user_id: str, message: str) -> None:
        """Send an order update to the user; raise ServiceError on failure."""
        payload = {
            "user_id": user_id,
            "type": "order_update",
            "title": "Order Update",
            "message": message,
            "metadata": {"order_id": order_id},
        }
        url = f"{self.base_url}/api/v1/notifications/send"
        status, _ = _exchange("POST", url, payload, self.timeout, "send notification")
        if status != 200:
            raise ServiceError(f"notification service returned status {status}")


class PaymentClient:
    """Talks to the payment service over HTTP."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = (base_url or _service_url("PAYMENT_SERVICE_URL", "http://localhost:8007")).rstrip("/")
        self.timeout = timeout

    def process_payment(self, order_id: str, amount: float, payment_info: PaymentInfo) -> PaymentResult:
        """Charge an order; the service's answer is returned whatever its status code."""
        payload = {
            "order_id": order_id,
            "amount": amount,
            "method": payment_info.method,
            "reference": payment_info.reference,
        }
        url = f"{self.base_url}/api/v1/payments/process"
        _, raw = _exchange("POST", url, payload, self.timeout, "process payment")
        return _decode(raw, PaymentResult.from_dict, "payment")


class MockCatalogClient:
    """Catalog stand-in that prices every product at a fixed amount."""

    def get_product(self, product_id: str) -> Product:
        """Return a fixed sample product with the given id."""
        return Product(
            id=product_id,
            name="Mock Product",
            price=MOCK_PRICE,
            description="Mock product for testing",
            available=True,
        )

    def validate_order(self, merchant_id: str, items: Iterable[OrderItemReq]) -> OrderValidation:
        """Accept every item at the fixed price."""
        validated = [
            ValidatedItem(
                product_id=item.product_id,
                name=f"Product {item.product_id}",
                price=MOCK_PRICE,
                quantity=item.quantity,
                available=True,
                subtotal=MOCK_PRICE * item.quantity,
            )
            for item in items
        ]
        return OrderValidation(
            valid=True,
            items=validated,
            total_amount=sum(v.subtotal for v in validated),
            errors=[],
        )


class MockNotificationClient:
    """Notification stand-in that only logs."""

    def send_order_notification(self, order_id: str, user_id: str, message: str) -> None:
        """Log the notification instead of sending it."""
        _log.info("MOCK NOTIFICATION - Order: %s, User: %s, Message: %s", order_id, user_id, message)


class MockPaymentClient:
    """Payment stand-in that always succeeds."""

    def process_payment(self, order_id: str, amount: float, payment_info: PaymentInfo) -> PaymentResult:
        """Approve the payment with a fresh reference."""
        _log.info(
            "MOCK: Processing payment for order %s, amount: $%.2f, method: %s",
            order_id,
            amount,
            payment_info.method,
        )
        return PaymentResult(success=True, reference=str(uuid.uuid4()))