"""Order entities, request payloads and data exchanged with other services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class OrderStatus(str, Enum):
    """Lifecycle state of an order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Role(str, Enum):
    """Role of an authenticated user."""

    CUSTOMER = "customer"
    MERCHANT = "merchant"
    DRIVER = "driver"
    ADMIN = "admin"


class OrderError(Exception):
    """Base class for order handling failures."""


class OrderNotFoundError(OrderError, LookupError):
    """The requested order does not exist."""


class AccessDeniedError(OrderError, PermissionError):
    """The caller may not see or change the order."""


class InvalidTransitionError(OrderError, ValueError):
    """The requested status change is not allowed."""


class ServiceError(OrderError):
    """A call to another service failed or was rejected."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fmt(value: datetime) -> str:
    return value.isoformat()


def _mapping(data: Any, what: str = "request body") -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _str(data: Mapping[str, Any], key: str, required: bool = False) -> str:
    value = data.get(key)
    if value is None or value == "":
        if required:
            raise ValueError(f"{key} is required")
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _float(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _int(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _time(data: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a timestamp string")
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"{key} is not a valid timestamp: {value!r}") from None


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings")
    return list(value)


def _put(result: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        return
    result[key] = _fmt(value) if isinstance(value, datetime) else value


@dataclass(kw_only=True)
class DeliveryInfo:
    """Where and to whom an order is delivered."""

    address: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    phone: str = ""
    notes: str = ""


def _delivery_to_dict(info: DeliveryInfo) -> dict[str, Any]:
    result: dict[str, Any] = {
        "address": info.address,
        "latitude": info.latitude,
        "longitude": info.longitude,
        "phone": info.phone,
    }
    if info.notes:
        result["notes"] = info.notes
    return result


def _delivery_from_dict(data: Any) -> DeliveryInfo:
    data = _mapping(data, "delivery_info")
    return DeliveryInfo(
        address=_str(data, "address"),
        latitude=_float(data, "latitude"),
        longitude=_float(data, "longitude"),
        phone=_str(data, "phone"),
        notes=_str(data, "notes"),
    )


@dataclass(kw_only=True)
class PaymentInfo:
    """How an order is paid and the state of that payment."""

    method: str = ""
    status: str = ""
    reference: str = ""


def _payment_to_dict(info: PaymentInfo) -> dict[str, Any]:
    result: dict[str, Any] = {"method": info.method, "status": info.status}
    if info.reference:
        result["reference"] = info.reference
    return result


def _payment_from_dict(data: Any) -> PaymentInfo:
    data = _mapping(data, "payment_info")
    return PaymentInfo(
        method=_str(data, "method"),
        status=_str(data, "status"),
        reference=_str(data, "reference"),
    )


@dataclass(kw_only=True)
class OrderItem:
    """One product line of an order."""

    id: str
    order_id: str
    product_id: str
    name: str = ""
    price: float = 0.0
    quantity: int = 0
    notes: str = ""


def _item_to_dict(item: OrderItem) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": item.id,
        "order_id": item.order_id,
        "product_id": item.product_id,
        "name": item.name,
        "price": item.price,
        "quantity": item.quantity,
    }
    if item.notes:
        result["notes"] = item.notes
    return result


@dataclass(kw_only=True)
class Order:
    """A customer's order from one merchant."""

    id: str
    customer_id: str
    merchant_id: str
    driver_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    items: list[OrderItem] = field(default_factory=list)
    delivery_info: DeliveryInfo = field(default_factory=DeliveryInfo)
    payment_info: PaymentInfo = field(default_factory=PaymentInfo)
    total_amount: float = 0.0
    delivery_fee: float = 0.0
    service_fee: float = 0.0
    tax_amount: float = 0.0
    final_amount: float = 0.0
    placed_at: datetime = field(default_factory=_now)
    scheduled_for: Optional[datetime] = None
    estimated_time: Optional[int] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        result: dict[str, Any] = {
            "id": self.id,
            "customer_id": self.customer_id,
            "merchant_id": self.merchant_id,
        }
        _put(result, "driver_id", self.driver_id)
        result.update(
            {
                "status": self.status.value,
                "items": [_item_to_dict(item) for item in self.items],
                "delivery_info": _delivery_to_dict(self.delivery_info),
                "payment_info": _payment_to_dict(self.payment_info),
                "total_amount": self.total_amount,
                "delivery_fee": self.delivery_fee,
                "service_fee": self.service_fee,
                "tax_amount": self.tax_amount,
                "final_amount": self.final_amount,
                "placed_at": _fmt(self.placed_at),
            }
        )
        _put(result, "scheduled_for", self.scheduled_for)
        _put(result, "estimated_time", self.estimated_time)
        _put(result, "completed_at", self.completed_at)
        _put(result, "cancelled_at", self.cancelled_at)
        _put(result, "cancellation_reason", self.cancellation_reason)
        result["created_at"] = _fmt(self.created_at)
        result["updated_at"] = _fmt(self.updated_at)
        return result


@dataclass(kw_only=True)
class OrderItemReq:
    """A product and quantity requested by a customer."""

    product_id: str
    quantity: int
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        result: dict[str, Any] = {"product_id": self.product_id, "quantity": self.quantity}
        if self.notes:
            result["notes"] = self.notes
        return result


def _item_req_from_dict(data: Any) -> OrderItemReq:
    data = _mapping(data, "item")
    quantity = _int(data, "quantity")
    if quantity is None or quantity == 0:
        raise ValueError("quantity is required")
    if quantity < 1:
        raise ValueError("quantity must be at least 1")
    return OrderItemReq(
        product_id=_str(data, "product_id", required=True),
        quantity=quantity,
        notes=_str(data, "notes"),
    )


@dataclass(kw_only=True)
class CreateOrderRequest:
    """A customer's request to place an order."""

    merchant_id: str
    items: list[OrderItemReq]
    delivery_info: DeliveryInfo
    payment_info: PaymentInfo
    scheduled_for: Optional[datetime] = None
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "CreateOrderRequest":
        """Validate and build a request from a decoded JSON object."""
        data = _mapping(data)
        merchant_id = _str(data, "merchant_id", required=True)
        raw_items = data.get("items")
        if raw_items is None:
            raise ValueError("items is required")
        if not isinstance(raw_items, list):
            raise ValueError("items must be a list")
        if not raw_items:
            raise ValueError("items must contain at least one item")
        for key in ("delivery_info", "payment_info"):
            if data.get(key) is None:
                raise ValueError(f"{key} is required")
        return cls(
            merchant_id=merchant_id,
            items=[_item_req_from_dict(item) for item in raw_items],
            delivery_info=_delivery_from_dict(data["delivery_info"]),
            payment_info=_payment_from_dict(data["payment_info"]),
            scheduled_for=_time(data, "scheduled_for"),
            notes=_str(data, "notes"),
        )


@dataclass(kw_only=True)
class UpdateOrderStatusRequest:
    """A request to move an order to another status."""

    status: OrderStatus
    estimated_time: Optional[int] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "UpdateOrderStatusRequest":
        """Validate and build a request from a decoded JSON object."""
        data = _mapping(data)
        raw_status = data.get("status")
        if raw_status is None or raw_status == "":
            raise ValueError("status is required")
        try:
            status = OrderStatus(raw_status)
        except ValueError:
            raise ValueError(f"invalid status: {raw_status!r}") from None
        reason = data.get("cancellation_reason")
        if reason is not None and not isinstance(reason, str):
            raise ValueError("cancellation_reason must be a string")
        return cls(
            status=status,
            estimated_time=_int(data, "estimated_time"),
            cancellation_reason=reason,
        )


@dataclass(kw_only=True)
class MerchantInfo:
    """Merchant details shown with an order."""

    id: str
    name: str = ""
    phone: str = ""
    address: str = ""


@dataclass(kw_only=True)
class DriverInfo:
    """Driver details shown with an order."""

    id: str
    name: str = ""
    phone: str = ""
    rating: float = 0.0


@dataclass(kw_only=True)
class Location:
    """A point on the map."""

    latitude: float = 0.0
    longitude: float = 0.0


@dataclass(kw_only=True)
class TrackingStep:
    """One status an order has passed through."""

    status: OrderStatus
    description: str
    timestamp: datetime


@dataclass(kw_only=True)
class OrderTrackingInfo:
    """Progress of an order towards delivery."""

    current_location: Optional[Location] = None
    estimated_arrival: Optional[datetime] = None
    steps: list[TrackingStep] = field(default_factory=list)


def _tracking_to_dict(info: OrderTrackingInfo) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if info.current_location is not None:
        result["current_location"] = {
            "latitude": info.current_location.latitude,
            "longitude": info.current_location.longitude,
        }
    _put(result, "estimated_arrival", info.estimated_arrival)
    result["steps"] = [
        {
            "status": step.status.value,
            "description": step.description,
            "timestamp": _fmt(step.timestamp),
        }
        for step in info.steps
    ]
    return result


@dataclass(kw_only=True)
class OrderResponse:
    """An order together with the details the caller may see."""

    order: Order
    merchant_info: Optional[MerchantInfo] = None
    driver_info: Optional[DriverInfo] = None
    tracking_info: Optional[OrderTrackingInfo] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        result: dict[str, Any] = {"order": self.order.to_dict()}
        if self.merchant_info is not None:
            m = self.merchant_info
            result["merchant_info"] = {
                "id": m.id,
                "name": m.name,
                "phone": m.phone,
                "address": m.address,
            }
        if self.driver_info is not None:
            d = self.driver_info
            result["driver_info"] = {
                "id": d.id,
                "name": d.name,
                "phone": d.phone,
                "rating": d.rating,
            }
        if self.tracking_info is not None:
            result["tracking_info"] = _tracking_to_dict(self.tracking_info)
        return result


@dataclass(kw_only=True)
class Product:
    """A catalog product."""

    id: str
    name: str = ""
    price: float = 0.0
    description: str = ""
    available: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Product":
        """Build a product from a decoded JSON object."""
        data = _mapping(data, "product")
        return cls(
            id=_str(data, "id"),
            name=_str(data, "name"),
            price=_float(data, "price"),
            description=_str(data, "description"),
            available=_bool(data, "available"),
        )


@dataclass(kw_only=True)
class ValidatedItem:
    """An order line as priced and checked by the catalog."""

    product_id: str
    name: str = ""
    price: float = 0.0
    quantity: int = 0
    available: bool = False
    subtotal: float = 0.0


def _validated_item_from_dict(data: Any) -> ValidatedItem:
    data = _mapping(data, "validated item")
    return ValidatedItem(
        product_id=_str(data, "product_id"),
        name=_str(data, "name"),
        price=_float(data, "price"),
        quantity=_int(data, "quantity") or 0,
        available=_bool(data, "available"),
        subtotal=_float(data, "subtotal"),
    )


@dataclass(kw_only=True)
class OrderValidation:
    """The catalog's verdict on a requested order."""

    valid: bool
    items: list[ValidatedItem] = field(default_factory=list)
    total_amount: float = 0.0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "OrderValidation":
        """Build a validation result from a decoded JSON object."""
        data = _mapping(data, "validation")
        raw_items = data.get("items")
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise ValueError("items must be a list")
        return cls(
            valid=_bool(data, "valid"),
            items=[_validated_item_from_dict(item) for item in raw_items],
            total_amount=_float(data, "total_amount"),
            errors=_str_list(data, "errors"),
        )


@dataclass(kw_only=True)
class PaymentResult:
    """Outcome of charging an order."""

    success: bool
    reference: str = ""
    error: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "PaymentResult":
        """Build a payment result from a decoded JSON object."""
        data = _mapping(data, "payment result")
        return cls(
            success=_bool(data, "success"),
            reference=_str(data, "reference"),
            error=_str(data, "error"),
        )