"""Placing orders and moving them through their lifecycle."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Union

from courierhub.order_models import (
    AccessDeniedError,
    CreateOrderRequest,
    DeliveryInfo,
    DriverInfo,
    InvalidTransitionError,
    MerchantInfo,
    Order,
    OrderItem,
    OrderNotFoundError,
    OrderResponse,
    OrderStatus,
    OrderTrackingInfo,
    Role,
    ServiceError,
    TrackingStep,
    UpdateOrderStatusRequest,
)
from courierhub.order_store import OrderRepository

_log = logging.getLogger(__name__)

DELIVERY_FEE = 2.99
SERVICE_FEE_RATE = 0.05
TAX_RATE = 0.08
ACTIVE_ORDERS_PER_STATUS = 100

_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.ASSIGNED, OrderStatus.CANCELLED}),
    OrderStatus.ASSIGNED: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.IN_TRANSIT}),
    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED}),
}

_DESCRIPTIONS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Order placed",
    OrderStatus.CONFIRMED: "Order confirmed by restaurant",
    OrderStatus.PREPARING: "Restaurant is preparing your order",
    OrderStatus.READY: "Order is ready for pickup",
    OrderStatus.ASSIGNED: "Driver assigned",
    OrderStatus.PICKED_UP: "Order picked up by driver",
    OrderStatus.IN_TRANSIT: "Order is on the way",
    OrderStatus.DELIVERED: "Order delivered",
    OrderStatus.CANCELLED: "Order cancelled",
}

_MERCHANT_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED}
)
_DRIVER_STATUSES = frozenset(
    {OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED}
)
_ACTIVE_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.ASSIGNED,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_TRANSIT,
)

RoleLike = Union[Role, str]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _role(role: RoleLike) -> Optional[Role]:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def is_valid_status_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Return whether an order may move from ``current`` to ``new``."""
    return new in _TRANSITIONS.get(current, frozenset())


def calculate_delivery_fee(delivery_info: DeliveryInfo) -> float:
    """Return the delivery fee; currently a flat rate."""
    return DELIVERY_FEE


def calculate_service_fee(total_amount: float) -> float:
    """Return the service fee charged on the items' total."""
    return total_amount * SERVICE_FEE_RATE


def calculate_tax(total_amount: float) -> float:
    """Return the tax charged on the items' total."""
    return total_amount * TAX_RATE


def status_description(status: OrderStatus) -> str:
    """Return a customer-facing description of a status."""
    return _DESCRIPTIONS.get(status, str(getattr(status, "value", status)))


class OrderService:
    """Creates orders, enforces who may see and change them, and tracks progress."""

    def __init__(self, orders: OrderRepository, catalog, payments, notifications) -> None:
        self._orders = orders
        self._catalog = catalog
        self._payments = payments
        self._notifications = notifications

    def create_order(self, customer_id: str, request: CreateOrderRequest) -> OrderResponse:
        """Validate, price, charge and store a new order."""
        try:
            validation = self._catalog.validate_order(request.merchant_id, request.items)
        except Exception as exc:
            raise ServiceError(f"failed to validate order: {exc}") from exc
        if not validation.valid:
            raise ServiceError(f"order validation failed: {validation.errors}")

        now = _now()
        total = validation.total_amount
        order = Order(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            merchant_id=request.merchant_id,
            status=OrderStatus.PENDING,
            delivery_info=replace(request.delivery_info),
            payment_info=replace(request.payment_info),
            total_amount=total,
            delivery_fee=calculate_delivery_fee(request.delivery_info),
            service_fee=calculate_service_fee(total),
            tax_amount=calculate_tax(total),
            placed_at=now,
            scheduled_for=request.scheduled_for,
            created_at=now,
            updated_at=now,
        )
        order.final_amount = (
            order.total_amount + order.delivery_fee + order.service_fee + order.tax_amount
        )

        for validated in validation.items:
            notes = next(
                (r.notes for r in request.items if r.product_id == validated.product_id), ""
            )
            order.items.append(
                OrderItem(
                    id=str(uuid.uuid4()),
                    order_id=order.id,
                    product_id=validated.product_id,
                    name=validated.name,
                    price=validated.price,
                    quantity=validated.quantity,
                    notes=notes,
                )
            )

        try:
            result = self._payments.process_payment(
                order.id, order.final_amount, request.payment_info
            )
        except Exception as exc:
            raise ServiceError(f"payment processing failed: {exc}") from exc
        if not result.success:
            raise ServiceError(f"payment failed: {result.error}")

        order.payment_info.status = "completed"
        order.payment_info.reference = result.reference

        try:
            self._orders.create(order)
        except ValueError as exc:
            raise ServiceError(f"failed to create order: {exc}") from exc

        self._notify(order.id, customer_id, f"Order #{order.id[:8]} has been placed successfully")
        _log.info(
            "Event: OrderCreated - OrderID: %s, CustomerID: %s, MerchantID: %s",
            order.id,
            order.customer_id,
            order.merchant_id,
        )
        return OrderResponse(order=order)

    def get_order(self, order_id: str, user_id: str, role: RoleLike) -> OrderResponse:
        """Return an order with the details the caller's role may see."""
        order = self._load(order_id)
        resolved = _role(role)
        if not self._can_access(order, user_id, resolved):
            raise AccessDeniedError("unauthorized access to order")

        response = OrderResponse(order=order)
        if resolved in (Role.CUSTOMER, Role.ADMIN):
            response.merchant_info = MerchantInfo(id=order.merchant_id, name="Sample Restaurant")
            if order.driver_id is not None:
                response.driver_info = DriverInfo(id=order.driver_id, name="Sample Driver")
            response.tracking_info = self._tracking(order)
        return response

    def get_order_history(
        self, user_id: str, role: RoleLike, limit: int, offset: int
    ) -> list[Order]:
        """Return a page of the orders that belong to the caller."""
        resolved = _role(role)
        if resolved is Role.CUSTOMER:
            return self._orders.get_by_customer_id(user_id, limit, offset)
        if resolved is Role.MERCHANT:
            return self._orders.get_by_merchant_id(user_id, limit, offset)
        if resolved is Role.DRIVER:
            return self._orders.get_by_driver_id(user_id, limit, offset)
        if resolved is Role.ADMIN:
            return self._orders.list(limit, offset)
        raise AccessDeniedError("invalid role")

    def update_order_status(
        self,
        order_id: str,
        request: UpdateOrderStatusRequest,
        user_id: str,
        role: RoleLike,
    ) -> OrderResponse:
        """Move an order to a new status if the caller and the transition allow it."""
        order = self._load(order_id)
        resolved = _role(role)
        if not self._can_update(order, user_id, resolved, request.status):
            raise AccessDeniedError("unauthorized to update order status")
        if not is_valid_status_transition(order.status, request.status):
            raise InvalidTransitionError(
                f"invalid status transition from {order.status.value} to {request.status.value}"
            )

        now = _now()
        order.status = request.status
        order.updated_at = now
        if request.estimated_time is not None:
            order.estimated_time = request.estimated_time
        if request.status is OrderStatus.DELIVERED:
            order.completed_at = now
        if request.status is OrderStatus.CANCELLED:
            order.cancelled_at = now
            if request.cancellation_reason is not None:
                order.cancellation_reason = request.cancellation_reason

        try:
            self._orders.update(order)
        except Exception as exc:
            raise ServiceError(f"failed to update order: {exc}") from exc

        self._notify(
            order.id,
            order.customer_id,
            f"Order #{order.id[:8]} status updated to {request.status.value}",
        )
        return self.get_order(order_id, user_id, role)

    def cancel_order(
        self, order_id: str, user_id: str, role: RoleLike, reason: str
    ) -> OrderResponse:
        """Cancel an order with the given reason."""
        request = UpdateOrderStatusRequest(
            status=OrderStatus.CANCELLED, cancellation_reason=reason
        )
        return self.update_order_status(order_id, request, user_id, role)

    def get_orders_for_merchant(self, merchant_id: str, limit: int, offset: int) -> list[Order]:
        """Return a page of the merchant's orders."""
        return self._orders.get_by_merchant_id(merchant_id, limit, offset)

    def get_orders_for_driver(self, driver_id: str, limit: int, offset: int) -> list[Order]:
        """Return a page of the driver's orders."""
        return self._orders.get_by_driver_id(driver_id, limit, offset)

    def get_active_orders(self) -> list[Order]:
        """Return orders that are neither delivered nor cancelled, grouped by status."""
        return [
            order
            for status in _ACTIVE_STATUSES
            for order in self._orders.get_by_status(status, ACTIVE_ORDERS_PER_STATUS, 0)
        ]

    def _load(self, order_id: str) -> Order:
        try:
            return self._orders.get_by_id(order_id)
        except LookupError as exc:
            raise OrderNotFoundError(str(exc)) from exc

    def _notify(self, order_id: str, user_id: str, message: str) -> None:
        try:
            self._notifications.send_order_notification(order_id, user_id, message)
        except Exception as exc:
            _log.warning("could not notify about order %s: %s", order_id, exc)

    @staticmethod
    def _can_access(order: Order, user_id: str, role: Optional[Role]) -> bool:
        if role is Role.CUSTOMER:
            return order.customer_id == user_id
        if role is Role.MERCHANT:
            return order.merchant_id == user_id
        if role is Role.DRIVER:
            return order.driver_id is not None and order.driver_id == user_id
        return role is Role.ADMIN

    @staticmethod
    def _can_update(
        order: Order, user_id: str, role: Optional[Role], new_status: OrderStatus
    ) -> bool:
        if role is Role.MERCHANT:
            return order.merchant_id == user_id and new_status in _MERCHANT_STATUSES
        if role is Role.DRIVER:
            return (
                order.driver_id is not None
                and order.driver_id == user_id
                and new_status in _DRIVER_STATUSES
            )
        return role is Role.ADMIN

    @staticmethod
    def _tracking(order: Order) -> OrderTrackingInfo:
        steps = [
            TrackingStep(
                status=OrderStatus.PENDING,
                description="Order placed",
                timestamp=order.placed_at,
            )
        ]
        if order.status is not OrderStatus.PENDING:
            steps.append(
                TrackingStep(
                    status=order.status,
                    description=status_description(order.status),
                    timestamp=order.updated_at,
                )
            )
        return OrderTrackingInfo(steps=steps)