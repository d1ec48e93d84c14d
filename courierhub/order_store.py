"""In-memory storage for orders."""

from __future__ import annotations

import copy
import threading
from typing import Any, Callable, Iterable


class OrderRepository:
    """Keeps orders by id and answers the queries the order service needs.

    Stored and returned orders are copies, so callers must call ``update``
    to persist changes. Query results are newest first by ``created_at``.
    A negative ``limit`` means no limit; a negative ``offset`` means none.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Any] = {}
        self._lock = threading.Lock()

    def create(self, order: Any) -> None:
        """Store a new order; raise ValueError if its id is taken."""
        with self._lock:
            if order.id in self._orders:
                raise ValueError(f"order {order.id} already exists")
            self._orders[order.id] = copy.deepcopy(order)

    def get_by_id(self, order_id: str) -> Any:
        """Return the order with this id; raise LookupError if absent."""
        with self._lock:
            try:
                return copy.deepcopy(self._orders[order_id])
            except KeyError:
                raise LookupError(f"order {order_id} not found") from None

    def get_by_customer_id(self, customer_id: str, limit: int, offset: int) -> list[Any]:
        """Return a page of the customer's orders."""
        return self._query(lambda o: o.customer_id == customer_id, limit, offset)

    def get_by_merchant_id(self, merchant_id: str, limit: int, offset: int) -> list[Any]:
        """Return a page of the merchant's orders."""
        return self._query(lambda o: o.merchant_id == merchant_id, limit, offset)

    def get_by_driver_id(self, driver_id: str, limit: int, offset: int) -> list[Any]:
        """Return a page of orders assigned to the driver."""
        return self._query(
            lambda o: o.driver_id is not None and o.driver_id == driver_id, limit, offset
        )

    def get_by_status(self, status: Any, limit: int, offset: int) -> list[Any]:
        """Return a page of orders in the given status."""
        return self._query(lambda o: o.status == status, limit, offset)

    def update(self, order: Any) -> None:
        """Save the order, inserting it if it is not stored yet."""
        with self._lock:
            self._orders[order.id] = copy.deepcopy(order)

    def delete(self, order_id: str) -> None:
        """Remove the order if present."""
        with self._lock:
            self._orders.pop(order_id, None)

    def list(self, limit: int, offset: int) -> list[Any]:
        """Return a page of all orders."""
        return self._query(lambda o: True, limit, offset)

    def _query(self, predicate: Callable[[Any], bool], limit: int, offset: int) -> list[Any]:
        with self._lock:
            matches = [o for o in self._orders.values() if predicate(o)]
            ordered = sorted(matches, key=lambda o: o.created_at, reverse=True)
            return [copy.deepcopy(o) for o in _page(ordered, limit, offset)]


def _page(items: list[Any], limit: int, offset: int) -> Iterable[Any]:
    start = max(offset, 0)
    if limit < 0:
        return items[start:]
    return items[start:start + limit]