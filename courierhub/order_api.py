"""HTTP API of the order service."""

from __future__ import annotations

import argparse
import logging
import os
import re
from typing import Any, Callable, Iterable, Optional, Tuple, Union

from flask import Blueprint, Flask, Request, g, jsonify, request

from courierhub.order_clients import (
    MockCatalogClient,
    MockNotificationClient,
    MockPaymentClient,
)
from courierhub.order_models import CreateOrderRequest, Role, UpdateOrderStatusRequest
from courierhub.order_service import OrderService
from courierhub.order_store import OrderRepository

_log = logging.getLogger(__name__)

Identity = Tuple[str, Union[Role, str]]
Identify = Callable[[Request], Optional[Identity]]

DEFAULT_PORT = "8002"
DEFAULT_PAGE_LIMIT = "10"
DEFAULT_CANCEL_REASON = "Cancelled by customer"

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int:
    """Parse a decimal integer; anything unparsable counts as 0."""
    return int(text) if _INTEGER.fullmatch(text) else 0


def _role_value(role: Union[Role, str]) -> str:
    return role.value if isinstance(role, Role) else str(role)


def _identity_from_headers(req: Request) -> Optional[Identity]:
    """Read the caller from the X-User-ID and X-User-Role headers."""
    user_id = req.headers.get("X-User-ID")
    role = req.headers.get("X-User-Role")
    if user_id is None and role is None:
        return None
    return user_id or "", role or ""


def _error(status: int, message: str) -> Any:
    return jsonify({"error": message}), status


def _page() -> tuple[int, int]:
    limit = _atoi(request.args.get("limit", DEFAULT_PAGE_LIMIT))
    offset = _atoi(request.args.get("offset", "0"))
    return limit, offset


def create_app(service: OrderService, identify: Optional[Identify] = None) -> Flask:
    """Build the Flask application serving the order endpoints.

    ``identify`` receives the request and returns ``(user_id, role)`` for an
    authenticated caller or ``None``; by default the caller is read from the
    X-User-ID and X-User-Role headers.
    """
    app = Flask(__name__)
    who = identify or _identity_from_headers

    @app.before_request
    def _preflight() -> Any:
        if request.method == "OPTIONS":
            return app.response_class(status=204)
        return None

    @app.after_request
    def _cors(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type,Authorization"
        return response

    @app.get("/health")
    def health() -> Any:
        return jsonify({"status": "healthy", "service": "order-service"})

    def guarded(name: str, prefix: str, roles: Iterable[Role]) -> Blueprint:
        blueprint = Blueprint(name, __name__, url_prefix=prefix)
        allowed = {role.value for role in roles}

        @blueprint.before_request
        def _authenticate() -> Any:
            identity = who(request)
            if identity is None:
                return _error(401, "authorization required")
            user_id, role = identity
            role_name = _role_value(role)
            if role_name not in allowed:
                return _error(403, "insufficient permissions")
            g.user_id = user_id
            g.role = role_name
            return None

        return blueprint

    def create_order() -> Any:
        if not g.user_id:
            return _error(401, "User ID not found")
        try:
            order_request = CreateOrderRequest.from_dict(request.get_json(silent=True))
        except ValueError as exc:
            return _error(400, str(exc))
        try:
            response = service.create_order(g.user_id, order_request)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify(response.to_dict()), 201

    def get_order(order_id: str) -> Any:
        try:
            response = service.get_order(order_id, g.user_id, g.role)
        except Exception as exc:
            return _error(404, str(exc))
        return jsonify(response.to_dict())

    def order_history() -> Any:
        limit, offset = _page()
        try:
            orders = service.get_order_history(g.user_id, g.role, limit, offset)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify([order.to_dict() for order in orders])

    def update_order_status(order_id: str) -> Any:
        try:
            status_request = UpdateOrderStatusRequest.from_dict(request.get_json(silent=True))
        except ValueError as exc:
            return _error(400, str(exc))
        try:
            response = service.update_order_status(order_id, status_request, g.user_id, g.role)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify(response.to_dict())

    def cancel_order(order_id: str) -> Any:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _error(400, "request body must be a JSON object")
        if any(value is not None and not isinstance(value, str) for value in body.values()):
            return _error(400, "request body values must be strings")
        reason = body.get("reason") or DEFAULT_CANCEL_REASON
        try:
            response = service.cancel_order(order_id, g.user_id, g.role, reason)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify(response.to_dict())

    def merchant_orders() -> Any:
        limit, offset = _page()
        try:
            orders = service.get_orders_for_merchant(g.user_id, limit, offset)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify([order.to_dict() for order in orders])

    def driver_orders() -> Any:
        limit, offset = _page()
        try:
            orders = service.get_orders_for_driver(g.user_id, limit, offset)
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify([order.to_dict() for order in orders])

    def active_orders() -> Any:
        try:
            orders = service.get_active_orders()
        except Exception as exc:
            return _error(500, str(exc))
        return jsonify([order.to_dict() for order in orders])

    customer = guarded("customer", "/api/v1/orders", (Role.CUSTOMER, Role.ADMIN))
    customer.add_url_rule("", "create_order", create_order, methods=["POST"])
    customer.add_url_rule("", "order_history", order_history, methods=["GET"])
    customer.add_url_rule("/<order_id>", "get_order", get_order, methods=["GET"])
    customer.add_url_rule("/<order_id>/cancel", "cancel_order", cancel_order, methods=["PUT"])

    merchant = guarded("merchant", "/api/v1/merchant/orders", (Role.MERCHANT, Role.ADMIN))
    merchant.add_url_rule("", "merchant_orders", merchant_orders, methods=["GET"])
    merchant.add_url_rule("/<order_id>", "get_order", get_order, methods=["GET"])
    merchant.add_url_rule(
        "/<order_id>/status", "update_status", update_order_status, methods=["PUT"]
    )

    driver = guarded("driver", "/api/v1/driver/orders", (Role.DRIVER, Role.ADMIN))
    driver.add_url_rule("", "driver_orders", driver_orders, methods=["GET"])
    driver.add_url_rule("/<order_id>", "get_order", get_order, methods=["GET"])
    driver.add_url_rule(
        "/<order_id>/status", "update_status", update_order_status, methods=["PUT"]
    )

    admin = guarded("admin", "/api/v1/admin/orders", (Role.ADMIN,))
    admin.add_url_rule("", "all_orders", order_history, methods=["GET"])
    admin.add_url_rule("/active", "active_orders", active_orders, methods=["GET"])
    admin.add_url_rule("/<order_id>", "get_order", get_order, methods=["GET"])
    admin.add_url_rule(
        "/<order_id>/status", "update_status", update_order_status, methods=["PUT"]
    )

    for blueprint in (customer, merchant, driver, admin):
        app.register_blueprint(blueprint)
    return app


def main(argv: Optional[list[str]] = None) -> int:
    """Run the order service with in-memory storage and mock collaborators."""
    parser = argparse.ArgumentParser(
        prog="courierhub-orders", description="Run the order service HTTP API."
    )
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument(
        "--port",
        type=int,
        default=os.environ.get("PORT", DEFAULT_PORT),
        help="port to listen on (default: $PORT or %(default)s)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    service = OrderService(
        OrderRepository(),
        MockCatalogClient(),
        MockPaymentClient(),
        MockNotificationClient(),
    )
    app = create_app(service)
    _log.info("Order Service starting on port %s", args.port)
    app.run(host=args.host, port=args.port)
    return 0