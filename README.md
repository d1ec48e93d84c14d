# courierhub

Order service for a courier delivery platform.

It places orders after checking them against a catalog and taking
payment. It moves each order through its life cycle: pending, confirmed,
preparing, ready, assigned, picked up, in transit, then delivered or
cancelled. Who may see or change an order depends on the caller's role:
customer, merchant, driver or admin. Orders are served over HTTP with
Flask.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the order API

```
courierhub-orders [--host HOST] [--port PORT]
```

The server listens on `0.0.0.0` by default. The port comes from
`--port`, or from the `PORT` environment variable, or is `8002`. The
command runs with in-memory storage and with the stand-in catalog,
payment and notification clients. `GET /health` answers
`{"status": "healthy", "service": "order-service"}`.

Every response carries permissive CORS headers, and `OPTIONS` requests
get a `204` answer.

### Routes

| Route | Roles |
| --- | --- |
| `POST /api/v1/orders`, `GET /api/v1/orders`, `GET /api/v1/orders/<id>`, `PUT /api/v1/orders/<id>/cancel` | customer, admin |
| `GET /api/v1/merchant/orders`, `GET /api/v1/merchant/orders/<id>`, `PUT /api/v1/merchant/orders/<id>/status` | merchant, admin |
| `GET /api/v1/driver/orders`, `GET /api/v1/driver/orders/<id>`, `PUT /api/v1/driver/orders/<id>/status` | driver, admin |
| `GET /api/v1/admin/orders`, `GET /api/v1/admin/orders/active`, `GET /api/v1/admin/orders/<id>`, `PUT /api/v1/admin/orders/<id>/status` | admin |

- List routes accept `limit` (default 10) and `offset` (default 0).
- By default the caller's identity is read from the `X-User-ID` and
  `X-User-Role` headers.
- If neither header is present, the answer is `401`.
- A role not allowed on the route gets `403`.
- A cancel request without a `reason` is recorded as
  "Cancelled by customer".

## Using it from Python

```python
from courierhub.order_api import create_app
from courierhub.order_clients import MockCatalogClient, MockNotificationClient, MockPaymentClient
from courierhub.order_service import OrderService
from courierhub.order_store import OrderRepository

service = OrderService(
    OrderRepository(),
    MockCatalogClient(),
    MockPaymentClient(),
    MockNotificationClient(),
)
app = create_app(service)
```

`create_app(service, identify)` builds the Flask application. `identify`
is optional. It is a callable that takes the request and returns
`(user_id, role)` for an authenticated caller, or `None`.

`OrderService` does the following:

- `create_order` validates the order, prices it, charges it and stores
  it.
- `get_order` and `get_order_history` filter what a caller may see by
  role.
- `update_order_status` and `cancel_order` apply only allowed status
  transitions. The helper `is_valid_status_transition` tells which ones
  are allowed.
- `get_active_orders` lists the orders that are neither delivered nor
  cancelled.

It raises these errors, all from `courierhub.order_models`:

- `OrderNotFoundError` when the order does not exist.
- `AccessDeniedError` when the caller may not see or change the order.
- `InvalidTransitionError` for a status change that is not allowed.
- `ServiceError` when the catalog, the payment or the storage fails.

Fees are set in `courierhub.order_service`:

| Function | Amount |
| --- | --- |
| `calculate_delivery_fee` | flat 2.99 |
| `calculate_service_fee` | 5% of the items |
| `calculate_tax` | 8% of the items |

### Talking to other services

`courierhub.order_clients` has HTTP clients for the services an order
depends on:

| Client | Service | Base URL (environment variable) | Default |
| --- | --- | --- | --- |
| `CatalogClient` | catalog | `CATALOG_SERVICE_URL` | `http://localhost:8003` |
| `PaymentClient` | payment | `PAYMENT_SERVICE_URL` | `http://localhost:8007` |
| `NotificationClient` | notification | `NOTIFICATION_SERVICE_URL` | `http://localhost:8008` |

Each client takes an optional `base_url` and `timeout`.

The stand-ins `MockCatalogClient`, `MockPaymentClient` and
`MockNotificationClient` need no network:

- `MockCatalogClient` prices every product at 12.99.
- `MockPaymentClient` always approves the payment.
- `MockNotificationClient` only logs the message.

## What it does not do

- Storage is in memory only (`OrderRepository`). Orders are lost when
  the process ends, and there is no database.
- There is no real authentication. The default identity comes from
  request headers as sent, so a real deployment must pass its own
  `identify`.
- It does not deliver notifications itself. It can only call a separate
  notification service through `NotificationClient`.
- `courierhub-orders` always runs with the stand-in clients.
- There is no API documentation endpoint.