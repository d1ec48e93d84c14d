from datetime import datetime, timezone

import pytest

from courierhub.order_models import (
    CreateOrderRequest,
    DeliveryInfo,
    MerchantInfo,
    Order,
    OrderItem,
    OrderItemReq,
    OrderResponse,
    OrderStatus,
    OrderTrackingInfo,
    OrderValidation,
    PaymentInfo,
    PaymentResult,
    Product,
    TrackingStep,
    UpdateOrderStatusRequest,
)


def _valid_request():
    return {
        "merchant_id": "m-1",
        "items": [
            {"product_id": "p-1", "quantity": 2, "notes": "no onions"},
            {"product_id": "p-2", "quantity": 1},
        ],
        "delivery_info": {
            "address": "1 Main St",
            "latitude": 41.5,
            "longitude": 2.1,
            "phone": "555-0100",
        },
        "payment_info": {"method": "card"},
    }


def test_create_order_request_parses_fields():
    req = CreateOrderRequest.from_dict(_valid_request())
    assert req.merchant_id == "m-1"
    assert [i.product_id for i in req.items] == ["p-1", "p-2"]
    assert [i.quantity for i in req.items] == [2, 1]
    assert req.items[0].notes == "no onions"
    assert req.delivery_info.address == "1 Main St"
    assert req.delivery_info.latitude == 41.5
    assert req.payment_info.method == "card"
    assert req.scheduled_for is None


def test_create_order_request_parses_utc_timestamp():
    data = _valid_request()
    data["scheduled_for"] = "2024-05-01T10:00:00Z"
    req = CreateOrderRequest.from_dict(data)
    assert req.scheduled_for == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.pop("merchant_id"),
        lambda d: d.update(items=[]),
        lambda d: d.pop("items"),
        lambda d: d.update(items=[{"product_id": "p-1", "quantity": 0}]),
        lambda d: d.update(items=[{"product_id": "p-1", "quantity": -3}]),
        lambda d: d.update(items=[{"quantity": 1}]),
        lambda d: d.pop("delivery_info"),
        lambda d: d.pop("payment_info"),
        lambda d: d.update(scheduled_for="not a time"),
    ],
)
def test_create_order_request_rejects_invalid(mutate):
    data = _valid_request()
    mutate(data)
    with pytest.raises(ValueError):
        CreateOrderRequest.from_dict(data)


def test_create_order_request_rejects_non_object():
    with pytest.raises(ValueError):
        CreateOrderRequest.from_dict(["not", "an", "object"])


def test_update_status_request_parses():
    req = UpdateOrderStatusRequest.from_dict(
        {"status": "picked_up", "estimated_time": 15, "cancellation_reason": "late"}
    )
    assert req.status is OrderStatus.PICKED_UP
    assert req.estimated_time == 15
    assert req.cancellation_reason == "late"


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"status": "teleported"},
        {"status": "ready", "estimated_time": "soon"},
        {"status": "ready", "estimated_time": True},
    ],
)
def test_update_status_request_rejects_invalid(data):
    with pytest.raises(ValueError):
        UpdateOrderStatusRequest.from_dict(data)


def test_order_to_dict_omits_unset_optionals():
    order = Order(id="o-1", customer_id="c-1", merchant_id="m-1")
    result = order.to_dict()
    assert result["status"] == "pending"
    assert result["items"] == []
    for key in ("driver_id", "scheduled_for", "completed_at", "cancellation_reason"):
        assert key not in result
    assert datetime.fromisoformat(result["created_at"]) == order.created_at


def test_order_to_dict_includes_set_fields():
    order = Order(
        id="o-1",
        customer_id="c-1",
        merchant_id="m-1",
        driver_id="d-1",
        status=OrderStatus.IN_TRANSIT,
        items=[OrderItem(id="i-1", order_id="o-1", product_id="p-1", quantity=2)],
        delivery_info=DeliveryInfo(address="1 Main St"),
        payment_info=PaymentInfo(method="card", status="completed", reference="ref-1"),
        estimated_time=20,
        cancellation_reason="changed mind",
    )
    result = order.to_dict()
    assert result["driver_id"] == "d-1"
    assert result["status"] == "in_transit"
    assert result["items"][0]["product_id"] == "p-1"
    assert "notes" not in result["items"][0]
    assert result["delivery_info"]["address"] == "1 Main St"
    assert result["payment_info"]["reference"] == "ref-1"
    assert result["estimated_time"] == 20
    assert result["cancellation_reason"] == "changed mind"


def test_order_response_to_dict():
    order = Order(id="o-1", customer_id="c-1", merchant_id="m-1")
    bare = OrderResponse(order=order).to_dict()
    assert set(bare) == {"order"}

    stamp = datetime(2024, 1, 2, tzinfo=timezone.utc)
    full = OrderResponse(
        order=order,
        merchant_info=MerchantInfo(id="m-1", name="Sample Restaurant"),
        tracking_info=OrderTrackingInfo(
            steps=[TrackingStep(status=OrderStatus.PENDING, description="Order placed", timestamp=stamp)]
        ),
    ).to_dict()
    assert full["merchant_info"]["name"] == "Sample Restaurant"
    assert "driver_info" not in full
    assert full["tracking_info"]["steps"][0]["status"] == "pending"
    assert datetime.fromisoformat(full["tracking_info"]["steps"][0]["timestamp"]) == stamp


def test_order_item_req_to_dict_round_trip():
    item = OrderItemReq(product_id="p-9", quantity=3)
    assert item.to_dict() == {"product_id": "p-9", "quantity": 3}
    with_notes = OrderItemReq(product_id="p-9", quantity=3, notes="extra")
    assert with_notes.to_dict()["notes"] == "extra"


def test_product_from_dict():
    product = Product.from_dict(
        {"id": "p-1", "name": "Mock Product", "price": 12.99, "description": "d", "available": True}
    )
    assert product.id == "p-1"
    assert product.price == 12.99
    assert product.available is True


def test_product_from_dict_rejects_bad_price():
    with pytest.raises(ValueError):
        Product.from_dict({"id": "p-1", "price": "cheap"})


def test_order_validation_from_dict():
    validation = OrderValidation.from_dict(
        {
            "valid": True,
            "items": [{"product_id": "p-1", "name": "A", "price": 2, "quantity": 3, "subtotal": 6}],
            "total_amount": 6,
        }
    )
    assert validation.valid is True
    assert validation.items[0].quantity == 3
    assert validation.total_amount == 6.0
    assert validation.errors == []


def test_payment_result_from_dict_defaults_error():
    result = PaymentResult.from_dict({"success": True, "reference": "ref-1"})
    assert result.success is True
    assert result.reference == "ref-1"
    assert result.error == ""