from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from courierhub.order_store import OrderRepository

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass
class _Order:
    id: str
    customer_id: str = "c1"
    merchant_id: str = "m1"
    driver_id: Optional[str] = None
    status: str = "pending"
    created_at: datetime = BASE
    items: list = field(default_factory=list)


def _order(order_id, minutes=0, **kwargs):
    return _Order(id=order_id, created_at=BASE + timedelta(minutes=minutes), **kwargs)


@pytest.fixture
def repo():
    return OrderRepository()


def test_create_and_get_round_trip(repo):
    order = _order("o1", items=[{"product_id": "p1"}])
    repo.create(order)
    assert repo.get_by_id("o1") == order


def test_get_missing_raises(repo):
    with pytest.raises(LookupError):
        repo.get_by_id("nope")


def test_duplicate_create_raises(repo):
    repo.create(_order("o1"))
    with pytest.raises(ValueError):
        repo.create(_order("o1"))


def test_returned_orders_are_copies(repo):
    order = _order("o1")
    repo.create(order)
    order.status = "confirmed"
    fetched = repo.get_by_id("o1")
    assert fetched.status == "pending"
    fetched.items.append("x")
    assert repo.get_by_id("o1").items == []


def test_customer_query_newest_first(repo):
    repo.create(_order("old", 0))
    repo.create(_order("new", 10))
    repo.create(_order("mid", 5))
    repo.create(_order("other", 20, customer_id="c2"))
    ids = [o.id for o in repo.get_by_customer_id("c1", 10, 0)]
    assert ids == ["new", "mid", "old"]


def test_limit_and_offset(repo):
    for n in range(5):
        repo.create(_order(f"o{n}", n))
    page = [o.id for o in repo.list(2, 1)]
    assert page == ["o3", "o2"]
    assert repo.list(10, 10) == []
    assert repo.list(0, 0) == []


def test_negative_limit_returns_everything(repo):
    for n in range(3):
        repo.create(_order(f"o{n}", n))
    assert len(repo.list(-1, 0)) == 3
    assert [o.id for o in repo.list(-1, -1)] == ["o2", "o1", "o0"]


def test_merchant_query(repo):
    repo.create(_order("a", merchant_id="m1"))
    repo.create(_order("b", merchant_id="m2"))
    assert [o.id for o in repo.get_by_merchant_id("m2", 10, 0)] == ["b"]


def test_driver_query_skips_unassigned(repo):
    repo.create(_order("a", driver_id="d1"))
    repo.create(_order("b"))
    assert [o.id for o in repo.get_by_driver_id("d1", 10, 0)] == ["a"]


def test_status_query(repo):
    repo.create(_order("a", status="pending"))
    repo.create(_order("b", 1, status="ready"))
    repo.create(_order("c", 2, status="ready"))
    assert [o.id for o in repo.get_by_status("ready", 10, 0)] == ["c", "b"]


def test_update_persists_and_upserts(repo):
    repo.create(_order("a"))
    changed = repo.get_by_id("a")
    changed.status = "confirmed"
    repo.update(changed)
    assert repo.get_by_id("a").status == "confirmed"
    repo.update(_order("fresh"))
    assert repo.get_by_id("fresh").id == "fresh"


def test_delete(repo):
    repo.create(_order("a"))
    repo.delete("a")
    with pytest.raises(LookupError):
        repo.get_by_id("a")
    repo.delete("a")
    assert repo.list(-1, 0) == []