from datetime import datetime, timedelta, timezone

import pytest

from src.delivery_core.models.domain import CartItem, Coordinate
from src.delivery_core.services.orders.polling import ActiveOrderPoller
from src.delivery_core.services.orders.store import OrderStore

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
GUBENG = Coordinate(-7.2652, 112.7519)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


def _store_with(*order_ids: str, user_id: str = "u1") -> OrderStore:
    store = OrderStore(clock=_Clock(NOW))
    for order_id in order_ids:
        store.create(
            order_id,
            user_id,
            (CartItem("pizza-1", "Margherita", 65000, 1, "Classic Pizza"),),
            GUBENG,
            subtotal=65000,
            discount=0,
            delivery_fee=5000,
            total=70000,
        )
    return store


def test_order_moves_through_delivery_flow() -> None:
    store = _store_with("o1")

    for status in ("preparing", "on_delivery", "delivered"):
        order = store.update_status("o1", status)
        assert order.status == status

    assert [step for step, _ in order.status_history] == ["waiting", "preparing", "on_delivery", "delivered"]
    assert order.updated_at > order.created_at
    assert not order.is_active


def test_status_cannot_move_backwards_or_to_unknown_values() -> None:
    store = _store_with("o1")
    store.update_status("o1", "on_delivery")

    with pytest.raises(ValueError):
        store.update_status("o1", "preparing")
    with pytest.raises(ValueError):
        store.update_status("o1", "on_delivery")
    with pytest.raises(ValueError):
        store.update_status("o1", "lost")
    with pytest.raises(KeyError):
        store.update_status("missing", "preparing")


def test_cancel_records_reason_and_blocks_further_changes() -> None:
    store = _store_with("o1", "o2")

    cancelled = store.cancel("o1", "Changed my mind")
    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "Changed my mind"

    with pytest.raises(ValueError):
        store.cancel("o1")
    with pytest.raises(ValueError):
        store.update_status("o1", "preparing")

    store.update_status("o2", "delivered")
    with pytest.raises(ValueError, match="cannot be cancelled"):
        store.cancel("o2")


def test_assign_driver_only_on_active_orders() -> None:
    store = _store_with("o1", "o2")

    assert store.assign_driver("o1", "driver_001").driver_id == "driver_001"
    assert [order.id for order in store.driver_orders("driver_001")] == ["o1"]

    store.cancel("o2")
    with pytest.raises(ValueError):
        store.assign_driver("o2", "driver_002")


def test_user_orders_are_newest_first_and_filterable() -> None:
    store = _store_with("o1", "o2", "o3")
    store.create(
        "other",
        "u2",
        (),
        GUBENG,
        subtotal=0,
        discount=0,
        delivery_fee=0,
        total=0,
    )
    store.update_status("o2", "preparing")

    assert [order.id for order in store.user_orders("u1")] == ["o3", "o2", "o1"]
    assert [order.id for order in store.user_orders("u1", status="preparing")] == ["o2"]


def test_duplicate_order_id_is_refused() -> None:
    store = _store_with("o1")
    with pytest.raises(ValueError):
        store.create("o1", "u1", (), GUBENG, subtotal=0, discount=0, delivery_fee=0, total=0)
    assert len(store) == 1


def test_active_order_poller_reads_the_store() -> None:
    store = _store_with("o1", "o2", "o3", "o4")
    store.update_status("o2", "on_delivery")
    store.update_status("o3", "delivered")
    store.cancel("o4")

    poller = ActiveOrderPoller(lambda: store.status_records("u1"), interval_seconds=30)

    assert sorted(record.order_id for record in poller.refresh()) == ["o1", "o2"]
