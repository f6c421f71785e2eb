"""In-memory order book: placed orders and their delivery lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ...data.repository import InMemoryRepository
from ...models.domain import CartItem, Coordinate
from .polling import OrderStatusRecord

logger = logging.getLogger(__name__)

ORDER_STATUS_FLOW = ("waiting", "preparing", "on_delivery", "delivered")
CANCELLED = "cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Order:
    id: str
    user_id: str
    items: tuple[CartItem, ...]
    delivery_location: Coordinate
    subtotal: int
    discount: float
    delivery_fee: int
    total: float
    created_at: datetime
    updated_at: datetime
    status: str = "waiting"
    promo_code: Optional[str] = None
    driver_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    status_history: tuple[tuple[str, datetime], ...] = field(default_factory=tuple)

    @property
    def is_active(self) -> bool:
        return self.status in ORDER_STATUS_FLOW[:-1]


class OrderStore:
    """Placed orders keyed by id; status only moves forward along the delivery flow."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._orders: InMemoryRepository[Order] = InMemoryRepository()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._orders)

    def create(
        self,
        order_id: str,
        user_id: str,
        items: tuple[CartItem, ...],
        delivery_location: Coordinate,
        *,
        subtotal: int,
        discount: float,
        delivery_fee: int,
        total: float,
        promo_code: Optional[str] = None,
    ) -> Order:
        now = self._clock()
        order = Order(
            id=order_id,
            user_id=user_id,
            items=items,
            delivery_location=delivery_location,
            subtotal=subtotal,
            discount=discount,
            delivery_fee=delivery_fee,
            total=total,
            created_at=now,
            updated_at=now,
            promo_code=promo_code,
            status_history=(("waiting", now),),
        )
        self._orders.append(order)
        logger.info(f"Created order {order_id} for {user_id}")
        return order

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def user_orders(self, user_id: str, *, status: Optional[str] = None) -> list[Order]:
        orders = [
            order
            for order in self._orders.list()
            if order.user_id == user_id and (status is None or order.status == status)
        ]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders

    def driver_orders(self, driver_id: str) -> list[Order]:
        return list(self._orders.find(lambda order: order.driver_id == driver_id))

    def status_records(self, user_id: str) -> list[OrderStatusRecord]:
        """Order statuses for ``user_id`` in the shape the active-order poller reads."""
        return [OrderStatusRecord(order.id, order.status) for order in self.user_orders(user_id)]

    def update_status(self, order_id: str, status: str) -> Order:
        order = self._require(order_id)
        if status == CANCELLED:
            return self.cancel(order_id)
        if status not in ORDER_STATUS_FLOW:
            raise ValueError(f"Unknown order status '{status}'.")
        if order.status == CANCELLED:
            raise ValueError(f"Order {order_id} has been cancelled.")
        if ORDER_STATUS_FLOW.index(status) <= ORDER_STATUS_FLOW.index(order.status):
            raise ValueError(f"Order {order_id} cannot move from {order.status} to {status}.")
        updated = self._transition(order, status)
        logger.info(f"Order {order_id} is now {status}")
        return updated

    def assign_driver(self, order_id: str, driver_id: str) -> Order:
        order = self._require(order_id)
        if not order.is_active:
            raise ValueError(f"Order {order_id} is {order.status} and cannot take a driver.")
        return self._orders.update(order_id, driver_id=driver_id, updated_at=self._clock())

    def cancel(self, order_id: str, reason: str = "") -> Order:
        order = self._require(order_id)
        if order.status in ("delivered", CANCELLED):
            raise ValueError("Order cannot be cancelled")
        updated = self._transition(order, CANCELLED, cancellation_reason=reason or None)
        logger.info(f"Cancelled order {order_id}")
        return updated

    def _transition(self, order: Order, status: str, **changes) -> Order:
        now = self._clock()
        return self._orders.update(
            order.id,
            status=status,
            updated_at=now,
            status_history=order.status_history + ((status, now),),
            **changes,
        )

    def _require(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise KeyError(f"Order '{order_id}' not found.")
        return order
