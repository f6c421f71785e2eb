"""Periodic polling of payment status and active orders."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ...config import settings
from ...errors import ProviderError
from ..scheduling import PeriodicTask
from .payments import PaymentStatus, PaymentStatusProvider

logger = logging.getLogger(__name__)

ACTIVE_ORDER_STATUSES = frozenset({"waiting", "preparing", "on_delivery"})


@dataclass(slots=True)
class OrderStatusRecord:
    order_id: str
    status: str


PaymentListener = Callable[[PaymentStatus], None]
OrderSource = Callable[[], Sequence[OrderStatusRecord]]


class PaymentStatusPoller:
    """Polls one payment until it reaches a terminal status."""

    def __init__(
        self,
        provider: PaymentStatusProvider,
        external_id: str,
        *,
        interval_seconds: Optional[float] = None,
        on_change: Optional[PaymentListener] = None,
    ) -> None:
        self._provider = provider
        self.external_id = external_id
        self._on_change = on_change
        self.last_status: Optional[PaymentStatus] = None
        self.last_error: Optional[str] = None
        self.task = PeriodicTask(
            interval_seconds or settings.payment_poll_seconds,
            self.poll,
            name=f"payment-{external_id}",
            run_immediately=True,
        )

    def start(self) -> None:
        self.task.start()

    def stop(self) -> None:
        self.task.stop()

    async def poll(self) -> bool:
        """Fetch the status once; returns False when polling should end."""

        try:
            status = await self._provider.get_payment_status(self.external_id)
        except ProviderError as exc:
            self.last_error = exc.message
            logger.warning(f"Payment status check for {self.external_id} failed: {exc.message}")
            return True

        self.last_error = None
        changed = self.last_status is None or self.last_status.status != status.status
        self.last_status = status
        if changed and self._on_change is not None:
            self._on_change(status)
        if status.is_terminal:
            logger.info(f"Payment {self.external_id} settled with status {status.status}")
            return False
        return True


class ActiveOrderPoller:
    """Keeps the list of a customer's in-flight orders fresh."""

    def __init__(self, source: OrderSource, *, interval_seconds: Optional[float] = None) -> None:
        self._source = source
        self.active_orders: list[OrderStatusRecord] = []
        self.last_error: Optional[str] = None
        self.task = PeriodicTask(
            interval_seconds or settings.order_poll_seconds,
            self.refresh,
            name="active-orders",
            run_immediately=True,
        )

    @property
    def active_count(self) -> int:
        return len(self.active_orders)

    def start(self) -> None:
        self.task.start()

    def stop(self) -> None:
        self.task.stop()

    def refresh(self) -> list[OrderStatusRecord]:
        try:
            orders = self._source()
        except ProviderError as exc:
            self.last_error = exc.message
            logger.warning(f"Error fetching active orders: {exc.message}")
            self.active_orders = []
            return self.active_orders
        self.last_error = None
        self.active_orders = [order for order in orders if order.status in ACTIVE_ORDER_STATUSES]
        return self.active_orders
