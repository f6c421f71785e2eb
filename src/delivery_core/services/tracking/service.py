"""Order tracking sessions publishing simulated driver positions."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Optional

from ...config import settings
from ...models.domain import Coordinate, DeliveryState
from ..scheduling import PeriodicTask
from .simulator import DriverPositionSimulator, TrackingSession

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PositionUpdate:
    order_id: str
    position: Coordinate
    user_position: Coordinate
    delivery_state: DeliveryState
    distance_km: float
    eta_minutes: int
    terminated: bool


PositionListener = Callable[[PositionUpdate], None]


@dataclass(slots=True)
class _TrackedOrder:
    session: TrackingSession
    simulator: DriverPositionSimulator
    task: PeriodicTask
    listeners: list[PositionListener] = field(default_factory=list)
    closers: list[Callable[[], None]] = field(default_factory=list)


class TrackingService:
    """Owns one tracking session per active order.

    Each session is advanced by its own ``PeriodicTask``, so a session has a
    single writer. Listeners receive every published position.
    """

    def __init__(
        self,
        *,
        tick_seconds: Optional[float] = None,
        rng: Optional[random.Random] = None,
        speed_kmh: Optional[float] = None,
    ) -> None:
        self.tick_seconds = tick_seconds or settings.driver_tick_seconds
        self.speed_kmh = speed_kmh or settings.average_speed_kmh
        self._rng = rng or random.Random(settings.simulation_seed)
        self._orders: dict[str, _TrackedOrder] = {}

    def is_tracking(self, order_id: str) -> bool:
        tracked = self._orders.get(order_id)
        return tracked is not None and tracked.task.running

    def start_tracking(
        self,
        order_id: str,
        user_position: Coordinate,
        state: DeliveryState = DeliveryState.NORMAL,
    ) -> PositionUpdate:
        """Place the driver and start moving it; requires a running event loop."""

        existing = self._orders.get(order_id)
        if existing is not None and existing.task.running:
            return self._update(order_id, existing)

        simulator = DriverPositionSimulator(user_position, rng=self._rng)
        placement = simulator.place(state)
        session = TrackingSession(
            order_id,
            user_position,
            placement.position,
            delivery_state=placement.delivery_state,
        )
        task = PeriodicTask(self.tick_seconds, lambda: self._tick(order_id), name=f"tracking-{order_id}")
        tracked = _TrackedOrder(session=session, simulator=simulator, task=task)
        if existing is not None:
            tracked.listeners.extend(existing.listeners)
        self._orders[order_id] = tracked
        task.start()
        logger.info(f"Starting tracking for order {order_id}")
        return self._publish(order_id, tracked)

    def stop_tracking(self, order_id: str) -> bool:
        """Stop the session for ``order_id``; returns False when nothing was running."""

        tracked = self._orders.pop(order_id, None)
        if tracked is None:
            return False
        was_running = tracked.task.running
        tracked.task.stop()
        for close in tracked.closers:
            close()
        if was_running:
            logger.info(f"Stopping tracking for order {order_id}")
        return was_running

    def stop_all(self) -> None:
        for order_id in list(self._orders):
            self.stop_tracking(order_id)

    def simulate_state(self, order_id: str, state: DeliveryState) -> PositionUpdate:
        tracked = self._require(order_id)
        tracked.session.reposition(tracked.simulator.set_state(state))
        return self._publish(order_id, tracked)

    def subscribe(self, order_id: str, listener: PositionListener) -> Callable[[], None]:
        tracked = self._require(order_id)
        tracked.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in tracked.listeners:
                tracked.listeners.remove(listener)

        return unsubscribe

    async def positions(self, order_id: str) -> AsyncIterator[PositionUpdate]:
        """Yield published positions until the session terminates or is stopped."""

        queue: asyncio.Queue[Optional[PositionUpdate]] = asyncio.Queue()
        unsubscribe = self.subscribe(order_id, queue.put_nowait)
        tracked = self._orders[order_id]

        def close() -> None:
            queue.put_nowait(None)

        tracked.closers.append(close)
        try:
            # An ended session publishes nothing more; report where it stopped
            if tracked.session.terminated or not tracked.task.running:
                yield self._update(order_id, tracked)
                return
            while True:
                update = await queue.get()
                if update is None:
                    break
                yield update
                if update.terminated or not tracked.task.running:
                    break
        finally:
            unsubscribe()
            if close in tracked.closers:
                tracked.closers.remove(close)

    def snapshot(self, order_id: str) -> Optional[PositionUpdate]:
        tracked = self._orders.get(order_id)
        if tracked is None:
            return None
        return self._update(order_id, tracked)

    async def advance(self, order_id: str) -> bool:
        """Run one tick immediately; returns False once the session has ended."""

        tracked = self._require(order_id)
        return await tracked.task.run_once()

    def _require(self, order_id: str) -> _TrackedOrder:
        tracked = self._orders.get(order_id)
        if tracked is None:
            raise KeyError(f"No tracking session for order '{order_id}'.")
        return tracked

    def _tick(self, order_id: str) -> bool:
        tracked = self._orders.get(order_id)
        if tracked is None:
            return False
        moved = tracked.session.tick()
        self._publish(order_id, tracked)
        return moved is not None

    def _update(self, order_id: str, tracked: _TrackedOrder) -> PositionUpdate:
        session = tracked.session
        return PositionUpdate(
            order_id=order_id,
            position=session.driver.position,
            user_position=session.user_position,
            delivery_state=session.driver.delivery_state,
            distance_km=session.distance_km,
            eta_minutes=session.eta_minutes(self.speed_kmh),
            terminated=session.terminated,
        )

    def _publish(self, order_id: str, tracked: _TrackedOrder) -> PositionUpdate:
        update = self._update(order_id, tracked)
        for listener in list(tracked.listeners):
            try:
                listener(update)
            except Exception as exc:
                logger.warning(f"Position listener for order {order_id} failed: {exc}")
        return update
