"""Simulated driver placement and convergence toward the customer."""

from __future__ import annotations

import logging
import math
import random
from typing import Optional

from ...config import settings
from ...models.domain import Coordinate, DeliveryState, DriverSimPosition
from ..geospatial import bearing_degrees, destination_point, haversine_km

logger = logging.getLogger(__name__)

# (min_km, max_km) distance from the customer for each delivery state.
STATE_DISTANCE_RANGES_KM: dict[DeliveryState, tuple[float, float]] = {
    DeliveryState.NORMAL: (2.0, 5.0),
    DeliveryState.NEAR: (0.1, 0.5),
    DeliveryState.ARRIVED: (0.0, 0.0),
}


def estimated_travel_minutes(
    driver: Coordinate,
    user: Coordinate,
    speed_kmh: Optional[float] = None,
) -> int:
    """Static ETA assuming a constant average urban speed."""

    speed = speed_kmh or settings.average_speed_kmh
    return math.ceil(haversine_km(driver, user) / speed * 60)


class DriverPositionSimulator:
    """Places a driver around the customer according to an explicit delivery state.

    State only changes through ``place``/``set_state``; the distance is derived
    from the state, never the other way round.
    """

    def __init__(self, user_position: Coordinate, rng: Optional[random.Random] = None) -> None:
        self.user_position = user_position
        self._rng = rng or random.Random(settings.simulation_seed)
        self.state = DeliveryState.NORMAL
        self.position: Optional[Coordinate] = None

    def draw_distance_km(self, state: DeliveryState) -> float:
        low, high = STATE_DISTANCE_RANGES_KM[state]
        if low == high:
            return low
        return self._rng.uniform(low, high)

    def place(self, state: Optional[DeliveryState] = None) -> DriverSimPosition:
        """Re-roll the driver position for ``state`` (or the current state)."""

        if state is not None:
            self.state = state
        distance_km = self.draw_distance_km(self.state)
        bearing = self._rng.uniform(0.0, 360.0) % 360.0
        self.position = destination_point(self.user_position, bearing, distance_km)
        logger.debug(f"Driver placed: state={self.state.value}, distance={distance_km:.2f}km, bearing={bearing:.1f}")
        return DriverSimPosition(position=self.position, delivery_state=self.state)

    def set_state(self, state: DeliveryState) -> DriverSimPosition:
        return self.place(state)


class TrackingSession:
    """Continuous-motion session: each tick moves the driver a fraction of the way.

    Convergence is geometric, so the session terminates once the remaining
    distance is within ``stop_distance_km``. Ticks after termination are no-ops.
    """

    def __init__(
        self,
        order_id: str,
        user_position: Coordinate,
        driver_position: Coordinate,
        *,
        delivery_state: DeliveryState = DeliveryState.NORMAL,
        step_fraction: Optional[float] = None,
        stop_distance_km: Optional[float] = None,
    ) -> None:
        self.order_id = order_id
        self.user_position = user_position
        self.driver = DriverSimPosition(position=driver_position, delivery_state=delivery_state)
        self.step_fraction = step_fraction if step_fraction is not None else settings.tracking_step_fraction
        self.stop_distance_km = stop_distance_km if stop_distance_km is not None else settings.tracking_stop_distance_km
        self.terminated = False
        self.ticks = 0

    @property
    def distance_km(self) -> float:
        return haversine_km(self.driver.position, self.user_position)

    def reposition(self, placement: DriverSimPosition) -> None:
        """Replace the driver position after an explicit state change.

        A terminated session stays terminated; only the published position moves.
        """

        self.driver = DriverSimPosition(position=placement.position, delivery_state=placement.delivery_state)

    def tick(self) -> Optional[Coordinate]:
        """Advance one step; returns the new position, or None once terminated."""

        if self.terminated:
            return None
        distance = self.distance_km
        if distance <= self.stop_distance_km:
            self.terminated = True
            logger.info(f"Tracking for order {self.order_id} reached destination ({distance:.3f}km)")
            return None

        bearing = bearing_degrees(self.driver.position, self.user_position)
        new_position = destination_point(self.driver.position, bearing, distance * self.step_fraction)
        self.driver.position = new_position
        self.ticks += 1
        return new_position

    def eta_minutes(self, speed_kmh: Optional[float] = None) -> int:
        return estimated_travel_minutes(self.driver.position, self.user_position, speed_kmh)
