"""Driver availability around a delivery location."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..models.domain import Coordinate, Driver
from .geospatial import haversine_km


@dataclass(slots=True)
class DriverMatch:
    driver: Driver
    distance_km: float


def find_available_drivers(
    location: Coordinate,
    drivers: Sequence[Driver],
    radius_km: float = 10.0,
) -> list[DriverMatch]:
    """Online, available drivers within ``radius_km``, nearest first then best rated."""

    matches: list[DriverMatch] = []
    for driver in drivers:
        if not driver.is_online or not driver.is_available:
            continue
        distance = haversine_km(location, driver.current_location)
        if distance <= radius_km:
            matches.append(DriverMatch(driver=driver, distance_km=distance))
    matches.sort(key=lambda match: (match.distance_km, -match.driver.rating))
    return matches
