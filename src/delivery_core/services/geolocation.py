"""Location lookup: bounded-wait geolocation and the mock geocoder."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from ..config import settings
from ..errors import GeolocationUnavailableError
from ..models.domain import Address, Coordinate, District
from .geospatial import haversine_km

logger = logging.getLogger(__name__)

GeolocationProvider = Callable[[], Awaitable[Optional[Coordinate]]]

REVERSE_GEOCODE_MAX_DISTANCE_KM = 1.0


def fallback_coordinate() -> Coordinate:
    return Coordinate(lat=settings.fallback_latitude, lng=settings.fallback_longitude)


@dataclass(slots=True)
class GeolocationResult:
    coordinate: Coordinate
    is_fallback: bool
    error: Optional[str] = None


class GeolocationResolver:
    """Resolve the customer position, never leaving it unresolved.

    Timeouts, denials and provider failures all fall back to a fixed
    coordinate so coverage checks downstream always have a point to use.
    """

    def __init__(
        self,
        provider: Optional[GeolocationProvider] = None,
        *,
        timeout_seconds: Optional[float] = None,
        fallback: Optional[Coordinate] = None,
    ) -> None:
        self._provider = provider
        self.timeout_seconds = timeout_seconds or settings.geolocation_timeout_seconds
        self.fallback = fallback or fallback_coordinate()

    async def locate(self) -> GeolocationResult:
        try:
            if self._provider is None:
                raise GeolocationUnavailableError("Geolocation is not supported")
            coordinate = await asyncio.wait_for(self._provider(), timeout=self.timeout_seconds)
            if coordinate is None:
                raise GeolocationUnavailableError("Geolocation returned no position")
            return GeolocationResult(coordinate=coordinate, is_fallback=False)
        except asyncio.TimeoutError:
            error = f"Geolocation timed out after {self.timeout_seconds}s"
        except GeolocationUnavailableError as exc:
            error = exc.message
        except Exception as exc:
            error = f"Failed to get location: {exc}"
        logger.warning(f"{error}; using fallback coordinate {self.fallback.lat}, {self.fallback.lng}")
        return GeolocationResult(coordinate=self.fallback, is_fallback=True, error=error)


@dataclass(slots=True)
class GeocodeResult:
    coordinates: Coordinate
    formatted_address: str
    city: str
    province: str
    postal_code: str
    country: str
    confidence: float
    is_approximate: bool = False
    distance_km: Optional[float] = None


@dataclass(slots=True)
class SearchResult:
    type: str
    id: str
    name: str
    address: str
    coordinates: Coordinate
    city: str
    relevance: float


def search_relevance(query: str, text: str) -> float:
    query = query.lower()
    text_lower = text.lower()
    if text_lower == query:
        return 1.0
    if text_lower.startswith(query):
        return 0.9
    if query in text_lower:
        return 0.7
    query_words = query.split()
    if not query_words:
        return 0.0
    text_words = text_lower.split()
    matches = [word for word in query_words if any(word in text_word for text_word in text_words)]
    return len(matches) / len(query_words) * 0.5


class MockGeocoder:
    """Geocoding against a fixed address book, approximating unknown inputs."""

    def __init__(
        self,
        addresses: Sequence[Address],
        districts: Sequence[District] = (),
        *,
        rng: Optional[random.Random] = None,
        default_center: Optional[Coordinate] = None,
    ) -> None:
        self._addresses = tuple(addresses)
        self._districts = tuple(districts)
        self._rng = rng or random.Random(settings.simulation_seed)
        self._center = default_center or fallback_coordinate()

    def geocode(self, address: str) -> GeocodeResult:
        needle = address.strip().lower()
        for known in self._addresses:
            if needle and (needle in known.address.lower() or needle in known.formatted.lower()):
                return GeocodeResult(
                    coordinates=known.coordinates,
                    formatted_address=known.formatted,
                    city=known.city,
                    province=known.province,
                    postal_code=known.postal_code,
                    country=known.country,
                    confidence=0.95,
                )

        approximate = Coordinate(
            lat=self._center.lat + (self._rng.random() - 0.5) * 0.1,
            lng=self._center.lng + (self._rng.random() - 0.5) * 0.1,
        )
        return GeocodeResult(
            coordinates=approximate,
            formatted_address=address,
            city="Surabaya",
            province="Jawa Timur",
            postal_code="60000",
            country="Indonesia",
            confidence=0.7,
            is_approximate=True,
        )

    def reverse_geocode(self, point: Coordinate) -> GeocodeResult:
        nearest: Optional[Address] = None
        min_distance: Optional[float] = None
        for known in self._addresses:
            distance = haversine_km(point, known.coordinates)
            if min_distance is None or distance < min_distance:
                nearest = known
                min_distance = distance

        if nearest is not None and min_distance is not None and min_distance < REVERSE_GEOCODE_MAX_DISTANCE_KM:
            return GeocodeResult(
                coordinates=point,
                formatted_address=nearest.formatted,
                city=nearest.city,
                province=nearest.province,
                postal_code=nearest.postal_code,
                country=nearest.country,
                confidence=0.9,
                distance_km=min_distance,
            )

        street = f"Jl. Mock Street No. {self._rng.randint(1, 999)}"
        return GeocodeResult(
            coordinates=point,
            formatted_address=f"{street}, Surabaya, Jawa Timur 60000",
            city="Surabaya",
            province="Jawa Timur",
            postal_code="60000",
            country="Indonesia",
            confidence=0.6,
            is_approximate=True,
        )

    def search(self, query: str, *, limit: int = 10) -> list[SearchResult]:
        needle = query.strip().lower()
        results: list[SearchResult] = []
        for known in self._addresses:
            haystacks = (known.address, known.formatted, known.city, known.province)
            if any(needle in value.lower() for value in haystacks):
                results.append(
                    SearchResult(
                        type="address",
                        id=known.id,
                        name=known.formatted,
                        address=known.address,
                        coordinates=known.coordinates,
                        city=known.city,
                        relevance=search_relevance(needle, known.formatted),
                    )
                )
        for district in self._districts:
            if needle in district.name.lower() or needle in district.city.lower():
                results.append(
                    SearchResult(
                        type="district",
                        id=district.id,
                        name=district.name,
                        address=f"{district.name}, {district.city}",
                        coordinates=district.center,
                        city=district.city,
                        relevance=search_relevance(needle, district.name),
                    )
                )
        results.sort(key=lambda result: result.relevance, reverse=True)
        return results[:limit]
