import asyncio
import random

import pytest

from src.delivery_core.data.catalog import SEED_ADDRESSES, SEED_DISTRICTS, SEED_DRIVERS
from src.delivery_core.errors import GeolocationUnavailableError
from src.delivery_core.models.domain import Coordinate, Driver
from src.delivery_core.services.drivers import find_available_drivers
from src.delivery_core.services.geolocation import (
    GeolocationResolver,
    MockGeocoder,
    search_relevance,
)

FALLBACK = Coordinate(-7.2575, 112.7521)


def _driver(driver_id: str, location: Coordinate, *, rating: float = 4.5, online: bool = True, available: bool = True) -> Driver:
    return Driver(
        id=driver_id,
        name=f"Driver {driver_id}",
        phone="0800",
        rating=rating,
        current_location=location,
        is_online=online,
        is_available=available,
    )


def _locate(resolver: GeolocationResolver):
    return asyncio.run(resolver.locate())


def test_geolocation_returns_provider_position() -> None:
    position = Coordinate(-6.2, 106.8)

    async def provider():
        return position

    result = _locate(GeolocationResolver(provider, timeout_seconds=1, fallback=FALLBACK))

    assert result.coordinate == position
    assert not result.is_fallback
    assert result.error is None


def test_geolocation_timeout_uses_fallback() -> None:
    async def provider():
        await asyncio.sleep(1)
        return Coordinate(0, 0)

    result = _locate(GeolocationResolver(provider, timeout_seconds=0.01, fallback=FALLBACK))

    assert result.is_fallback
    assert result.coordinate == FALLBACK
    assert "timed out" in result.error


@pytest.mark.parametrize(
    "failure",
    [GeolocationUnavailableError("User denied geolocation"), RuntimeError("sensor offline")],
)
def test_geolocation_failures_use_fallback(failure: Exception) -> None:
    async def provider():
        raise failure

    result = _locate(GeolocationResolver(provider, timeout_seconds=1, fallback=FALLBACK))

    assert result.is_fallback
    assert result.coordinate == FALLBACK
    assert result.error


def test_geolocation_without_provider_or_position_uses_fallback() -> None:
    async def empty_provider():
        return None

    unsupported = _locate(GeolocationResolver(None, fallback=FALLBACK))
    empty = _locate(GeolocationResolver(empty_provider, timeout_seconds=1, fallback=FALLBACK))

    assert unsupported.is_fallback and unsupported.error == "Geolocation is not supported"
    assert empty.is_fallback and empty.coordinate == FALLBACK


def test_geocode_known_address() -> None:
    geocoder = MockGeocoder(SEED_ADDRESSES, rng=random.Random(1))
    result = geocoder.geocode("basuki rahmat")

    assert result.coordinates == Coordinate(-7.2504, 112.7688)
    assert result.postal_code == "60271"
    assert not result.is_approximate


def test_geocode_unknown_address_is_approximate_near_center() -> None:
    geocoder = MockGeocoder(SEED_ADDRESSES, rng=random.Random(1), default_center=FALLBACK)
    result = geocoder.geocode("Jl. Tidak Ada 1")

    assert result.is_approximate
    assert result.confidence == 0.7
    assert abs(result.coordinates.lat - FALLBACK.lat) <= 0.05
    assert abs(result.coordinates.lng - FALLBACK.lng) <= 0.05


def test_reverse_geocode_nearest_known_address() -> None:
    geocoder = MockGeocoder(SEED_ADDRESSES, rng=random.Random(1))
    result = geocoder.reverse_geocode(Coordinate(-7.2576, 112.7522))

    assert result.formatted_address.startswith("Jl. Diponegoro No. 123")
    assert result.confidence == 0.9
    assert result.distance_km is not None and result.distance_km < 1


def test_reverse_geocode_far_point_is_approximate() -> None:
    geocoder = MockGeocoder(SEED_ADDRESSES, rng=random.Random(1))
    result = geocoder.reverse_geocode(Coordinate(-8.65, 115.21))

    assert result.is_approximate
    assert result.formatted_address.startswith("Jl. Mock Street No.")


def test_search_ranks_exact_district_first() -> None:
    geocoder = MockGeocoder(SEED_ADDRESSES, SEED_DISTRICTS, rng=random.Random(1))
    results = geocoder.search("Gubeng")

    assert results[0].type == "district"
    assert results[0].id == "district_001"
    assert results[0].relevance == 1.0


def test_search_respects_limit_and_sorts_by_relevance() -> None:
    geocoder = MockGeocoder(SEED_ADDRESSES, SEED_DISTRICTS, rng=random.Random(1))
    results = geocoder.search("surabaya", limit=3)

    assert len(results) == 3
    relevances = [result.relevance for result in results]
    assert relevances == sorted(relevances, reverse=True)


@pytest.mark.parametrize(
    ("query", "text", "expected"),
    [
        ("gubeng", "Gubeng", 1.0),
        ("jl. basuki", "Jl. Basuki Rahmat", 0.9),
        ("surabaya", "Jl. Diponegoro, Surabaya", 0.7),
        ("jl diponegoro", "Jl. Diponegoro No. 1", 0.5),
        ("zzz", "Gubeng", 0.0),
    ],
)
def test_search_relevance(query: str, text: str, expected: float) -> None:
    assert search_relevance(query, text) == pytest.approx(expected)


def test_available_drivers_within_radius() -> None:
    matches = find_available_drivers(FALLBACK, SEED_DRIVERS)

    assert [match.driver.id for match in matches] == ["driver_001"]
    assert matches[0].distance_km == 0


def test_available_drivers_filters_and_sorts() -> None:
    nearby = Coordinate(-7.26, 112.75)
    drivers = (
        _driver("far", Coordinate(-7.5, 112.9)),
        _driver("offline", nearby, online=False),
        _driver("busy", nearby, available=False),
        _driver("good", nearby, rating=4.9),
        _driver("ok", nearby, rating=4.1),
        _driver("closest", FALLBACK, rating=3.0),
    )
    matches = find_available_drivers(FALLBACK, drivers, radius_km=10)

    assert [match.driver.id for match in matches] == ["closest", "good", "ok"]
