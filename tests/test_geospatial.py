import math

import pytest

from src.delivery_core.models.domain import Coordinate
from src.delivery_core.services.geospatial import (
    bearing_degrees,
    destination_point,
    haversine_km,
    point_in_polygon,
    polygon_to_geojson_ring,
)

SQUARE = (
    Coordinate(0.0, 0.0),
    Coordinate(0.0, 1.0),
    Coordinate(1.0, 1.0),
    Coordinate(1.0, 0.0),
)


def test_haversine_one_degree_along_equator() -> None:
    expected = 2 * math.pi * 6371.0 / 360
    assert haversine_km(Coordinate(0, 0), Coordinate(0, 1)) == pytest.approx(expected, rel=1e-9)


def test_haversine_is_symmetric_and_zero_for_same_point() -> None:
    a = Coordinate(-7.2575, 112.7521)
    b = Coordinate(-6.2758, 106.7614)
    assert haversine_km(a, a) == 0
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


def test_haversine_antipodal_points_do_not_fail() -> None:
    distance = haversine_km(Coordinate(0, 0), Coordinate(0, 180))
    assert distance == pytest.approx(math.pi * 6371.0)


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        (Coordinate(1, 0), 0.0),
        (Coordinate(0, 1), 90.0),
        (Coordinate(-1, 0), 180.0),
        (Coordinate(0, -1), 270.0),
    ],
)
def test_bearing_cardinal_directions(target: Coordinate, expected: float) -> None:
    assert bearing_degrees(Coordinate(0, 0), target) == pytest.approx(expected)


def test_bearing_is_always_in_range() -> None:
    origin = Coordinate(-7.25, 112.75)
    for lat_offset, lng_offset in [(0.1, -0.1), (-0.1, -0.1), (-0.1, 0.1), (1e-12, -1e-9)]:
        bearing = bearing_degrees(origin, Coordinate(origin.lat + lat_offset, origin.lng + lng_offset))
        assert 0.0 <= bearing < 360.0


def test_destination_point_matches_distance_and_bearing() -> None:
    origin = Coordinate(-7.2575, 112.7521)
    target = destination_point(origin, 45.0, 10.0)

    assert haversine_km(origin, target) == pytest.approx(10.0, abs=1e-6)
    assert bearing_degrees(origin, target) == pytest.approx(45.0, abs=1e-6)


def test_destination_point_zero_distance_returns_origin() -> None:
    origin = Coordinate(-7.2575, 112.7521)
    assert destination_point(origin, 123.0, 0.0) == origin


def test_destination_point_normalises_longitude() -> None:
    target = destination_point(Coordinate(0.0, 179.99), 90.0, 5.0)
    assert -180.0 <= target.lng < 180.0
    assert target.lng < 0


def test_point_in_polygon_inside_and_outside() -> None:
    assert point_in_polygon(Coordinate(0.5, 0.5), SQUARE)
    assert not point_in_polygon(Coordinate(1.5, 0.5), SQUARE)
    assert not point_in_polygon(Coordinate(0.5, -0.2), SQUARE)


def test_point_on_edge_or_vertex_is_outside() -> None:
    assert not point_in_polygon(Coordinate(0.5, 0.0), SQUARE)
    assert not point_in_polygon(Coordinate(1.0, 1.0), SQUARE)


def test_degenerate_polygon_contains_nothing() -> None:
    line = (Coordinate(0, 0), Coordinate(1, 1), Coordinate(0, 0))
    assert not point_in_polygon(Coordinate(0.5, 0.5), line)
    assert not point_in_polygon(Coordinate(0.5, 0.5), ())


def test_polygon_to_geojson_ring_swaps_order_and_closes() -> None:
    ring = polygon_to_geojson_ring(SQUARE)

    assert ring[0] == [0.0, 0.0]
    assert ring[1] == [1.0, 0.0]
    assert ring[0] == ring[-1]
    assert len(ring) == len(SQUARE) + 1
