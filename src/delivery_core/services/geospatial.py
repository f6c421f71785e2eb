"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import Point, Polygon

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def bearing_degrees(a: Coordinate, b: Coordinate) -> float:
    """Calculate the initial bearing from ``a`` to ``b`` in [0, 360)."""

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_lambda = math.radians(b.lng - a.lng)
    y = math.sin(delta_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)
    bearing = math.degrees(math.atan2(y, x))
    normalized = (bearing + 360) % 360
    # -tiny + 360 rounds to exactly 360.0
    return 0.0 if normalized >= 360.0 else normalized


def destination_point(origin: Coordinate, bearing_deg: float, distance_km: float) -> Coordinate:
    """Project ``distance_km`` from ``origin`` along ``bearing_deg`` on a sphere."""

    if distance_km == 0:
        return origin
    d = distance_km / EARTH_RADIUS_KM
    theta = math.radians(bearing_deg)
    phi1 = math.radians(origin.lat)
    lambda1 = math.radians(origin.lng)

    phi2 = math.asin(math.sin(phi1) * math.cos(d) + math.cos(phi1) * math.sin(d) * math.cos(theta))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(d) * math.cos(phi1),
        math.cos(d) - math.sin(phi1) * math.sin(phi2),
    )
    lng = (math.degrees(lambda2) + 540) % 360 - 180
    return Coordinate(lat=math.degrees(phi2), lng=lng)


def point_in_polygon(point: Coordinate, polygon_coords: Sequence[Coordinate]) -> bool:
    """Return True if the point is strictly inside the polygon.

    Vertices are (lat, lng) coordinates; shapely works in x=lng, y=lat. Points
    on an edge or vertex count as outside.
    """

    if len(set(polygon_coords)) < 3:
        return False
    polygon = Polygon([(vertex.lng, vertex.lat) for vertex in polygon_coords])
    return polygon.contains(Point(point.lng, point.lat))


def polygon_to_geojson_ring(polygon_coords: Sequence[Coordinate]) -> list[list[float]]:
    """Convert (lat, lng) vertices into a closed GeoJSON ring of [lng, lat] pairs."""

    ring = [[vertex.lng, vertex.lat] for vertex in polygon_coords]
    if ring and ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return ring
