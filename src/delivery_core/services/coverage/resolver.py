"""Coverage lookup: containing area, nearest district and attributable fee/ETA."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from ...models.domain import Coordinate, CoverageArea, District
from ..geospatial import haversine_km, point_in_polygon


@dataclass(slots=True)
class CoverageResult:
    location: Coordinate
    is_within_coverage: bool
    coverage_area: Optional[CoverageArea] = None
    nearest_district: Optional[District] = None
    estimated_delivery_time: Optional[int] = None
    delivery_fee: Optional[int] = None
    distance_to_district_km: Optional[float] = None
    checked_at: Optional[datetime] = None


def find_coverage_area(point: Coordinate, areas: Sequence[CoverageArea]) -> Optional[CoverageArea]:
    """Return the first active area (catalog order) whose polygon contains ``point``."""

    for area in areas:
        if not area.active:
            continue
        if point_in_polygon(point, area.polygon):
            return area
    return None


def find_nearest_district(
    point: Coordinate, area_id: str, districts: Sequence[District]
) -> tuple[Optional[District], Optional[float]]:
    """Nearest active district of ``area_id``; the first one wins on equal distance."""

    nearest: Optional[District] = None
    min_distance: Optional[float] = None
    for district in districts:
        if district.coverage_area_id != area_id or not district.active:
            continue
        distance = haversine_km(point, district.center)
        if min_distance is None or distance < min_distance:
            nearest = district
            min_distance = distance
    return nearest, min_distance


def resolve(
    point: Coordinate,
    areas: Sequence[CoverageArea],
    districts: Sequence[District],
) -> CoverageResult:
    checked_at = datetime.now(timezone.utc)
    area = find_coverage_area(point, areas)
    if area is None:
        return CoverageResult(location=point, is_within_coverage=False, checked_at=checked_at)

    district, distance = find_nearest_district(point, area.id, districts)
    source = district if district is not None else area
    return CoverageResult(
        location=point,
        is_within_coverage=True,
        coverage_area=area,
        nearest_district=district,
        estimated_delivery_time=source.estimated_delivery_time,
        delivery_fee=source.delivery_fee,
        distance_to_district_km=distance,
        checked_at=checked_at,
    )
