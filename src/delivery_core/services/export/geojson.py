"""GeoJSON export of coverage areas and districts."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from ...models.domain import Coordinate, CoverageArea, District
from ..geospatial import polygon_to_geojson_ring


def generate_area_color(index: int) -> str:
    """Generate distinct fill colors for coverage areas."""
    colors = [
        "#02d8e0", "#e0003e", "#38e000", "#0000c1", "#e0e005",
        "#611cc7", "#e0af00", "#13aae0", "#a4d819", "#00e0bb",
    ]
    return colors[index % len(colors)]


def _point(coordinate: Coordinate) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": [coordinate.lng, coordinate.lat]}


def coverage_area_feature(area: CoverageArea, index: int = 0) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "id": area.id,
        "geometry": {"type": "Polygon", "coordinates": [polygon_to_geojson_ring(area.polygon)]},
        "properties": {
            "kind": "coverage_area",
            "city": area.city,
            "province": area.province,
            "active": area.active,
            "deliveryFee": area.delivery_fee,
            "minimumOrder": area.minimum_order,
            "estimatedDeliveryTime": area.estimated_delivery_time,
            "maxDeliveryRadius": area.max_delivery_radius,
            "center": [area.center.lng, area.center.lat],
            "fillColor": generate_area_color(index),
        },
    }


def district_feature(district: District) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "id": district.id,
        "geometry": _point(district.center),
        "properties": {
            "kind": "district",
            "name": district.name,
            "city": district.city,
            "coverageAreaId": district.coverage_area_id,
            "active": district.active,
            "deliveryFee": district.delivery_fee,
            "estimatedDeliveryTime": district.estimated_delivery_time,
        },
    }


def export_coverage_geojson(
    areas: Sequence[CoverageArea],
    districts: Sequence[District] = (),
    *,
    include_inactive: bool = False,
) -> Dict[str, Any]:
    """Build a FeatureCollection with one polygon per area and one point per district.

    Coordinates are emitted in GeoJSON ``[lng, lat]`` order.
    """
    features: List[Dict[str, Any]] = []
    for idx, area in enumerate(areas):
        if not area.active and not include_inactive:
            continue
        if len(area.polygon) < 3:
            continue
        features.append(coverage_area_feature(area, idx))

    for district in districts:
        if not district.active and not include_inactive:
            continue
        features.append(district_feature(district))

    return {"type": "FeatureCollection", "features": features}
