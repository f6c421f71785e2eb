"""Geocoding, address search and driver availability endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from ...data.catalog import InMemoryCatalog
from ...models.domain import Coordinate
from ...schemas.common import CoordinateModel
from ...schemas.locations import (
    DriverModel,
    GeocodeRequest,
    GeocodeResponse,
    ReverseGeocodeRequest,
    SearchResultModel,
)
from ...services.drivers import find_available_drivers
from ...services.geolocation import GeocodeResult, MockGeocoder
from ..dependencies import get_catalog, get_geocoder

router = APIRouter(tags=["locations"])


def _geocode_to_model(result: GeocodeResult) -> GeocodeResponse:
    return GeocodeResponse(
        coordinates=CoordinateModel.from_domain(result.coordinates),
        formatted_address=result.formatted_address,
        city=result.city,
        province=result.province,
        postal_code=result.postal_code,
        country=result.country,
        confidence=result.confidence,
        is_approximate=result.is_approximate,
        distance_km=result.distance_km,
    )


@router.post("/locations/geocode", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode(payload: GeocodeRequest, geocoder: MockGeocoder = Depends(get_geocoder)) -> GeocodeResponse:
    return _geocode_to_model(geocoder.geocode(payload.address))


@router.post("/locations/reverse", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def reverse_geocode(
    payload: ReverseGeocodeRequest,
    geocoder: MockGeocoder = Depends(get_geocoder),
) -> GeocodeResponse:
    return _geocode_to_model(geocoder.reverse_geocode(payload.location.to_domain()))


@router.get("/locations/search", response_model=List[SearchResultModel], status_code=status.HTTP_200_OK)
def search_locations(
    q: str = Query(..., min_length=1, description="Free-text address or district query."),
    limit: int = Query(default=10, ge=1, le=50),
    geocoder: MockGeocoder = Depends(get_geocoder),
) -> List[SearchResultModel]:
    return [
        SearchResultModel(
            type=result.type,
            id=result.id,
            name=result.name,
            address=result.address,
            coordinates=CoordinateModel.from_domain(result.coordinates),
            city=result.city,
            relevance=result.relevance,
        )
        for result in geocoder.search(q, limit=limit)
    ]


@router.get("/drivers/available", response_model=List[DriverModel], status_code=status.HTTP_200_OK)
def list_available_drivers(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(default=10.0, gt=0, le=100),
    catalog: InMemoryCatalog = Depends(get_catalog),
) -> List[DriverModel]:
    matches = find_available_drivers(Coordinate(lat=lat, lng=lng), catalog.drivers(), radius_km)
    return [
        DriverModel(
            id=match.driver.id,
            name=match.driver.name,
            phone=match.driver.phone,
            rating=match.driver.rating,
            vehicle=match.driver.vehicle,
            current_location=CoordinateModel.from_domain(match.driver.current_location),
            distance_km=match.distance_km,
        )
        for match in matches
    ]
