"""Coverage lookup and delivery pricing endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.catalog import InMemoryCatalog
from ...errors import OutsideCoverageError, ProviderError
from ...models.domain import CoverageArea, District
from ...schemas.common import CoordinateModel
from ...schemas.coverage import (
    CoverageAreaModel,
    CoverageCheckRequest,
    CoverageCheckResponse,
    DeliveryInfoRequest,
    DeliveryInfoResponse,
    DistrictModel,
)
from ...services.checkout import CheckoutService
from ...services.export.geojson import export_coverage_geojson
from ...services.outputs.formatter import format_currency
from ...services.pricing.service import DeliveryQuote
from ..dependencies import get_catalog, get_checkout_service

router = APIRouter(prefix="/coverage", tags=["coverage"])


def area_to_model(area: CoverageArea) -> CoverageAreaModel:
    return CoverageAreaModel(
        id=area.id,
        city=area.city,
        province=area.province,
        active=area.active,
        polygon=[CoordinateModel.from_domain(vertex) for vertex in area.polygon],
        center=CoordinateModel.from_domain(area.center),
        delivery_fee=area.delivery_fee,
        minimum_order=area.minimum_order,
        estimated_delivery_time=area.estimated_delivery_time,
        max_delivery_radius=area.max_delivery_radius,
        country=area.country,
        timezone=area.timezone,
        currency=area.currency,
    )


def district_to_model(district: District) -> DistrictModel:
    return DistrictModel(
        id=district.id,
        name=district.name,
        city=district.city,
        coverage_area_id=district.coverage_area_id,
        active=district.active,
        center=CoordinateModel.from_domain(district.center),
        delivery_fee=district.delivery_fee,
        estimated_delivery_time=district.estimated_delivery_time,
    )


def quote_to_model(quote: DeliveryQuote) -> DeliveryInfoResponse:
    return DeliveryInfoResponse(
        delivery_fee=quote.delivery_fee,
        original_delivery_fee=quote.original_delivery_fee,
        formatted_delivery_fee=format_currency(quote.delivery_fee),
        estimated_delivery_time=quote.estimated_delivery_time,
        minimum_order=quote.minimum_order,
        minimum_order_met=quote.minimum_order_met,
        free_delivery_applied=quote.free_delivery_applied,
        free_delivery_threshold=quote.free_delivery_threshold,
        coverage_area_id=quote.coverage_area_id,
        coverage_area_city=quote.coverage_area_city,
        district_id=quote.district_id,
        district_name=quote.district_name,
        location=CoordinateModel.from_domain(quote.location),
    )


@router.get("/areas", response_model=List[CoverageAreaModel], status_code=status.HTTP_200_OK)
def list_coverage_areas(
    include_inactive: bool = Query(default=False, description="Include areas that are switched off."),
    catalog: InMemoryCatalog = Depends(get_catalog),
) -> List[CoverageAreaModel]:
    return [area_to_model(area) for area in catalog.coverage_areas() if area.active or include_inactive]


@router.get("/areas/{area_id}", response_model=CoverageAreaModel, status_code=status.HTTP_200_OK)
def get_coverage_area(area_id: str, catalog: InMemoryCatalog = Depends(get_catalog)) -> CoverageAreaModel:
    area = catalog.area_repository.get(area_id)
    if area is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Coverage area '{area_id}' not found")
    return area_to_model(area)


@router.get("/areas/{area_id}/districts", response_model=List[DistrictModel], status_code=status.HTTP_200_OK)
def list_area_districts(area_id: str, catalog: InMemoryCatalog = Depends(get_catalog)) -> List[DistrictModel]:
    districts = catalog.district_repository.find(
        lambda district: district.coverage_area_id == area_id and district.active
    )
    return [district_to_model(district) for district in districts]


@router.post("/check", response_model=CoverageCheckResponse, status_code=status.HTTP_200_OK)
def check_coverage(
    payload: CoverageCheckRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
) -> CoverageCheckResponse:
    try:
        result = checkout.check_coverage(payload.location.to_domain())
    except ProviderError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message) from exc
    return CoverageCheckResponse(
        location=CoordinateModel.from_domain(result.location),
        is_within_coverage=result.is_within_coverage,
        coverage_area=area_to_model(result.coverage_area) if result.coverage_area else None,
        nearest_district=district_to_model(result.nearest_district) if result.nearest_district else None,
        estimated_delivery_time=result.estimated_delivery_time,
        delivery_fee=result.delivery_fee,
        distance_to_district_km=result.distance_to_district_km,
        checked_at=result.checked_at,
    )


@router.post("/delivery", response_model=DeliveryInfoResponse, status_code=status.HTTP_200_OK)
def calculate_delivery_info(
    payload: DeliveryInfoRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
) -> DeliveryInfoResponse:
    try:
        quote = checkout.calculate_delivery_info(payload.location.to_domain(), payload.order_subtotal)
    except ProviderError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message) from exc
    if isinstance(quote, OutsideCoverageError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=quote.message)
    return quote_to_model(quote)


@router.get("/geojson", status_code=status.HTTP_200_OK)
def export_geojson(
    include_districts: bool = Query(default=True),
    catalog: InMemoryCatalog = Depends(get_catalog),
) -> dict:
    districts = catalog.districts() if include_districts else ()
    return export_coverage_geojson(catalog.coverage_areas(), districts)
