"""Delivery fee and minimum-order evaluation on top of coverage lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from ...config import settings
from ...errors import OutsideCoverageError
from ...models.domain import Coordinate, CoverageArea, District
from ..coverage.resolver import CoverageResult, resolve


@dataclass(slots=True)
class DeliveryQuote:
    delivery_fee: int
    original_delivery_fee: int
    estimated_delivery_time: Optional[int]
    minimum_order: int
    minimum_order_met: bool
    free_delivery_applied: bool
    free_delivery_threshold: int
    coverage_area_id: str
    coverage_area_city: str
    district_id: Optional[str]
    district_name: Optional[str]
    location: Coordinate


def quote_from_coverage(
    coverage: CoverageResult,
    order_subtotal: int,
    *,
    free_delivery_threshold: Optional[int] = None,
) -> Union[DeliveryQuote, OutsideCoverageError]:
    """Apply the free-delivery threshold and minimum-order gate to a coverage result.

    ``order_subtotal`` is the pre-discount subtotal; promo discounts never change
    delivery-fee eligibility.
    """

    if not coverage.is_within_coverage or coverage.coverage_area is None:
        return OutsideCoverageError(coverage.location)

    threshold = settings.free_delivery_threshold if free_delivery_threshold is None else free_delivery_threshold
    area = coverage.coverage_area
    base_fee = coverage.delivery_fee if coverage.delivery_fee is not None else area.delivery_fee
    free_delivery = order_subtotal >= threshold
    district = coverage.nearest_district
    return DeliveryQuote(
        delivery_fee=0 if free_delivery else base_fee,
        original_delivery_fee=base_fee,
        estimated_delivery_time=coverage.estimated_delivery_time,
        minimum_order=area.minimum_order,
        minimum_order_met=order_subtotal >= area.minimum_order,
        free_delivery_applied=free_delivery,
        free_delivery_threshold=threshold,
        coverage_area_id=area.id,
        coverage_area_city=area.city,
        district_id=district.id if district else None,
        district_name=district.name if district else None,
        location=coverage.location,
    )


def price_delivery(
    point: Coordinate,
    order_subtotal: int,
    areas: Sequence[CoverageArea],
    districts: Sequence[District],
    *,
    free_delivery_threshold: Optional[int] = None,
) -> Union[DeliveryQuote, OutsideCoverageError]:
    coverage = resolve(point, areas, districts)
    return quote_from_coverage(coverage, order_subtotal, free_delivery_threshold=free_delivery_threshold)
