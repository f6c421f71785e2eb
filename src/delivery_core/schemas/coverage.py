"""Pydantic request/response models for coverage and delivery pricing endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import CoordinateModel


class CoverageAreaModel(BaseModel):
    id: str
    city: str
    province: str
    active: bool
    polygon: list[CoordinateModel]
    center: CoordinateModel
    delivery_fee: int
    minimum_order: int
    estimated_delivery_time: int
    max_delivery_radius: float
    country: str
    timezone: str
    currency: str


class DistrictModel(BaseModel):
    id: str
    name: str
    city: str
    coverage_area_id: str
    active: bool
    center: CoordinateModel
    delivery_fee: int
    estimated_delivery_time: int


class CoverageCheckRequest(BaseModel):
    location: CoordinateModel


class CoverageCheckResponse(BaseModel):
    location: CoordinateModel
    is_within_coverage: bool
    coverage_area: Optional[CoverageAreaModel] = None
    nearest_district: Optional[DistrictModel] = None
    estimated_delivery_time: Optional[int] = None
    delivery_fee: Optional[int] = None
    distance_to_district_km: Optional[float] = None
    checked_at: Optional[datetime] = None


class DeliveryInfoRequest(BaseModel):
    location: CoordinateModel
    order_subtotal: int = Field(..., ge=0, description="Pre-discount cart subtotal.")


class DeliveryInfoResponse(BaseModel):
    delivery_fee: int
    original_delivery_fee: int
    formatted_delivery_fee: str
    estimated_delivery_time: Optional[int] = None
    minimum_order: int
    minimum_order_met: bool
    free_delivery_applied: bool
    free_delivery_threshold: int
    coverage_area_id: str
    coverage_area_city: str
    district_id: Optional[str] = None
    district_name: Optional[str] = None
    location: CoordinateModel
