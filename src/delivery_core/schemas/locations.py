"""Pydantic models for geocoding, search and driver endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import CoordinateModel


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1)


class ReverseGeocodeRequest(BaseModel):
    location: CoordinateModel


class GeocodeResponse(BaseModel):
    coordinates: CoordinateModel
    formatted_address: str
    city: str
    province: str
    postal_code: str
    country: str
    confidence: float
    is_approximate: bool = False
    distance_km: Optional[float] = None


class SearchResultModel(BaseModel):
    type: str
    id: str
    name: str
    address: str
    coordinates: CoordinateModel
    city: str
    relevance: float


class DriverModel(BaseModel):
    id: str
    name: str
    phone: str
    rating: float
    vehicle: str
    current_location: CoordinateModel
    distance_km: float
