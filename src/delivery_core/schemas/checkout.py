"""Pydantic models for checkout endpoints."""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, Field

from .common import CoordinateModel
from .coverage import DeliveryInfoResponse


class CartItemModel(BaseModel):
    id: str
    name: str
    price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    category: Optional[str] = None


class CheckoutRequest(BaseModel):
    user_id: str
    location: CoordinateModel
    items: Sequence[CartItemModel]
    promo_code: Optional[str] = None
    order_id: Optional[str] = None


class CheckoutQuoteResponse(BaseModel):
    subtotal: int
    discount: float
    delivery_fee: int
    total: float
    formatted_total: str
    coverage_status: str
    promo_status: str
    can_place_order: bool
    delivery: Optional[DeliveryInfoResponse] = None
    promo_code: Optional[str] = None
    messages: list[str]


class PlacedOrderResponse(BaseModel):
    order_id: str
    user_id: str
    quote: CheckoutQuoteResponse
