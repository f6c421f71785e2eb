"""Pydantic models for order lifecycle endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from .checkout import CartItemModel
from .common import CoordinateModel
from .tracking import PositionUpdateModel


class OrderModel(BaseModel):
    id: str
    user_id: str
    status: str
    items: list[CartItemModel]
    delivery_location: CoordinateModel
    subtotal: int
    discount: float
    delivery_fee: int
    total: float
    formatted_total: str
    promo_code: Optional[str] = None
    driver_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdateRequest(BaseModel):
    status: Literal["preparing", "on_delivery", "delivered", "cancelled"]


class AssignDriverRequest(BaseModel):
    driver_id: str


class CancelOrderRequest(BaseModel):
    reason: str = ""


class StatusStepModel(BaseModel):
    status: str
    at: datetime


class OrderTrackingResponse(BaseModel):
    order_id: str
    current_status: str
    timeline: list[StatusStepModel]
    driver_id: Optional[str] = None
    position: Optional[PositionUpdateModel] = None
