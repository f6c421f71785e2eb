"""Pydantic request/response models for promo endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel, Field, field_validator


class PromoCodeModel(BaseModel):
    id: str
    code: str
    title: str
    description: str
    type: str
    value: int
    min_order_amount: int
    max_discount_amount: Optional[int] = None
    active: bool
    valid_from: datetime
    valid_until: datetime
    applicable_categories: list[str]
    first_order_only: bool
    max_usage_per_user: Optional[int] = None
    weekend_only: bool
    requires_both_pizza_and_beverage: bool
    featured: bool


class AvailablePromoModel(BaseModel):
    promo: PromoCodeModel
    applicable: bool
    disabled_reason: Optional[str] = None


class PromoRequest(BaseModel):
    code: str = Field(..., description="Promo code, matched case-insensitively.")
    user_id: str
    order_amount: int = Field(..., ge=0, description="Cart subtotal before discount.")
    categories: Sequence[str] = Field(default_factory=tuple)

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("code must not be empty")
        return value


class ApplyPromoRequest(PromoRequest):
    order_id: str


class PromoDiscountModel(BaseModel):
    promo_id: str
    code: str
    type: str
    value: int
    amount: float
    max_amount: Optional[int] = None
    percentage: int
    formatted_amount: str


class PromoUsageModel(BaseModel):
    promo_id: str
    code: str
    used_at: datetime
    order_id: str
    discount_amount: float


class PromoHistoryResponse(BaseModel):
    user_id: str
    history: list[PromoUsageModel]
    total_usage: int
    total_savings: float
    formatted_savings: str
