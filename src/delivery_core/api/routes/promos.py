"""Promo listing, validation and application endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import PromoError, PromoErrorCode, ProviderError
from ...models.domain import PromoCode
from ...schemas.promos import (
    ApplyPromoRequest,
    AvailablePromoModel,
    PromoCodeModel,
    PromoDiscountModel,
    PromoHistoryResponse,
    PromoRequest,
    PromoUsageModel,
)
from ...services.promos.engine import PromoDiscount
from ...services.promos.service import PromoService
from ..dependencies import get_promo_service

router = APIRouter(prefix="/promos", tags=["promos"])


def promo_to_model(promo: PromoCode) -> PromoCodeModel:
    return PromoCodeModel(
        id=promo.id,
        code=promo.code,
        title=promo.title,
        description=promo.description,
        type=promo.type.value,
        value=promo.value,
        min_order_amount=promo.min_order_amount,
        max_discount_amount=promo.max_discount_amount,
        active=promo.active,
        valid_from=promo.valid_from,
        valid_until=promo.valid_until,
        applicable_categories=list(promo.applicable_categories),
        first_order_only=promo.restrictions.first_order_only,
        max_usage_per_user=promo.restrictions.max_usage_per_user,
        weekend_only=promo.restrictions.weekend_only,
        requires_both_pizza_and_beverage=promo.restrictions.requires_both_pizza_and_beverage,
        featured=promo.featured,
    )


def discount_to_model(discount: PromoDiscount) -> PromoDiscountModel:
    return PromoDiscountModel(
        promo_id=discount.promo_id,
        code=discount.code,
        type=discount.type.value,
        value=discount.value,
        amount=discount.amount,
        max_amount=discount.max_amount,
        percentage=discount.percentage,
        formatted_amount=discount.formatted_amount,
    )


def promo_error_to_http(error: PromoError) -> HTTPException:
    status_code = (
        status.HTTP_404_NOT_FOUND if error.code is PromoErrorCode.NOT_FOUND else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=status_code, detail={"code": error.code.value, "message": error.message})


def _provider_unavailable(exc: ProviderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)


@router.get("", response_model=List[AvailablePromoModel], status_code=status.HTTP_200_OK)
def get_available_promos(
    user_id: str = Query(..., description="Customer the listing is evaluated for."),
    order_amount: int | None = Query(default=None, ge=0, description="Current cart subtotal, if known."),
    categories: list[str] | None = Query(default=None, description="Categories currently in the cart."),
    featured_only: bool = Query(default=False),
    promos: PromoService = Depends(get_promo_service),
) -> List[AvailablePromoModel]:
    try:
        annotated = promos.get_available_promos(
            user_id,
            order_amount=order_amount,
            categories=categories,
            featured_only=featured_only,
        )
    except ProviderError as exc:
        raise _provider_unavailable(exc) from exc
    return [
        AvailablePromoModel(
            promo=promo_to_model(entry.promo),
            applicable=entry.applicable,
            disabled_reason=entry.disabled_reason,
        )
        for entry in annotated
    ]


@router.post("/validate", response_model=PromoDiscountModel, status_code=status.HTTP_200_OK)
def validate_promo_code(
    payload: PromoRequest,
    promos: PromoService = Depends(get_promo_service),
) -> PromoDiscountModel:
    try:
        result = promos.validate_promo_code(
            payload.code,
            user_id=payload.user_id,
            order_amount=payload.order_amount,
            categories=payload.categories,
        )
    except ProviderError as exc:
        raise _provider_unavailable(exc) from exc
    if isinstance(result, PromoError):
        raise promo_error_to_http(result)
    return discount_to_model(result)


@router.post("/apply", response_model=PromoDiscountModel, status_code=status.HTTP_200_OK)
def apply_promo_code(
    payload: ApplyPromoRequest,
    promos: PromoService = Depends(get_promo_service),
) -> PromoDiscountModel:
    try:
        result = promos.apply_promo_code(
            payload.code,
            user_id=payload.user_id,
            order_id=payload.order_id,
            subtotal=payload.order_amount,
            categories=payload.categories,
        )
    except ProviderError as exc:
        raise _provider_unavailable(exc) from exc
    if isinstance(result, PromoError):
        raise promo_error_to_http(result)
    return discount_to_model(result)


@router.get("/code/{code}", response_model=PromoCodeModel, status_code=status.HTTP_200_OK)
def get_promo_by_code(code: str, promos: PromoService = Depends(get_promo_service)) -> PromoCodeModel:
    promo = promos.get_promo_by_code(code)
    if promo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Promo code '{code}' not found")
    return promo_to_model(promo)


@router.get("/users/{user_id}/history", response_model=PromoHistoryResponse, status_code=status.HTTP_200_OK)
def get_user_promo_history(
    user_id: str,
    from_date: datetime | None = Query(default=None),
    to_date: datetime | None = Query(default=None),
    promos: PromoService = Depends(get_promo_service),
) -> PromoHistoryResponse:
    history = promos.get_user_promo_history(user_id, from_date=from_date, to_date=to_date)
    return PromoHistoryResponse(
        user_id=history.user_id,
        history=[
            PromoUsageModel(
                promo_id=record.promo_id,
                code=record.code,
                used_at=record.used_at,
                order_id=record.order_id,
                discount_amount=record.discount_amount,
            )
            for record in history.history
        ],
        total_usage=history.total_usage,
        total_savings=history.total_savings,
        formatted_savings=history.formatted_savings,
    )
