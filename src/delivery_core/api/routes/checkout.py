"""Checkout quote and order placement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import OrderRejectedError, ProviderError
from ...models.domain import CartItem
from ...schemas.checkout import CheckoutQuoteResponse, CheckoutRequest, PlacedOrderResponse
from ...services.cart import Cart
from ...services.checkout import CheckoutQuote, CheckoutService
from ...services.outputs.formatter import format_currency
from ..dependencies import get_checkout_service
from .coverage import quote_to_model

router = APIRouter(prefix="/checkout", tags=["checkout"])


def _cart_from_request(payload: CheckoutRequest) -> Cart:
    cart = Cart(
        CartItem(id=item.id, name=item.name, price=item.price, quantity=item.quantity, category=item.category)
        for item in payload.items
    )
    if payload.promo_code:
        cart.restore_promo(payload.promo_code.strip())
    return cart


def _quote_to_model(quote: CheckoutQuote) -> CheckoutQuoteResponse:
    return CheckoutQuoteResponse(
        subtotal=quote.subtotal,
        discount=quote.discount,
        delivery_fee=quote.delivery_fee,
        total=quote.total,
        formatted_total=format_currency(quote.total),
        coverage_status=quote.coverage_status,
        promo_status=quote.promo_status,
        can_place_order=quote.can_place_order,
        delivery=quote_to_model(quote.delivery) if quote.delivery else None,
        promo_code=quote.promo_code,
        messages=list(quote.messages),
    )


@router.post("/quote", response_model=CheckoutQuoteResponse, status_code=status.HTTP_200_OK)
def quote_checkout(
    payload: CheckoutRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
) -> CheckoutQuoteResponse:
    cart = _cart_from_request(payload)
    return _quote_to_model(checkout.quote(cart, payload.location.to_domain(), payload.user_id))


@router.post("/orders", response_model=PlacedOrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: CheckoutRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
) -> PlacedOrderResponse:
    cart = _cart_from_request(payload)
    try:
        placed = checkout.place_order(cart, payload.location.to_domain(), payload.user_id, order_id=payload.order_id)
    except OrderRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": exc.reason, "message": exc.message},
        ) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message) from exc
    return PlacedOrderResponse(order_id=placed.order_id, user_id=placed.user_id, quote=_quote_to_model(placed.quote))
