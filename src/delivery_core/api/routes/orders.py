"""Order lifecycle endpoints: lookup, status changes, driver assignment and cancellation."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...schemas.checkout import CartItemModel
from ...schemas.common import CoordinateModel
from ...schemas.orders import (
    AssignDriverRequest,
    CancelOrderRequest,
    OrderModel,
    OrderStatusUpdateRequest,
    OrderTrackingResponse,
    StatusStepModel,
)
from ...services.orders.polling import ActiveOrderPoller
from ...services.orders.store import Order, OrderStore
from ...services.outputs.formatter import format_currency
from ...services.tracking.service import TrackingService
from ..dependencies import get_order_store, get_tracking_service
from .tracking import update_to_model

router = APIRouter(prefix="/orders", tags=["orders"])


def order_to_model(order: Order) -> OrderModel:
    return OrderModel(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        items=[
            CartItemModel(id=item.id, name=item.name, price=item.price, quantity=item.quantity, category=item.category)
            for item in order.items
        ],
        delivery_location=CoordinateModel.from_domain(order.delivery_location),
        subtotal=order.subtotal,
        discount=order.discount,
        delivery_fee=order.delivery_fee,
        total=order.total,
        formatted_total=format_currency(order.total),
        promo_code=order.promo_code,
        driver_id=order.driver_id,
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _require(store: OrderStore, order_id: str) -> Order:
    order = store.get(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order '{order_id}' not found")
    return order


@router.get("", response_model=List[OrderModel], status_code=status.HTTP_200_OK)
def list_user_orders(
    user_id: str,
    order_status: Optional[str] = Query(None, alias="status"),
    store: OrderStore = Depends(get_order_store),
) -> List[OrderModel]:
    return [order_to_model(order) for order in store.user_orders(user_id, status=order_status)]


@router.get("/users/{user_id}/active", response_model=List[OrderModel], status_code=status.HTTP_200_OK)
def list_active_orders(user_id: str, store: OrderStore = Depends(get_order_store)) -> List[OrderModel]:
    poller = ActiveOrderPoller(lambda: store.status_records(user_id))
    return [order_to_model(_require(store, record.order_id)) for record in poller.refresh()]


@router.get("/{order_id}", response_model=OrderModel, status_code=status.HTTP_200_OK)
def get_order(order_id: str, store: OrderStore = Depends(get_order_store)) -> OrderModel:
    return order_to_model(_require(store, order_id))


@router.post("/{order_id}/status", response_model=OrderModel, status_code=status.HTTP_200_OK)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateRequest,
    store: OrderStore = Depends(get_order_store),
    tracking: TrackingService = Depends(get_tracking_service),
) -> OrderModel:
    """Advance an order; going out for delivery starts driver tracking, finishing it stops tracking."""
    _require(store, order_id)
    try:
        order = store.update_status(order_id, payload.status)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if order.status == "on_delivery":
        tracking.start_tracking(order_id, order.delivery_location)
    elif order.status in ("delivered", "cancelled"):
        tracking.stop_tracking(order_id)
    return order_to_model(order)


@router.post("/{order_id}/driver", response_model=OrderModel, status_code=status.HTTP_200_OK)
def assign_driver(
    order_id: str,
    payload: AssignDriverRequest,
    store: OrderStore = Depends(get_order_store),
) -> OrderModel:
    _require(store, order_id)
    try:
        return order_to_model(store.assign_driver(order_id, payload.driver_id))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/{order_id}/cancel", response_model=OrderModel, status_code=status.HTTP_200_OK)
async def cancel_order(
    order_id: str,
    payload: CancelOrderRequest,
    store: OrderStore = Depends(get_order_store),
    tracking: TrackingService = Depends(get_tracking_service),
) -> OrderModel:
    _require(store, order_id)
    try:
        order = store.cancel(order_id, payload.reason)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    tracking.stop_tracking(order_id)
    return order_to_model(order)


@router.get("/{order_id}/tracking", response_model=OrderTrackingResponse, status_code=status.HTTP_200_OK)
async def get_order_tracking(
    order_id: str,
    store: OrderStore = Depends(get_order_store),
    tracking: TrackingService = Depends(get_tracking_service),
) -> OrderTrackingResponse:
    order = _require(store, order_id)
    update = tracking.snapshot(order_id)
    return OrderTrackingResponse(
        order_id=order.id,
        current_status=order.status,
        timeline=[StatusStepModel(status=step, at=at) for step, at in order.status_history],
        driver_id=order.driver_id,
        position=update_to_model(update, tracking.is_tracking(order_id)) if update is not None else None,
    )
