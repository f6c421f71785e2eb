"""Order tracking endpoints backed by the driver simulation."""

from __future__ import annotations

import json
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from ...models.domain import DeliveryState
from ...schemas.common import CoordinateModel
from ...schemas.tracking import (
    PositionUpdateModel,
    SimulateStateRequest,
    StartTrackingRequest,
    StopTrackingResponse,
)
from ...services.tracking.service import PositionUpdate, TrackingService
from ..dependencies import get_tracking_service

router = APIRouter(prefix="/tracking", tags=["tracking"])


def update_to_model(update: PositionUpdate, tracking: bool) -> PositionUpdateModel:
    return PositionUpdateModel(
        order_id=update.order_id,
        position=CoordinateModel.from_domain(update.position),
        user_position=CoordinateModel.from_domain(update.user_position),
        delivery_state=update.delivery_state.value,
        distance_km=update.distance_km,
        eta_minutes=update.eta_minutes,
        terminated=update.terminated,
        tracking=tracking,
    )


def _not_tracked(order_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No tracking session for order '{order_id}'")


@router.post("/{order_id}/start", response_model=PositionUpdateModel, status_code=status.HTTP_200_OK)
async def start_tracking(
    order_id: str,
    payload: StartTrackingRequest,
    tracking: TrackingService = Depends(get_tracking_service),
) -> PositionUpdateModel:
    update = tracking.start_tracking(order_id, payload.user_position.to_domain(), DeliveryState(payload.state))
    return update_to_model(update, tracking.is_tracking(order_id))


@router.post("/{order_id}/stop", response_model=StopTrackingResponse, status_code=status.HTTP_200_OK)
async def stop_tracking(
    order_id: str,
    tracking: TrackingService = Depends(get_tracking_service),
) -> StopTrackingResponse:
    return StopTrackingResponse(order_id=order_id, stopped=tracking.stop_tracking(order_id))


@router.post("/{order_id}/state", response_model=PositionUpdateModel, status_code=status.HTTP_200_OK)
async def simulate_state(
    order_id: str,
    payload: SimulateStateRequest,
    tracking: TrackingService = Depends(get_tracking_service),
) -> PositionUpdateModel:
    try:
        update = tracking.simulate_state(order_id, DeliveryState(payload.state))
    except KeyError as exc:
        raise _not_tracked(order_id) from exc
    return update_to_model(update, tracking.is_tracking(order_id))


@router.get("/{order_id}", response_model=PositionUpdateModel, status_code=status.HTTP_200_OK)
async def get_tracking_snapshot(
    order_id: str,
    tracking: TrackingService = Depends(get_tracking_service),
) -> PositionUpdateModel:
    update = tracking.snapshot(order_id)
    if update is None:
        raise _not_tracked(order_id)
    return update_to_model(update, tracking.is_tracking(order_id))


@router.get("/{order_id}/stream", status_code=status.HTTP_200_OK)
async def stream_positions(
    order_id: str,
    tracking: TrackingService = Depends(get_tracking_service),
) -> StreamingResponse:
    """Newline-delimited JSON position updates until the driver arrives or tracking stops."""
    if tracking.snapshot(order_id) is None:
        raise _not_tracked(order_id)

    async def _lines() -> AsyncIterator[str]:
        async for update in tracking.positions(order_id):
            yield json.dumps(update_to_model(update, not update.terminated).model_dump()) + "\n"

    return StreamingResponse(_lines(), media_type="application/x-ndjson")
