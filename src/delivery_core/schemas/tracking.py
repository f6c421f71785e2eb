"""Pydantic models for order tracking endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from .common import CoordinateModel


class StartTrackingRequest(BaseModel):
    user_position: CoordinateModel
    state: Literal["normal", "near", "arrived"] = "normal"


class SimulateStateRequest(BaseModel):
    state: Literal["normal", "near", "arrived"]


class PositionUpdateModel(BaseModel):
    order_id: str
    position: CoordinateModel
    user_position: CoordinateModel
    delivery_state: str
    distance_km: float
    eta_minutes: int
    terminated: bool
    tracking: bool


class StopTrackingResponse(BaseModel):
    order_id: str
    stopped: bool
