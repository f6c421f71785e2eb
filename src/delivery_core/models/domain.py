"""Domain models for coverage areas, promos, drivers and carts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS84-like latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


@dataclass(slots=True)
class CoverageArea:
    """A serviceable region bounded by a polygon of (lat, lng) vertices."""

    id: str
    city: str
    province: str
    active: bool
    polygon: tuple[Coordinate, ...]
    center: Coordinate
    delivery_fee: int
    minimum_order: int
    estimated_delivery_time: int
    max_delivery_radius: float
    country: str = "Indonesia"
    timezone: str = "Asia/Jakarta"
    currency: str = "IDR"


@dataclass(slots=True)
class District:
    """Sub-region of exactly one coverage area, matched by nearest center."""

    id: str
    name: str
    city: str
    coverage_area_id: str
    active: bool
    center: Coordinate
    delivery_fee: int
    estimated_delivery_time: int


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(slots=True)
class UserRestrictions:
    first_order_only: bool = False
    max_usage_per_user: Optional[int] = None
    weekend_only: bool = False
    requires_both_pizza_and_beverage: bool = False


@dataclass(slots=True)
class PromoCode:
    """Static promo definition; only usage records change after catalog load."""

    id: str
    code: str
    title: str
    type: DiscountType
    value: int
    min_order_amount: int
    max_discount_amount: Optional[int]
    active: bool
    valid_from: datetime
    valid_until: datetime
    description: str = ""
    applicable_categories: tuple[str, ...] = ()
    restrictions: UserRestrictions = field(default_factory=UserRestrictions)
    featured: bool = False


@dataclass(slots=True)
class PromoUsageRecord:
    promo_id: str
    code: str
    used_at: datetime
    order_id: str
    discount_amount: float


class DeliveryState(str, Enum):
    NORMAL = "normal"
    NEAR = "near"
    ARRIVED = "arrived"


@dataclass(slots=True)
class DriverSimPosition:
    """Simulated driver coordinate owned by one tracking session."""

    position: Coordinate
    delivery_state: DeliveryState = DeliveryState.NORMAL


@dataclass(slots=True)
class Address:
    id: str
    address: str
    coordinates: Coordinate
    city: str
    province: str
    postal_code: str
    country: str
    formatted: str


@dataclass(slots=True)
class Driver:
    id: str
    name: str
    phone: str
    rating: float
    current_location: Coordinate
    is_online: bool = False
    is_available: bool = True
    vehicle: str = ""


@dataclass(slots=True)
class CartItem:
    id: str
    name: str
    price: int
    quantity: int
    category: Optional[str] = None
