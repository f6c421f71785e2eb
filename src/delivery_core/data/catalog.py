"""Catalog provider for coverage areas, districts, promos, addresses and drivers.

The built-in seed data mirrors the two launch cities. A JSON catalog file can
replace it (``DELIVERY_CATALOG_FILE``); coordinates are always written as
``{"lat": ..., "lng": ...}`` objects, never bare arrays.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from ..config import settings
from ..errors import ProviderError
from ..models.domain import (
    Address,
    Coordinate,
    CoverageArea,
    DiscountType,
    District,
    Driver,
    PromoCode,
    PromoUsageRecord,
    UserRestrictions,
)
from .repository import InMemoryRepository, UsageHistoryRepository

logger = logging.getLogger(__name__)


class CatalogProvider(Protocol):
    def coverage_areas(self) -> tuple[CoverageArea, ...]: ...

    def districts(self) -> tuple[District, ...]: ...

    def promos(self) -> tuple[PromoCode, ...]: ...

    def addresses(self) -> tuple[Address, ...]: ...

    def drivers(self) -> tuple[Driver, ...]: ...


class InMemoryCatalog:
    """Catalog backed by in-memory repositories, one per record type."""

    def __init__(
        self,
        *,
        areas: tuple[CoverageArea, ...] = (),
        districts: tuple[District, ...] = (),
        promos: tuple[PromoCode, ...] = (),
        addresses: tuple[Address, ...] = (),
        drivers: tuple[Driver, ...] = (),
    ) -> None:
        self.area_repository = InMemoryRepository(areas)
        self.district_repository = InMemoryRepository(districts)
        self.promo_repository = InMemoryRepository(promos)
        self.address_repository = InMemoryRepository(addresses)
        self.driver_repository = InMemoryRepository(drivers)

    def coverage_areas(self) -> tuple[CoverageArea, ...]:
        return self.area_repository.list()

    def districts(self) -> tuple[District, ...]:
        return self.district_repository.list()

    def promos(self) -> tuple[PromoCode, ...]:
        return self.promo_repository.list()

    def addresses(self) -> tuple[Address, ...]:
        return self.address_repository.list()

    def drivers(self) -> tuple[Driver, ...]:
        return self.driver_repository.list()


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coordinate(raw: dict[str, Any]) -> Coordinate:
    return Coordinate(lat=float(raw["lat"]), lng=float(raw["lng"]))


def _area_from_dict(raw: dict[str, Any]) -> CoverageArea:
    polygon = tuple(_coordinate(vertex) for vertex in raw["polygon"])
    if len(set(polygon)) < 3:
        raise ValueError(f"Coverage area '{raw['id']}' polygon needs at least 3 distinct vertices.")
    return CoverageArea(
        id=str(raw["id"]),
        city=str(raw["city"]),
        province=str(raw.get("province", "")),
        active=bool(raw.get("active", True)),
        polygon=polygon,
        center=_coordinate(raw["center"]),
        delivery_fee=int(raw["deliveryFee"]),
        minimum_order=int(raw["minimumOrder"]),
        estimated_delivery_time=int(raw["estimatedDeliveryTime"]),
        max_delivery_radius=float(raw.get("maxDeliveryRadius", 0)),
        country=str(raw.get("country", "Indonesia")),
        timezone=str(raw.get("timezone", "Asia/Jakarta")),
        currency=str(raw.get("currency", "IDR")),
    )


def _district_from_dict(raw: dict[str, Any]) -> District:
    return District(
        id=str(raw["id"]),
        name=str(raw["name"]),
        city=str(raw.get("city", "")),
        coverage_area_id=str(raw["coverageAreaId"]),
        active=bool(raw.get("active", True)),
        center=_coordinate(raw["center"]),
        delivery_fee=int(raw["deliveryFee"]),
        estimated_delivery_time=int(raw["estimatedDeliveryTime"]),
    )


def _promo_from_dict(raw: dict[str, Any]) -> PromoCode:
    restrictions = raw.get("userRestrictions") or {}
    max_discount = raw.get("maxDiscountAmount")
    return PromoCode(
        id=str(raw["id"]),
        code=str(raw["code"]),
        title=str(raw.get("title", raw["code"])),
        description=str(raw.get("description", "")),
        type=DiscountType(raw["type"]),
        value=int(raw["value"]),
        min_order_amount=int(raw.get("minOrderAmount", 0)),
        max_discount_amount=int(max_discount) if max_discount is not None else None,
        active=bool(raw.get("active", True)),
        valid_from=_parse_datetime(raw["validFrom"]),
        valid_until=_parse_datetime(raw["validUntil"]),
        applicable_categories=tuple(raw.get("applicableCategories") or ()),
        restrictions=UserRestrictions(
            first_order_only=bool(restrictions.get("firstOrderOnly", False)),
            max_usage_per_user=restrictions.get("maxUsagePerUser"),
            weekend_only=bool(restrictions.get("weekendOnly", False)),
            requires_both_pizza_and_beverage=bool(restrictions.get("requiresBothPizzaAndBeverage", False)),
        ),
        featured=bool(raw.get("featured", False)),
    )


def _address_from_dict(raw: dict[str, Any]) -> Address:
    return Address(
        id=str(raw["id"]),
        address=str(raw["address"]),
        coordinates=_coordinate(raw["coordinates"]),
        city=str(raw["city"]),
        province=str(raw.get("province", "")),
        postal_code=str(raw.get("postalCode", "")),
        country=str(raw.get("country", "Indonesia")),
        formatted=str(raw.get("formatted", raw["address"])),
    )


def _driver_from_dict(raw: dict[str, Any]) -> Driver:
    return Driver(
        id=str(raw["id"]),
        name=str(raw["name"]),
        phone=str(raw.get("phone", "")),
        rating=float(raw.get("rating", 0.0)),
        current_location=_coordinate(raw["currentLocation"]),
        is_online=bool(raw.get("isOnline", False)),
        is_available=bool(raw.get("isAvailable", True)),
        vehicle=str(raw.get("vehicle", "")),
    )


def load_catalog_file(source: Path) -> InMemoryCatalog:
    """Load a catalog from a JSON document with camelCase keys."""

    if not source.exists():
        raise FileNotFoundError(f"Catalog file not found: {source}")
    with source.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    catalog = InMemoryCatalog(
        areas=tuple(_area_from_dict(row) for row in payload.get("coverageAreas", [])),
        districts=tuple(_district_from_dict(row) for row in payload.get("districts", [])),
        promos=tuple(_promo_from_dict(row) for row in payload.get("promos", [])),
        addresses=tuple(_address_from_dict(row) for row in payload.get("addresses", [])),
        drivers=tuple(_driver_from_dict(row) for row in payload.get("drivers", [])),
    )
    logger.info(
        f"Loaded catalog from {source}: {len(catalog.area_repository)} areas, "
        f"{len(catalog.district_repository)} districts, {len(catalog.promo_repository)} promos"
    )
    return catalog


def _rectangle(north: float, south: float, west: float, east: float) -> tuple[Coordinate, ...]:
    return (
        Coordinate(north, west),
        Coordinate(north, east),
        Coordinate(south, east),
        Coordinate(south, west),
    )


def _utc(value: str) -> datetime:
    return _parse_datetime(value)


SEED_AREAS: tuple[CoverageArea, ...] = (
    CoverageArea(
        id="surabaya",
        city="Surabaya",
        province="Jawa Timur",
        active=True,
        polygon=_rectangle(north=-7.1554, south=-7.3549, west=112.6094, east=112.8375),
        center=Coordinate(-7.2575, 112.7521),
        delivery_fee=5000,
        minimum_order=50000,
        estimated_delivery_time=30,
        max_delivery_radius=15,
    ),
    CoverageArea(
        id="tangerang_selatan",
        city="Tangerang Selatan",
        province="Banten",
        active=True,
        polygon=_rectangle(north=-6.1840, south=-6.3676, west=106.6924, east=106.8304),
        center=Coordinate(-6.2758, 106.7614),
        delivery_fee=8000,
        minimum_order=75000,
        estimated_delivery_time=35,
        max_delivery_radius=20,
    ),
)

SEED_DISTRICTS: tuple[District, ...] = (
    District("district_001", "Gubeng", "Surabaya", "surabaya", True, Coordinate(-7.2652, 112.7519), 5000, 25),
    District("district_002", "Wonokromo", "Surabaya", "surabaya", True, Coordinate(-7.2951, 112.7214), 5000, 30),
    District(
        "district_003", "Pondok Aren", "Tangerang Selatan", "tangerang_selatan", True,
        Coordinate(-6.2654, 106.6990), 8000, 30,
    ),
    District(
        "district_004", "Bintaro", "Tangerang Selatan", "tangerang_selatan", True,
        Coordinate(-6.2758, 106.7614), 8000, 35,
    ),
)

SEED_PROMOS: tuple[PromoCode, ...] = (
    PromoCode(
        id="promo_001",
        code="WELCOME20",
        title="Welcome Discount",
        description="Get 20% off on your first order",
        type=DiscountType.PERCENTAGE,
        value=20,
        min_order_amount=50000,
        max_discount_amount=25000,
        active=True,
        valid_from=_utc("2026-01-01T00:00:00Z"),
        valid_until=_utc("2026-12-31T23:59:59Z"),
        restrictions=UserRestrictions(first_order_only=True, max_usage_per_user=1),
        featured=True,
    ),
    PromoCode(
        id="promo_002",
        code="PIZZA30",
        title="Pizza Lover Special",
        description="30% off on all pizza orders above Rp75.000",
        type=DiscountType.PERCENTAGE,
        value=30,
        min_order_amount=75000,
        max_discount_amount=50000,
        active=True,
        valid_from=_utc("2026-01-01T00:00:00Z"),
        valid_until=_utc("2026-12-31T23:59:59Z"),
        applicable_categories=("Classic Pizza", "Premium Pizza", "Specialty Pizza"),
        restrictions=UserRestrictions(max_usage_per_user=3),
        featured=True,
    ),
    PromoCode(
        id="promo_003",
        code="FLAT15K",
        title="Flat Discount",
        description="Flat Rp15.000 off on orders above Rp100.000",
        type=DiscountType.FIXED,
        value=15000,
        min_order_amount=100000,
        max_discount_amount=15000,
        active=True,
        valid_from=_utc("2026-01-01T00:00:00Z"),
        valid_until=_utc("2026-12-29T23:59:59Z"),
        restrictions=UserRestrictions(max_usage_per_user=2),
        featured=True,
    ),
    PromoCode(
        id="promo_004",
        code="WEEKEND50",
        title="Weekend Special",
        description="50% off on weekend orders (Saturday & Sunday)",
        type=DiscountType.PERCENTAGE,
        value=50,
        min_order_amount=60000,
        max_discount_amount=40000,
        active=True,
        valid_from=_utc("2026-01-01T00:00:00Z"),
        valid_until=_utc("2026-12-31T23:59:59Z"),
        restrictions=UserRestrictions(weekend_only=True),
        featured=True,
    ),
    PromoCode(
        id="promo_005",
        code="COMBO25",
        title="Combo Deal",
        description="25% off when you order pizza + beverage",
        type=DiscountType.PERCENTAGE,
        value=25,
        min_order_amount=70000,
        max_discount_amount=30000,
        active=True,
        valid_from=_utc("2026-01-01T00:00:00Z"),
        valid_until=_utc("2026-12-31T23:59:59Z"),
        restrictions=UserRestrictions(max_usage_per_user=5, requires_both_pizza_and_beverage=True),
    ),
)

SEED_ADDRESSES: tuple[Address, ...] = (
    Address(
        "addr_001", "Jl. Diponegoro No. 123, Surabaya", Coordinate(-7.2575, 112.7521),
        "Surabaya", "Jawa Timur", "60245", "Indonesia",
        "Jl. Diponegoro No. 123, Surabaya, Jawa Timur 60245",
    ),
    Address(
        "addr_002", "Jl. Basuki Rahmat No. 456, Surabaya", Coordinate(-7.2504, 112.7688),
        "Surabaya", "Jawa Timur", "60271", "Indonesia",
        "Jl. Basuki Rahmat No. 456, Surabaya, Jawa Timur 60271",
    ),
    Address(
        "addr_003", "Jl. Bintaro Raya No. 789, Tangerang Selatan", Coordinate(-6.2758, 106.7614),
        "Tangerang Selatan", "Banten", "15221", "Indonesia",
        "Jl. Bintaro Raya No. 789, Tangerang Selatan, Banten 15221",
    ),
)

SEED_DRIVERS: tuple[Driver, ...] = (
    Driver(
        id="driver_001",
        name="Pak Agus",
        phone="081234567899",
        rating=4.8,
        current_location=Coordinate(-7.2575, 112.7521),
        is_online=True,
        is_available=True,
        vehicle="Honda Beat - B 1234 AG",
    ),
)

SEED_USAGE: dict[str, list[PromoUsageRecord]] = {
    "customer_001": [
        PromoUsageRecord(
            promo_id="promo_001",
            code="WELCOME20",
            used_at=_utc("2026-01-15T10:30:00Z"),
            order_id="order_123",
            discount_amount=12000,
        )
    ]
}


def build_seed_catalog() -> InMemoryCatalog:
    return InMemoryCatalog(
        areas=SEED_AREAS,
        districts=SEED_DISTRICTS,
        promos=SEED_PROMOS,
        addresses=SEED_ADDRESSES,
        drivers=SEED_DRIVERS,
    )


def build_seed_usage() -> UsageHistoryRepository:
    return UsageHistoryRepository({user_id: list(records) for user_id, records in SEED_USAGE.items()})


def get_catalog(source: Optional[Path] = None) -> InMemoryCatalog:
    """Catalog from ``source`` or the configured file, else the built-in seed data."""

    catalog_path = source or settings.catalog_file
    if catalog_path is None:
        return build_seed_catalog()
    try:
        return load_catalog_file(catalog_path)
    except (OSError, ValueError, KeyError) as exc:
        raise ProviderError("catalog", f"Failed to load {catalog_path}: {exc}") from exc
