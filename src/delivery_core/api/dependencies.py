"""Request-scoped access to the services held on ``app.state``."""

from __future__ import annotations

from fastapi import Request

from ..data.catalog import InMemoryCatalog
from ..services.checkout import CheckoutService
from ..services.geolocation import MockGeocoder
from ..services.orders.store import OrderStore
from ..services.promos.service import PromoService
from ..services.tracking.service import TrackingService


def get_catalog(request: Request) -> InMemoryCatalog:
    return request.app.state.catalog


def get_promo_service(request: Request) -> PromoService:
    return request.app.state.promo_service


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout_service


def get_tracking_service(request: Request) -> TrackingService:
    return request.app.state.tracking_service


def get_geocoder(request: Request) -> MockGeocoder:
    return request.app.state.geocoder


def get_order_store(request: Request) -> OrderStore:
    return request.app.state.order_store
