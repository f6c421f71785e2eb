"""FastAPI application entry point."""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import checkout, coverage, health, locations, orders, promos, tracking
from .config import settings
from .data.catalog import InMemoryCatalog, build_seed_usage, get_catalog
from .data.repository import UsageHistoryRepository
from .services.checkout import CheckoutService
from .services.geolocation import MockGeocoder
from .services.orders.store import OrderStore
from .services.promos.service import PromoService
from .services.tracking.service import TrackingService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.tracking_service.stop_all()
    logger.info("Stopped all tracking sessions on shutdown")


def create_app(
    catalog: Optional[InMemoryCatalog] = None,
    usage: Optional[UsageHistoryRepository] = None,
    *,
    tracking_service: Optional[TrackingService] = None,
) -> FastAPI:
    app = FastAPI(title=settings.app_name, root_path="", lifespan=_lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    catalog = catalog or get_catalog()
    usage = usage if usage is not None else build_seed_usage()
    promo_service = PromoService(catalog, usage)
    app.state.catalog = catalog
    app.state.usage = usage
    app.state.promo_service = promo_service
    app.state.order_store = OrderStore()
    app.state.checkout_service = CheckoutService(catalog, promo_service, orders=app.state.order_store)
    app.state.tracking_service = tracking_service or TrackingService()
    app.state.geocoder = MockGeocoder(
        catalog.addresses(),
        catalog.districts(),
        rng=random.Random(settings.simulation_seed),
    )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(coverage.router, prefix=settings.api_prefix)
    app.include_router(promos.router, prefix=settings.api_prefix)
    app.include_router(tracking.router, prefix=settings.api_prefix)
    app.include_router(locations.router, prefix=settings.api_prefix)
    app.include_router(checkout.router, prefix=settings.api_prefix)
    app.include_router(orders.router, prefix=settings.api_prefix)
    return app


app = create_app()
