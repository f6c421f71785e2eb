"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...data.catalog import InMemoryCatalog
from ..dependencies import get_catalog

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/catalog", status_code=status.HTTP_200_OK)
def health_catalog(catalog: InMemoryCatalog = Depends(get_catalog)) -> dict:
    """Report how much reference data the running catalog holds."""
    return {
        "coverage_areas": len(catalog.coverage_areas()),
        "districts": len(catalog.districts()),
        "promos": len(catalog.promos()),
        "drivers": len(catalog.drivers()),
    }
