"""Export services."""

from .geojson import export_coverage_geojson

__all__ = ["export_coverage_geojson"]
