"""Route group exports."""

from . import checkout, coverage, health, locations, promos, tracking

__all__ = ["coverage", "promos", "tracking", "locations", "checkout", "health"]
