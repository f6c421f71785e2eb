"""Error taxonomy for coverage, pricing, promo and provider failures.

Coverage, pricing and promo failures are handed back to callers as values so
they can render a per-reason message; only provider failures are raised.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .models.domain import Coordinate


class DeliveryCoreError(Exception):
    """Base class for all delivery core errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class OutsideCoverageError(DeliveryCoreError):
    """The location is not inside any active coverage area."""

    def __init__(self, location: Coordinate, message: str = "Location outside delivery area") -> None:
        super().__init__(message)
        self.location = location


class PromoErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"
    NOT_FIRST_ORDER = "not_first_order"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    NOT_WEEKEND = "not_weekend"
    COMBO_REQUIRED = "combo_required"
    CATEGORY_MISMATCH = "category_mismatch"
    ALREADY_APPLIED = "already_applied"


class PromoError(DeliveryCoreError):
    """A promo code failed lookup or one of its rules."""

    def __init__(self, code: PromoErrorCode, message: str, promo_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.promo_code = promo_code

    def __repr__(self) -> str:
        return f"PromoError(code={self.code.value!r}, message={self.message!r})"


class GeolocationUnavailableError(DeliveryCoreError):
    """Geolocation was denied, unsupported or timed out."""


class OrderRejectedError(DeliveryCoreError):
    """Checkout refused to place an order (outside coverage, minimum order, empty cart, duplicate id)."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class ProviderError(DeliveryCoreError):
    """A catalog, usage-history or payment provider lookup failed."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
