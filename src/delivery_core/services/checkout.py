"""Checkout: delivery pricing plus promo discount into a final order total."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from ..data.catalog import CatalogProvider
from ..errors import OrderRejectedError, OutsideCoverageError, PromoError, ProviderError
from ..models.domain import Coordinate
from .cart import Cart
from .coverage.resolver import CoverageResult, resolve
from .orders.payments import generate_external_id
from .orders.store import Order, OrderStore
from .outputs.formatter import format_currency
from .pricing.service import DeliveryQuote, quote_from_coverage
from .promos.service import PromoService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckoutQuote:
    subtotal: int
    discount: float
    delivery_fee: int
    total: float
    coverage_status: str
    promo_status: str
    can_place_order: bool
    delivery: Optional[DeliveryQuote] = None
    promo_code: Optional[str] = None
    messages: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PlacedOrder:
    order_id: str
    user_id: str
    quote: CheckoutQuote
    order: Order


class CheckoutService:
    """Combines coverage, delivery pricing and promo validation for one cart."""

    def __init__(
        self,
        catalog: CatalogProvider,
        promos: PromoService,
        *,
        free_delivery_threshold: Optional[int] = None,
        orders: Optional[OrderStore] = None,
    ) -> None:
        self._catalog = catalog
        self._promos = promos
        self.orders = orders if orders is not None else OrderStore()
        self._free_delivery_threshold = free_delivery_threshold

    def check_coverage(self, point: Coordinate) -> CoverageResult:
        return resolve(point, self._catalog.coverage_areas(), self._catalog.districts())

    def calculate_delivery_info(
        self, point: Coordinate, order_subtotal: int
    ) -> Union[DeliveryQuote, OutsideCoverageError]:
        return quote_from_coverage(
            self.check_coverage(point),
            order_subtotal,
            free_delivery_threshold=self._free_delivery_threshold,
        )

    def quote(
        self,
        cart: Cart,
        location: Coordinate,
        user_id: str,
        *,
        order_id: Optional[str] = None,
    ) -> CheckoutQuote:
        """Price ``cart`` for ``location``; the delivery gate uses the pre-discount subtotal.

        With ``order_id``, a promo already recorded for that order keeps its recorded
        discount instead of being validated again.
        """

        subtotal = cart.subtotal
        messages: list[str] = []

        delivery: Optional[DeliveryQuote] = None
        try:
            priced = self.calculate_delivery_info(location, subtotal)
        except ProviderError as exc:
            logger.warning(f"Coverage unknown for checkout of {user_id}: {exc.message}")
            coverage_status = "unknown"
            messages.append("Delivery coverage could not be verified right now")
        else:
            if isinstance(priced, OutsideCoverageError):
                coverage_status = "outside"
                messages.append(priced.message)
            else:
                coverage_status = "covered"
                delivery = priced
                if not priced.minimum_order_met:
                    messages.append(f"Minimum order is {format_currency(priced.minimum_order)}")

        promo_status, discount = self._revalidate_promo(cart, user_id, messages, order_id)

        delivery_fee = delivery.delivery_fee if delivery is not None else 0
        can_place = (
            not cart.is_empty
            and coverage_status != "outside"
            and (delivery is None or delivery.minimum_order_met)
        )
        return CheckoutQuote(
            subtotal=subtotal,
            discount=discount,
            delivery_fee=delivery_fee,
            total=max(0, subtotal - discount) + delivery_fee,
            coverage_status=coverage_status,
            promo_status=promo_status,
            can_place_order=can_place,
            delivery=delivery,
            promo_code=cart.applied_promo_code,
            messages=messages,
        )

    def _revalidate_promo(
        self, cart: Cart, user_id: str, messages: list[str], order_id: Optional[str]
    ) -> tuple[str, float]:
        code = cart.applied_promo_code
        if code is None:
            return "none", 0
        try:
            result = None
            if order_id is not None:
                result = self._promos.recorded_discount(
                    code, user_id=user_id, order_id=order_id, subtotal=cart.subtotal
                )
            if result is None:
                result = self._promos.validate_promo_code(
                    code,
                    user_id=user_id,
                    order_amount=cart.subtotal,
                    categories=cart.categories,
                )
        except ProviderError as exc:
            logger.warning(f"Promo {code} could not be validated: {exc.message}")
            messages.append("Promo codes are unavailable right now")
            return "unavailable", 0

        if isinstance(result, PromoError):
            cart.remove_promo()
            messages.append(f"{code} is no longer valid and has been removed")
            return "removed", 0
        cart.apply_promo(code, result)
        return "applied", result.amount

    def place_order(
        self,
        cart: Cart,
        location: Coordinate,
        user_id: str,
        *,
        order_id: Optional[str] = None,
    ) -> PlacedOrder:
        """Place the order once; a retry with the same ``order_id`` returns the stored order."""

        order_id = order_id or generate_external_id()
        existing = self.orders.get(order_id)
        if existing is not None and existing.user_id != user_id:
            raise OrderRejectedError("duplicate_order", f"Order {order_id} already exists")

        quote = self.quote(cart, location, user_id, order_id=order_id)
        if cart.is_empty:
            raise OrderRejectedError("empty_cart", "Cart is empty")
        if quote.coverage_status == "outside":
            raise OrderRejectedError("outside_coverage", "Location outside delivery area")
        if not quote.can_place_order:
            raise OrderRejectedError("minimum_order", "; ".join(quote.messages) or "Order cannot be placed")

        if quote.promo_status == "applied" and cart.applied_promo_code is not None:
            applied = self._promos.apply_promo_code(
                cart.applied_promo_code,
                user_id=user_id,
                order_id=order_id,
                subtotal=quote.subtotal,
                categories=cart.categories,
            )
            if isinstance(applied, PromoError):
                cart.remove_promo()
                raise OrderRejectedError("promo_invalid", applied.message)

        if existing is not None:
            logger.info(f"Order {order_id} was already placed for {user_id}")
            return PlacedOrder(order_id=order_id, user_id=user_id, quote=quote, order=existing)

        order = self.orders.create(
            order_id,
            user_id,
            tuple(replace(item) for item in cart.items),
            location,
            subtotal=quote.subtotal,
            discount=quote.discount,
            delivery_fee=quote.delivery_fee,
            total=quote.total,
            promo_code=cart.applied_promo_code if quote.promo_status == "applied" else None,
        )
        logger.info(f"Placed order {order_id} for {user_id}: total {format_currency(quote.total)}")
        return PlacedOrder(order_id=order_id, user_id=user_id, quote=quote, order=order)
