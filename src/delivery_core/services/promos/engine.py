"""Promo code rule evaluation and discount calculation.

Rules run in a fixed order and the first failing rule decides the outcome.
The same rule list backs both strict validation (returns a ``PromoError``)
and the promo listing (annotates each promo with a disabled reason).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from ...errors import PromoError, PromoErrorCode
from ...models.domain import DiscountType, PromoCode, PromoUsageRecord
from ..outputs.formatter import format_currency

PIZZA_MARKERS = ("Pizza",)
BEVERAGE_MARKERS = ("Beverage", "Drink")

# datetime.weekday(): Monday=0 ... Saturday=5, Sunday=6
WEEKEND_DAYS = frozenset({5, 6})
DEFAULT_TIMEZONE = "Asia/Jakarta"


@dataclass(slots=True)
class PromoContext:
    """Order context a promo is evaluated against.

    ``order_amount`` and ``categories`` may be ``None`` when listing promos
    before the cart is known; rules that depend on them are then skipped.
    Calendar rules read ``now`` in ``local_timezone``, the customer's local zone.
    """

    user_id: str
    now: datetime
    order_amount: Optional[float] = None
    categories: Optional[frozenset[str]] = None
    usage_history: Sequence[PromoUsageRecord] = field(default_factory=tuple)
    local_timezone: str = DEFAULT_TIMEZONE

    def local_now(self) -> datetime:
        now = self.now if self.now.tzinfo is not None else self.now.replace(tzinfo=timezone.utc)
        return now.astimezone(ZoneInfo(self.local_timezone))


@dataclass(slots=True)
class PromoDiscount:
    promo_id: str
    code: str
    type: DiscountType
    value: int
    amount: float
    max_amount: Optional[int]
    percentage: int
    formatted_amount: str


@dataclass(slots=True)
class AnnotatedPromo:
    promo: PromoCode
    applicable: bool
    disabled_reason: Optional[str] = None


def find_promo(code: str, promos: Iterable[PromoCode], *, include_inactive: bool = False) -> Optional[PromoCode]:
    """Case-insensitive lookup of ``code``; inactive promos only when asked."""

    wanted = code.strip().lower()
    for promo in promos:
        if promo.code.lower() == wanted and (include_inactive or promo.active):
            return promo
    return None


def is_within_validity(promo: PromoCode, now: datetime) -> bool:
    return promo.valid_from <= now <= promo.valid_until


def has_pizza_and_beverage(categories: Iterable[str]) -> bool:
    categories = list(categories)
    has_pizza = any(marker in category for category in categories for marker in PIZZA_MARKERS)
    has_beverage = any(marker in category for category in categories for marker in BEVERAGE_MARKERS)
    return has_pizza and has_beverage


def count_usage(promo: PromoCode, history: Iterable[PromoUsageRecord]) -> int:
    return sum(1 for record in history if record.promo_id == promo.id)


def _check_validity_window(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    if ctx.now < promo.valid_from:
        return PromoError(PromoErrorCode.NOT_YET_VALID, "Promo code is not yet valid", promo.code)
    if ctx.now > promo.valid_until:
        return PromoError(PromoErrorCode.EXPIRED, "Promo code has expired", promo.code)
    return None


def _check_minimum_order(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    if ctx.order_amount is None:
        return None
    if ctx.order_amount < promo.min_order_amount:
        return PromoError(
            PromoErrorCode.BELOW_MINIMUM,
            f"Minimum order amount is {format_currency(promo.min_order_amount)}",
            promo.code,
        )
    return None


def _check_first_order(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    if promo.restrictions.first_order_only and len(ctx.usage_history) > 0:
        return PromoError(
            PromoErrorCode.NOT_FIRST_ORDER,
            "This promo is only valid for first-time orders",
            promo.code,
        )
    return None


def _check_usage_limit(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    limit = promo.restrictions.max_usage_per_user
    if limit is None:
        return None
    if count_usage(promo, ctx.usage_history) >= limit:
        return PromoError(
            PromoErrorCode.USAGE_LIMIT_REACHED,
            "You have reached the usage limit for this promo",
            promo.code,
        )
    return None


def _check_weekend(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    if promo.restrictions.weekend_only and ctx.local_now().weekday() not in WEEKEND_DAYS:
        return PromoError(PromoErrorCode.NOT_WEEKEND, "This promo is only valid on weekends", promo.code)
    return None


def _check_combo(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    if not promo.restrictions.requires_both_pizza_and_beverage:
        return None
    if not has_pizza_and_beverage(ctx.categories or ()):
        return PromoError(
            PromoErrorCode.COMBO_REQUIRED,
            "This promo requires both pizza and beverage in your order",
            promo.code,
        )
    return None


def _check_categories(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    if not promo.applicable_categories or ctx.categories is None:
        return None
    if not set(promo.applicable_categories) & set(ctx.categories):
        return PromoError(
            PromoErrorCode.CATEGORY_MISMATCH,
            "This promo is not applicable to items in your cart",
            promo.code,
        )
    return None


Rule = Callable[[PromoCode, PromoContext], Optional[PromoError]]

RULES: tuple[Rule, ...] = (
    _check_validity_window,
    _check_minimum_order,
    _check_first_order,
    _check_usage_limit,
    _check_weekend,
    _check_combo,
    _check_categories,
)


def first_failure(promo: PromoCode, ctx: PromoContext) -> Optional[PromoError]:
    for rule in RULES:
        error = rule(promo, ctx)
        if error is not None:
            return error
    return None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_discount(promo: PromoCode, order_amount: float) -> PromoDiscount:
    if promo.type is DiscountType.PERCENTAGE:
        amount = order_amount * promo.value / 100
    else:
        amount = float(promo.value)

    if promo.max_discount_amount is not None:
        amount = min(amount, promo.max_discount_amount)
    amount = min(amount, order_amount)

    if promo.type is DiscountType.PERCENTAGE:
        percentage = promo.value
    else:
        percentage = _round_half_up(amount / order_amount * 100) if order_amount > 0 else 0

    return PromoDiscount(
        promo_id=promo.id,
        code=promo.code,
        type=promo.type,
        value=promo.value,
        amount=amount,
        max_amount=promo.max_discount_amount,
        percentage=percentage,
        formatted_amount=format_currency(amount),
    )


def validate_promo(
    code: str,
    ctx: PromoContext,
    promos: Sequence[PromoCode],
) -> Union[PromoDiscount, PromoError]:
    """Validate ``code`` for ``ctx`` and compute its discount."""

    if ctx.order_amount is None:
        raise ValueError("order_amount is required to validate a promo code.")

    promo = find_promo(code, promos)
    if promo is None:
        return PromoError(PromoErrorCode.NOT_FOUND, "Invalid promo code", code)

    error = first_failure(promo, ctx)
    if error is not None:
        return error
    return calculate_discount(promo, ctx.order_amount)


def _disabled_reason(error: PromoError, promo: PromoCode, ctx: PromoContext) -> str:
    match error.code:
        case PromoErrorCode.BELOW_MINIMUM:
            return f"Minimum order: {format_currency(promo.min_order_amount)}"
        case PromoErrorCode.CATEGORY_MISMATCH:
            return "Not applicable to items in your cart"
        case PromoErrorCode.USAGE_LIMIT_REACHED:
            used = count_usage(promo, ctx.usage_history)
            return f"Usage limit reached ({used}/{promo.restrictions.max_usage_per_user})"
        case PromoErrorCode.NOT_FIRST_ORDER:
            return "For first-time orders only"
        case PromoErrorCode.NOT_WEEKEND:
            return "Valid on weekends only"
        case PromoErrorCode.COMBO_REQUIRED:
            return "Requires both pizza and beverage"
        case _:
            return error.message


def annotate_promos(
    promos: Sequence[PromoCode],
    ctx: PromoContext,
    *,
    featured_only: bool = False,
) -> list[AnnotatedPromo]:
    """Annotate active, currently valid promos with applicability for ``ctx``.

    Promos outside their validity window are hidden rather than annotated.
    Ordering: applicable first, then featured, then by descending value.
    """

    annotated: list[AnnotatedPromo] = []
    for promo in promos:
        if not promo.active or (featured_only and not promo.featured):
            continue
        if not is_within_validity(promo, ctx.now):
            continue
        error = first_failure(promo, ctx)
        if error is None:
            annotated.append(AnnotatedPromo(promo=promo, applicable=True))
        else:
            annotated.append(
                AnnotatedPromo(promo=promo, applicable=False, disabled_reason=_disabled_reason(error, promo, ctx))
            )

    annotated.sort(key=lambda item: (not item.applicable, not item.promo.featured, -item.promo.value))
    return annotated
