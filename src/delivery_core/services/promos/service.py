"""Promo operations backed by a catalog provider and the usage history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Union

from ...config import settings
from ...data.catalog import CatalogProvider
from ...data.repository import UsageHistoryRepository
from ...errors import PromoError, PromoErrorCode
from ...models.domain import PromoCode, PromoUsageRecord
from ..outputs.formatter import format_currency
from .engine import (
    AnnotatedPromo,
    PromoContext,
    PromoDiscount,
    annotate_promos,
    calculate_discount,
    find_promo,
    validate_promo,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


@dataclass(slots=True)
class PromoHistory:
    user_id: str
    history: list[PromoUsageRecord]
    total_usage: int
    total_savings: float
    formatted_savings: str


class PromoService:
    """Promo listing, validation and application for one catalog and usage log."""

    def __init__(
        self,
        catalog: CatalogProvider,
        usage: UsageHistoryRepository,
        clock: Clock = _utcnow,
        *,
        local_timezone: Optional[str] = None,
    ) -> None:
        self._catalog = catalog
        self._usage = usage
        self._clock = clock
        self.local_timezone = local_timezone or settings.promo_timezone

    def _context(
        self,
        user_id: str,
        order_amount: Optional[float],
        categories: Optional[Iterable[str]],
    ) -> PromoContext:
        return PromoContext(
            user_id=user_id,
            now=self._clock(),
            order_amount=order_amount,
            categories=frozenset(categories) if categories is not None else None,
            usage_history=self._usage.history(user_id),
            local_timezone=self.local_timezone,
        )

    def get_available_promos(
        self,
        user_id: str,
        *,
        order_amount: Optional[float] = None,
        categories: Optional[Iterable[str]] = None,
        featured_only: bool = False,
    ) -> list[AnnotatedPromo]:
        ctx = self._context(user_id, order_amount, categories)
        return annotate_promos(self._catalog.promos(), ctx, featured_only=featured_only)

    def validate_promo_code(
        self,
        code: str,
        *,
        user_id: str,
        order_amount: float,
        categories: Iterable[str] = (),
    ) -> Union[PromoDiscount, PromoError]:
        ctx = self._context(user_id, order_amount, categories)
        return validate_promo(code, ctx, self._catalog.promos())

    def apply_promo_code(
        self,
        code: str,
        *,
        user_id: str,
        order_id: str,
        subtotal: float,
        categories: Iterable[str] = (),
    ) -> Union[PromoDiscount, PromoError]:
        """Validate ``code`` and record its usage once per order."""

        recorded = self.recorded_discount(code, user_id=user_id, order_id=order_id, subtotal=subtotal)
        if recorded is not None:
            return recorded

        result = self.validate_promo_code(code, user_id=user_id, order_amount=subtotal, categories=categories)
        if isinstance(result, PromoError):
            return result

        record = PromoUsageRecord(
            promo_id=result.promo_id,
            code=result.code,
            used_at=self._clock(),
            order_id=order_id,
            discount_amount=result.amount,
        )
        self._usage.append(user_id, record)
        logger.info(f"Recorded promo {result.code} for user {user_id} on order {order_id} ({result.formatted_amount})")
        return result

    def recorded_discount(
        self,
        code: str,
        *,
        user_id: str,
        order_id: str,
        subtotal: float,
    ) -> Optional[Union[PromoDiscount, PromoError]]:
        """Discount already recorded for ``order_id``; None when the order has no usage yet."""

        existing = self._usage.find_by_order(user_id, order_id)
        if existing is None:
            return None
        if existing.code.lower() != code.strip().lower():
            return PromoError(
                PromoErrorCode.ALREADY_APPLIED,
                f"Order {order_id} already has promo {existing.code} applied",
                code,
            )
        promo = find_promo(code, self._catalog.promos(), include_inactive=True)
        if promo is None:
            return PromoError(PromoErrorCode.NOT_FOUND, "Invalid promo code", code)
        discount = calculate_discount(promo, subtotal)
        discount.amount = existing.discount_amount
        discount.formatted_amount = format_currency(existing.discount_amount)
        return discount

    def get_promo_by_code(self, code: str) -> Optional[PromoCode]:
        return find_promo(code, self._catalog.promos(), include_inactive=True)

    def get_user_promo_history(
        self,
        user_id: str,
        *,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> PromoHistory:
        history = list(self._usage.history(user_id))
        if from_date is not None:
            from_date = _as_utc(from_date)
            history = [record for record in history if _as_utc(record.used_at) >= from_date]
        if to_date is not None:
            to_date = _as_utc(to_date)
            history = [record for record in history if _as_utc(record.used_at) <= to_date]
        history.sort(key=lambda record: record.used_at, reverse=True)
        total_savings = sum(record.discount_amount for record in history)
        return PromoHistory(
            user_id=user_id,
            history=history,
            total_usage=len(history),
            total_savings=total_savings,
            formatted_savings=format_currency(total_savings),
        )
