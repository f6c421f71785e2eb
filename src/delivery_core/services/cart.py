"""Shopping cart with promo invalidation on every mutation."""

from __future__ import annotations

from typing import Iterable, Optional

from ..models.domain import CartItem
from .promos.engine import PromoDiscount


class Cart:
    """Line items plus an optionally applied promo code.

    Any change to the items marks the applied promo as stale, so the discount
    has to be validated again against the current subtotal before checkout.
    """

    def __init__(self, items: Iterable[CartItem] = ()) -> None:
        self._items: list[CartItem] = list(items)
        self.applied_promo_code: Optional[str] = None
        self.promo_discount: Optional[PromoDiscount] = None
        self.promo_stale = False

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> int:
        return sum(item.price * item.quantity for item in self._items)

    @property
    def categories(self) -> frozenset[str]:
        return frozenset(item.category for item in self._items if item.category)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def discount_amount(self) -> float:
        if self.promo_discount is None or self.promo_stale:
            return 0
        return self.promo_discount.amount

    @property
    def final_total(self) -> float:
        return max(0, self.subtotal - self.discount_amount)

    def _touch(self) -> None:
        if self.applied_promo_code is not None:
            self.promo_stale = True

    def add(self, item: CartItem) -> None:
        for existing in self._items:
            if existing.id == item.id:
                existing.quantity += item.quantity
                break
        else:
            self._items.append(CartItem(item.id, item.name, item.price, item.quantity, item.category))
        self._touch()

    def remove(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        if len(self._items) != before:
            self._touch()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(item_id)
            return
        for item in self._items:
            if item.id == item_id:
                if item.quantity != quantity:
                    item.quantity = quantity
                    self._touch()
                return

    def clear(self) -> None:
        self._items = []
        self.remove_promo()

    def apply_promo(self, code: str, discount: PromoDiscount) -> None:
        self.applied_promo_code = code
        self.promo_discount = discount
        self.promo_stale = False

    def restore_promo(self, code: str) -> None:
        """Reattach a code from a saved snapshot; it stays stale until revalidated."""
        self.applied_promo_code = code
        self.promo_discount = None
        self.promo_stale = True

    def remove_promo(self) -> None:
        self.applied_promo_code = None
        self.promo_discount = None
        self.promo_stale = False
