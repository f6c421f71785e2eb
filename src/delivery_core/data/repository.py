"""Small in-memory repositories standing in for a datastore."""

from __future__ import annotations

from dataclasses import replace
from operator import attrgetter
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from ..models.domain import PromoUsageRecord

T = TypeVar("T")


class InMemoryRepository(Generic[T]):
    """Ordered collection of records addressable by id.

    Insertion order is preserved; coverage lookup and tie-breaks rely on it.
    """

    def __init__(self, items: Iterable[T] = (), *, key: Callable[[T], str] = attrgetter("id")) -> None:
        self._key = key
        self._items: dict[str, T] = {}
        for item in items:
            self.append(item)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[T]:
        return self._items.get(item_id)

    def list(self) -> tuple[T, ...]:
        return tuple(self._items.values())

    def find(self, predicate: Callable[[T], bool]) -> tuple[T, ...]:
        return tuple(item for item in self._items.values() if predicate(item))

    def append(self, item: T) -> T:
        item_id = self._key(item)
        if item_id in self._items:
            raise ValueError(f"Record '{item_id}' already exists.")
        self._items[item_id] = item
        return item

    def update(self, item_id: str, **changes: Any) -> T:
        current = self._items.get(item_id)
        if current is None:
            raise KeyError(item_id)
        updated = replace(current, **changes)
        self._items[item_id] = updated
        return updated


class UsageHistoryRepository:
    """Append-only promo usage log keyed by user id."""

    def __init__(self, initial: Optional[dict[str, list[PromoUsageRecord]]] = None) -> None:
        self._records: dict[str, list[PromoUsageRecord]] = {
            user_id: list(records) for user_id, records in (initial or {}).items()
        }

    def history(self, user_id: str) -> tuple[PromoUsageRecord, ...]:
        return tuple(self._records.get(user_id, ()))

    def append(self, user_id: str, record: PromoUsageRecord) -> None:
        self._records.setdefault(user_id, []).append(record)

    def find_by_order(self, user_id: str, order_id: str) -> Optional[PromoUsageRecord]:
        for record in self._records.get(user_id, ()):
            if record.order_id == order_id:
                return record
        return None
