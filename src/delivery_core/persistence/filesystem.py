"""File-based key/value persistence for cart snapshots."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from ..config import settings
from ..models.domain import CartItem

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class FileStorage:
    """Thin wrapper around the data root storing one JSON document per key."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.store_root = self.root / "store"
        self.store_root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.store_root / f"{_SAFE_KEY.sub('_', key)}.json"

    def write_json(self, key: str, data: Any, *, indent: int = 2) -> Path:
        path = self.path_for(key)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        return path

    def read_json(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True


class CartStorage:
    """Persists cart contents with a time-to-live; stale snapshots are discarded."""

    def __init__(
        self,
        storage: FileStorage | None = None,
        *,
        ttl_hours: float | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._storage = storage or FileStorage()
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.cart_ttl_hours)
        self._clock = clock

    @staticmethod
    def _key(user_id: str) -> str:
        return f"cart_{user_id}"

    def save(self, user_id: str, items: list[CartItem], applied_promo: Optional[str] = None) -> None:
        self._storage.write_json(
            self._key(user_id),
            {
                "items": [asdict(item) for item in items],
                "applied_promo": applied_promo,
                "saved_at": self._clock().isoformat(),
            },
        )

    def load(self, user_id: str) -> Optional[tuple[list[CartItem], Optional[str]]]:
        key = self._key(user_id)
        try:
            payload = self._storage.read_json(key)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Discarding unreadable cart snapshot for {user_id}: {exc}")
            self._storage.delete(key)
            return None
        if payload is None:
            return None

        try:
            saved_at = datetime.fromisoformat(payload["saved_at"])
            if saved_at.tzinfo is None:
                raise ValueError("saved_at has no timezone")
            items = [CartItem(**row) for row in payload.get("items", [])]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Discarding malformed cart snapshot for {user_id}: {exc}")
            self._storage.delete(key)
            return None

        if self._clock() - saved_at >= self.ttl:
            logger.info(f"Cart snapshot for {user_id} expired (saved {saved_at.isoformat()})")
            self._storage.delete(key)
            return None
        return items, payload.get("applied_promo")

    def clear(self, user_id: str) -> None:
        self._storage.delete(self._key(user_id))
