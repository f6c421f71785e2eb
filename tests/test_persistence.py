from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from src.delivery_core.models.domain import CartItem
from src.delivery_core.persistence.filesystem import CartStorage, FileStorage

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _items() -> list[CartItem]:
    return [
        CartItem("pizza-1", "Margherita", 65000, 1, "Classic Pizza"),
        CartItem("drink-1", "Iced Tea", 15000, 2, "Beverages"),
    ]


def test_file_storage_round_trips_json(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    path = storage.write_json("summary", {"hello": "world"})

    assert path.parent == tmp_path / "store"
    assert path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert storage.read_json("summary") == {"hello": "world"}


def test_file_storage_sanitises_keys_and_deletes(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    path = storage.path_for("cart/../user 1")
    assert path.parent == tmp_path / "store"
    assert "/" not in path.name

    storage.write_json("cart/../user 1", [1, 2])
    assert storage.delete("cart/../user 1") is True
    assert storage.delete("cart/../user 1") is False
    assert storage.read_json("cart/../user 1") is None


def test_cart_storage_restores_fresh_snapshot(tmp_path: Path) -> None:
    clock = _Clock(NOW)
    carts = CartStorage(FileStorage(root=tmp_path), ttl_hours=24, clock=clock)
    carts.save("u1", _items(), applied_promo="COMBO25")

    clock.now = NOW + timedelta(hours=23)
    restored = carts.load("u1")

    assert restored is not None
    items, promo = restored
    assert items == _items()
    assert promo == "COMBO25"


def test_cart_storage_discards_expired_snapshot(tmp_path: Path) -> None:
    clock = _Clock(NOW)
    storage = FileStorage(root=tmp_path)
    carts = CartStorage(storage, ttl_hours=24, clock=clock)
    carts.save("u1", _items())

    clock.now = NOW + timedelta(hours=24)

    assert carts.load("u1") is None
    assert not storage.path_for("cart_u1").exists()


def test_cart_storage_discards_unreadable_snapshot(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    storage.path_for("cart_u1").write_text("{not json", encoding="utf-8")
    carts = CartStorage(storage, clock=_Clock(NOW))

    assert carts.load("u1") is None
    assert not storage.path_for("cart_u1").exists()


def test_cart_storage_clear_and_missing(tmp_path: Path) -> None:
    carts = CartStorage(FileStorage(root=tmp_path), clock=_Clock(NOW))
    assert carts.load("nobody") is None

    carts.save("u1", _items())
    carts.clear("u1")
    assert carts.load("u1") is None


@pytest.mark.parametrize(
    "payload",
    [
        {"items": [], "applied_promo": None},
        {"items": [], "applied_promo": None, "saved_at": "2026-03-02T11:00:00"},
        {"items": [], "applied_promo": None, "saved_at": "yesterday"},
        {"items": [{"id": "pizza-1"}], "saved_at": "2026-03-02T11:00:00+00:00"},
    ],
)
def test_cart_storage_discards_malformed_snapshot(tmp_path: Path, payload: dict) -> None:
    storage = FileStorage(root=tmp_path)
    storage.write_json("cart_u1", payload)
    carts = CartStorage(storage, clock=_Clock(NOW))

    assert carts.load("u1") is None
    assert not storage.path_for("cart_u1").exists()
