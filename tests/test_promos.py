from dataclasses import replace
from datetime import datetime, timezone

import pytest

from src.delivery_core.data.catalog import SEED_PROMOS, InMemoryCatalog, build_seed_usage
from src.delivery_core.data.repository import UsageHistoryRepository
from src.delivery_core.errors import PromoError, PromoErrorCode, ProviderError
from src.delivery_core.models.domain import DiscountType, PromoCode, PromoUsageRecord
from src.delivery_core.services.promos.engine import (
    PromoContext,
    PromoDiscount,
    annotate_promos,
    calculate_discount,
    validate_promo,
)
from src.delivery_core.services.promos.service import PromoService

MONDAY = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
SATURDAY = datetime(2026, 3, 7, 12, 0, tzinfo=timezone.utc)


def _ctx(
    *,
    user_id: str = "new_customer",
    now: datetime = MONDAY,
    order_amount: float | None = 150000,
    categories: frozenset[str] | None = frozenset({"Classic Pizza"}),
    history: tuple[PromoUsageRecord, ...] = (),
    local_timezone: str = "Asia/Jakarta",
) -> PromoContext:
    return PromoContext(
        user_id=user_id,
        now=now,
        order_amount=order_amount,
        categories=categories,
        usage_history=history,
        local_timezone=local_timezone,
    )


def _usage(promo_id: str, code: str, order_id: str, amount: float = 10000, day: int = 1) -> PromoUsageRecord:
    return PromoUsageRecord(
        promo_id=promo_id,
        code=code,
        used_at=datetime(2026, 2, day, 9, 0, tzinfo=timezone.utc),
        order_id=order_id,
        discount_amount=amount,
    )


def _service(usage: UsageHistoryRepository | None = None, now: datetime = MONDAY) -> PromoService:
    catalog = InMemoryCatalog(promos=SEED_PROMOS)
    return PromoService(catalog, usage if usage is not None else build_seed_usage(), clock=lambda: now)


def test_percentage_discount_is_capped() -> None:
    result = validate_promo("WELCOME20", _ctx(), SEED_PROMOS)

    assert isinstance(result, PromoDiscount)
    assert result.amount == 25000
    assert result.percentage == 20
    assert result.max_amount == 25000
    assert result.formatted_amount == "Rp25.000"


def test_lookup_is_case_insensitive() -> None:
    result = validate_promo("  welcome20 ", _ctx(), SEED_PROMOS)
    assert isinstance(result, PromoDiscount)
    assert result.code == "WELCOME20"


def test_unknown_code_is_not_found() -> None:
    result = validate_promo("NOPE", _ctx(), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.NOT_FOUND
    assert result.message == "Invalid promo code"


def test_inactive_promo_is_not_found() -> None:
    promos = tuple(replace(promo, active=False) if promo.code == "FLAT15K" else promo for promo in SEED_PROMOS)
    result = validate_promo("FLAT15K", _ctx(), promos)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.NOT_FOUND


def test_first_order_only_rejects_returning_customer() -> None:
    history = (_usage("promo_001", "WELCOME20", "order_123"),)
    result = validate_promo("WELCOME20", _ctx(history=history), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.NOT_FIRST_ORDER


def test_below_minimum_reports_required_amount() -> None:
    result = validate_promo("FLAT15K", _ctx(order_amount=90000), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.BELOW_MINIMUM
    assert "Rp100.000" in result.message


def test_rules_run_in_order_first_failure_wins() -> None:
    history = (_usage("promo_003", "FLAT15K", "o1"), _usage("promo_003", "FLAT15K", "o2"))
    result = validate_promo("FLAT15K", _ctx(order_amount=90000, history=history), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.BELOW_MINIMUM


def test_fixed_discount_percentage_rounds_half_up() -> None:
    result = validate_promo("FLAT15K", _ctx(order_amount=120000), SEED_PROMOS)

    assert isinstance(result, PromoDiscount)
    assert result.type is DiscountType.FIXED
    assert result.amount == 15000
    assert result.percentage == 13


def test_discount_never_exceeds_order_amount() -> None:
    promo = replace(SEED_PROMOS[2], min_order_amount=0, max_discount_amount=None)
    discount = calculate_discount(promo, 10000)

    assert discount.amount == 10000
    assert discount.percentage == 100


def test_usage_limit_reached() -> None:
    history = tuple(_usage("promo_002", "PIZZA30", f"o{i}") for i in range(3))
    result = validate_promo("PIZZA30", _ctx(history=history), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.USAGE_LIMIT_REACHED


def test_weekend_only_promo() -> None:
    weekday = validate_promo("WEEKEND50", _ctx(order_amount=100000), SEED_PROMOS)
    weekend = validate_promo("WEEKEND50", _ctx(now=SATURDAY, order_amount=100000), SEED_PROMOS)

    assert isinstance(weekday, PromoError)
    assert weekday.code is PromoErrorCode.NOT_WEEKEND
    assert isinstance(weekend, PromoDiscount)
    assert weekend.amount == 40000


def test_weekend_is_judged_on_local_calendar_day() -> None:
    friday_night_utc = datetime(2026, 3, 6, 18, 0, tzinfo=timezone.utc)
    sunday_night_utc = datetime(2026, 3, 8, 17, 30, tzinfo=timezone.utc)

    saturday_in_surabaya = validate_promo("WEEKEND50", _ctx(now=friday_night_utc, order_amount=100000), SEED_PROMOS)
    monday_in_surabaya = validate_promo("WEEKEND50", _ctx(now=sunday_night_utc, order_amount=100000), SEED_PROMOS)
    friday_in_utc = validate_promo(
        "WEEKEND50",
        _ctx(now=friday_night_utc, order_amount=100000, local_timezone="UTC"),
        SEED_PROMOS,
    )

    assert isinstance(saturday_in_surabaya, PromoDiscount)
    assert isinstance(monday_in_surabaya, PromoError)
    assert monday_in_surabaya.code is PromoErrorCode.NOT_WEEKEND
    assert isinstance(friday_in_utc, PromoError)


def test_service_uses_configured_promo_timezone() -> None:
    friday_night_utc = datetime(2026, 3, 6, 18, 0, tzinfo=timezone.utc)
    service = _service(now=friday_night_utc)

    result = service.validate_promo_code(
        "WEEKEND50", user_id="new_customer", order_amount=100000, categories={"Classic Pizza"}
    )

    assert service.local_timezone == "Asia/Jakarta"
    assert isinstance(result, PromoDiscount)


def test_combo_requires_pizza_and_beverage() -> None:
    missing = validate_promo("COMBO25", _ctx(order_amount=80000), SEED_PROMOS)
    combo = validate_promo(
        "COMBO25",
        _ctx(order_amount=80000, categories=frozenset({"Classic Pizza", "Beverages"})),
        SEED_PROMOS,
    )

    assert isinstance(missing, PromoError)
    assert missing.code is PromoErrorCode.COMBO_REQUIRED
    assert isinstance(combo, PromoDiscount)
    assert combo.amount == 20000


def test_category_restriction() -> None:
    result = validate_promo("PIZZA30", _ctx(categories=frozenset({"Beverages"})), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.CATEGORY_MISMATCH


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (datetime(2025, 12, 31, 23, 0, tzinfo=timezone.utc), PromoErrorCode.NOT_YET_VALID),
        (datetime(2027, 1, 1, 0, 0, tzinfo=timezone.utc), PromoErrorCode.EXPIRED),
    ],
)
def test_validity_window(now: datetime, expected: PromoErrorCode) -> None:
    result = validate_promo("PIZZA30", _ctx(now=now), SEED_PROMOS)

    assert isinstance(result, PromoError)
    assert result.code is expected


def test_validity_bounds_are_inclusive() -> None:
    promo: PromoCode = SEED_PROMOS[1]
    assert isinstance(validate_promo("PIZZA30", _ctx(now=promo.valid_from), SEED_PROMOS), PromoDiscount)
    assert isinstance(validate_promo("PIZZA30", _ctx(now=promo.valid_until), SEED_PROMOS), PromoDiscount)


def test_validation_requires_order_amount() -> None:
    with pytest.raises(ValueError):
        validate_promo("WELCOME20", _ctx(order_amount=None), SEED_PROMOS)


def test_listing_orders_applicable_then_featured_then_value() -> None:
    listing = annotate_promos(SEED_PROMOS, _ctx(order_amount=None, categories=None))

    assert [item.promo.code for item in listing] == ["FLAT15K", "PIZZA30", "WELCOME20", "WEEKEND50", "COMBO25"]
    reasons = {item.promo.code: item.disabled_reason for item in listing}
    assert reasons["WEEKEND50"] == "Valid on weekends only"
    assert reasons["COMBO25"] == "Requires both pizza and beverage"
    assert reasons["FLAT15K"] is None


def test_listing_reports_reason_per_promo() -> None:
    history = (_usage("promo_001", "WELCOME20", "order_123"),)
    listing = annotate_promos(SEED_PROMOS, _ctx(order_amount=60000, categories=None, history=history))
    reasons = {item.promo.code: item.disabled_reason for item in listing if not item.applicable}

    assert reasons["WELCOME20"] == "For first-time orders only"
    assert reasons["FLAT15K"] == "Minimum order: Rp100.000"
    assert reasons["PIZZA30"] == "Minimum order: Rp75.000"


def test_listing_hides_promos_outside_validity_and_honours_featured_only() -> None:
    late = datetime(2026, 12, 30, 12, 0, tzinfo=timezone.utc)
    listing = annotate_promos(SEED_PROMOS, _ctx(now=late, order_amount=None, categories=None), featured_only=True)
    codes = {item.promo.code for item in listing}

    assert "FLAT15K" not in codes
    assert "COMBO25" not in codes
    assert "WELCOME20" in codes


def test_service_lists_with_user_history() -> None:
    listing = _service().get_available_promos("customer_001")
    welcome = next(item for item in listing if item.promo.code == "WELCOME20")

    assert not welcome.applicable
    assert welcome.disabled_reason == "For first-time orders only"


def test_apply_records_usage_once_per_order() -> None:
    usage = UsageHistoryRepository()
    service = _service(usage)

    first = service.apply_promo_code("WELCOME20", user_id="u1", order_id="order-1", subtotal=100000)
    again = service.apply_promo_code("welcome20", user_id="u1", order_id="order-1", subtotal=100000)

    assert isinstance(first, PromoDiscount)
    assert isinstance(again, PromoDiscount)
    assert first.amount == again.amount == 20000
    assert len(usage.history("u1")) == 1


def test_apply_different_code_to_same_order_is_rejected() -> None:
    usage = UsageHistoryRepository()
    service = _service(usage)
    service.apply_promo_code("WELCOME20", user_id="u1", order_id="order-1", subtotal=100000)

    result = service.apply_promo_code("FLAT15K", user_id="u1", order_id="order-1", subtotal=120000)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.ALREADY_APPLIED
    assert len(usage.history("u1")) == 1


def test_applied_first_order_promo_is_not_reusable() -> None:
    service = _service(UsageHistoryRepository())
    service.apply_promo_code("WELCOME20", user_id="u1", order_id="order-1", subtotal=100000)

    result = service.validate_promo_code("WELCOME20", user_id="u1", order_amount=100000)

    assert isinstance(result, PromoError)
    assert result.code is PromoErrorCode.NOT_FIRST_ORDER


def test_failed_apply_records_nothing() -> None:
    usage = UsageHistoryRepository()
    result = _service(usage).apply_promo_code("FLAT15K", user_id="u1", order_id="order-1", subtotal=50000)

    assert isinstance(result, PromoError)
    assert usage.history("u1") == ()


def test_user_history_newest_first_with_savings() -> None:
    usage = UsageHistoryRepository(
        {
            "u1": [
                _usage("promo_002", "PIZZA30", "o1", amount=10000, day=1),
                _usage("promo_003", "FLAT15K", "o2", amount=15000, day=10),
                _usage("promo_002", "PIZZA30", "o3", amount=5000, day=5),
            ]
        }
    )
    history = _service(usage).get_user_promo_history("u1")

    assert [record.order_id for record in history.history] == ["o2", "o3", "o1"]
    assert history.total_usage == 3
    assert history.total_savings == 30000
    assert history.formatted_savings == "Rp30.000"

    filtered = _service(usage).get_user_promo_history("u1", from_date=datetime(2026, 2, 4))
    assert [record.order_id for record in filtered.history] == ["o2", "o3"]


def test_get_promo_by_code_includes_inactive() -> None:
    promos = tuple(replace(promo, active=False) if promo.code == "COMBO25" else promo for promo in SEED_PROMOS)
    service = PromoService(InMemoryCatalog(promos=promos), UsageHistoryRepository(), clock=lambda: MONDAY)

    promo = service.get_promo_by_code("combo25")
    assert promo is not None and not promo.active
    assert service.get_promo_by_code("missing") is None


class _BrokenCatalog(InMemoryCatalog):
    def promos(self):
        raise ProviderError("catalog", "promo table unavailable")


def test_catalog_failure_propagates() -> None:
    service = PromoService(_BrokenCatalog(), UsageHistoryRepository(), clock=lambda: MONDAY)

    with pytest.raises(ProviderError):
        service.validate_promo_code("WELCOME20", user_id="u1", order_amount=100000)
