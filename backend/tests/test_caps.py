from dataclasses import dataclass
from decimal import Decimal

import pytest

from app.core.config import settings
from app.services import caps
from app.services.rejections import OrderRejected


def test_promotion_exhausted_message() -> None:
    with pytest.raises(OrderRejected) as exc:
        caps.check_promotion_usage(
            product_name="Movie Ticket",
            quantity=1,
            committed_total=5,
            committed_user=0,
            total_limit=5,
            per_user_limit=None,
        )
    assert exc.value.status_code == 400
    assert exc.value.code == "promotion_exhausted"
    assert exc.value.detail == (
        "The promotion is no more available for Movie Ticket. Please delete the item from the cart."
    )


def test_promotion_partially_available_message() -> None:
    with pytest.raises(OrderRejected) as exc:
        caps.check_promotion_usage(
            product_name="Movie Ticket",
            quantity=4,
            committed_total=3,
            committed_user=0,
            total_limit=5,
            per_user_limit=None,
        )
    assert exc.value.code == "promotion_partially_available"
    assert exc.value.detail == (
        "Only 2 quantity is available for the promotion of Movie Ticket. Please remove 2 quantity from the cart."
    )


def test_promotion_per_user_limit_message() -> None:
    with pytest.raises(OrderRejected) as exc:
        caps.check_promotion_usage(
            product_name="Movie Ticket",
            quantity=2,
            committed_total=0,
            committed_user=1,
            total_limit=None,
            per_user_limit=2,
        )
    assert exc.value.code == "promotion_user_limit"
    assert exc.value.detail == (
        "You can buy / redeem a maximum of 2 Movie Ticket using this PROMOCODE. "
        "Please remove the excess items from your cart."
    )


def test_unlimited_promotion_usage_passes() -> None:
    caps.check_promotion_usage(
        product_name="Movie Ticket",
        quantity=50,
        committed_total=1000,
        committed_user=1000,
        total_limit=None,
        per_user_limit=0,
    )


def test_brand_monthly_cap() -> None:
    caps.check_brand_monthly_cap(
        brand_name="Cinema Plus", cap=1000, committed=Decimal("600.00"), proposed=Decimal("400.00")
    )
    with pytest.raises(OrderRejected) as exc:
        caps.check_brand_monthly_cap(
            brand_name="Cinema Plus", cap=1000, committed=Decimal("600.00"), proposed=Decimal("400.01")
        )
    assert exc.value.code == "brand_monthly_cap"
    assert exc.value.detail == (
        "Sorry, You cannot place order amount more than INR 1000 worth of Cinema Plus Gift Vouchers in this month."
    )


def test_high_value_brand_ceilings() -> None:
    with pytest.raises(OrderRejected) as single:
        caps.check_high_value_brand(
            brand_name="Luxe",
            order_spend=Decimal("10000.01"),
            monthly_committed=Decimal("0"),
            order_ceiling=10000,
            monthly_ceiling=10000,
        )
    assert single.value.code == "brand_order_ceiling"

    with pytest.raises(OrderRejected) as monthly:
        caps.check_high_value_brand(
            brand_name="Luxe",
            order_spend=Decimal("5000.00"),
            monthly_committed=Decimal("6000.00"),
            order_ceiling=10000,
            monthly_ceiling=10000,
        )
    assert monthly.value.code == "brand_monthly_ceiling"
    assert "INR 10000 worth of Luxe Gift Vouchers" in monthly.value.detail


@dataclass
class _Line:
    brand_id: int
    nominal_amount: Decimal
    is_offer: bool = False


def test_brand_spend_skips_free_offer_lines() -> None:
    spend = caps.brand_spend(
        [
            _Line(1, Decimal("500.00")),
            _Line(1, Decimal("250.50")),
            _Line(2, Decimal("300.00")),
            _Line(2, Decimal("999.00"), is_offer=True),
        ]
    )

    assert spend == {1: Decimal("750.50"), 2: Decimal("300.00")}


def test_brand_cap_message_uses_configured_currency(monkeypatch) -> None:
    monkeypatch.setattr(settings, "currency", "USD")

    with pytest.raises(OrderRejected) as exc:
        caps.check_brand_monthly_cap(
            brand_name="Cinema Plus", cap=500, committed=Decimal("0"), proposed=Decimal("500.01")
        )
    assert exc.value.detail == (
        "Sorry, You cannot place order amount more than USD 500 worth of Cinema Plus Gift Vouchers in this month."
    )
