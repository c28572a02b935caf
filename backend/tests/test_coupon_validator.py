import asyncio
from datetime import date
from decimal import Decimal

import pytest

from app.models.catalog import CatalogStatus
from app.models.order import OrderStatus
from app.services import coupons
from app.services.rejections import OrderRejected

from factories import (
    make_brand,
    make_cart_item,
    make_coupon,
    make_past_order,
    make_product,
    make_session_factory,
    make_user,
)


TODAY = date(2026, 1, 15)


@pytest.fixture
def session_factory():
    return make_session_factory()


def _validate(session_factory, *, nominal_total: str = "1000.00", setup=None, code: str = "SAVE600"):
    async def run():
        async with session_factory() as session:
            user = await make_user(session)
            if setup is not None:
                await setup(session, user)
            await session.commit()
            return await coupons.validate_coupon(
                session, code=code, user_id=user.id, nominal_total=Decimal(nominal_total), today=TODAY
            )

    return asyncio.run(run())


def _rejection(session_factory, **kwargs) -> OrderRejected:
    with pytest.raises(OrderRejected) as exc:
        _validate(session_factory, **kwargs)
    assert exc.value.status_code == 400
    return exc.value


def test_valid_coupon_is_returned(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, min_order_value="500.00", user=user)

    coupon = _validate(session_factory, setup=setup, code="  SAVE600 ")
    assert coupon.code == "SAVE600"
    assert coupon.amount == Decimal("600.00")


def test_unknown_coupon(session_factory) -> None:
    error = _rejection(session_factory, code="NOPE")
    assert error.code == "coupon_not_found"
    assert error.detail == "Coupon not found"


def test_coupon_owned_by_another_account_is_not_found(session_factory) -> None:
    async def setup(session, user):
        other = await make_user(session, email="other@example.com", phone="9000000002")
        await make_coupon(session, user=other)

    assert _rejection(session_factory, setup=setup).code == "coupon_not_found"


def test_used_coupon(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, is_used=True, valid_till=date(2025, 1, 1))

    error = _rejection(session_factory, setup=setup)
    assert error.code == "coupon_already_used"
    assert error.detail == "Coupon already used"


def test_coupon_total_usage_exhausted_by_other_orders(session_factory) -> None:
    async def setup(session, user):
        other = await make_user(session, email="other@example.com", phone="9000000002")
        coupon = await make_coupon(session, total_usage_limit=1)
        brand = await make_brand(session)
        product = await make_product(session, brand, name="Movie Ticket", price="300.00")
        await make_past_order(session, other, product, coupon=coupon)

    assert _rejection(session_factory, setup=setup).code == "coupon_already_used"


def test_inactive_coupon(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, status=CatalogStatus.inactive)

    error = _rejection(session_factory, setup=setup)
    assert error.code == "coupon_inactive"
    assert error.detail == "Coupon is inactive"


def test_coupon_not_yet_valid_is_inactive(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, valid_from=date(2026, 2, 1))

    assert _rejection(session_factory, setup=setup).code == "coupon_inactive"


def test_expired_coupon(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, valid_till=date(2026, 1, 14))

    error = _rejection(session_factory, setup=setup)
    assert error.code == "coupon_expired"
    assert error.detail == "Coupon has expired"


def test_coupon_valid_through_last_day(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, valid_till=TODAY)

    assert _validate(session_factory, setup=setup).code == "SAVE600"


def test_coupon_already_in_cart(session_factory) -> None:
    async def setup(session, user):
        coupon = await make_coupon(session)
        brand = await make_brand(session)
        product = await make_product(session, brand, name="Movie Ticket", price="300.00")
        await make_cart_item(session, user, product, coupon=coupon)

    error = _rejection(session_factory, setup=setup)
    assert error.code == "coupon_in_cart"
    assert error.detail == "Coupon already exists in your cart"


def test_coupon_used_in_previous_order(session_factory) -> None:
    async def setup(session, user):
        coupon = await make_coupon(session, total_usage_limit=10, per_user_usage_limit=1)
        brand = await make_brand(session)
        product = await make_product(session, brand, name="Movie Ticket", price="300.00")
        await make_past_order(session, user, product, coupon=coupon)

    error = _rejection(session_factory, setup=setup)
    assert error.code == "coupon_used_in_previous_order"
    assert error.detail == "Coupon already used in a previous order"


def test_own_open_order_with_coupon_blocks_reuse_when_limits_are_unlimited(session_factory) -> None:
    async def setup(session, user):
        coupon = await make_coupon(session, total_usage_limit=0, per_user_usage_limit=0)
        brand = await make_brand(session)
        product = await make_product(session, brand, name="Movie Ticket", price="300.00")
        await make_past_order(session, user, product, coupon=coupon, status=OrderStatus.initiated)

    error = _rejection(session_factory, setup=setup)
    assert error.code == "coupon_used_in_previous_order"
    assert error.detail == "Coupon already used in a previous order"


def test_own_reuse_with_default_limits_reports_previous_order(session_factory) -> None:
    async def setup(session, user):
        coupon = await make_coupon(session)
        brand = await make_brand(session)
        product = await make_product(session, brand, name="Movie Ticket", price="300.00")
        await make_past_order(session, user, product, coupon=coupon, status=OrderStatus.initiated)

    assert _rejection(session_factory, setup=setup).code == "coupon_used_in_previous_order"


def test_own_failed_order_does_not_block_coupon(session_factory) -> None:
    async def setup(session, user):
        coupon = await make_coupon(session)
        brand = await make_brand(session)
        product = await make_product(session, brand, name="Movie Ticket", price="300.00")
        await make_past_order(session, user, product, coupon=coupon, status=OrderStatus.failed)

    assert _validate(session_factory, setup=setup).code == "SAVE600"


def test_minimum_order_value(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, min_order_value="1000.00")

    error = _rejection(session_factory, setup=setup, nominal_total="999.99")
    assert error.code == "coupon_min_order_not_met"
    assert error.detail == "Minimum order value of ₹1000 not met"


def test_minimum_order_value_is_inclusive(session_factory) -> None:
    async def setup(session, user):
        await make_coupon(session, min_order_value="1000.00")

    assert _validate(session_factory, setup=setup, nominal_total="1000.00").code == "SAVE600"
