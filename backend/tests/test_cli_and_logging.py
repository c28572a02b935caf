import asyncio
import json
import logging
from contextlib import asynccontextmanager
from decimal import Decimal

import pytest
from sqlalchemy.future import select

from app import cli
from app import seeds as app_seeds
from app.core.logging_config import JsonFormatter, request_id_ctx_var
from app.core.security import decode_token
from app.models.catalog import Brand, Product
from app.models.coupon import CouponCode
from app.models.order import OrderStatus
from app.models.promo import Promocode

from factories import make_brand, make_coupon, make_past_order, make_product, make_session_factory, make_user


@pytest.fixture
def session_factory(monkeypatch: pytest.MonkeyPatch):
    factory = make_session_factory()

    @asynccontextmanager
    async def scope():
        async with factory() as session:
            yield session

    monkeypatch.setattr(cli, "session_scope", scope)
    return factory


def test_parser_commands() -> None:
    parser = cli._build_parser()
    args = parser.parse_args(["reconcile-coupons", "--limit", "5"])
    assert args.command == "reconcile-coupons"
    assert args.limit == 5
    assert parser.parse_args(["issue-token", "--email", "a@example.com"]).email == "a@example.com"
    assert cli._run_cli_command(parser.parse_args([])) is False


def test_reconcile_coupons_command(session_factory, capsys: pytest.CaptureFixture[str]) -> None:
    async def seed():
        async with session_factory() as session:
            user = await make_user(session)
            brand = await make_brand(session)
            product = await make_product(session, brand, name="Movie Ticket", price="300.00")
            coupon = await make_coupon(session)
            await make_past_order(session, user, product, coupon=coupon, status=OrderStatus.verified)
            await session.commit()
            return coupon.id

    coupon_id = asyncio.run(seed())

    assert asyncio.run(cli.reconcile_coupons(10)) == 1
    assert "Coupons consumed: 1" in capsys.readouterr().out

    async def is_used():
        async with session_factory() as session:
            return (await session.get(CouponCode, coupon_id)).is_used

    assert asyncio.run(is_used()) is True


def test_issue_token_command(session_factory, capsys: pytest.CaptureFixture[str]) -> None:
    async def seed():
        async with session_factory() as session:
            user = await make_user(session)
            await session.commit()
            return user.id

    user_id = asyncio.run(seed())

    asyncio.run(cli.issue_token("buyer@example.com"))
    payload = decode_token(capsys.readouterr().out.strip())
    assert payload["sub"] == str(user_id)
    assert payload["type"] == "access"

    with pytest.raises(SystemExit, match="User not found"):
        asyncio.run(cli.issue_token("nobody@example.com"))


def test_seed_is_idempotent(session_factory) -> None:
    async def run():
        async with session_factory() as session:
            await app_seeds.seed(session)
            await app_seeds.seed(session)
            brands = (await session.execute(select(Brand))).scalars().all()
            products = (await session.execute(select(Product))).scalars().all()
            promocodes = (await session.execute(select(Promocode))).scalars().all()
            coupon = (
                await session.execute(select(CouponCode).where(CouponCode.code == app_seeds.DEMO_COUPON))
            ).scalar_one()
            return len(brands), len(products), [code.code for code in promocodes], coupon.amount

    brands, products, promocodes, amount = asyncio.run(run())
    assert brands == len(app_seeds.DEMO_BRANDS)
    assert products == sum(len(brand["products"]) for brand in app_seeds.DEMO_BRANDS)
    assert promocodes == [app_seeds.DEMO_PROMOCODE]
    assert amount == Decimal("600.00")


def test_json_formatter_orders_fields_and_serializes_decimals() -> None:
    token = request_id_ctx_var.set("req-12345678")
    try:
        record = logging.makeLogRecord(
            {
                "name": "app.services.order",
                "levelname": "INFO",
                "levelno": logging.INFO,
                "msg": "order_created",
                "order_id": 7,
                "user_id": 3,
                "amount_due": Decimal("400.00"),
                "request_id": request_id_ctx_var.get(),
            }
        )
        payload = json.loads(JsonFormatter().format(record))
    finally:
        request_id_ctx_var.reset(token)

    assert payload["message"] == "order_created"
    assert payload["request_id"] == "req-12345678"
    assert payload["order_id"] == 7
    assert payload["amount_due"] == "400.00"
    keys = list(payload)
    assert keys.index("order_id") < keys.index("amount_due")
