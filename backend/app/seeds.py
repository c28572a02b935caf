from datetime import date, timedelta
from decimal import Decimal
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.catalog import Brand, Product
from app.models.coupon import CouponCode
from app.models.promo import OfferKind, Promocode, PromocodeUsageType, Promotion, PromotionProduct
from app.models.user import User


class SeedProduct(TypedDict):
    name: str
    price: Decimal
    available_qty: int


class SeedBrand(TypedDict):
    slug: str
    name: str
    order_limit_enabled: bool
    order_limit_amount: int
    payment_route: int
    products: list[SeedProduct]


DEMO_BRANDS: list[SeedBrand] = [
    {
        "slug": "cinema-plus",
        "name": "Cinema Plus",
        "order_limit_enabled": False,
        "order_limit_amount": 0,
        "payment_route": 1,
        "products": [
            {"name": "Cinema Plus 500", "price": Decimal("500.00"), "available_qty": 100},
            {"name": "Cinema Plus Popcorn Combo", "price": Decimal("250.00"), "available_qty": 100},
        ],
    },
    {
        "slug": "daily-grocer",
        "name": "Daily Grocer",
        "order_limit_enabled": True,
        "order_limit_amount": 20000,
        "payment_route": 1,
        "products": [
            {"name": "Daily Grocer 300", "price": Decimal("300.00"), "available_qty": 100},
            {"name": "Daily Grocer 200", "price": Decimal("200.00"), "available_qty": 100},
        ],
    },
]

DEMO_USER_EMAIL = "demo@example.com"
DEMO_PROMOCODE = "MOVIEWEEK"
DEMO_COUPON = "WELCOME600"


async def _seed_brand(session: AsyncSession, payload: SeedBrand) -> Brand:
    brand = (await session.execute(select(Brand).where(Brand.slug == payload["slug"]))).scalar_one_or_none()
    if brand is None:
        brand = Brand(
            slug=payload["slug"],
            name=payload["name"],
            display_type="ALL",
            order_limit_enabled=payload["order_limit_enabled"],
            order_limit_amount=payload["order_limit_amount"],
            payment_route=payload["payment_route"],
        )
        session.add(brand)
        await session.flush()
    existing = {
        row.name
        for row in (await session.execute(select(Product).where(Product.brand_id == brand.id))).scalars()
    }
    for product in payload["products"]:
        if product["name"] in existing:
            continue
        session.add(
            Product(
                brand_id=brand.id,
                name=product["name"],
                display_type="ALL",
                price=product["price"],
                available_qty=product["available_qty"],
                expiry_date=date.today() + timedelta(days=365),
            )
        )
    await session.flush()
    return brand


async def _product_by_name(session: AsyncSession, name: str) -> Product:
    return (await session.execute(select(Product).where(Product.name == name))).scalar_one()


async def seed(session: AsyncSession) -> None:
    """Idempotently load a small demo catalog, one promotion, one coupon and a demo user."""
    for payload in DEMO_BRANDS:
        await _seed_brand(session, payload)

    user = (await session.execute(select(User).where(User.email == DEMO_USER_EMAIL))).scalar_one_or_none()
    if user is None:
        session.add(User(email=DEMO_USER_EMAIL, phone="9000000000", name="Demo User", user_level="silver"))

    promocode = (await session.execute(select(Promocode).where(Promocode.code == DEMO_PROMOCODE))).scalar_one_or_none()
    if promocode is None:
        ticket = await _product_by_name(session, "Cinema Plus 500")
        combo = await _product_by_name(session, "Cinema Plus Popcorn Combo")
        promotion = Promotion(
            name="Movie week",
            offer_kind=OfferKind.combo_discount,
            value=Decimal("10.00"),
            display_type="ALL",
            display_text="10% off tickets and half price popcorn",
        )
        session.add(promotion)
        await session.flush()
        session.add(
            PromotionProduct(
                promotion_id=promotion.id,
                product_id=ticket.id,
                product_discount=Decimal("10.00"),
                offer_product_id=combo.id,
                offer_product_discount=Decimal("50.00"),
            )
        )
        session.add(
            Promocode(
                promotion_id=promotion.id,
                code=DEMO_PROMOCODE,
                usage_type=PromocodeUsageType.multi,
                start_date=date.today(),
                expiry_date=date.today() + timedelta(days=30),
                total_max_usage=500,
                user_max_usage=4,
            )
        )

    coupon = (await session.execute(select(CouponCode).where(CouponCode.code == DEMO_COUPON))).scalar_one_or_none()
    if coupon is None:
        session.add(
            CouponCode(
                code=DEMO_COUPON,
                amount=Decimal("600.00"),
                min_order_value=Decimal("500.00"),
                valid_from=date.today(),
                valid_till=date.today() + timedelta(days=30),
            )
        )

    await session.commit()
