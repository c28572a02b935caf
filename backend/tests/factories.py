import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.db.base import Base
from app.models.cart import CartItem
from app.models.catalog import Brand, Product
from app.models.coupon import CouponCode
from app.models.order import Order, OrderLine, OrderStatus
from app.models.promo import OfferKind, Promocode, Promotion, PromotionProduct
from app.models.user import User

import app.models  # noqa: F401

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())
    return SessionLocal


async def make_user(session: AsyncSession, *, email: str = "buyer@example.com", phone: str = "9000000001") -> User:
    user = User(email=email, phone=phone, name="Buyer", user_level="silver")
    session.add(user)
    await session.flush()
    return user


async def make_brand(session: AsyncSession, *, name: str = "Cinema Plus", **kwargs) -> Brand:
    kwargs.setdefault("display_type", "ALL")
    brand = Brand(name=name, **kwargs)
    session.add(brand)
    await session.flush()
    return brand


async def make_product(
    session: AsyncSession, brand: Brand, *, name: str, price: str | Decimal, available_qty: int = 100, **kwargs
) -> Product:
    kwargs.setdefault("display_type", "ALL")
    product = Product(brand_id=brand.id, name=name, price=Decimal(str(price)), available_qty=available_qty, **kwargs)
    session.add(product)
    await session.flush()
    await session.refresh(product, attribute_names=["brand"])
    return product


async def make_cart_item(
    session: AsyncSession,
    user: User,
    product: Product,
    *,
    quantity: int = 1,
    promocode: Promocode | None = None,
    coupon: CouponCode | None = None,
    age_minutes: int = 0,
) -> CartItem:
    """Cart lines are read newest first; a larger age puts a line further back."""
    item = CartItem(
        user_id=user.id,
        product_id=product.id,
        quantity=quantity,
        promocode_id=promocode.id if promocode else None,
        coupon_id=coupon.id if coupon else None,
        delivery_name="Recipient",
        delivery_email="recipient@example.com",
        created_at=BASE_TIME - timedelta(minutes=age_minutes),
    )
    session.add(item)
    await session.flush()
    return item


async def make_promocode(
    session: AsyncSession,
    *,
    product: Product,
    offer_kind: OfferKind,
    value: str | Decimal,
    code: str = "PROMO10",
    product_discount: str | Decimal | None = None,
    offer_product: Product | None = None,
    offer_product_discount: str | Decimal | None = None,
    total_max_usage: int | None = None,
    user_max_usage: int | None = None,
    mapped: bool = True,
) -> Promocode:
    promotion = Promotion(
        name=f"{code} promotion", offer_kind=offer_kind, value=Decimal(str(value)), display_type="ALL"
    )
    session.add(promotion)
    await session.flush()
    if mapped:
        session.add(
            PromotionProduct(
                promotion_id=promotion.id,
                product_id=product.id,
                product_discount=Decimal(str(product_discount)) if product_discount is not None else None,
                offer_product_id=offer_product.id if offer_product else None,
                offer_product_discount=Decimal(str(offer_product_discount))
                if offer_product_discount is not None
                else None,
            )
        )
    promocode = Promocode(
        promotion_id=promotion.id,
        code=code,
        start_date=date(2020, 1, 1),
        expiry_date=date(2099, 12, 31),
        total_max_usage=total_max_usage,
        user_max_usage=user_max_usage,
    )
    session.add(promocode)
    await session.flush()
    await session.refresh(promocode, attribute_names=["promotion"])
    return promocode


async def make_coupon(
    session: AsyncSession,
    *,
    code: str = "SAVE600",
    amount: str | Decimal = "600.00",
    min_order_value: str | Decimal | None = None,
    user: User | None = None,
    **kwargs,
) -> CouponCode:
    coupon = CouponCode(
        code=code,
        amount=Decimal(str(amount)),
        min_order_value=Decimal(str(min_order_value)) if min_order_value is not None else None,
        user_id=user.id if user else None,
        valid_from=kwargs.pop("valid_from", date(2020, 1, 1)),
        valid_till=kwargs.pop("valid_till", date(2099, 12, 31)),
        **kwargs,
    )
    session.add(coupon)
    await session.flush()
    return coupon


async def make_past_order(
    session: AsyncSession,
    user: User,
    product: Product,
    *,
    quantity: int = 1,
    promocode: Promocode | None = None,
    coupon: CouponCode | None = None,
    status: OrderStatus = OrderStatus.verified,
) -> Order:
    nominal = Decimal(str(product.price)) * quantity
    order = Order(
        user_id=user.id,
        coupon_id=coupon.id if coupon else None,
        display_type="ALL",
        status=status,
        nominal_total=nominal,
        amount_due=nominal,
    )
    session.add(order)
    await session.flush()
    order.guid = f"HIST-{order.id}"
    session.add(
        OrderLine(
            guid=f"HIST-{order.id}-1",
            order_id=order.id,
            order_guid=order.guid,
            cart_item_id=0,
            brand_id=product.brand_id,
            product_id=product.id,
            product_price=product.price,
            quantity=quantity,
            promocode_id=promocode.id if promocode else None,
            promotion_id=promocode.promotion_id if promocode else None,
            nominal_amount=nominal,
            amount_due=nominal,
        )
    )
    await session.flush()
    return order
