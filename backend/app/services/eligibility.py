"""Read-only queries that feed the order pipeline.

Every aggregate here is computed fresh per request; nothing is cached between
orders, so cap checks always compare against committed data.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cart import CartItem
from app.models.catalog import Brand, CatalogStatus, Product
from app.models.coupon import CouponCode
from app.models.order import Order, OrderLine, OrderStatus
from app.models.promo import Promocode, PromocodeStatus, PromocodeUsageType, PromotionProduct
from app.services import pricing


ALL_CHANNEL = "ALL"
GAME_CHANNEL = "GAME"
ALL_CHANNEL_TYPES = ("ALL", "WEBSITE", "WEB", "MOBILE", "APP", "GAME")

# Orders in these states count towards usage history.
COMMITTED_STATUSES = (
    OrderStatus.initiated,
    OrderStatus.pending,
    OrderStatus.verified,
    OrderStatus.completed,
)
HIGH_VALUE_STATUSES = (OrderStatus.initiated, OrderStatus.verified, OrderStatus.completed)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def allowed_display_types(channel: str | None, *, for_promotion: bool = False) -> set[str]:
    normalized = (channel or ALL_CHANNEL).strip().upper() or ALL_CHANNEL
    if normalized == ALL_CHANNEL:
        allowed = set(ALL_CHANNEL_TYPES)
    else:
        allowed = {ALL_CHANNEL, normalized}
    if for_promotion:
        allowed.add(GAME_CHANNEL)
    return allowed


def display_type_allowed(display_type: str | None, allowed: set[str]) -> bool:
    tokens = [token.strip().upper() for token in (display_type or "").split(",") if token.strip()]
    return any(token in allowed for token in tokens)


def is_product_available(product: Product | None, *, quantity: int, channel: str | None, today: date) -> bool:
    if product is None:
        return False
    if product.status != CatalogStatus.active:
        return False
    if product.expiry_date is not None and product.expiry_date < today:
        return False
    if int(product.available_qty or 0) < int(quantity):
        return False
    allowed = allowed_display_types(channel)
    if not display_type_allowed(product.display_type, allowed):
        return False
    brand: Brand | None = product.brand
    if brand is None or brand.status != CatalogStatus.active:
        return False
    return display_type_allowed(brand.display_type, allowed)


def is_promocode_valid(promocode: Promocode | None, *, channel: str | None, today: date) -> bool:
    if promocode is None or promocode.status != PromocodeStatus.valid:
        return False
    if promocode.start_date is not None and promocode.start_date > today:
        return False
    if promocode.expiry_date is not None and promocode.expiry_date < today:
        return False
    if promocode.usage_type == PromocodeUsageType.single and not promocode.blasted:
        return False
    promotion = promocode.promotion
    if promotion is None or promotion.status != CatalogStatus.active:
        return False
    return display_type_allowed(promotion.display_type, allowed_display_types(channel, for_promotion=True))


async def get_cart_lines(session: AsyncSession, *, user_id: int, line_ids: Iterable[int]) -> list[CartItem]:
    """Return the user's requested cart lines, newest first."""
    ids = sorted({int(line_id) for line_id in line_ids})
    if not ids:
        return []
    result = await session.execute(
        select(CartItem)
        .where(CartItem.user_id == user_id, CartItem.id.in_(ids))
        .order_by(CartItem.created_at.desc(), CartItem.id.desc())
    )
    return list(result.scalars().unique())


async def get_coupon_by_code(session: AsyncSession, code: str) -> CouponCode | None:
    return (await session.execute(select(CouponCode).where(CouponCode.code == code))).scalar_one_or_none()


async def coupon_in_open_cart(session: AsyncSession, *, user_id: int, coupon_id: int) -> bool:
    count = await session.scalar(
        select(func.count()).select_from(CartItem).where(CartItem.user_id == user_id, CartItem.coupon_id == coupon_id)
    )
    return int(count or 0) > 0


async def coupon_order_count(
    session: AsyncSession, *, coupon_id: int, user_id: int | None = None, exclude_user_id: int | None = None
) -> int:
    stmt = (
        select(func.count())
        .select_from(Order)
        .where(Order.coupon_id == coupon_id, Order.status.in_(COMMITTED_STATUSES))
    )
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    if exclude_user_id is not None:
        stmt = stmt.where(Order.user_id != exclude_user_id)
    return int((await session.scalar(stmt)) or 0)


async def get_promotion_mapping(
    session: AsyncSession, *, promotion_id: int, product_id: int
) -> PromotionProduct | None:
    result = await session.execute(
        select(PromotionProduct).where(
            PromotionProduct.promotion_id == promotion_id,
            PromotionProduct.product_id == product_id,
            PromotionProduct.status == CatalogStatus.active,
        )
    )
    return result.scalar_one_or_none()


async def promocode_usage(session: AsyncSession, *, promocode_id: int, user_id: int | None = None) -> int:
    """Quantity already ordered under a promo code; bonus lines have no cart origin and are ignored."""
    stmt = (
        select(func.coalesce(func.sum(OrderLine.quantity), 0))
        .join(Order, Order.id == OrderLine.order_id)
        .where(
            OrderLine.promocode_id == promocode_id,
            OrderLine.cart_item_id.is_not(None),
            Order.status.in_(COMMITTED_STATUSES),
        )
    )
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    return int((await session.scalar(stmt)) or 0)


def month_start(now: datetime | None = None) -> datetime:
    current = now or _now()
    return datetime(current.year, current.month, 1, tzinfo=current.tzinfo or timezone.utc)


async def brand_monthly_spend(
    session: AsyncSession,
    *,
    user_id: int,
    brand_id: int,
    statuses: Sequence[OrderStatus] = COMMITTED_STATUSES,
    now: datetime | None = None,
) -> Decimal:
    stmt = (
        select(func.coalesce(func.sum(OrderLine.nominal_amount), 0))
        .join(Order, Order.id == OrderLine.order_id)
        .where(
            Order.user_id == user_id,
            OrderLine.brand_id == brand_id,
            OrderLine.is_offer_product.is_(False),
            Order.status.in_(tuple(statuses)),
            Order.created_at >= month_start(now),
        )
    )
    return pricing.as_money(await session.scalar(stmt))


async def get_available_product(
    session: AsyncSession, *, product_id: int, quantity: int, channel: str | None, today: date
) -> Product | None:
    product = await session.get(Product, product_id)
    if not is_product_available(product, quantity=quantity, channel=channel, today=today):
        return None
    return product
