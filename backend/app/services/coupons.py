from __future__ import annotations

import enum
import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import metrics
from app.models.catalog import CatalogStatus
from app.models.coupon import CouponCode
from app.models.order import Order, OrderEvent, OrderStatus
from app.services import eligibility
from app.services import pricing
from app.services.rejections import OrderRejected


logger = logging.getLogger(__name__)

COUPON_CONSUMED_EVENT = "coupon_consumed"


class CouponRejectionReason(str, enum.Enum):
    not_found = "not_found"
    already_used = "already_used"
    inactive = "inactive"
    expired = "expired"
    in_cart = "in_cart"
    used_in_previous_order = "used_in_previous_order"
    min_order_not_met = "min_order_not_met"


_MESSAGES: dict[CouponRejectionReason, str] = {
    CouponRejectionReason.not_found: "Coupon not found",
    CouponRejectionReason.already_used: "Coupon already used",
    CouponRejectionReason.inactive: "Coupon is inactive",
    CouponRejectionReason.expired: "Coupon has expired",
    CouponRejectionReason.in_cart: "Coupon already exists in your cart",
    CouponRejectionReason.used_in_previous_order: "Coupon already used in a previous order",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_code(code: str) -> str:
    return (code or "").strip()


def format_amount(value: Decimal) -> str:
    amount = pricing.as_money(value)
    if amount == amount.to_integral_value():
        return str(int(amount))
    return str(amount)


def coupon_rejected(reason: CouponRejectionReason, *, min_order_value: Decimal | None = None) -> OrderRejected:
    if reason == CouponRejectionReason.min_order_not_met:
        message = f"Minimum order value of ₹{format_amount(min_order_value or Decimal('0'))} not met"
    else:
        message = _MESSAGES[reason]
    return OrderRejected(message, code=f"coupon_{reason.value}")


def _usage_limit_reached(limit: int | None, used: int) -> bool:
    return limit is not None and int(limit) > 0 and used >= int(limit)


async def validate_coupon(
    session: AsyncSession,
    *,
    code: str,
    user_id: int,
    nominal_total: Decimal,
    today: date | None = None,
) -> CouponCode:
    """Resolve a coupon for the user or raise the first applicable rejection.

    Checks run in a fixed priority order so the caller always sees the same
    reason for the same coupon state. No rows are written.
    """
    today = today or _now().date()
    cleaned = _normalize_code(code)
    coupon = await eligibility.get_coupon_by_code(session, cleaned) if cleaned else None
    if coupon is None or (coupon.user_id is not None and coupon.user_id != user_id):
        raise _reject(CouponRejectionReason.not_found, code=cleaned, user_id=user_id)

    if coupon.is_used:
        raise _reject(CouponRejectionReason.already_used, code=cleaned, user_id=user_id)
    total_used = await eligibility.coupon_order_count(session, coupon_id=coupon.id, exclude_user_id=user_id)
    if _usage_limit_reached(coupon.total_usage_limit, total_used):
        raise _reject(CouponRejectionReason.already_used, code=cleaned, user_id=user_id)

    if coupon.status != CatalogStatus.active:
        raise _reject(CouponRejectionReason.inactive, code=cleaned, user_id=user_id)
    if coupon.valid_from is not None and coupon.valid_from > today:
        raise _reject(CouponRejectionReason.inactive, code=cleaned, user_id=user_id)

    # valid_till is inclusive through the end of that day
    if coupon.valid_till is not None and coupon.valid_till < today:
        raise _reject(CouponRejectionReason.expired, code=cleaned, user_id=user_id)

    if await eligibility.coupon_in_open_cart(session, user_id=user_id, coupon_id=coupon.id):
        raise _reject(CouponRejectionReason.in_cart, code=cleaned, user_id=user_id)

    user_used = await eligibility.coupon_order_count(session, coupon_id=coupon.id, user_id=user_id)
    # any committed order of the user carrying the coupon blocks reuse, whatever the limits say
    if user_used > 0:
        raise _reject(CouponRejectionReason.used_in_previous_order, code=cleaned, user_id=user_id)

    min_value = pricing.as_money(coupon.min_order_value) if coupon.min_order_value is not None else None
    if min_value is not None and min_value > 0 and pricing.as_money(nominal_total) < min_value:
        raise _reject(
            CouponRejectionReason.min_order_not_met, code=cleaned, user_id=user_id, min_order_value=min_value
        )

    logger.info("coupon_validated", extra={"coupon_id": coupon.id, "user_id": user_id, "amount": str(coupon.amount)})
    return coupon


def _reject(
    reason: CouponRejectionReason, *, code: str, user_id: int, min_order_value: Decimal | None = None
) -> OrderRejected:
    logger.info("coupon_rejected", extra={"coupon_code": code, "user_id": user_id, "reason": reason.value})
    return coupon_rejected(reason, min_order_value=min_order_value)


async def lock_coupon(session: AsyncSession, *, coupon_id: int, user_id: int) -> CouponCode:
    """Re-read the coupon under a row lock and recheck the limits that a concurrent order could exhaust."""
    coupon = (
        await session.execute(select(CouponCode).where(CouponCode.id == coupon_id).with_for_update())
    ).scalar_one_or_none()
    if coupon is None:
        raise coupon_rejected(CouponRejectionReason.not_found)
    if coupon.is_used:
        raise coupon_rejected(CouponRejectionReason.already_used)
    if coupon.status != CatalogStatus.active:
        raise coupon_rejected(CouponRejectionReason.inactive)
    total_used = await eligibility.coupon_order_count(session, coupon_id=coupon.id, exclude_user_id=user_id)
    if _usage_limit_reached(coupon.total_usage_limit, total_used):
        raise coupon_rejected(CouponRejectionReason.already_used)
    user_used = await eligibility.coupon_order_count(session, coupon_id=coupon.id, user_id=user_id)
    if user_used > 0:
        raise coupon_rejected(CouponRejectionReason.used_in_previous_order)
    return coupon


async def consume_coupon_for_order(session: AsyncSession, *, order: Order, note: str | None = None) -> bool:
    """Mark the order's coupon as used once the order is fully paid.

    Safe to call repeatedly: the `coupon_consumed` event on the order is the
    idempotency marker. Returns True only when this call flipped the flag.
    """
    if order.coupon_id is None or order.status != OrderStatus.verified:
        return False

    already_consumed = await session.scalar(
        select(func.count())
        .select_from(OrderEvent)
        .where(OrderEvent.order_id == order.id, OrderEvent.event == COUPON_CONSUMED_EVENT)
    )
    if already_consumed:
        return False

    coupon = (
        await session.execute(select(CouponCode).where(CouponCode.id == order.coupon_id).with_for_update())
    ).scalar_one_or_none()
    if coupon is None:
        logger.warning("coupon_consume_missing", extra={"order_id": order.id, "coupon_id": order.coupon_id})
        return False

    coupon.is_used = True
    session.add(coupon)
    session.add(OrderEvent(order_id=order.id, event=COUPON_CONSUMED_EVENT, note=note or coupon.code))
    await session.commit()
    await session.refresh(order, attribute_names=["events"])
    metrics.record_coupon_consumed()
    logger.info("coupon_consumed", extra={"order_id": order.id, "coupon_id": coupon.id})
    return True


async def reconcile_pending_coupons(session: AsyncSession, *, limit: int = 500) -> int:
    """Consume coupons for verified orders that never recorded the consumption event."""
    consumed_orders = select(OrderEvent.order_id).where(OrderEvent.event == COUPON_CONSUMED_EVENT)
    result = await session.execute(
        select(Order)
        .where(
            Order.status == OrderStatus.verified,
            Order.coupon_id.is_not(None),
            Order.id.not_in(consumed_orders),
        )
        .order_by(Order.id)
        .limit(limit)
    )
    consumed = 0
    for order in result.scalars().all():
        if await consume_coupon_for_order(session, order=order, note="reconciled"):
            consumed += 1
    return consumed
