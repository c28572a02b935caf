from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Sequence

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.core import metrics
from app.core.config import settings
from app.models.coupon import CouponCode
from app.models.ledger import LedgerEntry, LedgerEntryStatus, LedgerEntryType, LedgerEntryVia
from app.models.order import Order, OrderEvent, OrderLine, OrderStatus
from app.models.user import User
from app.services import caps
from app.services import coupons
from app.services import eligibility
from app.services import pricing
from app.services.allocation import AllocatedLine, allocate
from app.services.bonus import BonusCandidate, BonusLine, bonus_product_ids, derive_bonus_lines
from app.services.normalizer import (
    BrandSnapshot,
    NormalizedLine,
    brand_snapshot,
    load_cart,
    normalize_lines,
    parse_line_ids,
    preliminary_nominal_total,
)
from app.services.rejections import OrderRejected


logger = logging.getLogger(__name__)

COUPON_LEDGER_SOURCE = "COUPON"
ORDER_FAILED_MESSAGE = "Order could not be created"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PricedOrder:
    """Everything computed for an order before anything is written."""

    lines: tuple[AllocatedLine, ...]
    bonus_lines: tuple[BonusLine, ...]
    nominal_total: Decimal
    coupon: CouponCode | None
    coupon_discount: Decimal

    @property
    def promotion_discount(self) -> Decimal:
        return pricing.sum_money(
            [line.promotion_discount for line in self.lines] + [line.promotion_discount for line in self.bonus_lines]
        )

    @property
    def amount_due(self) -> Decimal:
        return pricing.sum_money(
            [line.amount_due for line in self.lines] + [line.amount_due for line in self.bonus_lines]
        )

    @property
    def payment_route(self) -> int:
        return max((line.line.brand.payment_route for line in self.lines), default=0)


@dataclass(frozen=True)
class OrderResult:
    order: Order
    priced: PricedOrder
    coupon_consumed: bool = False
    product_names: list[str] = field(default_factory=list)

    @property
    def payment_guid(self) -> str:
        return self.order.guid if self.priced.amount_due > 0 else ""

    @property
    def product_info(self) -> str:
        return ",".join(self.product_names)

    @property
    def voucher_quantity(self) -> int:
        return sum(int(line.quantity) for line in self.order.lines)


def generate_order_guid(order_id: int, *, now: datetime | None = None) -> str:
    """`<prefix>-<(unix_now - epoch) + id>-<unix_now>`; unique because the row id is."""
    unix_now = int((now or _now()).timestamp())
    return f"{settings.order_guid_prefix}-{(unix_now - settings.order_guid_epoch) + int(order_id)}-{unix_now}"


def line_guid(order_guid: str, position: int) -> str:
    return f"{order_guid}-{position}"


async def price_order(
    session: AsyncSession,
    *,
    user_id: int,
    line_ids: Sequence[int],
    channel: str,
    coupon_code: str | None,
    now: datetime,
) -> PricedOrder:
    """Read-only phase: validate, allocate and derive bonus lines without writing anything."""
    today = now.date()
    items = await load_cart(session, user_id=user_id, line_ids=list(line_ids))

    coupon: CouponCode | None = None
    if coupon_code and coupon_code.strip():
        coupon = await coupons.validate_coupon(
            session,
            code=coupon_code,
            user_id=user_id,
            nominal_total=preliminary_nominal_total(items, channel=channel, today=today),
            today=today,
        )

    normalized = await normalize_lines(session, user_id=user_id, items=items, channel=channel, today=today, now=now)
    nominal_total = pricing.sum_money(line.nominal_amount for line in normalized)
    coupon_amount = min(pricing.as_money(coupon.amount), nominal_total) if coupon is not None else pricing.ZERO

    allocated = allocate(normalized, coupon_amount)
    candidates = await _bonus_candidates(session, allocated, channel=channel, now=now)
    bonus_lines = derive_bonus_lines(allocated, candidates)

    await _check_order_caps(
        session, user_id=user_id, normalized=normalized, allocated=allocated, bonus_lines=bonus_lines, now=now
    )

    return PricedOrder(
        lines=allocated,
        bonus_lines=tuple(bonus_lines),
        nominal_total=nominal_total,
        coupon=coupon,
        coupon_discount=pricing.sum_money(line.coupon_discount for line in allocated),
    )


async def _bonus_candidates(
    session: AsyncSession, allocated: Sequence[AllocatedLine], *, channel: str, now: datetime
) -> dict[int, BonusCandidate]:
    wanted: dict[int, int] = {}
    for product_id, quantity in bonus_product_ids(allocated):
        wanted[product_id] = wanted.get(product_id, 0) + quantity
    candidates: dict[int, BonusCandidate] = {}
    for product_id, quantity in wanted.items():
        product = await eligibility.get_available_product(
            session, product_id=product_id, quantity=quantity, channel=channel, today=now.date()
        )
        if product is None:
            continue
        candidates[product_id] = BonusCandidate(
            product_id=product.id,
            product_name=product.name,
            unit_price=pricing.as_money(product.price),
            brand=brand_snapshot(product.brand),
        )
    return candidates


async def _check_order_caps(
    session: AsyncSession,
    *,
    user_id: int,
    normalized: Sequence[NormalizedLine],
    allocated: Sequence[AllocatedLine],
    bonus_lines: Sequence[BonusLine],
    now: datetime,
) -> None:
    brands: dict[int, BrandSnapshot] = {line.brand.id: line.brand for line in normalized}
    for line in bonus_lines:
        brands.setdefault(line.brand.id, line.brand)

    spend = caps.brand_spend([*allocated, *bonus_lines])
    for brand_id, amount in spend.items():
        brand = brands[brand_id]
        if brand.order_limit_enabled:
            committed = await eligibility.brand_monthly_spend(session, user_id=user_id, brand_id=brand_id, now=now)
            caps.check_brand_monthly_cap(
                brand_name=brand.name, cap=brand.order_limit_amount, committed=committed, proposed=amount
            )

    high_value_id = settings.high_value_brand_id
    if high_value_id is not None and spend.get(high_value_id, pricing.ZERO) > 0:
        monthly = await eligibility.brand_monthly_spend(
            session,
            user_id=user_id,
            brand_id=high_value_id,
            statuses=eligibility.HIGH_VALUE_STATUSES,
            now=now,
        )
        caps.check_high_value_brand(
            brand_name=brands[high_value_id].name,
            order_spend=spend[high_value_id],
            monthly_committed=monthly,
            order_ceiling=settings.high_value_brand_order_ceiling,
            monthly_ceiling=settings.high_value_brand_monthly_ceiling,
        )


def _line_record(line: AllocatedLine | BonusLine, *, order: Order, position: int) -> OrderLine:
    if isinstance(line, AllocatedLine):
        source = line.line
        promotion = source.promotion
        values = dict(
            cart_item_id=source.cart_item_id,
            brand_id=source.brand.id,
            product_id=source.product_id,
            product_price=source.unit_price,
            quantity=source.quantity,
            nominal_amount=source.nominal_amount,
            is_offer_product=False,
            template_id=source.brand.template_id,
        )
        delivery = source.delivery
    else:
        promotion = line.promotion
        values = dict(
            cart_item_id=None,
            brand_id=line.brand.id,
            product_id=line.product_id,
            product_price=line.unit_price,
            quantity=line.quantity,
            nominal_amount=line.nominal_amount,
            is_offer_product=line.is_offer,
            template_id=line.brand.template_id,
        )
        delivery = line.delivery
    return OrderLine(
        guid=line_guid(order.guid, position),
        order_id=order.id,
        order_guid=order.guid,
        promocode_id=promotion.promocode_id if promotion else None,
        promotion_id=promotion.promotion_id if promotion else None,
        coupon_discount=line.coupon_discount,
        promotion_discount=line.promotion_discount,
        amount_due=line.amount_due,
        delivery_sender_name=delivery.sender_name,
        delivery_name=delivery.name,
        delivery_email=delivery.email,
        delivery_phone=delivery.phone,
        delivery_date=delivery.delivery_date,
        gift=delivery.gift,
        gift_text=delivery.gift_text,
        gift_img_url=delivery.gift_img_url,
        **values,
    )


def _ledger_entries(order: Order, priced: PricedOrder) -> list[LedgerEntry]:
    entries: list[LedgerEntry] = []
    if priced.amount_due > 0:
        entries.append(
            LedgerEntry(
                guid=order.guid,
                user_id=order.user_id,
                order_id=order.id,
                source=settings.payment_ledger_source,
                entry_type=LedgerEntryType.debit,
                via=LedgerEntryVia.order,
                amount=priced.amount_due,
                status=LedgerEntryStatus.initiated,
                payment_route=priced.payment_route,
                description=f"Order payment: {order.guid}",
            )
        )
    if priced.coupon is not None and priced.coupon_discount > 0:
        entries.append(
            LedgerEntry(
                guid=f"{order.guid}-COUPON",
                user_id=order.user_id,
                order_id=order.id,
                source=COUPON_LEDGER_SOURCE,
                entry_type=LedgerEntryType.credit,
                via=LedgerEntryVia.coupon,
                amount=priced.coupon_discount,
                status=LedgerEntryStatus.completed,
                payment_route=0,
                description=f"Coupon discount: {priced.coupon.code}",
            )
        )
    return entries


async def persist_order(
    session: AsyncSession,
    *,
    user_id: int,
    priced: PricedOrder,
    channel: str,
    ip_address: str | None = None,
    whatsapp: bool = False,
    utm_source: str | None = None,
    now: datetime | None = None,
) -> Order:
    """Write the order, its lines, ledger entries and the `created` event in one transaction.

    The caller owns rollback: any exception raised here leaves the session
    with uncommitted work that must be rolled back.
    """
    if priced.coupon is not None:
        await coupons.lock_coupon(session, coupon_id=priced.coupon.id, user_id=user_id)

    order = Order(
        user_id=user_id,
        coupon_id=priced.coupon.id if priced.coupon is not None else None,
        display_type=channel,
        status=OrderStatus.initiated,
        nominal_total=pricing.ZERO,
        coupon_discount=pricing.ZERO,
        promotion_discount=pricing.ZERO,
        amount_due=pricing.ZERO,
        ip_address=ip_address,
        whatsapp=whatsapp,
        utm_source=utm_source,
    )
    session.add(order)
    await session.flush()
    order.guid = generate_order_guid(order.id, now=now)

    ordered: list[AllocatedLine | BonusLine] = [*priced.lines, *priced.bonus_lines]
    session.add_all([_line_record(line, order=order, position=index) for index, line in enumerate(ordered, start=1)])

    order.nominal_total = priced.nominal_total
    order.coupon_discount = priced.coupon_discount
    order.promotion_discount = priced.promotion_discount
    order.amount_due = priced.amount_due
    order.payment_route = priced.payment_route
    order.status = OrderStatus.verified if priced.amount_due == 0 else OrderStatus.initiated

    session.add_all(_ledger_entries(order, priced))
    session.add(OrderEvent(order_id=order.id, event="created", note=f"Reference {order.guid}"))
    await session.commit()
    await session.refresh(order)
    await session.refresh(order, attribute_names=["lines", "events"])
    return order


async def create_order(
    session: AsyncSession,
    *,
    user: User,
    cart_line_ids: Iterable[int] | str,
    channel: str = "ALL",
    coupon_code: str | None = None,
    whatsapp: bool = False,
    utm_source: str | None = None,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> OrderResult:
    now = now or _now()
    channel = (channel or "ALL").strip().upper()
    user_id = user.id
    try:
        priced = await price_order(
            session,
            user_id=user_id,
            line_ids=parse_line_ids(cart_line_ids),
            channel=channel,
            coupon_code=coupon_code,
            now=now,
        )
        order = await persist_order(
            session,
            user_id=user_id,
            priced=priced,
            channel=channel,
            ip_address=ip_address,
            whatsapp=whatsapp,
            utm_source=utm_source,
            now=now,
        )
    except OrderRejected as exc:
        await session.rollback()
        metrics.record_order_rejected(exc.code)
        logger.info("order_rejected", extra={"user_id": user_id, "code": exc.code, "detail": exc.detail})
        raise
    except SQLAlchemyError:
        await session.rollback()
        metrics.record_order_failed()
        logger.exception("order_persist_failed", extra={"user_id": user_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=ORDER_FAILED_MESSAGE)

    metrics.record_order_created()
    logger.info(
        "order_created",
        extra={
            "order_id": order.id,
            "order_guid": order.guid,
            "user_id": user_id,
            "amount_due": str(order.amount_due),
            "status": order.status.value,
        },
    )

    consumed = False
    if order.status == OrderStatus.verified and order.coupon_id is not None:
        try:
            consumed = await coupons.consume_coupon_for_order(session, order=order)
        except SQLAlchemyError:
            # left for reconcile_pending_coupons
            order_id, coupon_id = order.id, order.coupon_id
            await session.rollback()
            logger.exception("coupon_consume_failed", extra={"order_id": order_id, "coupon_id": coupon_id})
            for instance in (order, priced.coupon, user):
                if instance is not None and instance in session:
                    await session.refresh(instance)
            await session.refresh(order, attribute_names=["lines", "events"])

    return OrderResult(
        order=order,
        priced=priced,
        coupon_consumed=consumed,
        product_names=[line.line.product_name for line in priced.lines],
    )


async def get_order(session: AsyncSession, user_id: int, order_id: int) -> Order | None:
    result = await session.execute(
        select(Order)
        .where(Order.user_id == user_id, Order.id == order_id)
        .options(selectinload(Order.lines), selectinload(Order.events))
    )
    return result.scalar_one_or_none()


async def consume_coupon(session: AsyncSession, *, user_id: int, order_id: int) -> tuple[Order, bool]:
    order = await get_order(session, user_id, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    consumed = await coupons.consume_coupon_for_order(session, order=order)
    return order, consumed
