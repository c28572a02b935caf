from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import client_ip, get_current_user
from app.db.session import get_session
from app.models.user import User
from app.schemas.order import CouponConsumeRead, LineBreakdown, OrderCreate, OrderCreated, OrderRead
from app.services import order as order_service

router = APIRouter(prefix="/orders", tags=["orders"])


def _created_payload(result: order_service.OrderResult, user: User) -> OrderCreated:
    order = result.order
    priced = result.priced
    names = [line.line.product_name for line in priced.lines] + [line.product_name for line in priced.bonus_lines]
    breakdown = [
        LineBreakdown(
            line_guid=record.guid,
            cart_item_id=record.cart_item_id,
            product_id=record.product_id,
            product_name=name,
            quantity=record.quantity,
            nominal_amount=float(record.nominal_amount),
            coupon_discount=float(record.coupon_discount),
            promotion_discount=float(record.promotion_discount),
            amount_due=float(record.amount_due),
            is_offer_product=record.is_offer_product,
        )
        for record, name in zip(order.lines, names)
    ]
    return OrderCreated(
        order_id=order.id,
        order_guid=order.guid,
        status=order.status,
        currency=settings.currency,
        nominal_total=float(order.nominal_total),
        amount_due=float(order.amount_due),
        coupon_applied=priced.coupon is not None,
        coupon_code=priced.coupon.code if priced.coupon is not None else None,
        coupon_discount=float(order.coupon_discount),
        coupon_consumed=result.coupon_consumed,
        promotion_discount=float(order.promotion_discount),
        bonus_line_count=len(priced.bonus_lines),
        payment_guid=result.payment_guid,
        payment_route=order.payment_route,
        payment_source=settings.payment_ledger_source,
        product_info=result.product_info,
        voucher_quantity=result.voucher_quantity,
        email=user.email,
        phone=user.phone,
        user_level=user.user_level,
        line_breakdown=breakdown,
    )


@router.post("", response_model=OrderCreated, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    result = await order_service.create_order(
        session,
        user=current_user,
        cart_line_ids=payload.cart_line_ids,
        channel=payload.display_channel,
        coupon_code=payload.coupon_code,
        whatsapp=payload.whatsapp,
        utm_source=payload.utm_source,
        ip_address=client_ip(request),
    )
    return _created_payload(result, current_user)


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    order = await order_service.get_order(session, current_user.id, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.post("/{order_id}/coupon/consume", response_model=CouponConsumeRead)
async def consume_order_coupon(
    order_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    order, consumed = await order_service.consume_coupon(session, user_id=current_user.id, order_id=order_id)
    return CouponConsumeRead(order_id=order.id, coupon_id=order.coupon_id, consumed=consumed)
