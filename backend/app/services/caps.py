from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable

from app.core.config import settings
from app.services import pricing
from app.services.rejections import OrderRejected


logger = logging.getLogger(__name__)


def check_promotion_usage(
    *,
    product_name: str,
    quantity: int,
    committed_total: int,
    committed_user: int,
    total_limit: int | None,
    per_user_limit: int | None,
) -> None:
    if total_limit is not None and int(total_limit) > 0:
        available = int(total_limit) - int(committed_total)
        if available <= 0:
            logger.info("promotion_exhausted", extra={"product": product_name, "limit": total_limit})
            raise OrderRejected(
                f"The promotion is no more available for {product_name}. Please delete the item from the cart.",
                code="promotion_exhausted",
            )
        if quantity > available:
            logger.info("promotion_partially_available", extra={"product": product_name, "available": available})
            raise OrderRejected(
                f"Only {available} quantity is available for the promotion of {product_name}. "
                f"Please remove {quantity - available} quantity from the cart.",
                code="promotion_partially_available",
            )
    if per_user_limit is not None and int(per_user_limit) > 0:
        if int(committed_user) + quantity > int(per_user_limit):
            logger.info("promotion_user_limit", extra={"product": product_name, "limit": per_user_limit})
            raise OrderRejected(
                f"You can buy / redeem a maximum of {per_user_limit} {product_name} using this PROMOCODE. "
                "Please remove the excess items from your cart.",
                code="promotion_user_limit",
            )


def brand_cap_message(*, brand_name: str, cap: int | Decimal, period: str = "in this month") -> str:
    return (
        f"Sorry, You cannot place order amount more than {settings.currency} {cap} "
        f"worth of {brand_name} Gift Vouchers {period}."
    )


def check_brand_monthly_cap(*, brand_name: str, cap: int, committed: Decimal, proposed: Decimal) -> None:
    if pricing.as_money(committed) + pricing.as_money(proposed) > Decimal(cap):
        logger.info(
            "brand_monthly_cap_exceeded",
            extra={"brand": brand_name, "cap": cap, "committed": str(committed), "proposed": str(proposed)},
        )
        raise OrderRejected(brand_cap_message(brand_name=brand_name, cap=cap), code="brand_monthly_cap")


def check_high_value_brand(
    *,
    brand_name: str,
    order_spend: Decimal,
    monthly_committed: Decimal,
    order_ceiling: int,
    monthly_ceiling: int,
) -> None:
    spend = pricing.as_money(order_spend)
    if spend > Decimal(order_ceiling):
        logger.info("high_value_order_ceiling", extra={"brand": brand_name, "spend": str(spend)})
        raise OrderRejected(brand_cap_message(brand_name=brand_name, cap=order_ceiling), code="brand_order_ceiling")
    if pricing.as_money(monthly_committed) + spend > Decimal(monthly_ceiling):
        logger.info("high_value_monthly_ceiling", extra={"brand": brand_name, "spend": str(spend)})
        raise OrderRejected(
            brand_cap_message(brand_name=brand_name, cap=monthly_ceiling), code="brand_monthly_ceiling"
        )


def brand_spend(lines: Iterable[Any]) -> dict[int, Decimal]:
    """Per-brand spend of an order; free offer lines do not count."""
    totals: dict[int, Decimal] = {}
    for line in lines:
        if line.is_offer:
            continue
        totals[line.brand_id] = totals.get(line.brand_id, Decimal("0.00")) + line.nominal_amount
    return {brand_id: pricing.quantize_money(amount) for brand_id, amount in totals.items()}
