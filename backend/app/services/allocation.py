"""Coupon and promotion discount allocation over normalized cart lines.

Pure functions only: nothing here touches the session, so an allocation can
be recomputed for the same inputs and always yields the same result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Sequence

from app.models.promo import OfferKind
from app.services import pricing
from app.services.normalizer import NormalizedLine, ResolvedPromotion


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocatedLine:
    line: NormalizedLine
    coupon_discount: Decimal
    amount_after_coupon: Decimal
    promotion_discount: Decimal
    amount_due: Decimal

    is_offer = False

    @property
    def brand_id(self) -> int:
        return self.line.brand.id

    @property
    def brand_name(self) -> str:
        return self.line.brand.name

    @property
    def nominal_amount(self) -> Decimal:
        return self.line.nominal_amount


def distribute_coupon(lines: Sequence[NormalizedLine], coupon_amount: Decimal) -> list[Decimal]:
    """Spend the coupon budget over lines in order; each line takes what it can absorb."""
    remaining = pricing.as_money(coupon_amount) if coupon_amount and coupon_amount > 0 else pricing.ZERO
    discounts: list[Decimal] = []
    for line in lines:
        share = min(remaining, line.nominal_amount)
        discounts.append(share)
        remaining -= share
    return discounts


def _percent_off(line: NormalizedLine, promotion: ResolvedPromotion, amount_after_coupon: Decimal) -> Decimal:
    return pricing.percent_of(amount_after_coupon, promotion.value)


def _combo_discount(line: NormalizedLine, promotion: ResolvedPromotion, amount_after_coupon: Decimal) -> Decimal:
    rate = promotion.product_discount if promotion.product_discount is not None else promotion.value
    return pricing.percent_of(pricing.line_nominal(line.unit_price, line.quantity), rate)


def _absolute_off(line: NormalizedLine, promotion: ResolvedPromotion, amount_after_coupon: Decimal) -> Decimal:
    return pricing.quantize_money(promotion.value) if promotion.value > 0 else pricing.ZERO


def _free_offer(line: NormalizedLine, promotion: ResolvedPromotion, amount_after_coupon: Decimal) -> Decimal:
    return pricing.ZERO


PromotionEvaluator = Callable[[NormalizedLine, ResolvedPromotion, Decimal], Decimal]

PROMOTION_EVALUATORS: dict[OfferKind, PromotionEvaluator] = {
    OfferKind.percent_off: _percent_off,
    OfferKind.combo_discount: _combo_discount,
    OfferKind.absolute_off: _absolute_off,
    OfferKind.free_offer: _free_offer,
}


def promotion_discount(line: NormalizedLine, amount_after_coupon: Decimal) -> Decimal:
    promotion = line.promotion
    if promotion is None or not promotion.applies:
        return pricing.ZERO
    evaluator = PROMOTION_EVALUATORS[promotion.offer_kind]
    discount = pricing.quantize_money(evaluator(line, promotion, amount_after_coupon))
    if discount > amount_after_coupon:
        logger.warning(
            "promotion_discount_clamped",
            extra={
                "promotion_id": promotion.promotion_id,
                "product_id": line.product_id,
                "computed": str(discount),
                "clamped_to": str(amount_after_coupon),
            },
        )
        discount = amount_after_coupon
    return discount


def allocate(lines: Sequence[NormalizedLine], coupon_amount: Decimal | None) -> tuple[AllocatedLine, ...]:
    coupon_shares = distribute_coupon(lines, coupon_amount or pricing.ZERO)
    allocated: list[AllocatedLine] = []
    for line, coupon_share in zip(lines, coupon_shares):
        after_coupon = pricing.quantize_money(line.nominal_amount - coupon_share)
        promo = promotion_discount(line, after_coupon)
        allocated.append(
            AllocatedLine(
                line=line,
                coupon_discount=coupon_share,
                amount_after_coupon=after_coupon,
                promotion_discount=promo,
                amount_due=pricing.quantize_money(after_coupon - promo),
            )
        )
    return tuple(allocated)
