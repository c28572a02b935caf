from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence

from app.models.promo import OfferKind
from app.services import pricing
from app.services.allocation import AllocatedLine
from app.services.normalizer import BrandSnapshot, DeliveryDetails, ResolvedPromotion


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BonusCandidate:
    product_id: int
    product_name: str
    unit_price: Decimal
    brand: BrandSnapshot


@dataclass(frozen=True)
class BonusLine:
    source_index: int
    product_id: int
    product_name: str
    brand: BrandSnapshot
    unit_price: Decimal
    quantity: int
    nominal_amount: Decimal
    promotion_discount: Decimal
    amount_due: Decimal
    is_offer: bool
    promotion: ResolvedPromotion
    delivery: DeliveryDetails = DeliveryDetails()

    coupon_discount = pricing.ZERO
    cart_item_id = None

    @property
    def brand_id(self) -> int:
        return self.brand.id

    @property
    def brand_name(self) -> str:
        return self.brand.name


def bonus_product_ids(allocated: Sequence[AllocatedLine]) -> list[tuple[int, int]]:
    """(bonus product id, quantity) pairs the caller has to look up."""
    wanted: list[tuple[int, int]] = []
    for item in allocated:
        promotion = item.line.promotion
        if promotion is None or not promotion.applies or promotion.bonus_product_id is None:
            continue
        wanted.append((promotion.bonus_product_id, item.line.quantity))
    return wanted


def derive_bonus_lines(
    allocated: Sequence[AllocatedLine], available: Mapping[int, BonusCandidate]
) -> list[BonusLine]:
    """Build one bonus line per allocated line whose promotion names an available bonus product.

    `available` only holds bonus products that passed the availability rules;
    a missing entry means the bonus is skipped without failing the order.
    """
    bonus_lines: list[BonusLine] = []
    for index, item in enumerate(allocated):
        promotion = item.line.promotion
        if promotion is None or not promotion.applies or promotion.bonus_product_id is None:
            continue
        candidate = available.get(promotion.bonus_product_id)
        if candidate is None:
            logger.info(
                "bonus_product_unavailable",
                extra={"promotion_id": promotion.promotion_id, "product_id": promotion.bonus_product_id},
            )
            continue
        quantity = item.line.quantity
        if promotion.offer_kind == OfferKind.combo_discount:
            nominal = pricing.line_nominal(candidate.unit_price, quantity)
            discount = min(pricing.percent_of(nominal, promotion.bonus_discount or pricing.ZERO), nominal)
            bonus_lines.append(
                BonusLine(
                    source_index=index,
                    product_id=candidate.product_id,
                    product_name=candidate.product_name,
                    brand=candidate.brand,
                    unit_price=candidate.unit_price,
                    quantity=quantity,
                    nominal_amount=nominal,
                    promotion_discount=discount,
                    amount_due=pricing.quantize_money(nominal - discount),
                    is_offer=False,
                    promotion=promotion,
                    delivery=item.line.delivery,
                )
            )
        else:
            bonus_lines.append(
                BonusLine(
                    source_index=index,
                    product_id=candidate.product_id,
                    product_name=candidate.product_name,
                    brand=candidate.brand,
                    unit_price=candidate.unit_price,
                    quantity=quantity,
                    nominal_amount=pricing.ZERO,
                    promotion_discount=pricing.ZERO,
                    amount_due=pricing.ZERO,
                    is_offer=True,
                    promotion=promotion,
                    delivery=item.line.delivery,
                )
            )
    return bonus_lines
