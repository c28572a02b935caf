from decimal import Decimal

from app.models.promo import OfferKind
from app.services import allocation
from app.services.bonus import BonusCandidate, bonus_product_ids, derive_bonus_lines
from app.services.normalizer import BrandSnapshot, NormalizedLine, ResolvedPromotion


CINEMA = BrandSnapshot(id=1, name="Cinema Plus")
SNACKS = BrandSnapshot(id=2, name="Snack Bar", template_id=11)


def _allocated(promotion: ResolvedPromotion | None, quantity: int = 2):
    line = NormalizedLine(
        cart_item_id=10,
        product_id=1,
        product_name="Movie Ticket",
        brand=CINEMA,
        unit_price=Decimal("300.00"),
        quantity=quantity,
        nominal_amount=Decimal("300.00") * quantity,
        promotion=promotion,
    )
    return allocation.allocate([line], None)


def _candidate() -> BonusCandidate:
    return BonusCandidate(product_id=5, product_name="Popcorn Combo", unit_price=Decimal("200.00"), brand=SNACKS)


def test_combo_bonus_line_is_priced_with_bonus_discount() -> None:
    promotion = ResolvedPromotion(
        promotion_id=3,
        promocode_id=4,
        offer_kind=OfferKind.combo_discount,
        value=Decimal("10"),
        applies_to_product_id=1,
        product_discount=Decimal("10"),
        bonus_product_id=5,
        bonus_discount=Decimal("50"),
    )
    allocated = _allocated(promotion)

    bonus = derive_bonus_lines(allocated, {5: _candidate()})

    assert len(bonus) == 1
    line = bonus[0]
    assert line.product_id == 5
    assert line.quantity == 2
    assert line.nominal_amount == Decimal("400.00")
    assert line.promotion_discount == Decimal("200.00")
    assert line.amount_due == Decimal("200.00")
    assert line.is_offer is False
    assert line.cart_item_id is None
    assert line.coupon_discount == Decimal("0.00")
    assert line.brand_id == SNACKS.id


def test_free_offer_bonus_line_costs_nothing() -> None:
    promotion = ResolvedPromotion(
        promotion_id=3,
        promocode_id=4,
        offer_kind=OfferKind.free_offer,
        value=Decimal("0"),
        applies_to_product_id=1,
        bonus_product_id=5,
    )

    bonus = derive_bonus_lines(_allocated(promotion, quantity=1), {5: _candidate()})

    assert len(bonus) == 1
    assert bonus[0].is_offer is True
    assert bonus[0].unit_price == Decimal("200.00")
    assert bonus[0].nominal_amount == Decimal("0.00")
    assert bonus[0].amount_due == Decimal("0.00")


def test_unavailable_bonus_product_is_skipped() -> None:
    promotion = ResolvedPromotion(
        promotion_id=3,
        promocode_id=4,
        offer_kind=OfferKind.free_offer,
        value=Decimal("0"),
        applies_to_product_id=1,
        bonus_product_id=5,
    )

    assert derive_bonus_lines(_allocated(promotion), {}) == []


def test_lines_without_bonus_product_yield_nothing() -> None:
    percent = ResolvedPromotion(
        promotion_id=3, promocode_id=4, offer_kind=OfferKind.percent_off, value=Decimal("10"), applies_to_product_id=1
    )
    unmapped = ResolvedPromotion(
        promotion_id=3, promocode_id=4, offer_kind=OfferKind.free_offer, value=Decimal("0"), bonus_product_id=5
    )

    assert bonus_product_ids(_allocated(None)) == []
    assert bonus_product_ids(_allocated(percent)) == []
    assert bonus_product_ids(_allocated(unmapped)) == []
    assert derive_bonus_lines(_allocated(unmapped), {5: _candidate()}) == []


def test_bonus_product_ids_carry_source_quantity() -> None:
    promotion = ResolvedPromotion(
        promotion_id=3,
        promocode_id=4,
        offer_kind=OfferKind.combo_discount,
        value=Decimal("10"),
        applies_to_product_id=1,
        bonus_product_id=5,
    )

    assert bonus_product_ids(_allocated(promotion, quantity=3)) == [(5, 3)]
