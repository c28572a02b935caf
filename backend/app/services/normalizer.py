from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cart import CartItem
from app.models.catalog import Brand, Product
from app.models.promo import OfferKind, Promocode, PromotionProduct
from app.services import caps
from app.services import eligibility
from app.services import pricing
from app.services.rejections import OrderRejected, out_of_stock, promotion_invalid


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPromotion:
    promotion_id: int
    promocode_id: int
    offer_kind: OfferKind
    value: Decimal
    applies_to_product_id: int | None = None
    product_discount: Decimal | None = None
    bonus_product_id: int | None = None
    bonus_discount: Decimal | None = None
    total_usage_limit: int | None = None
    per_user_usage_limit: int | None = None

    @property
    def applies(self) -> bool:
        return self.applies_to_product_id is not None


@dataclass(frozen=True)
class BrandSnapshot:
    id: int
    name: str
    order_limit_enabled: bool = False
    order_limit_amount: int = 0
    payment_route: int = 0
    template_id: int | None = None


@dataclass(frozen=True)
class DeliveryDetails:
    sender_name: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    delivery_date: datetime | None = None
    gift: bool = False
    gift_text: str | None = None
    gift_img_url: str | None = None


@dataclass(frozen=True)
class NormalizedLine:
    cart_item_id: int | None
    product_id: int
    product_name: str
    brand: BrandSnapshot
    unit_price: Decimal
    quantity: int
    nominal_amount: Decimal
    promotion: ResolvedPromotion | None = None
    delivery: DeliveryDetails = DeliveryDetails()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_line_ids(raw: Iterable[int] | str) -> list[int]:
    """Accept a list of ids or a comma separated string; duplicates are dropped."""
    if isinstance(raw, str):
        tokens = [token.strip() for token in raw.split(",")]
        values = [token for token in tokens if token]
    else:
        values = list(raw)
    ids: list[int] = []
    for value in values:
        try:
            line_id = int(value)
        except (TypeError, ValueError):
            raise OrderRejected("Invalid cart line id", code="cart_line_invalid") from None
        if line_id not in ids:
            ids.append(line_id)
    return ids


def brand_snapshot(brand: Brand) -> BrandSnapshot:
    return BrandSnapshot(
        id=brand.id,
        name=brand.name,
        order_limit_enabled=bool(brand.order_limit_enabled),
        order_limit_amount=int(brand.order_limit_amount or 0),
        payment_route=int(brand.payment_route or 0),
        template_id=brand.template_id,
    )


def delivery_details(item: CartItem) -> DeliveryDetails:
    return DeliveryDetails(
        sender_name=item.delivery_sender_name,
        name=item.delivery_name,
        email=item.delivery_email,
        phone=item.delivery_phone,
        delivery_date=item.delivery_date,
        gift=bool(item.gift),
        gift_text=item.gift_text,
        gift_img_url=item.gift_img_url,
    )


def resolve_promotion(promocode: Promocode, mapping: PromotionProduct | None) -> ResolvedPromotion:
    promotion = promocode.promotion
    return ResolvedPromotion(
        promotion_id=promotion.id,
        promocode_id=promocode.id,
        offer_kind=OfferKind(promotion.offer_kind),
        value=pricing.as_money(promotion.value),
        applies_to_product_id=mapping.product_id if mapping else None,
        product_discount=pricing.as_money(mapping.product_discount)
        if mapping and mapping.product_discount is not None
        else None,
        bonus_product_id=mapping.offer_product_id if mapping else None,
        bonus_discount=pricing.as_money(mapping.offer_product_discount)
        if mapping and mapping.offer_product_discount is not None
        else None,
        total_usage_limit=promocode.total_max_usage,
        per_user_usage_limit=promocode.user_max_usage,
    )


def preliminary_nominal_total(items: Iterable[CartItem], *, channel: str | None, today: date) -> Decimal:
    """Nominal total of the lines whose product is currently sellable; used for the coupon threshold."""
    total = Decimal("0.00")
    for item in items:
        product: Product | None = item.product
        if eligibility.is_product_available(product, quantity=item.quantity, channel=channel, today=today):
            total += pricing.line_nominal(product.price, item.quantity)
    return pricing.quantize_money(total)


async def load_cart(session: AsyncSession, *, user_id: int, line_ids: list[int]) -> list[CartItem]:
    if not line_ids:
        raise OrderRejected("Cart is empty", code="cart_empty")
    items = await eligibility.get_cart_lines(session, user_id=user_id, line_ids=line_ids)
    if len(items) != len(set(line_ids)):
        found = {item.id for item in items}
        missing = [line_id for line_id in line_ids if line_id not in found]
        logger.info("cart_lines_missing", extra={"user_id": user_id, "line_ids": missing})
        raise OrderRejected(
            "One or more items in your cart could not be found.",
            code="cart_line_not_found",
        )
    return items


async def normalize_lines(
    session: AsyncSession,
    *,
    user_id: int,
    items: list[CartItem],
    channel: str | None,
    today: date | None = None,
    now: datetime | None = None,
) -> list[NormalizedLine]:
    """Validate every cart line and build its NormalizedLine, in cart order.

    The whole request is rejected on the first invalid line. Promotion usage
    caps and brand monthly caps are checked here with running per-request
    totals so a cart cannot split a cap across several lines.
    """
    today = today or _now().date()
    lines: list[NormalizedLine] = []
    pending_promo_total: dict[int, int] = {}
    pending_promo_user: dict[int, int] = {}
    pending_brand_spend: dict[int, Decimal] = {}
    committed_brand_spend: dict[int, Decimal] = {}

    for item in items:
        product: Product | None = item.product
        if not eligibility.is_product_available(product, quantity=item.quantity, channel=channel, today=today):
            logger.info(
                "cart_line_unavailable",
                extra={"user_id": user_id, "cart_item_id": item.id, "product_id": item.product_id},
            )
            raise out_of_stock()

        brand = brand_snapshot(product.brand)
        nominal = pricing.line_nominal(product.price, item.quantity)

        resolved: ResolvedPromotion | None = None
        if item.promocode_id is not None:
            promocode = item.promocode
            if not eligibility.is_promocode_valid(promocode, channel=channel, today=today):
                logger.info("promotion_invalid", extra={"user_id": user_id, "promocode_id": item.promocode_id})
                raise promotion_invalid()
            mapping = await eligibility.get_promotion_mapping(
                session, promotion_id=promocode.promotion_id, product_id=product.id
            )
            resolved = resolve_promotion(promocode, mapping)

            committed_total = await eligibility.promocode_usage(session, promocode_id=promocode.id)
            committed_user = await eligibility.promocode_usage(session, promocode_id=promocode.id, user_id=user_id)
            caps.check_promotion_usage(
                product_name=product.name,
                quantity=int(item.quantity),
                committed_total=committed_total + pending_promo_total.get(promocode.id, 0),
                committed_user=committed_user + pending_promo_user.get(promocode.id, 0),
                total_limit=resolved.total_usage_limit,
                per_user_limit=resolved.per_user_usage_limit,
            )
            pending_promo_total[promocode.id] = pending_promo_total.get(promocode.id, 0) + int(item.quantity)
            pending_promo_user[promocode.id] = pending_promo_user.get(promocode.id, 0) + int(item.quantity)

        if brand.order_limit_enabled:
            if brand.id not in committed_brand_spend:
                committed_brand_spend[brand.id] = await eligibility.brand_monthly_spend(
                    session, user_id=user_id, brand_id=brand.id, now=now
                )
            running = pending_brand_spend.get(brand.id, Decimal("0.00")) + nominal
            caps.check_brand_monthly_cap(
                brand_name=brand.name,
                cap=brand.order_limit_amount,
                committed=committed_brand_spend[brand.id],
                proposed=running,
            )
            pending_brand_spend[brand.id] = running

        lines.append(
            NormalizedLine(
                cart_item_id=item.id,
                product_id=product.id,
                product_name=product.name,
                brand=brand,
                unit_price=pricing.as_money(product.price),
                quantity=int(item.quantity),
                nominal_amount=nominal,
                promotion=resolved,
                delivery=delivery_details(item),
            )
        )
    return lines
