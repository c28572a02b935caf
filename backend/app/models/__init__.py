from app.db.base import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.catalog import Brand, CatalogStatus, PaymentRoute, Product  # noqa: F401
from app.models.promo import (
    OfferKind,
    Promocode,
    PromocodeStatus,
    PromocodeUsageType,
    Promotion,
    PromotionProduct,
)  # noqa: F401
from app.models.coupon import CouponCode  # noqa: F401
from app.models.cart import CartItem  # noqa: F401
from app.models.order import Order, OrderEvent, OrderLine, OrderStatus  # noqa: F401
from app.models.ledger import LedgerEntry, LedgerEntryStatus, LedgerEntryType, LedgerEntryVia  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Brand",
    "CatalogStatus",
    "PaymentRoute",
    "Product",
    "OfferKind",
    "Promocode",
    "PromocodeStatus",
    "PromocodeUsageType",
    "Promotion",
    "PromotionProduct",
    "CouponCode",
    "CartItem",
    "Order",
    "OrderEvent",
    "OrderLine",
    "OrderStatus",
    "LedgerEntry",
    "LedgerEntryStatus",
    "LedgerEntryType",
    "LedgerEntryVia",
]
