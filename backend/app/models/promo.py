import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.catalog import CatalogStatus, Product


class OfferKind(str, enum.Enum):
    percent_off = "percent_off"
    combo_discount = "combo_discount"
    absolute_off = "absolute_off"
    free_offer = "free_offer"


class PromocodeStatus(str, enum.Enum):
    valid = "valid"
    invalid = "invalid"
    used = "used"
    pending = "pending"


class PromocodeUsageType(str, enum.Enum):
    single = "single"
    multi = "multi"


class Promotion(Base):
    __tablename__ = "promotions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    offer_kind: Mapped[OfferKind] = mapped_column(Enum(OfferKind, native_enum=False), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    display_type: Mapped[str] = mapped_column(String(500), nullable=False, default="ALL")
    display_text: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tnc: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[CatalogStatus] = mapped_column(
        Enum(CatalogStatus, native_enum=False), nullable=False, default=CatalogStatus.active
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    promocodes: Mapped[list["Promocode"]] = relationship("Promocode", back_populates="promotion")
    products: Mapped[list["PromotionProduct"]] = relationship(
        "PromotionProduct", back_populates="promotion", cascade="all, delete-orphan", lazy="selectin"
    )


class Promocode(Base):
    __tablename__ = "promocodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    promotion_id: Mapped[int] = mapped_column(Integer, ForeignKey("promotions.id"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    usage_type: Mapped[PromocodeUsageType] = mapped_column(
        Enum(PromocodeUsageType, native_enum=False), nullable=False, default=PromocodeUsageType.multi
    )
    blasted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[PromocodeStatus] = mapped_column(
        Enum(PromocodeStatus, native_enum=False), nullable=False, default=PromocodeStatus.valid
    )
    total_max_usage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_max_usage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    promotion: Mapped[Promotion] = relationship("Promotion", back_populates="promocodes", lazy="selectin")


class PromotionProduct(Base):
    __tablename__ = "promotion_products"
    __table_args__ = (UniqueConstraint("promotion_id", "product_id", name="uq_promotion_products_promotion_product"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    promotion_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    product_discount: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    offer_product_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("products.id"), nullable=True)
    offer_product_discount: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    status: Mapped[CatalogStatus] = mapped_column(
        Enum(CatalogStatus, native_enum=False), nullable=False, default=CatalogStatus.active
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    promotion: Mapped[Promotion] = relationship("Promotion", back_populates="products")
    product: Mapped[Product] = relationship("Product", foreign_keys=[product_id])
    offer_product: Mapped[Product | None] = relationship("Product", foreign_keys=[offer_product_id])
