import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class CatalogStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    deleted = "deleted"


class PaymentRoute(int, enum.Enum):
    none = 0
    standard = 1
    priority = 2


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    display_type: Mapped[str] = mapped_column(String(20), nullable=False, default="WEBSITE")
    status: Mapped[CatalogStatus] = mapped_column(
        Enum(CatalogStatus, native_enum=False), nullable=False, default=CatalogStatus.active
    )
    order_limit_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_limit_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payment_route: Mapped[int] = mapped_column(Integer, nullable=False, default=PaymentRoute.none.value)
    template_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    products: Mapped[list["Product"]] = relationship("Product", back_populates="brand")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_type: Mapped[str] = mapped_column(String(20), nullable=False, default="WEBSITE")
    price: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    available_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[CatalogStatus] = mapped_column(
        Enum(CatalogStatus, native_enum=False), nullable=False, default=CatalogStatus.active
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    brand: Mapped[Brand] = relationship("Brand", back_populates="products", lazy="selectin")
