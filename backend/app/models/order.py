import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.user import User


class OrderStatus(str, enum.Enum):
    initiated = "initiated"
    pending = "pending"
    verified = "verified"
    completed = "completed"
    failed = "failed"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guid: Mapped[str | None] = mapped_column(String(200), unique=True, nullable=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coupon_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("coupon_codes.id"), nullable=True, index=True)
    display_type: Mapped[str] = mapped_column(String(50), nullable=False, default="WEBSITE")
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False), nullable=False, default=OrderStatus.initiated
    )
    nominal_total: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    coupon_discount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    promotion_discount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    amount_due: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    payment_route: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ip_address: Mapped[str | None] = mapped_column(String(100), nullable=True)
    whatsapp: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    utm_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped[User] = relationship("User")
    lines: Mapped[list["OrderLine"]] = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderLine.id",
    )
    events: Mapped[list["OrderEvent"]] = relationship(
        "OrderEvent",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderEvent.id",
    )


class OrderLine(Base):
    __tablename__ = "order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guid: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    order_guid: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    cart_item_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    product_price: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    promocode_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("promocodes.id"), nullable=True, index=True)
    promotion_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("promotions.id"), nullable=True)
    nominal_amount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    coupon_discount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    promotion_discount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    amount_due: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False, default=0)
    is_offer_product: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    template_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    delivery_sender_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_phone: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    gift: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gift_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    gift_img_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    order: Mapped[Order] = relationship("Order", back_populates="lines")


class OrderEvent(Base):
    __tablename__ = "order_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    event: Mapped[str] = mapped_column(String(50), nullable=False)
    note: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="events")
