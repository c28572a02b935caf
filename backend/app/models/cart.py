from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.catalog import Product
from app.models.promo import Promocode


class CartItem(Base):
    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    promocode_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("promocodes.id"), nullable=True)
    coupon_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("coupon_codes.id"), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    display_type: Mapped[str] = mapped_column(String(10), nullable=False, default="WEBSITE")
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

    product: Mapped[Product] = relationship("Product", lazy="selectin")
    promocode: Mapped[Promocode | None] = relationship("Promocode", lazy="selectin")
