from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.catalog import CatalogStatus


class CouponCode(Base):
    __tablename__ = "coupon_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    code: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    batch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False)
    min_order_value: Mapped[Decimal | None] = mapped_column(Numeric(11, 2), nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_till: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True, default=1)
    per_user_usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True, default=1)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[CatalogStatus] = mapped_column(
        Enum(CatalogStatus, native_enum=False), nullable=False, default=CatalogStatus.active
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
