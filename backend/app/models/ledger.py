import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class LedgerEntryType(str, enum.Enum):
    debit = "debit"
    credit = "credit"


class LedgerEntryStatus(str, enum.Enum):
    initiated = "initiated"
    pending = "pending"
    completed = "completed"
    failed = "failed"


class LedgerEntryVia(str, enum.Enum):
    order = "order"
    coupon = "coupon"


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guid: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(30), nullable=False)
    entry_type: Mapped[LedgerEntryType] = mapped_column(Enum(LedgerEntryType, native_enum=False), nullable=False)
    via: Mapped[LedgerEntryVia] = mapped_column(Enum(LedgerEntryVia, native_enum=False), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(11, 2), nullable=False)
    status: Mapped[LedgerEntryStatus] = mapped_column(
        Enum(LedgerEntryStatus, native_enum=False), nullable=False, default=LedgerEntryStatus.initiated
    )
    payment_route: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
