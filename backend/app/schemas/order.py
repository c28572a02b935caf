from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic import field_validator

from app.models.order import OrderStatus


class OrderCreate(BaseModel):
    cart_line_ids: list[int] | str = Field(description="Cart line ids, as a list or a comma separated string")
    display_channel: str = Field(default="ALL", min_length=1, max_length=20)
    coupon_code: str | None = Field(default=None, max_length=150)
    whatsapp: bool = False
    utm_source: str | None = Field(default=None, max_length=100)

    @field_validator("display_channel")
    @classmethod
    def normalize_channel(cls, value: str) -> str:
        return (value or "ALL").strip().upper() or "ALL"

    @field_validator("whatsapp", mode="before")
    @classmethod
    def parse_whatsapp(cls, value):
        if isinstance(value, str):
            return value.strip().upper() in {"Y", "YES", "TRUE", "1"}
        return bool(value)

    @field_validator("coupon_code")
    @classmethod
    def strip_coupon(cls, value: str | None):
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class LineBreakdown(BaseModel):
    line_guid: str
    cart_item_id: int | None = None
    product_id: int
    product_name: str
    quantity: int
    nominal_amount: float
    coupon_discount: float
    promotion_discount: float
    amount_due: float
    is_offer_product: bool


class OrderCreated(BaseModel):
    order_id: int
    order_guid: str
    status: OrderStatus
    currency: str
    nominal_total: float
    amount_due: float
    coupon_applied: bool
    coupon_code: str | None = None
    coupon_discount: float
    coupon_consumed: bool
    promotion_discount: float
    bonus_line_count: int
    payment_guid: str
    payment_route: int
    payment_source: str
    product_info: str
    voucher_quantity: int
    email: str | None = None
    phone: str | None = None
    user_level: str | None = None
    line_breakdown: list[LineBreakdown] = Field(default_factory=list)


class OrderLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    guid: str
    cart_item_id: int | None = None
    brand_id: int
    product_id: int
    product_price: float
    quantity: int
    promocode_id: int | None = None
    promotion_id: int | None = None
    nominal_amount: float
    coupon_discount: float
    promotion_discount: float
    amount_due: float
    is_offer_product: bool


class OrderEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event: str
    note: str | None = None
    created_at: datetime


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    guid: str | None = None
    user_id: int
    coupon_id: int | None = None
    display_type: str
    status: OrderStatus
    nominal_total: float
    coupon_discount: float
    promotion_discount: float
    amount_due: float
    payment_route: int
    created_at: datetime
    updated_at: datetime
    lines: list[OrderLineRead] = Field(default_factory=list)
    events: list[OrderEventRead] = Field(default_factory=list)


class CouponConsumeRead(BaseModel):
    order_id: int
    coupon_id: int | None = None
    consumed: bool
