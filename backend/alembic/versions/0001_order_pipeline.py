"""order pipeline schema

Revision ID: 0001
Revises:
Create Date: 2025-10-27
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _timestamps(*, updated: bool = False) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                onupdate=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def _delivery_columns() -> list[sa.Column]:
    return [
        sa.Column("delivery_sender_name", sa.String(length=255), nullable=True),
        sa.Column("delivery_name", sa.String(length=255), nullable=True),
        sa.Column("delivery_email", sa.String(length=255), nullable=True),
        sa.Column("delivery_phone", sa.String(length=255), nullable=True),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gift", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("gift_text", sa.Text(), nullable=True),
        sa.Column("gift_img_url", sa.String(length=255), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True, unique=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("user_level", sa.String(length=20), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=True, unique=True),
        sa.Column("display_type", sa.String(length=20), nullable=False, server_default="WEBSITE"),
        sa.Column("status", sa.String(length=8), nullable=False, server_default="active"),
        sa.Column("order_limit_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order_limit_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_route", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("template_id", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("display_type", sa.String(length=20), nullable=False, server_default="WEBSITE"),
        sa.Column("price", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("available_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=8), nullable=False, server_default="active"),
        *_timestamps(updated=True),
    )
    op.create_index("ix_products_brand_id", "products", ["brand_id"])

    op.create_table(
        "promotions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("offer_kind", sa.String(length=14), nullable=False),
        sa.Column("value", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("display_type", sa.String(length=500), nullable=False, server_default="ALL"),
        sa.Column("display_text", sa.String(length=500), nullable=True),
        sa.Column("tnc", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=8), nullable=False, server_default="active"),
        *_timestamps(),
    )

    op.create_table(
        "promocodes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("promotion_id", sa.Integer(), sa.ForeignKey("promotions.id"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("usage_type", sa.String(length=6), nullable=False, server_default="multi"),
        sa.Column("blasted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=7), nullable=False, server_default="valid"),
        sa.Column("total_max_usage", sa.Integer(), nullable=True),
        sa.Column("user_max_usage", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_promocodes_code", "promocodes", ["code"], unique=True)
    op.create_index("ix_promocodes_promotion_id", "promocodes", ["promotion_id"])

    op.create_table(
        "promotion_products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "promotion_id", sa.Integer(), sa.ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_discount", sa.Numeric(5, 2), nullable=True),
        sa.Column("offer_product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("offer_product_discount", sa.Numeric(5, 2), nullable=True),
        sa.Column("status", sa.String(length=8), nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("promotion_id", "product_id", name="uq_promotion_products_promotion_product"),
    )
    op.create_index("ix_promotion_products_promotion_id", "promotion_products", ["promotion_id"])

    op.create_table(
        "coupon_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("code", sa.String(length=150), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(11, 2), nullable=False),
        sa.Column("min_order_value", sa.Numeric(11, 2), nullable=True),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_till", sa.Date(), nullable=True),
        sa.Column("total_usage_limit", sa.Integer(), nullable=True, server_default="1"),
        sa.Column("per_user_usage_limit", sa.Integer(), nullable=True, server_default="1"),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=8), nullable=False, server_default="active"),
        *_timestamps(updated=True),
    )
    op.create_index("ix_coupon_codes_code", "coupon_codes", ["code"], unique=True)
    op.create_index("ix_coupon_codes_user_id", "coupon_codes", ["user_id"])

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("promocode_id", sa.Integer(), sa.ForeignKey("promocodes.id"), nullable=True),
        sa.Column("coupon_id", sa.Integer(), sa.ForeignKey("coupon_codes.id"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("display_type", sa.String(length=10), nullable=False, server_default="WEBSITE"),
        *_delivery_columns(),
        *_timestamps(),
    )
    op.create_index("ix_cart_items_user_id", "cart_items", ["user_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guid", sa.String(length=200), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("coupon_id", sa.Integer(), sa.ForeignKey("coupon_codes.id"), nullable=True),
        sa.Column("display_type", sa.String(length=50), nullable=False, server_default="WEBSITE"),
        sa.Column("status", sa.String(length=9), nullable=False, server_default="initiated"),
        sa.Column("nominal_total", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("coupon_discount", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("promotion_discount", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("amount_due", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("payment_route", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ip_address", sa.String(length=100), nullable=True),
        sa.Column("whatsapp", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("utm_source", sa.String(length=100), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_index("ix_orders_guid", "orders", ["guid"], unique=True)
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_coupon_id", "orders", ["coupon_id"])

    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guid", sa.String(length=220), nullable=False, unique=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("order_guid", sa.String(length=200), nullable=False),
        sa.Column("cart_item_id", sa.Integer(), nullable=True),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_price", sa.Numeric(11, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("promocode_id", sa.Integer(), sa.ForeignKey("promocodes.id"), nullable=True),
        sa.Column("promotion_id", sa.Integer(), sa.ForeignKey("promotions.id"), nullable=True),
        sa.Column("nominal_amount", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("coupon_discount", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("promotion_discount", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("amount_due", sa.Numeric(11, 2), nullable=False, server_default="0"),
        sa.Column("is_offer_product", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("template_id", sa.Integer(), nullable=True),
        *_delivery_columns(),
        *_timestamps(),
    )
    op.create_index("ix_order_lines_order_id", "order_lines", ["order_id"])
    op.create_index("ix_order_lines_order_guid", "order_lines", ["order_guid"])
    op.create_index("ix_order_lines_brand_id", "order_lines", ["brand_id"])
    op.create_index("ix_order_lines_promocode_id", "order_lines", ["promocode_id"])

    op.create_table(
        "order_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("event", sa.String(length=50), nullable=False),
        sa.Column("note", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_order_events_order_id", "order_events", ["order_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guid", sa.String(length=220), nullable=False, unique=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("source", sa.String(length=30), nullable=False),
        sa.Column("entry_type", sa.String(length=6), nullable=False),
        sa.Column("via", sa.String(length=6), nullable=False),
        sa.Column("amount", sa.Numeric(11, 2), nullable=False),
        sa.Column("status", sa.String(length=9), nullable=False, server_default="initiated"),
        sa.Column("payment_route", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_ledger_entries_user_id", "ledger_entries", ["user_id"])
    op.create_index("ix_ledger_entries_order_id", "ledger_entries", ["order_id"])


def downgrade() -> None:
    op.drop_table("ledger_entries")
    op.drop_table("order_events")
    op.drop_table("order_lines")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_table("coupon_codes")
    op.drop_table("promotion_products")
    op.drop_table("promocodes")
    op.drop_table("promotions")
    op.drop_table("products")
    op.drop_table("brands")
    op.drop_table("users")
