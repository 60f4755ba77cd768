"""Initial checkout schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_JSON = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    discount_type_enum = sa.Enum("percentage", "fixed", name="discounttype")
    fee_type_enum = sa.Enum("percentage", "fixed", name="feetype")
    draft_status_enum = sa.Enum("open", "placed", name="checkoutdraftstatus")
    payment_method_enum = sa.Enum(
        "online", "pay_after_service", name="paymentmethod"
    )
    booking_status_enum = sa.Enum(
        "pending_payment", "confirmed", name="bookingstatus"
    )

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), unique=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discounted_price", sa.Numeric(12, 2)),
        sa.Column("is_tax_inclusive", sa.Boolean(), nullable=False),
        sa.Column("tax_percent", sa.Numeric(5, 2)),
        sa.Column("has_price_variants", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "service_price_variants",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "service_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_quantity", sa.Integer(), nullable=False),
        sa.Column("to_quantity", sa.Integer()),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
    )

    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("description", sa.String(length=512)),
        sa.Column("discount_type", discount_type_enum, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_booking_amount", sa.Numeric(12, 2)),
        sa.Column("max_uses", sa.Integer()),
        sa.Column("max_uses_per_user", sa.Integer()),
        sa.Column("uses_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("valid_from", sa.Date()),
        sa.Column("valid_until", sa.Date()),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_hidden", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "platform_fees",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("fee_type", fee_type_enum, nullable=False),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("fee_tax_rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "minimum_booking_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("minimum_booking_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("visiting_charge_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_tax_inclusive", sa.Boolean(), nullable=False),
        sa.Column("tax_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("tax_on_charge_enabled", sa.Boolean(), nullable=False),
        sa.Column("description", sa.String(length=1024)),
        *_timestamps(),
    )

    op.create_table(
        "checkout_drafts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(length=128)),
        sa.Column("status", draft_status_enum, nullable=False),
        sa.Column("cart", _JSON, nullable=False),
        sa.Column(
            "promo_code_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("promo_codes.id", ondelete="SET NULL"),
        ),
        sa.Column("promo_code", sa.String(length=64)),
        sa.Column("payment_method", payment_method_enum),
        sa.Column("breakdown", _JSON),
        sa.Column("notices", _JSON, nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_checkout_drafts_user_id", "checkout_drafts", ["user_id"], unique=False
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("reference", sa.String(length=64), nullable=False, unique=True),
        sa.Column(
            "draft_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("checkout_drafts.id", ondelete="SET NULL"),
        ),
        sa.Column("user_id", sa.String(length=128)),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("payment_method", payment_method_enum, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("sum_of_displayed_prices", sa.Numeric(12, 2), nullable=False),
        sa.Column("sub_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("visiting_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("visiting_charge_displayed", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_code", sa.String(length=64)),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("platform_fee_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_minor_units", sa.BigInteger(), nullable=False),
        sa.Column("applied_platform_fees", _JSON, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index(
        "ix_bookings_discount_code", "bookings", ["discount_code"], unique=False
    )

    op.create_table(
        "booking_items",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("service_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price_per_unit", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_tax_inclusive", sa.Boolean(), nullable=False),
        sa.Column("tax_percent_applied", sa.Numeric(5, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("line_base_total", sa.Numeric(12, 2), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("booking_items")
    op.drop_index("ix_bookings_discount_code", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_checkout_drafts_user_id", table_name="checkout_drafts")
    op.drop_table("checkout_drafts")
    op.drop_table("minimum_booking_settings")
    op.drop_table("platform_fees")
    op.drop_table("promo_codes")
    op.drop_table("service_price_variants")
    op.drop_table("services")

    sa.Enum(name="bookingstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="paymentmethod").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="checkoutdraftstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="feetype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="discounttype").drop(op.get_bind(), checkfirst=True)
