"""Bookings created at the end of checkout."""

from __future__ import annotations

import enum
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base
from marketplace.models.checkout import JSONB_TYPE, PaymentMethod
from marketplace.models.mixins import TimestampMixin, value_enum


class BookingStatus(str, enum.Enum):
    """Booking lifecycle states owned by this backend."""

    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"


class Booking(TimestampMixin, Base):
    """Booking with an immutable copy of the checkout's monetary fields."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    reference: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    draft_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("checkout_drafts.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[str | None] = mapped_column(String(128), index=True)
    status: Mapped[BookingStatus] = mapped_column(
        value_enum(BookingStatus, "bookingstatus"), nullable=False
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        value_enum(PaymentMethod, "paymentmethod"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    sum_of_displayed_prices: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    sub_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    visiting_charge: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    visiting_charge_displayed: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    discount_code: Mapped[str | None] = mapped_column(String(64), index=True)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    platform_fee_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_minor_units: Mapped[int] = mapped_column(BigInteger, nullable=False)
    applied_platform_fees: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )

    items: Mapped[list["BookingItem"]] = relationship(
        "BookingItem",
        back_populates="booking",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class BookingItem(Base):
    """Per-service line captured at booking time."""

    __tablename__ = "booking_items"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_tax_inclusive: Mapped[bool] = mapped_column(Boolean, nullable=False)
    tax_percent_applied: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    line_base_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    booking: Mapped[Booking] = relationship("Booking", back_populates="items")
