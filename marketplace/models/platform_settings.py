"""Checkout configuration: platform fees and the minimum booking policy."""

from __future__ import annotations

import enum
import uuid
from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.db.base import Base
from marketplace.models.mixins import TimestampMixin, value_enum


class FeeType(str, enum.Enum):
    """Platform fee computation styles."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PlatformFee(TimestampMixin, Base):
    """Independently configured fee added on top of the cart."""

    __tablename__ = "platform_fees"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    fee_type: Mapped[FeeType] = mapped_column(
        value_enum(FeeType, "feetype"), nullable=False
    )
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    fee_tax_rate_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MinimumBookingSetting(TimestampMixin, Base):
    """Singleton row describing the visiting charge for small orders."""

    __tablename__ = "minimum_booking_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    minimum_booking_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    visiting_charge_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    is_tax_inclusive: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    tax_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    tax_on_charge_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    description: Mapped[str | None] = mapped_column(String(1024))
