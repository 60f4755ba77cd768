"""Catalog service models carrying the fields the pricing engine reads."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base
from marketplace.models.mixins import TimestampMixin


class Service(TimestampMixin, Base):
    """A bookable home service as listed in the catalog."""

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(255), unique=True)
    # Displayed prices; may already include tax when is_tax_inclusive is set.
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discounted_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    is_tax_inclusive: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    tax_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    has_price_variants: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    price_variants: Mapped[list["ServicePriceVariant"]] = relationship(
        "ServicePriceVariant",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServicePriceVariant.from_quantity",
        lazy="selectin",
    )


class ServicePriceVariant(Base):
    """Quantity band with its own displayed unit price."""

    __tablename__ = "service_price_variants"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    service_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    from_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    to_quantity: Mapped[int | None] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    service: Mapped[Service] = relationship("Service", back_populates="price_variants")
