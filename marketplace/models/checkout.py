"""Checkout draft aggregate carried across checkout steps."""

from __future__ import annotations

import enum
import uuid
from typing import Any

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from marketplace.db.base import Base
from marketplace.models.mixins import TimestampMixin, value_enum

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")


class CheckoutDraftStatus(str, enum.Enum):
    """Lifecycle of a checkout draft."""

    OPEN = "open"
    PLACED = "placed"


class PaymentMethod(str, enum.Enum):
    """Payment options offered at checkout."""

    ONLINE = "online"
    PAY_AFTER_SERVICE = "pay_after_service"


class CheckoutDraft(TimestampMixin, Base):
    """Cart, applied promo, payment choice and latest pricing breakdown."""

    __tablename__ = "checkout_drafts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str | None] = mapped_column(String(128), index=True)
    status: Mapped[CheckoutDraftStatus] = mapped_column(
        value_enum(CheckoutDraftStatus, "checkoutdraftstatus"),
        nullable=False,
        default=CheckoutDraftStatus.OPEN,
    )
    cart: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    promo_code_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("promo_codes.id", ondelete="SET NULL"), nullable=True
    )
    promo_code: Mapped[str | None] = mapped_column(String(64))
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        value_enum(PaymentMethod, "paymentmethod"), nullable=True
    )
    breakdown: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE)
    notices: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
