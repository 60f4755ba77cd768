"""Promo code schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from marketplace.models.promo_code import DiscountType


class PromoCodeBase(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal = Field(ge=0)
    min_booking_amount: Decimal | None = Field(default=None, ge=0)
    max_uses: int | None = Field(default=None, ge=0)
    max_uses_per_user: int | None = Field(default=None, ge=0)
    valid_from: datetime.date | None = None
    valid_until: datetime.date | None = None
    is_active: bool = True
    is_hidden: bool = False

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class PromoCodeCreate(PromoCodeBase):
    @model_validator(mode="after")
    def _check_consistency(self) -> "PromoCodeCreate":
        if (
            self.discount_type is DiscountType.PERCENTAGE
            and self.discount_value > Decimal("100")
        ):
            raise ValueError("percentage discount cannot exceed 100")
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError("valid_until must not be before valid_from")
        return self


_REQUIRED_ON_UPDATE = ("discount_type", "discount_value", "is_active", "is_hidden")


class PromoCodeUpdate(BaseModel):
    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, ge=0)
    min_booking_amount: Decimal | None = Field(default=None, ge=0)
    max_uses: int | None = Field(default=None, ge=0)
    max_uses_per_user: int | None = Field(default=None, ge=0)
    valid_from: datetime.date | None = None
    valid_until: datetime.date | None = None
    is_active: bool | None = None
    is_hidden: bool | None = None

    @model_validator(mode="after")
    def _reject_nulls(self) -> "PromoCodeUpdate":
        cleared = sorted(
            name
            for name in _REQUIRED_ON_UPDATE
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class PromoCodeRead(PromoCodeBase):
    id: uuid.UUID
    uses_count: int

    model_config = ConfigDict(from_attributes=True)


class AvailablePromoCodeRead(BaseModel):
    """Public view of an offer; usage counters stay private."""

    code: str
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal
    min_booking_amount: Decimal | None = None
    valid_until: datetime.date | None = None

    model_config = ConfigDict(from_attributes=True)


class PromoCodeEvaluateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    amount: Decimal = Field(ge=0)


class AppliedPromoCodeRead(BaseModel):
    id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    calculated_discount: Decimal

    model_config = ConfigDict(from_attributes=True)


class PromoEvaluationRead(BaseModel):
    applied: AppliedPromoCodeRead | None = None
    rejection_reason: str | None = None
    message: str

    model_config = ConfigDict(from_attributes=True)
