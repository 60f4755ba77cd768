"""Schemas for checkout configuration."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from marketplace.models.platform_settings import FeeType


class PlatformFeeIn(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    fee_type: FeeType
    value: Decimal = Field(ge=0)
    fee_tax_rate_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    is_active: bool = True


class PlatformFeeRead(PlatformFeeIn):
    id: uuid.UUID
    position: int

    model_config = ConfigDict(from_attributes=True)


class MinimumBookingPolicyIn(BaseModel):
    enabled: bool = False
    minimum_booking_amount: Decimal = Field(default=Decimal("0"), ge=0)
    visiting_charge_amount: Decimal = Field(default=Decimal("0"), ge=0)
    is_tax_inclusive: bool = False
    tax_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tax_on_charge_enabled: bool = False
    description: str | None = Field(default=None, max_length=1024)

    @model_validator(mode="after")
    def _check_enabled_policy(self) -> "MinimumBookingPolicyIn":
        if self.enabled and self.minimum_booking_amount <= 0:
            raise ValueError("minimum_booking_amount must be positive when enabled")
        return self


class MinimumBookingPolicyRead(MinimumBookingPolicyIn):
    model_config = ConfigDict(from_attributes=True)
