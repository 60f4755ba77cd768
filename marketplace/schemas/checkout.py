"""Checkout draft and booking schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.booking import BookingStatus
from marketplace.models.checkout import CheckoutDraftStatus, PaymentMethod
from marketplace.schemas.pricing import (
    AppliedFeeRead,
    CartEntryIn,
    PricingBreakdownRead,
    PricingNoticeRead,
)
from marketplace.schemas.promo_code import PromoEvaluationRead


class CheckoutDraftCreate(BaseModel):
    items: list[CartEntryIn] = Field(default_factory=list)


class CartUpdate(BaseModel):
    items: list[CartEntryIn]


class ApplyPromoCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)


class PaymentMethodUpdate(BaseModel):
    payment_method: PaymentMethod


class CheckoutDraftRead(BaseModel):
    id: uuid.UUID
    user_id: str | None = None
    status: CheckoutDraftStatus
    cart: list[CartEntryIn]
    promo_code: str | None = None
    payment_method: PaymentMethod | None = None
    breakdown: PricingBreakdownRead | None = None
    notices: list[PricingNoticeRead] = Field(default_factory=list)
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplyPromoCodeRead(BaseModel):
    evaluation: PromoEvaluationRead
    draft: CheckoutDraftRead


class BookingItemRead(BaseModel):
    service_id: uuid.UUID
    name: str
    quantity: int
    price_per_unit: Decimal
    is_tax_inclusive: bool
    tax_percent_applied: Decimal
    tax_amount: Decimal
    line_base_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class BookingRead(BaseModel):
    id: uuid.UUID
    reference: str
    user_id: str | None = None
    status: BookingStatus
    payment_method: PaymentMethod
    currency: str
    sum_of_displayed_prices: Decimal
    sub_total: Decimal
    visiting_charge: Decimal
    visiting_charge_displayed: Decimal
    discount_code: str | None = None
    discount_amount: Decimal
    platform_fee_total: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_minor_units: int
    applied_platform_fees: list[AppliedFeeRead]
    items: list[BookingItemRead]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
