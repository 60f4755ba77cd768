"""Pricing schema definitions."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.platform_settings import FeeType
from marketplace.schemas.promo_code import AppliedPromoCodeRead


class CartEntryIn(BaseModel):
    service_id: uuid.UUID
    quantity: int = Field(ge=1, le=1000)


class PricingQuoteRequest(BaseModel):
    """Input payload for pricing a cart without a stored draft."""

    items: list[CartEntryIn] = Field(default_factory=list)
    promo_code: str | None = Field(default=None, max_length=64)


class LineBreakdownRead(BaseModel):
    service_id: uuid.UUID
    name: str
    quantity: int
    unit_price: Decimal
    line_displayed_total: Decimal
    line_base_total: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    is_tax_inclusive: bool

    model_config = ConfigDict(from_attributes=True)


class VisitingChargeRead(BaseModel):
    displayed: Decimal
    base: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    is_tax_inclusive: bool

    model_config = ConfigDict(from_attributes=True)


class AppliedFeeRead(BaseModel):
    name: str
    fee_type: FeeType
    value_applied: Decimal
    calculated_fee_amount: Decimal
    tax_rate_percent_on_fee: Decimal
    tax_amount_on_fee: Decimal

    model_config = ConfigDict(from_attributes=True)


class PricingNoticeRead(BaseModel):
    code: str
    message: str
    reference: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PricingBreakdownRead(BaseModel):
    """Full pricing breakdown as shown on the cart and payment steps."""

    line_items: list[LineBreakdownRead]
    sum_of_displayed_prices: Decimal
    subtotal_base: Decimal
    discount_amount: Decimal
    applied_promo_code: AppliedPromoCodeRead | None = None
    visiting_charge: VisitingChargeRead | None = None
    platform_fees: list[AppliedFeeRead]
    platform_fee_total: Decimal
    platform_fee_tax_total: Decimal
    total_tax: Decimal
    grand_total: Decimal
    amount_due_minor_units: int
    effective_tax_label: str
    policy_message: str | None = None
    notices: list[PricingNoticeRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PricingQuoteRead(BaseModel):
    breakdown: PricingBreakdownRead
    promo_rejection_reason: str | None = None
    promo_message: str | None = None
