"""Schemas for catalog services and their quantity tiers."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PriceVariantIn(BaseModel):
    from_quantity: int = Field(ge=1)
    to_quantity: int | None = Field(default=None, ge=1)
    price: Decimal = Field(ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PriceVariantIn":
        if self.to_quantity is not None and self.to_quantity < self.from_quantity:
            raise ValueError("to_quantity must not be below from_quantity")
        return self


class PriceVariantRead(PriceVariantIn):
    id: uuid.UUID

    model_config = ConfigDict(from_attributes=True)


def _check_tiers(variants: list[PriceVariantIn]) -> None:
    ordered = sorted(variants, key=lambda variant: variant.from_quantity)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.to_quantity is None or previous.to_quantity >= current.from_quantity:
            raise ValueError("price variants must be ascending and non-overlapping")


class ServiceBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = None
    price: Decimal = Field(ge=0)
    discounted_price: Decimal | None = Field(default=None, ge=0)
    is_tax_inclusive: bool = False
    tax_percent: Decimal | None = Field(default=None, ge=0, le=100)
    has_price_variants: bool = False
    is_active: bool = True


class ServiceCreate(ServiceBase):
    price_variants: list[PriceVariantIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_variants(self) -> "ServiceCreate":
        _check_tiers(self.price_variants)
        return self


_REQUIRED_ON_UPDATE = (
    "name",
    "price",
    "is_tax_inclusive",
    "has_price_variants",
    "is_active",
)


class ServiceUpdate(BaseModel):
    name: str | None = None
    slug: str | None = None
    price: Decimal | None = Field(default=None, ge=0)
    discounted_price: Decimal | None = Field(default=None, ge=0)
    is_tax_inclusive: bool | None = None
    tax_percent: Decimal | None = Field(default=None, ge=0, le=100)
    has_price_variants: bool | None = None
    is_active: bool | None = None
    price_variants: list[PriceVariantIn] | None = None

    @model_validator(mode="after")
    def _validate_update(self) -> "ServiceUpdate":
        cleared = sorted(
            name
            for name in _REQUIRED_ON_UPDATE
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        if self.price_variants is not None:
            _check_tiers(self.price_variants)
        return self


class ServiceRead(ServiceBase):
    id: uuid.UUID
    price_variants: list[PriceVariantRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
