"""Checkout pricing and tax computation.

Turns a cart plus independently configured policies (promo discount,
platform fees, the minimum booking surcharge and per-service tax modes)
into one authoritative :class:`PricingBreakdown`.

Every function in this module is a pure function of its arguments. Nothing
here touches the database, and calling :func:`compute_pricing` twice with
the same inputs yields equal breakdowns.

Rounding: components are computed at full ``Decimal`` precision and then
quantized to two places with ``ROUND_HALF_UP``. Aggregates are sums of the
rounded components, so ``grand_total`` matches its formula to the cent.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Final
from uuid import UUID

from marketplace.models import DiscountType, FeeType

logger = logging.getLogger(__name__)

MONEY_PLACES: Final = Decimal("0.01")
ZERO: Final = Decimal("0.00")
_HUNDRED: Final = Decimal("100")

MINIMUM_AMOUNT_PLACEHOLDER: Final = "{MINIMUM_BOOKING_AMOUNT}"
VISITING_CHARGE_PLACEHOLDER: Final = "{VISITING_CHARGE}"


class TierPricingMode(str, enum.Enum):
    """How quantity tiers turn into a line total."""

    VOLUME = "volume"
    INCREMENTAL = "incremental"


class NoticeCode(str, enum.Enum):
    """Non-fatal conditions surfaced alongside a breakdown."""

    STALE_CART_ENTRY = "stale_cart_entry"
    PROMO_REMOVED = "promo_removed"


@dataclass(frozen=True, slots=True)
class PricingNotice:
    """Warning for the caller; never changes how totals are computed."""

    code: NoticeCode
    message: str
    reference: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "reference": self.reference,
        }


@dataclass(frozen=True, slots=True)
class CartEntry:
    service_id: UUID
    quantity: int


@dataclass(frozen=True, slots=True)
class PriceTier:
    """Quantity band; ``to_quantity`` of ``None`` means open ended."""

    from_quantity: int
    price: Decimal
    to_quantity: int | None = None

    def contains(self, quantity: int) -> bool:
        if quantity < self.from_quantity:
            return False
        return self.to_quantity is None or quantity <= self.to_quantity


@dataclass(frozen=True, slots=True)
class ServicePriceRecord:
    """Pricing-relevant snapshot of a catalog service."""

    id: UUID
    name: str
    price: Decimal
    discounted_price: Decimal | None = None
    is_tax_inclusive: bool = False
    tax_percent: Decimal | None = None
    has_price_variants: bool = False
    price_variants: tuple[PriceTier, ...] = ()


@dataclass(frozen=True, slots=True)
class AppliedPromoCodeInfo:
    id: UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    calculated_discount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "code": self.code,
            "discount_type": self.discount_type.value,
            "discount_value": str(self.discount_value),
            "calculated_discount": _to_str(self.calculated_discount),
        }


@dataclass(frozen=True, slots=True)
class PlatformFeeConfig:
    name: str
    fee_type: FeeType
    value: Decimal
    fee_tax_rate_percent: Decimal = ZERO
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class MinimumBookingPolicy:
    """Visiting charge applied when an order falls below a threshold."""

    enabled: bool
    minimum_booking_amount: Decimal
    visiting_charge_amount: Decimal
    is_tax_inclusive: bool = False
    tax_percent: Decimal = ZERO
    tax_on_charge_enabled: bool = False
    description: str | None = None

    @classmethod
    def disabled(cls) -> "MinimumBookingPolicy":
        return cls(
            enabled=False,
            minimum_booking_amount=ZERO,
            visiting_charge_amount=ZERO,
        )


@dataclass(frozen=True, slots=True)
class LineBreakdown:
    service_id: UUID
    name: str
    quantity: int
    unit_price: Decimal
    line_displayed_total: Decimal
    line_base_total: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    is_tax_inclusive: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": str(self.service_id),
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": _to_str(self.unit_price),
            "line_displayed_total": _to_str(self.line_displayed_total),
            "line_base_total": _to_str(self.line_base_total),
            "tax_percent": str(self.tax_percent),
            "tax_amount": _to_str(self.tax_amount),
            "is_tax_inclusive": self.is_tax_inclusive,
        }


@dataclass(frozen=True, slots=True)
class CartLines:
    """Output of the cart line pass."""

    lines: tuple[LineBreakdown, ...]
    sum_of_displayed_prices: Decimal
    subtotal_base: Decimal
    total_line_tax: Decimal
    stale_service_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True, slots=True)
class VisitingChargeBreakdown:
    displayed: Decimal
    base: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    is_tax_inclusive: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "displayed": _to_str(self.displayed),
            "base": _to_str(self.base),
            "tax_percent": str(self.tax_percent),
            "tax_amount": _to_str(self.tax_amount),
            "is_tax_inclusive": self.is_tax_inclusive,
        }


@dataclass(frozen=True, slots=True)
class AppliedFee:
    name: str
    fee_type: FeeType
    value_applied: Decimal
    calculated_fee_amount: Decimal
    tax_rate_percent_on_fee: Decimal
    tax_amount_on_fee: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "fee_type": self.fee_type.value,
            "value_applied": str(self.value_applied),
            "calculated_fee_amount": _to_str(self.calculated_fee_amount),
            "tax_rate_percent_on_fee": str(self.tax_rate_percent_on_fee),
            "tax_amount_on_fee": _to_str(self.tax_amount_on_fee),
        }


@dataclass(frozen=True, slots=True)
class FeeSummary:
    fees: tuple[AppliedFee, ...]
    total_base: Decimal
    total_tax: Decimal


@dataclass(frozen=True, slots=True)
class PricingBreakdown:
    """Immutable pricing snapshot; recomputed wholesale on any input change."""

    line_items: tuple[LineBreakdown, ...]
    sum_of_displayed_prices: Decimal
    subtotal_base: Decimal
    discount_amount: Decimal
    applied_promo_code: AppliedPromoCodeInfo | None
    visiting_charge: VisitingChargeBreakdown | None
    platform_fees: tuple[AppliedFee, ...]
    platform_fee_total: Decimal
    platform_fee_tax_total: Decimal
    total_tax: Decimal
    grand_total: Decimal
    effective_tax_label: str
    policy_message: str | None = None
    notices: tuple[PricingNotice, ...] = ()

    @property
    def amount_due_minor_units(self) -> int:
        """Grand total in the currency's smallest unit for the payment gateway."""
        return to_minor_units(self.grand_total)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the breakdown to plain types for storage and responses."""

        return {
            "line_items": [line.to_dict() for line in self.line_items],
            "sum_of_displayed_prices": _to_str(self.sum_of_displayed_prices),
            "subtotal_base": _to_str(self.subtotal_base),
            "discount_amount": _to_str(self.discount_amount),
            "applied_promo_code": (
                self.applied_promo_code.to_dict() if self.applied_promo_code else None
            ),
            "visiting_charge": (
                self.visiting_charge.to_dict() if self.visiting_charge else None
            ),
            "platform_fees": [fee.to_dict() for fee in self.platform_fees],
            "platform_fee_total": _to_str(self.platform_fee_total),
            "platform_fee_tax_total": _to_str(self.platform_fee_tax_total),
            "total_tax": _to_str(self.total_tax),
            "grand_total": _to_str(self.grand_total),
            "amount_due_minor_units": self.amount_due_minor_units,
            "effective_tax_label": self.effective_tax_label,
            "policy_message": self.policy_message,
            "notices": [notice.to_dict() for notice in self.notices],
        }


def to_decimal(value: Decimal | float | int | str | None) -> Decimal:
    """Convert a numeric input to ``Decimal`` without binary float artefacts."""

    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal | float | int | str) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def to_minor_units(value: Decimal | float | int | str) -> int:
    """Return ``value`` in minor currency units (paise), rounded half-up."""

    return int(quantize_money(value) * _HUNDRED)


def _to_str(value: Decimal) -> str:
    return f"{quantize_money(value):.2f}"


def _non_negative(value: Decimal | float | int | str | None, *, label: str) -> Decimal:
    amount = to_decimal(value)
    if amount < 0:
        logger.warning("Negative %s (%s) treated as zero", label, amount)
        return Decimal("0")
    return amount


def get_base_price(
    displayed: Decimal | float | int | str,
    is_tax_inclusive: bool,
    tax_percent: Decimal | float | int | str | None,
) -> Decimal:
    """Strip tax out of a displayed price.

    Inclusive prices with a positive rate are divided by ``1 + rate/100``;
    anything else (exclusive price, zero or negative rate) is returned as is.
    The result is not rounded.
    """

    amount = to_decimal(displayed)
    rate = to_decimal(tax_percent)
    if is_tax_inclusive and rate > 0:
        return amount / (1 + rate / _HUNDRED)
    return amount


def _list_unit_price(record: ServicePriceRecord) -> Decimal:
    price = to_decimal(record.price)
    if record.discounted_price is not None:
        discounted = to_decimal(record.discounted_price)
        if discounted < price:
            return discounted
    return price


def resolve_unit_price(record: ServicePriceRecord, quantity: int) -> Decimal:
    """Return the displayed unit price for ``quantity`` units of a service.

    A matching quantity tier wins outright, including over a discounted
    price. Quantities past the last closed band use the last band that
    starts at or below them.
    """

    fallback = _list_unit_price(record)
    if not record.has_price_variants or not record.price_variants or quantity <= 0:
        return fallback

    tiers = sorted(record.price_variants, key=lambda tier: tier.from_quantity)
    for tier in tiers:
        if tier.contains(quantity):
            return to_decimal(tier.price)
    for tier in reversed(tiers):
        if quantity >= tier.from_quantity:
            return to_decimal(tier.price)
    return fallback


def _line_displayed_total(
    record: ServicePriceRecord, quantity: int, tier_mode: TierPricingMode
) -> Decimal:
    if tier_mode is TierPricingMode.INCREMENTAL and record.has_price_variants:
        return sum(
            (resolve_unit_price(record, unit) for unit in range(1, quantity + 1)),
            Decimal("0"),
        )
    return resolve_unit_price(record, quantity) * quantity


def compute_cart_lines(
    entries: Iterable[CartEntry],
    catalog: Mapping[UUID, ServicePriceRecord],
    *,
    tier_mode: TierPricingMode = TierPricingMode.VOLUME,
) -> CartLines:
    """Price every cart entry; entries without a catalog record are skipped."""

    lines: list[LineBreakdown] = []
    stale: list[UUID] = []
    sum_displayed = ZERO
    subtotal_base = ZERO
    line_tax_total = ZERO

    for entry in entries:
        record = catalog.get(entry.service_id)
        if record is None:
            stale.append(entry.service_id)
            continue

        rate = _non_negative(record.tax_percent, label=f"tax percent on {record.name}")
        displayed_raw = _line_displayed_total(record, entry.quantity, tier_mode)
        base_raw = get_base_price(displayed_raw, record.is_tax_inclusive, rate)

        displayed_total = quantize_money(displayed_raw)
        base_total = quantize_money(base_raw)
        tax_amount = quantize_money(base_raw * rate / _HUNDRED)

        lines.append(
            LineBreakdown(
                service_id=record.id,
                name=record.name,
                quantity=entry.quantity,
                unit_price=quantize_money(displayed_raw / entry.quantity),
                line_displayed_total=displayed_total,
                line_base_total=base_total,
                tax_percent=rate,
                tax_amount=tax_amount,
                is_tax_inclusive=record.is_tax_inclusive,
            )
        )
        sum_displayed += displayed_total
        subtotal_base += base_total
        line_tax_total += tax_amount

    return CartLines(
        lines=tuple(lines),
        sum_of_displayed_prices=sum_displayed,
        subtotal_base=subtotal_base,
        total_line_tax=line_tax_total,
        stale_service_ids=tuple(stale),
    )


def calculate_discount(
    discount_type: DiscountType,
    discount_value: Decimal | float | int | str,
    sum_of_displayed_prices: Decimal,
) -> Decimal:
    """Discount for a promo, clamped to ``[0, sum_of_displayed_prices]``."""

    value = _non_negative(discount_value, label="promo discount value")
    if discount_type is DiscountType.PERCENTAGE:
        raw = sum_of_displayed_prices * value / _HUNDRED
    else:
        raw = value
    return max(ZERO, min(quantize_money(raw), sum_of_displayed_prices))


def compute_visiting_charge(
    policy: MinimumBookingPolicy | None,
    *,
    sum_of_displayed_prices: Decimal,
    discount_amount: Decimal,
) -> VisitingChargeBreakdown | None:
    """Surcharge line for orders below the minimum, if the policy applies.

    The threshold is compared against the post-discount displayed subtotal
    and is exclusive: an order exactly at the minimum pays no surcharge.
    """

    if policy is None or not policy.enabled:
        return None

    post_discount = sum_of_displayed_prices - discount_amount
    minimum = to_decimal(policy.minimum_booking_amount)
    if not (ZERO < post_discount < minimum):
        return None

    displayed = _non_negative(policy.visiting_charge_amount, label="visiting charge")
    if displayed <= 0:
        return None

    rate = _non_negative(policy.tax_percent, label="visiting charge tax percent")
    base_raw = get_base_price(displayed, policy.is_tax_inclusive, rate)
    charge_taxed = policy.tax_on_charge_enabled and rate > 0
    return VisitingChargeBreakdown(
        displayed=quantize_money(displayed),
        base=quantize_money(base_raw),
        tax_percent=rate if charge_taxed else Decimal("0"),
        tax_amount=quantize_money(base_raw * rate / _HUNDRED) if charge_taxed else ZERO,
        is_tax_inclusive=policy.is_tax_inclusive,
    )


def render_policy_message(policy: MinimumBookingPolicy) -> str | None:
    if not policy.description:
        return None
    return policy.description.replace(
        MINIMUM_AMOUNT_PLACEHOLDER, _format_amount(policy.minimum_booking_amount)
    ).replace(VISITING_CHARGE_PLACEHOLDER, _format_amount(policy.visiting_charge_amount))


def _format_amount(value: Decimal | float | int | str) -> str:
    amount = quantize_money(value)
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount:.2f}"


def compute_platform_fees(
    fees: Sequence[PlatformFeeConfig],
    *,
    sum_of_displayed_prices: Decimal,
) -> FeeSummary:
    """Apply each active fee independently against the same pre-discount base."""

    applied: list[AppliedFee] = []
    total_base = ZERO
    total_tax = ZERO
    for fee in fees:
        if not fee.is_active:
            continue
        value = _non_negative(fee.value, label=f"platform fee '{fee.name}'")
        rate = _non_negative(
            fee.fee_tax_rate_percent, label=f"tax rate on platform fee '{fee.name}'"
        )
        if fee.fee_type is FeeType.PERCENTAGE:
            base_raw = sum_of_displayed_prices * value / _HUNDRED
        else:
            base_raw = value
        fee_base = quantize_money(base_raw)
        fee_tax = quantize_money(base_raw * rate / _HUNDRED)
        applied.append(
            AppliedFee(
                name=fee.name,
                fee_type=fee.fee_type,
                value_applied=value,
                calculated_fee_amount=fee_base,
                tax_rate_percent_on_fee=rate,
                tax_amount_on_fee=fee_tax,
            )
        )
        total_base += fee_base
        total_tax += fee_tax
    return FeeSummary(fees=tuple(applied), total_base=total_base, total_tax=total_tax)


def derive_effective_tax_label(
    lines: Sequence[LineBreakdown],
    visiting_charge: VisitingChargeBreakdown | None,
    fees: Sequence[AppliedFee],
    total_tax: Decimal,
) -> str:
    """Human readable tax caption; display only, never feeds a total."""

    rates = {line.tax_percent for line in lines}
    if len(rates) == 1:
        rate = next(iter(rates))
        uniform = rate > 0
        if visiting_charge is not None and visiting_charge.tax_percent > 0:
            uniform = uniform and visiting_charge.tax_percent == rate
        if any(fee.tax_rate_percent_on_fee > 0 for fee in fees):
            uniform = False
        if uniform:
            return f"Tax ({rate:.1f}%)"
    if total_tax > 0:
        return "Total Tax"
    return "Tax (0%)"


def stale_entry_notices(service_ids: Iterable[UUID]) -> tuple[PricingNotice, ...]:
    return tuple(
        PricingNotice(
            code=NoticeCode.STALE_CART_ENTRY,
            message="A service in your cart is no longer available and was removed.",
            reference=str(service_id),
        )
        for service_id in service_ids
    )


def compute_pricing(
    cart_entries: Iterable[CartEntry],
    catalog: Mapping[UUID, ServicePriceRecord],
    applied_promo: AppliedPromoCodeInfo | None = None,
    platform_fees: Sequence[PlatformFeeConfig] = (),
    minimum_booking_policy: MinimumBookingPolicy | None = None,
    *,
    tier_mode: TierPricingMode = TierPricingMode.VOLUME,
) -> PricingBreakdown:
    """Compute the full checkout breakdown in a single pass.

    Order of evaluation: cart lines, promo discount (on the pre-discount
    displayed sum), visiting charge (on the post-discount sum), platform
    fees (on the pre-discount sum), then totals and the tax label.
    """

    cart = compute_cart_lines(cart_entries, catalog, tier_mode=tier_mode)
    notices = stale_entry_notices(cart.stale_service_ids)
    if cart.stale_service_ids:
        logger.info(
            "Dropped stale cart entries from pricing: %s",
            ", ".join(str(service_id) for service_id in cart.stale_service_ids),
        )

    if not cart.lines:
        return _empty_breakdown(applied_promo, notices)

    sum_displayed = cart.sum_of_displayed_prices
    discount = ZERO
    promo_info = None
    if applied_promo is not None:
        discount = calculate_discount(
            applied_promo.discount_type, applied_promo.discount_value, sum_displayed
        )
        promo_info = replace(applied_promo, calculated_discount=discount)

    policy = minimum_booking_policy or MinimumBookingPolicy.disabled()
    visiting = compute_visiting_charge(
        policy,
        sum_of_displayed_prices=sum_displayed,
        discount_amount=discount,
    )
    fees = compute_platform_fees(platform_fees, sum_of_displayed_prices=sum_displayed)

    visiting_base = visiting.base if visiting else ZERO
    visiting_tax = visiting.tax_amount if visiting else ZERO
    total_tax = cart.total_line_tax + visiting_tax + fees.total_tax
    grand_total = (
        cart.subtotal_base + visiting_base - discount + fees.total_base + total_tax
    )

    return PricingBreakdown(
        line_items=cart.lines,
        sum_of_displayed_prices=sum_displayed,
        subtotal_base=cart.subtotal_base,
        discount_amount=discount,
        applied_promo_code=promo_info,
        visiting_charge=visiting,
        platform_fees=fees.fees,
        platform_fee_total=fees.total_base,
        platform_fee_tax_total=fees.total_tax,
        total_tax=total_tax,
        grand_total=grand_total,
        effective_tax_label=derive_effective_tax_label(
            cart.lines, visiting, fees.fees, total_tax
        ),
        policy_message=render_policy_message(policy) if visiting else None,
        notices=notices,
    )


def _empty_breakdown(
    applied_promo: AppliedPromoCodeInfo | None,
    notices: tuple[PricingNotice, ...],
) -> PricingBreakdown:
    promo_info = None
    if applied_promo is not None:
        promo_info = replace(applied_promo, calculated_discount=ZERO)
    return PricingBreakdown(
        line_items=(),
        sum_of_displayed_prices=ZERO,
        subtotal_base=ZERO,
        discount_amount=ZERO,
        applied_promo_code=promo_info,
        visiting_charge=None,
        platform_fees=(),
        platform_fee_total=ZERO,
        platform_fee_tax_total=ZERO,
        total_tax=ZERO,
        grand_total=ZERO,
        effective_tax_label="Tax (0%)",
        notices=notices,
    )
