"""Tests for the pure checkout pricing engine."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

import pytest

from marketplace.models import DiscountType, FeeType
from marketplace.services.pricing_engine import (
    ZERO,
    AppliedPromoCodeInfo,
    CartEntry,
    MinimumBookingPolicy,
    NoticeCode,
    PlatformFeeConfig,
    PriceTier,
    ServicePriceRecord,
    TierPricingMode,
    calculate_discount,
    compute_pricing,
    get_base_price,
    quantize_money,
    resolve_unit_price,
    to_minor_units,
)


def _service(
    price: str,
    *,
    name: str = "Deep Cleaning",
    inclusive: bool = False,
    tax: str | None = None,
    discounted: str | None = None,
    tiers: tuple[PriceTier, ...] = (),
) -> ServicePriceRecord:
    return ServicePriceRecord(
        id=uuid.uuid4(),
        name=name,
        price=Decimal(price),
        discounted_price=Decimal(discounted) if discounted is not None else None,
        is_tax_inclusive=inclusive,
        tax_percent=Decimal(tax) if tax is not None else None,
        has_price_variants=bool(tiers),
        price_variants=tiers,
    )


def _catalog(*records: ServicePriceRecord) -> dict[uuid.UUID, ServicePriceRecord]:
    return {record.id: record for record in records}


def _promo(
    discount_type: DiscountType, value: str, code: str = "SAVE"
) -> AppliedPromoCodeInfo:
    return AppliedPromoCodeInfo(
        id=uuid.uuid4(),
        code=code,
        discount_type=discount_type,
        discount_value=Decimal(value),
        calculated_discount=ZERO,
    )


def _policy(**overrides) -> MinimumBookingPolicy:
    values = {
        "enabled": True,
        "minimum_booking_amount": Decimal("500"),
        "visiting_charge_amount": Decimal("99"),
        "is_tax_inclusive": False,
        "tax_percent": Decimal("18"),
        "tax_on_charge_enabled": True,
    }
    values.update(overrides)
    return MinimumBookingPolicy(**values)


def _assert_totals_consistent(breakdown) -> None:
    visiting_base = breakdown.visiting_charge.base if breakdown.visiting_charge else ZERO
    visiting_tax = (
        breakdown.visiting_charge.tax_amount if breakdown.visiting_charge else ZERO
    )
    line_tax = sum((line.tax_amount for line in breakdown.line_items), ZERO)
    fee_base = sum((fee.calculated_fee_amount for fee in breakdown.platform_fees), ZERO)
    fee_tax = sum((fee.tax_amount_on_fee for fee in breakdown.platform_fees), ZERO)

    assert breakdown.total_tax == line_tax + visiting_tax + fee_tax
    assert breakdown.grand_total == (
        breakdown.subtotal_base
        + visiting_base
        - breakdown.discount_amount
        + fee_base
        + breakdown.total_tax
    )
    assert ZERO <= breakdown.discount_amount <= breakdown.sum_of_displayed_prices


@pytest.mark.parametrize("rate", ["0", "5", "12", "18", "28"])
@pytest.mark.parametrize("base", ["0", "1", "99.99", "123.45", "100000"])
def test_base_price_strips_inclusive_tax(base: str, rate: str) -> None:
    displayed = Decimal(base) * (1 + Decimal(rate) / 100)
    assert quantize_money(get_base_price(displayed, True, Decimal(rate))) == Decimal(base)


def test_base_price_ignores_exclusive_and_non_positive_rates() -> None:
    assert get_base_price(Decimal("118"), False, Decimal("18")) == Decimal("118")
    assert get_base_price(Decimal("118"), True, Decimal("0")) == Decimal("118")
    assert get_base_price(Decimal("118"), True, Decimal("-5")) == Decimal("118")
    assert get_base_price(Decimal("118"), True, None) == Decimal("118")


def test_inclusive_price_splits_into_base_and_tax() -> None:
    service = _service("118", inclusive=True, tax="18")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)], _catalog(service)
    )

    line = breakdown.line_items[0]
    assert line.line_base_total == Decimal("100.00")
    assert line.tax_amount == Decimal("18.00")
    assert breakdown.sum_of_displayed_prices == Decimal("118.00")
    assert breakdown.grand_total == Decimal("118.00")
    assert breakdown.effective_tax_label == "Tax (18.0%)"


def test_percentage_promo_without_surcharge_when_above_minimum() -> None:
    service = _service("1000")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        _promo(DiscountType.PERCENTAGE, "10", code="SAVE10"),
        minimum_booking_policy=_policy(),
    )

    assert breakdown.discount_amount == Decimal("100.00")
    assert breakdown.applied_promo_code is not None
    assert breakdown.applied_promo_code.calculated_discount == Decimal("100.00")
    assert breakdown.visiting_charge is None
    assert breakdown.grand_total == Decimal("900.00")
    assert breakdown.effective_tax_label == "Tax (0%)"


def test_surcharge_added_below_minimum() -> None:
    service = _service("400")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        minimum_booking_policy=_policy(
            description="Orders below {MINIMUM_BOOKING_AMOUNT} pay {VISITING_CHARGE}."
        ),
    )

    visiting = breakdown.visiting_charge
    assert visiting is not None
    assert visiting.displayed == Decimal("99.00")
    assert visiting.base == Decimal("99.00")
    assert visiting.tax_amount == Decimal("17.82")
    assert breakdown.total_tax == Decimal("17.82")
    assert breakdown.grand_total == Decimal("516.82")
    assert breakdown.effective_tax_label == "Total Tax"
    assert breakdown.policy_message == "Orders below 500 pay 99."


def test_surcharge_uses_post_discount_subtotal() -> None:
    service = _service("500")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        _promo(DiscountType.FIXED, "100"),
        minimum_booking_policy=_policy(),
    )

    assert breakdown.discount_amount == Decimal("100.00")
    assert breakdown.visiting_charge is not None
    assert breakdown.grand_total == Decimal("516.82")
    _assert_totals_consistent(breakdown)


def test_no_surcharge_at_exact_minimum() -> None:
    service = _service("600")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        _promo(DiscountType.FIXED, "100"),
        minimum_booking_policy=_policy(),
    )

    assert breakdown.visiting_charge is None
    assert breakdown.policy_message is None
    assert breakdown.grand_total == Decimal("500.00")


def test_no_surcharge_when_discount_covers_everything() -> None:
    service = _service("300")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        _promo(DiscountType.FIXED, "1000"),
        minimum_booking_policy=_policy(),
    )

    assert breakdown.discount_amount == Decimal("300.00")
    assert breakdown.visiting_charge is None
    assert breakdown.grand_total == Decimal("0.00")


def test_disabled_policy_never_adds_surcharge() -> None:
    service = _service("100")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        minimum_booking_policy=_policy(enabled=False),
    )
    assert breakdown.visiting_charge is None


def test_inclusive_surcharge_untaxed_when_tax_on_charge_disabled() -> None:
    service = _service("100")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        minimum_booking_policy=_policy(
            visiting_charge_amount=Decimal("118"),
            is_tax_inclusive=True,
            tax_on_charge_enabled=False,
        ),
    )

    visiting = breakdown.visiting_charge
    assert visiting is not None
    assert visiting.base == Decimal("100.00")
    assert visiting.tax_amount == Decimal("0.00")
    assert breakdown.grand_total == Decimal("200.00")


def test_platform_fees_use_pre_discount_subtotal() -> None:
    service = _service("1000")
    fees = [
        PlatformFeeConfig(
            name="Convenience Fee",
            fee_type=FeeType.PERCENTAGE,
            value=Decimal("5"),
            fee_tax_rate_percent=Decimal("18"),
        ),
        PlatformFeeConfig(
            name="Safety Fee",
            fee_type=FeeType.FIXED,
            value=Decimal("20"),
            is_active=False,
        ),
    ]
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        _promo(DiscountType.PERCENTAGE, "10"),
        fees,
    )

    assert len(breakdown.platform_fees) == 1
    fee = breakdown.platform_fees[0]
    assert fee.name == "Convenience Fee"
    assert fee.calculated_fee_amount == Decimal("50.00")
    assert fee.tax_amount_on_fee == Decimal("9.00")
    assert breakdown.platform_fee_total == Decimal("50.00")
    assert breakdown.grand_total == Decimal("959.00")
    assert breakdown.effective_tax_label == "Total Tax"


def test_fees_are_not_chained() -> None:
    service = _service("1000")
    fees = [
        PlatformFeeConfig(name="A", fee_type=FeeType.PERCENTAGE, value=Decimal("10")),
        PlatformFeeConfig(name="B", fee_type=FeeType.PERCENTAGE, value=Decimal("10")),
    ]
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)], _catalog(service), None, fees
    )
    assert [fee.calculated_fee_amount for fee in breakdown.platform_fees] == [
        Decimal("100.00"),
        Decimal("100.00"),
    ]


def test_discount_is_clamped_to_displayed_sum() -> None:
    total = Decimal("1000.00")
    assert calculate_discount(DiscountType.FIXED, Decimal("5000"), total) == total
    assert calculate_discount(DiscountType.PERCENTAGE, Decimal("150"), total) == total
    assert calculate_discount(DiscountType.FIXED, Decimal("-10"), total) == ZERO
    assert calculate_discount(
        DiscountType.PERCENTAGE, Decimal("10"), Decimal("1234.56")
    ) == Decimal("123.46")


def test_discounted_price_only_used_when_lower() -> None:
    cheaper = _service("599", discounted="499")
    pricier = _service("200", discounted="250")
    assert resolve_unit_price(cheaper, 1) == Decimal("499")
    assert resolve_unit_price(pricier, 1) == Decimal("200")


def test_volume_tier_applies_to_whole_line() -> None:
    tiers = (
        PriceTier(from_quantity=1, to_quantity=2, price=Decimal("199")),
        PriceTier(from_quantity=3, to_quantity=5, price=Decimal("179")),
        PriceTier(from_quantity=6, price=Decimal("159")),
    )
    service = _service("199", tiers=tiers)

    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=4)], _catalog(service)
    )
    line = breakdown.line_items[0]
    assert line.unit_price == Decimal("179.00")
    assert line.line_displayed_total == Decimal("716.00")
    assert resolve_unit_price(service, 7) == Decimal("159")


def test_incremental_tiers_price_each_unit() -> None:
    tiers = (
        PriceTier(from_quantity=1, to_quantity=2, price=Decimal("199")),
        PriceTier(from_quantity=3, price=Decimal("179")),
    )
    service = _service("199", tiers=tiers)

    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=4)],
        _catalog(service),
        tier_mode=TierPricingMode.INCREMENTAL,
    )
    line = breakdown.line_items[0]
    assert line.line_displayed_total == Decimal("756.00")
    assert line.unit_price == Decimal("189.00")


def test_tier_gap_falls_back_to_last_started_band() -> None:
    tiers = (
        PriceTier(from_quantity=1, to_quantity=2, price=Decimal("100")),
        PriceTier(from_quantity=5, to_quantity=6, price=Decimal("80")),
    )
    service = _service("120", tiers=tiers)
    assert resolve_unit_price(service, 3) == Decimal("100")
    assert resolve_unit_price(service, 10) == Decimal("80")


def test_matched_tier_overrides_discounted_price() -> None:
    service = _service(
        "200",
        discounted="150",
        tiers=(PriceTier(from_quantity=1, price=Decimal("180")),),
    )
    assert resolve_unit_price(service, 1) == Decimal("180")


def test_tiers_ignored_when_variants_disabled() -> None:
    service = ServicePriceRecord(
        id=uuid.uuid4(),
        name="Painting",
        price=Decimal("300"),
        has_price_variants=False,
        price_variants=(PriceTier(from_quantity=1, price=Decimal("10")),),
    )
    assert resolve_unit_price(service, 1) == Decimal("300")


def test_tax_label_shared_rate_with_matching_surcharge() -> None:
    first = _service("100", tax="18")
    second = _service("50", tax="18.00", name="Fan Repair")
    breakdown = compute_pricing(
        [
            CartEntry(service_id=first.id, quantity=1),
            CartEntry(service_id=second.id, quantity=2),
        ],
        _catalog(first, second),
        minimum_booking_policy=_policy(),
    )
    assert breakdown.visiting_charge is not None
    assert breakdown.effective_tax_label == "Tax (18.0%)"


def test_tax_label_mixed_rates() -> None:
    first = _service("100", tax="18")
    second = _service("100", tax="5", name="Grocery Pickup")
    breakdown = compute_pricing(
        [
            CartEntry(service_id=first.id, quantity=1),
            CartEntry(service_id=second.id, quantity=1),
        ],
        _catalog(first, second),
    )
    assert breakdown.effective_tax_label == "Total Tax"


def test_tax_label_surcharge_rate_differs() -> None:
    service = _service("100", tax="18")
    breakdown = compute_pricing(
        [CartEntry(service_id=service.id, quantity=1)],
        _catalog(service),
        minimum_booking_policy=_policy(tax_percent=Decimal("12")),
    )
    assert breakdown.effective_tax_label == "Total Tax"


def test_empty_cart_is_all_zero() -> None:
    fees = [PlatformFeeConfig(name="Fixed", fee_type=FeeType.FIXED, value=Decimal("29"))]
    breakdown = compute_pricing([], {}, None, fees, _policy())

    assert breakdown.line_items == ()
    assert breakdown.platform_fees == ()
    assert breakdown.visiting_charge is None
    assert breakdown.grand_total == ZERO
    assert breakdown.amount_due_minor_units == 0
    assert breakdown.effective_tax_label == "Tax (0%)"


def test_negative_tax_treated_as_zero_and_logged(
    caplog: pytest.LogCaptureFixture,
) -> None:
    service = _service("100", tax="-5")
    with caplog.at_level(logging.WARNING, logger="marketplace.services.pricing_engine"):
        breakdown = compute_pricing(
            [CartEntry(service_id=service.id, quantity=1)], _catalog(service)
        )

    assert breakdown.line_items[0].tax_amount == ZERO
    assert breakdown.grand_total == Decimal("100.00")
    assert "treated as zero" in caplog.text


def test_missing_catalog_record_is_skipped_with_notice() -> None:
    service = _service("100")
    missing_id = uuid.uuid4()
    breakdown = compute_pricing(
        [
            CartEntry(service_id=service.id, quantity=1),
            CartEntry(service_id=missing_id, quantity=3),
        ],
        _catalog(service),
    )

    assert len(breakdown.line_items) == 1
    assert breakdown.grand_total == Decimal("100.00")
    assert len(breakdown.notices) == 1
    notice = breakdown.notices[0]
    assert notice.code is NoticeCode.STALE_CART_ENTRY
    assert notice.reference == str(missing_id)


def test_compute_pricing_is_idempotent() -> None:
    inclusive = _service("499", inclusive=True, tax="18")
    exclusive = _service("179", tax="18", name="Switch Repair")
    catalog = _catalog(inclusive, exclusive)
    entries = [
        CartEntry(service_id=inclusive.id, quantity=3),
        CartEntry(service_id=exclusive.id, quantity=2),
    ]
    promo = _promo(DiscountType.PERCENTAGE, "7.5")
    fees = [
        PlatformFeeConfig(
            name="Convenience Fee",
            fee_type=FeeType.PERCENTAGE,
            value=Decimal("2"),
            fee_tax_rate_percent=Decimal("18"),
        )
    ]

    first = compute_pricing(entries, catalog, promo, fees, _policy())
    second = compute_pricing(entries, catalog, promo, fees, _policy())
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_totals_are_consistent_for_mixed_cart() -> None:
    inclusive = _service("499", inclusive=True, tax="18")
    exclusive = _service("179", tax="18", name="Switch Repair")
    untaxed = _service("99.99", name="Inspection")
    catalog = _catalog(inclusive, exclusive, untaxed)
    entries = [
        CartEntry(service_id=inclusive.id, quantity=3),
        CartEntry(service_id=exclusive.id, quantity=2),
        CartEntry(service_id=untaxed.id, quantity=1),
    ]
    fees = [
        PlatformFeeConfig(
            name="Convenience Fee",
            fee_type=FeeType.PERCENTAGE,
            value=Decimal("2"),
            fee_tax_rate_percent=Decimal("18"),
        ),
        PlatformFeeConfig(name="Platform Fee", fee_type=FeeType.FIXED, value=Decimal("29")),
    ]
    policy = _policy(
        minimum_booking_amount=Decimal("5000"),
        visiting_charge_amount=Decimal("99"),
        is_tax_inclusive=True,
    )

    breakdown = compute_pricing(
        entries, catalog, _promo(DiscountType.PERCENTAGE, "7.5"), fees, policy
    )

    assert breakdown.visiting_charge is not None
    _assert_totals_consistent(breakdown)
    assert breakdown.amount_due_minor_units == int(breakdown.grand_total * 100)


def test_money_rounds_half_up() -> None:
    assert quantize_money(Decimal("2.345")) == Decimal("2.35")
    assert quantize_money(Decimal("2.344")) == Decimal("2.34")
    assert to_minor_units(Decimal("10.005")) == 1001
    assert to_minor_units(0.1) == 10


def test_breakdown_serializes_money_as_strings() -> None:
    service = _service("118", inclusive=True, tax="18")
    data = compute_pricing(
        [CartEntry(service_id=service.id, quantity=2)], _catalog(service)
    ).to_dict()

    assert data["grand_total"] == "236.00"
    assert data["subtotal_base"] == "200.00"
    assert data["total_tax"] == "36.00"
    assert data["amount_due_minor_units"] == 23600
    assert data["line_items"][0]["service_id"] == str(service.id)
