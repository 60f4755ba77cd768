"""Checkout orchestration: drafts, recomputation and booking placement.

This module is the only caller of the pricing engine. Each mutation of a
draft (cart, promo, payment method) loads fresh snapshots of the catalog,
fees and policy, recomputes the whole breakdown once, and stores it on the
draft. The last write wins.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import get_settings
from marketplace.models import (
    Booking,
    BookingItem,
    BookingStatus,
    CheckoutDraft,
    CheckoutDraftStatus,
    DiscountType,
    PaymentMethod,
)
from marketplace.services import (
    catalog_service,
    platform_settings_service,
    promo_code_service,
)
from marketplace.services.pricing_engine import (
    ZERO,
    AppliedPromoCodeInfo,
    CartEntry,
    MinimumBookingPolicy,
    NoticeCode,
    PlatformFeeConfig,
    PricingBreakdown,
    PricingNotice,
    ServicePriceRecord,
    TierPricingMode,
    compute_cart_lines,
    compute_pricing,
)
from marketplace.services.promo_code_service import (
    PromoCodeSnapshot,
    PromoEvaluation,
)

logger = logging.getLogger(__name__)


class CheckoutError(ValueError):
    """Business rule violation while working on a checkout draft."""


class DraftClosedError(CheckoutError):
    """The draft has already been turned into a booking."""


class PricingChangedError(CheckoutError):
    """The final recompute differs from the breakdown the customer last saw."""


@dataclass(slots=True)
class PricingInputs:
    """Snapshots resolved from storage for one recomputation."""

    entries: list[CartEntry]
    catalog: dict[uuid.UUID, ServicePriceRecord]
    platform_fees: list[PlatformFeeConfig]
    policy: MinimumBookingPolicy
    tier_mode: TierPricingMode


def _entries_from_cart(cart: list[dict[str, Any]]) -> list[CartEntry]:
    return [
        CartEntry(service_id=uuid.UUID(str(item["service_id"])), quantity=int(item["quantity"]))
        for item in cart
    ]


def _cart_from_entries(entries: list[CartEntry]) -> list[dict[str, Any]]:
    return [
        {"service_id": str(entry.service_id), "quantity": entry.quantity}
        for entry in entries
    ]


async def _load_inputs(
    session: AsyncSession, entries: list[CartEntry]
) -> PricingInputs:
    settings = get_settings()
    return PricingInputs(
        entries=entries,
        catalog=await catalog_service.load_price_records(
            session, (entry.service_id for entry in entries)
        ),
        platform_fees=await platform_settings_service.get_platform_fees(session),
        policy=await platform_settings_service.get_minimum_booking_policy(session),
        tier_mode=TierPricingMode(settings.tier_pricing_mode),
    )


async def _usage_count(
    session: AsyncSession, promo: PromoCodeSnapshot, user_id: str | None
) -> int | None:
    if user_id is None or not promo.max_uses_per_user:
        return None
    return await promo_code_service.count_user_usage(session, user_id, promo.code)


async def _evaluate(
    session: AsyncSession,
    *,
    code: str,
    inputs: PricingInputs,
    user_id: str | None,
) -> PromoEvaluation:
    cart = compute_cart_lines(inputs.entries, inputs.catalog, tier_mode=inputs.tier_mode)
    promo_row = await promo_code_service.find_by_code(session, code)
    promo = PromoCodeSnapshot.from_model(promo_row) if promo_row else None
    usage = await _usage_count(session, promo, user_id) if promo else None
    return promo_code_service.evaluate_promo_code(
        code,
        cart.sum_of_displayed_prices,
        promo,
        usage,
        today=promo_code_service.business_date(),
    )


def _price(
    inputs: PricingInputs, applied: AppliedPromoCodeInfo | None
) -> PricingBreakdown:
    return compute_pricing(
        inputs.entries,
        inputs.catalog,
        applied,
        inputs.platform_fees,
        inputs.policy,
        tier_mode=inputs.tier_mode,
    )


async def quote_cart(
    session: AsyncSession,
    *,
    entries: list[CartEntry],
    promo_code: str | None = None,
    user_id: str | None = None,
) -> tuple[PricingBreakdown, PromoEvaluation | None]:
    """Price a cart without persisting anything."""

    inputs = await _load_inputs(session, entries)
    evaluation = None
    applied = None
    if promo_code:
        evaluation = await _evaluate(
            session, code=promo_code, inputs=inputs, user_id=user_id
        )
        applied = evaluation.applied
    return _price(inputs, applied), evaluation


async def refresh_pricing(
    session: AsyncSession, draft: CheckoutDraft
) -> PricingBreakdown:
    """Recompute ``draft`` from fresh snapshots and store the breakdown.

    Stale cart entries are pruned and an applied promo that fails
    re-validation is dropped; both leave a notice on the draft. The caller
    commits.
    """

    inputs = await _load_inputs(session, _entries_from_cart(draft.cart))
    extra_notices: list[PricingNotice] = []

    applied: AppliedPromoCodeInfo | None = None
    if draft.promo_code_id is not None:
        applied, notice = await _revalidate_promo(
            session, draft, draft.promo_code_id, inputs
        )
        if notice is not None:
            extra_notices.append(notice)

    breakdown = _price(inputs, applied)

    if any(entry.service_id not in inputs.catalog for entry in inputs.entries):
        draft.cart = _cart_from_entries(
            [entry for entry in inputs.entries if entry.service_id in inputs.catalog]
        )

    draft.breakdown = breakdown.to_dict()
    draft.notices = [
        notice.to_dict() for notice in (*breakdown.notices, *extra_notices)
    ]
    return breakdown


async def _revalidate_promo(
    session: AsyncSession,
    draft: CheckoutDraft,
    promo_code_id: uuid.UUID,
    inputs: PricingInputs,
) -> tuple[AppliedPromoCodeInfo | None, PricingNotice | None]:
    promo_row = await promo_code_service.get_promo_code(session, promo_code_id)
    promo = PromoCodeSnapshot.from_model(promo_row) if promo_row else None
    usage = await _usage_count(session, promo, draft.user_id) if promo else None
    cart = compute_cart_lines(inputs.entries, inputs.catalog, tier_mode=inputs.tier_mode)
    evaluation = promo_code_service.revalidate_applied_promo(
        _stored_promo(draft, promo_code_id, promo),
        promo,
        cart.sum_of_displayed_prices,
        usage,
        today=promo_code_service.business_date(),
    )
    if evaluation.ok:
        return evaluation.applied, None

    removed_code = draft.promo_code
    draft.promo_code_id = None
    draft.promo_code = None
    return None, PricingNotice(
        code=NoticeCode.PROMO_REMOVED,
        message=f"Promo code removed: {evaluation.message}",
        reference=removed_code,
    )


def _stored_promo(
    draft: CheckoutDraft,
    promo_code_id: uuid.UUID,
    promo: PromoCodeSnapshot | None,
) -> AppliedPromoCodeInfo:
    return AppliedPromoCodeInfo(
        id=promo_code_id,
        code=draft.promo_code or "",
        discount_type=promo.discount_type if promo else DiscountType.FIXED,
        discount_value=promo.discount_value if promo else ZERO,
        calculated_discount=ZERO,
    )


def _ensure_open(draft: CheckoutDraft) -> None:
    if draft.status is not CheckoutDraftStatus.OPEN:
        raise DraftClosedError("Checkout draft has already been placed")


async def get_draft(
    session: AsyncSession, draft_id: uuid.UUID
) -> CheckoutDraft | None:
    return await session.get(CheckoutDraft, draft_id)


async def create_draft(
    session: AsyncSession,
    *,
    entries: list[CartEntry],
    user_id: str | None = None,
) -> CheckoutDraft:
    draft = CheckoutDraft(
        user_id=user_id,
        status=CheckoutDraftStatus.OPEN,
        cart=_cart_from_entries(entries),
        notices=[],
    )
    session.add(draft)
    await refresh_pricing(session, draft)
    await session.commit()
    await session.refresh(draft)
    return draft


async def replace_cart(
    session: AsyncSession, *, draft: CheckoutDraft, entries: list[CartEntry]
) -> CheckoutDraft:
    _ensure_open(draft)
    draft.cart = _cart_from_entries(entries)
    await refresh_pricing(session, draft)
    await session.commit()
    await session.refresh(draft)
    return draft


async def apply_promo_code(
    session: AsyncSession, *, draft: CheckoutDraft, code: str
) -> PromoEvaluation:
    """Validate and attach ``code``; a rejected code also clears any prior one."""

    _ensure_open(draft)
    draft.promo_code_id = None
    draft.promo_code = None

    inputs = await _load_inputs(session, _entries_from_cart(draft.cart))
    evaluation = await _evaluate(
        session, code=code, inputs=inputs, user_id=draft.user_id
    )
    if evaluation.applied is not None:
        draft.promo_code_id = evaluation.applied.id
        draft.promo_code = evaluation.applied.code
    else:
        logger.info(
            "Promo %s rejected for draft %s: %s",
            promo_code_service.normalize_code(code),
            draft.id,
            evaluation.rejection_reason,
        )

    await refresh_pricing(session, draft)
    await session.commit()
    await session.refresh(draft)
    return evaluation


async def remove_promo_code(
    session: AsyncSession, *, draft: CheckoutDraft
) -> CheckoutDraft:
    _ensure_open(draft)
    draft.promo_code_id = None
    draft.promo_code = None
    await refresh_pricing(session, draft)
    await session.commit()
    await session.refresh(draft)
    return draft


async def set_payment_method(
    session: AsyncSession, *, draft: CheckoutDraft, method: PaymentMethod
) -> CheckoutDraft:
    _ensure_open(draft)
    draft.payment_method = method
    await refresh_pricing(session, draft)
    await session.commit()
    await session.refresh(draft)
    return draft


def _stored_grand_total(draft: CheckoutDraft) -> Decimal | None:
    if not draft.breakdown:
        return None
    return Decimal(draft.breakdown["grand_total"])


def _booking_reference() -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    return f"BK-{stamp}-{secrets.token_hex(3).upper()}"


async def place_booking(
    session: AsyncSession, *, draft: CheckoutDraft
) -> Booking:
    """Turn the draft into a booking carrying a frozen copy of its pricing."""

    _ensure_open(draft)
    if draft.payment_method is None:
        raise CheckoutError("Select a payment method before placing the booking")

    confirmed_total = _stored_grand_total(draft)
    breakdown = await refresh_pricing(session, draft)
    if not breakdown.line_items:
        await session.commit()
        raise CheckoutError("Cart is empty")
    if draft.notices or breakdown.grand_total != confirmed_total:
        # Keep the refreshed draft so the customer can review the new total.
        await session.commit()
        logger.info(
            "Draft %s repriced at placement: %s -> %s",
            draft.id,
            confirmed_total,
            breakdown.grand_total,
        )
        raise PricingChangedError(
            "Pricing changed since it was last shown; review the updated total"
        )

    promo = breakdown.applied_promo_code
    visiting = breakdown.visiting_charge
    booking = Booking(
        reference=_booking_reference(),
        draft_id=draft.id,
        user_id=draft.user_id,
        status=(
            BookingStatus.CONFIRMED
            if draft.payment_method is PaymentMethod.PAY_AFTER_SERVICE
            else BookingStatus.PENDING_PAYMENT
        ),
        payment_method=draft.payment_method,
        currency=get_settings().currency,
        sum_of_displayed_prices=breakdown.sum_of_displayed_prices,
        sub_total=breakdown.subtotal_base,
        visiting_charge=visiting.base if visiting else ZERO,
        visiting_charge_displayed=(
            visiting.displayed if visiting else ZERO
        ),
        discount_code=promo.code if promo else None,
        discount_amount=breakdown.discount_amount,
        platform_fee_total=breakdown.platform_fee_total,
        tax_amount=breakdown.total_tax,
        total_amount=breakdown.grand_total,
        amount_minor_units=breakdown.amount_due_minor_units,
        applied_platform_fees=[fee.to_dict() for fee in breakdown.platform_fees],
        items=[
            BookingItem(
                service_id=line.service_id,
                name=line.name,
                quantity=line.quantity,
                price_per_unit=line.unit_price,
                is_tax_inclusive=line.is_tax_inclusive,
                tax_percent_applied=line.tax_percent,
                tax_amount=line.tax_amount,
                line_base_total=line.line_base_total,
            )
            for line in breakdown.line_items
        ],
    )
    session.add(booking)

    if promo is not None and breakdown.discount_amount > 0:
        await promo_code_service.record_usage(session, promo.id)

    draft.status = CheckoutDraftStatus.PLACED
    await session.commit()
    await session.refresh(booking, attribute_names=["items"])
    logger.info(
        "Booking %s placed from draft %s for %s minor units",
        booking.reference,
        draft.id,
        booking.amount_minor_units,
    )
    return booking


async def get_booking(
    session: AsyncSession, booking_id: uuid.UUID
) -> Booking | None:
    return await session.get(Booking, booking_id)
