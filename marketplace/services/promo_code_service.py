"""Promo code evaluation, listing and persistence."""

from __future__ import annotations

import datetime
import enum
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import get_settings
from marketplace.models import (
    Booking,
    DiscountType,
    PromoCode,
)
from marketplace.schemas.promo_code import PromoCodeCreate, PromoCodeUpdate
from marketplace.services.pricing_engine import (
    AppliedPromoCodeInfo,
    calculate_discount,
    to_decimal,
)

logger = logging.getLogger(__name__)


class PromoRejectionReason(str, enum.Enum):
    """Why a promo code could not be applied, in evaluation order."""

    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    MINIMUM_NOT_MET = "minimum_not_met"
    GLOBAL_LIMIT_REACHED = "global_limit_reached"
    PER_USER_LIMIT_REACHED = "per_user_limit_reached"


_REJECTION_MESSAGES: dict[PromoRejectionReason, str] = {
    PromoRejectionReason.NOT_FOUND: "This promo code does not exist.",
    PromoRejectionReason.INACTIVE: "This promo code is currently not active.",
    PromoRejectionReason.NOT_YET_VALID: "This promo code is not active yet.",
    PromoRejectionReason.EXPIRED: "This promo code has expired.",
    PromoRejectionReason.MINIMUM_NOT_MET: (
        "Your cart total does not meet the minimum booking amount for this code."
    ),
    PromoRejectionReason.GLOBAL_LIMIT_REACHED: (
        "This promo code has reached its usage limit."
    ),
    PromoRejectionReason.PER_USER_LIMIT_REACHED: (
        "You have already used this promo code the maximum allowed number of times."
    ),
}


@dataclass(frozen=True, slots=True)
class PromoCodeSnapshot:
    """Read-only view of a promo code as loaded from storage."""

    id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    uses_count: int = 0
    min_booking_amount: Decimal | None = None
    max_uses: int | None = None
    max_uses_per_user: int | None = None
    valid_from: datetime.date | None = None
    valid_until: datetime.date | None = None
    is_active: bool = True
    is_hidden: bool = False
    description: str | None = None

    @classmethod
    def from_model(cls, promo: PromoCode) -> "PromoCodeSnapshot":
        return cls(
            id=promo.id,
            code=promo.code,
            discount_type=promo.discount_type,
            discount_value=to_decimal(promo.discount_value),
            uses_count=promo.uses_count or 0,
            min_booking_amount=(
                to_decimal(promo.min_booking_amount)
                if promo.min_booking_amount is not None
                else None
            ),
            max_uses=promo.max_uses,
            max_uses_per_user=promo.max_uses_per_user,
            valid_from=promo.valid_from,
            valid_until=promo.valid_until,
            is_active=promo.is_active,
            is_hidden=promo.is_hidden,
            description=promo.description,
        )


@dataclass(frozen=True, slots=True)
class PromoEvaluation:
    """Either an applied promo or the first rule it failed."""

    applied: AppliedPromoCodeInfo | None = None
    rejection: PromoRejectionReason | None = None

    @property
    def ok(self) -> bool:
        return self.applied is not None

    @property
    def rejection_reason(self) -> str | None:
        return self.rejection.value if self.rejection else None

    @property
    def message(self) -> str:
        if self.applied is not None:
            return f"Discount of {self.applied.calculated_discount:.2f} applied."
        if self.rejection is None:
            raise ValueError("evaluation has neither a discount nor a rejection")
        return _REJECTION_MESSAGES[self.rejection]


def normalize_code(code: str) -> str:
    return code.strip().upper()


def business_date() -> datetime.date:
    """Today's date in the marketplace's pricing timezone."""
    settings = get_settings()
    return datetime.datetime.now(ZoneInfo(settings.pricing_timezone)).date()


def _eligibility_failure(
    promo: PromoCodeSnapshot,
    sum_of_displayed_prices: Decimal,
    today: datetime.date,
) -> PromoRejectionReason | None:
    # Limits of 0 mean unlimited.
    if not promo.is_active:
        return PromoRejectionReason.INACTIVE
    if promo.valid_from is not None and today < promo.valid_from:
        return PromoRejectionReason.NOT_YET_VALID
    if promo.valid_until is not None and today > promo.valid_until:
        return PromoRejectionReason.EXPIRED
    if (
        promo.min_booking_amount is not None
        and sum_of_displayed_prices < promo.min_booking_amount
    ):
        return PromoRejectionReason.MINIMUM_NOT_MET
    if promo.max_uses and promo.uses_count >= promo.max_uses:
        return PromoRejectionReason.GLOBAL_LIMIT_REACHED
    return None


def evaluate_promo_code(
    code: str,
    sum_of_displayed_prices: Decimal,
    promo: PromoCodeSnapshot | None,
    user_usage_count: int | None = None,
    *,
    today: datetime.date | None = None,
) -> PromoEvaluation:
    """Validate ``code`` against ``promo`` and compute its clamped discount.

    Rules short-circuit in a fixed order: existence, active flag, start
    date, end date, minimum amount, global cap, per-user cap. The per-user
    cap is only checked when ``user_usage_count`` is known.
    """

    if promo is None or normalize_code(promo.code) != normalize_code(code):
        return PromoEvaluation(rejection=PromoRejectionReason.NOT_FOUND)

    subtotal = to_decimal(sum_of_displayed_prices)
    reason = _eligibility_failure(promo, subtotal, today or business_date())
    if reason is not None:
        return PromoEvaluation(rejection=reason)

    if (
        promo.max_uses_per_user
        and user_usage_count is not None
        and user_usage_count >= promo.max_uses_per_user
    ):
        return PromoEvaluation(rejection=PromoRejectionReason.PER_USER_LIMIT_REACHED)

    discount = calculate_discount(promo.discount_type, promo.discount_value, subtotal)
    return PromoEvaluation(
        applied=AppliedPromoCodeInfo(
            id=promo.id,
            code=promo.code,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            calculated_discount=discount,
        )
    )


def revalidate_applied_promo(
    applied: AppliedPromoCodeInfo,
    promo: PromoCodeSnapshot | None,
    sum_of_displayed_prices: Decimal,
    user_usage_count: int | None = None,
    *,
    today: datetime.date | None = None,
) -> PromoEvaluation:
    """Re-run every rule for an already applied promo after a cart change."""

    evaluation = evaluate_promo_code(
        applied.code,
        sum_of_displayed_prices,
        promo,
        user_usage_count,
        today=today,
    )
    if not evaluation.ok:
        logger.info(
            "Applied promo %s no longer valid (%s)",
            applied.code,
            evaluation.rejection_reason,
        )
    return evaluation


def list_available_promo_codes(
    promos: list[PromoCodeSnapshot],
    sum_of_displayed_prices: Decimal,
    *,
    today: datetime.date | None = None,
) -> list[PromoCodeSnapshot]:
    """Offers to advertise for a cart; hidden codes are never listed."""

    current = today or business_date()
    subtotal = to_decimal(sum_of_displayed_prices)
    return [
        promo
        for promo in promos
        if not promo.is_hidden
        and _eligibility_failure(promo, subtotal, current) is None
    ]


async def find_by_code(session: AsyncSession, code: str) -> PromoCode | None:
    stmt = select(PromoCode).where(PromoCode.code == normalize_code(code))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_promo_code(
    session: AsyncSession, promo_code_id: uuid.UUID
) -> PromoCode | None:
    return await session.get(PromoCode, promo_code_id)


async def list_active(session: AsyncSession) -> list[PromoCode]:
    stmt: Select[tuple[PromoCode]] = (
        select(PromoCode)
        .where(PromoCode.is_active.is_(True))
        .order_by(PromoCode.code.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_promo_codes(session: AsyncSession) -> list[PromoCode]:
    result = await session.execute(select(PromoCode).order_by(PromoCode.code.asc()))
    return list(result.scalars().all())


async def count_user_usage(session: AsyncSession, user_id: str, code: str) -> int:
    """Number of bookings ``user_id`` has placed with ``code``."""

    stmt = select(func.count(Booking.id)).where(
        Booking.user_id == user_id,
        Booking.discount_code == normalize_code(code),
    )
    return int(await session.scalar(stmt) or 0)


async def record_usage(session: AsyncSession, promo_code_id: uuid.UUID) -> None:
    """Increment the global usage counter; caller commits."""

    await session.execute(
        update(PromoCode)
        .where(PromoCode.id == promo_code_id)
        .values(uses_count=PromoCode.uses_count + 1)
    )


async def create_promo_code(
    session: AsyncSession, *, payload: PromoCodeCreate
) -> PromoCode:
    promo = PromoCode(**payload.model_dump(), uses_count=0)
    session.add(promo)
    await session.commit()
    await session.refresh(promo)
    return promo


async def update_promo_code(
    session: AsyncSession, *, promo: PromoCode, payload: PromoCodeUpdate
) -> PromoCode:
    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        setattr(promo, key, value)
    if (
        promo.discount_type is DiscountType.PERCENTAGE
        and promo.discount_value > Decimal("100")
    ):
        await session.rollback()
        raise ValueError("percentage discount cannot exceed 100")
    if (
        promo.valid_from is not None
        and promo.valid_until is not None
        and promo.valid_until < promo.valid_from
    ):
        await session.rollback()
        raise ValueError("valid_until must not be before valid_from")
    await session.commit()
    await session.refresh(promo)
    return promo
