"""Platform fee and minimum booking policy configuration."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import MinimumBookingSetting, PlatformFee
from marketplace.schemas.platform_settings import MinimumBookingPolicyIn, PlatformFeeIn
from marketplace.services.pricing_engine import (
    MinimumBookingPolicy,
    PlatformFeeConfig,
    to_decimal,
)

_POLICY_ROW_ID = 1


async def list_platform_fee_rows(session: AsyncSession) -> list[PlatformFee]:
    stmt = select(PlatformFee).order_by(PlatformFee.position.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_platform_fees(session: AsyncSession) -> list[PlatformFeeConfig]:
    """Configured fees in display order, inactive ones included."""

    return [
        PlatformFeeConfig(
            name=fee.name,
            fee_type=fee.fee_type,
            value=to_decimal(fee.value),
            fee_tax_rate_percent=to_decimal(fee.fee_tax_rate_percent),
            is_active=fee.is_active,
        )
        for fee in await list_platform_fee_rows(session)
    ]


async def replace_platform_fees(
    session: AsyncSession, *, fees: list[PlatformFeeIn]
) -> list[PlatformFee]:
    """Swap the whole fee list; request order becomes display order."""

    await session.execute(delete(PlatformFee))
    rows = [
        PlatformFee(position=position, **fee.model_dump())
        for position, fee in enumerate(fees)
    ]
    session.add_all(rows)
    await session.commit()
    return await list_platform_fee_rows(session)


async def get_minimum_booking_setting(
    session: AsyncSession,
) -> MinimumBookingSetting | None:
    return await session.get(MinimumBookingSetting, _POLICY_ROW_ID)


async def get_minimum_booking_policy(session: AsyncSession) -> MinimumBookingPolicy:
    """Current policy, or a disabled one when nothing is configured."""

    setting = await get_minimum_booking_setting(session)
    if setting is None:
        return MinimumBookingPolicy.disabled()
    return MinimumBookingPolicy(
        enabled=setting.enabled,
        minimum_booking_amount=to_decimal(setting.minimum_booking_amount),
        visiting_charge_amount=to_decimal(setting.visiting_charge_amount),
        is_tax_inclusive=setting.is_tax_inclusive,
        tax_percent=to_decimal(setting.tax_percent),
        tax_on_charge_enabled=setting.tax_on_charge_enabled,
        description=setting.description,
    )


async def update_minimum_booking_policy(
    session: AsyncSession, *, payload: MinimumBookingPolicyIn
) -> MinimumBookingSetting:
    setting = await get_minimum_booking_setting(session)
    if setting is None:
        setting = MinimumBookingSetting(id=_POLICY_ROW_ID)
        session.add(setting)
    for key, value in payload.model_dump().items():
        setattr(setting, key, value)
    await session.commit()
    await session.refresh(setting)
    return setting
