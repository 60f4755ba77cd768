"""Platform fee and minimum booking policy administration."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api import deps
from marketplace.schemas.platform_settings import (
    MinimumBookingPolicyIn,
    MinimumBookingPolicyRead,
    PlatformFeeIn,
    PlatformFeeRead,
)
from marketplace.services import platform_settings_service

router = APIRouter(prefix="/admin", dependencies=[Depends(deps.require_admin)])


@router.get(
    "/platform-fees",
    response_model=list[PlatformFeeRead],
    summary="List platform fees",
)
async def list_platform_fees(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> list[PlatformFeeRead]:
    fees = await platform_settings_service.list_platform_fee_rows(session)
    return [PlatformFeeRead.model_validate(fee) for fee in fees]


@router.put(
    "/platform-fees",
    response_model=list[PlatformFeeRead],
    summary="Replace platform fees",
)
async def replace_platform_fees(
    payload: list[PlatformFeeIn],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> list[PlatformFeeRead]:
    fees = await platform_settings_service.replace_platform_fees(session, fees=payload)
    return [PlatformFeeRead.model_validate(fee) for fee in fees]


@router.get(
    "/minimum-booking-policy",
    response_model=MinimumBookingPolicyRead,
    summary="Get minimum booking policy",
)
async def get_minimum_booking_policy(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> MinimumBookingPolicyRead:
    policy = await platform_settings_service.get_minimum_booking_policy(session)
    return MinimumBookingPolicyRead.model_validate(policy)


@router.put(
    "/minimum-booking-policy",
    response_model=MinimumBookingPolicyRead,
    summary="Update minimum booking policy",
)
async def update_minimum_booking_policy(
    payload: MinimumBookingPolicyIn,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> MinimumBookingPolicyRead:
    setting = await platform_settings_service.update_minimum_booking_policy(
        session, payload=payload
    )
    return MinimumBookingPolicyRead.model_validate(setting)
