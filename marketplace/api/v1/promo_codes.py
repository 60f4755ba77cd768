"""Promo code offers, evaluation and administration."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api import deps
from marketplace.schemas.promo_code import (
    AvailablePromoCodeRead,
    PromoCodeCreate,
    PromoCodeEvaluateRequest,
    PromoCodeRead,
    PromoCodeUpdate,
    PromoEvaluationRead,
)
from marketplace.services import promo_code_service
from marketplace.services.promo_code_service import PromoCodeSnapshot

router = APIRouter(prefix="/promo-codes")
admin_router = APIRouter(
    prefix="/admin/promo-codes", dependencies=[Depends(deps.require_admin)]
)


@router.get(
    "/available",
    response_model=list[AvailablePromoCodeRead],
    summary="List offers for a cart amount",
    dependencies=[deps.DEFAULT_RATE_DEP],
)
async def list_available_promo_codes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    amount: Annotated[Decimal, Query(ge=0)] = Decimal("0"),
) -> list[AvailablePromoCodeRead]:
    promos = await promo_code_service.list_active(session)
    available = promo_code_service.list_available_promo_codes(
        [PromoCodeSnapshot.from_model(promo) for promo in promos],
        amount,
        today=promo_code_service.business_date(),
    )
    return [AvailablePromoCodeRead.model_validate(promo) for promo in available]


@router.post(
    "/evaluate",
    response_model=PromoEvaluationRead,
    summary="Check a promo code against an amount",
    dependencies=[deps.PROMO_RATE_DEP],
)
async def evaluate_promo_code(
    payload: PromoCodeEvaluateRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> PromoEvaluationRead:
    promo_row = await promo_code_service.find_by_code(session, payload.code)
    promo = PromoCodeSnapshot.from_model(promo_row) if promo_row else None
    usage = None
    if promo is not None and promo.max_uses_per_user and caller.user_id:
        usage = await promo_code_service.count_user_usage(
            session, caller.user_id, promo.code
        )
    evaluation = promo_code_service.evaluate_promo_code(
        payload.code,
        payload.amount,
        promo,
        usage,
        today=promo_code_service.business_date(),
    )
    return PromoEvaluationRead.model_validate(evaluation)


@admin_router.get("", response_model=list[PromoCodeRead], summary="List promo codes")
async def list_promo_codes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> list[PromoCodeRead]:
    promos = await promo_code_service.list_promo_codes(session)
    return [PromoCodeRead.model_validate(promo) for promo in promos]


@admin_router.post(
    "",
    response_model=PromoCodeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create promo code",
)
async def create_promo_code(
    payload: PromoCodeCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PromoCodeRead:
    if await promo_code_service.find_by_code(session, payload.code) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Promo code already exists"
        )
    promo = await promo_code_service.create_promo_code(session, payload=payload)
    return PromoCodeRead.model_validate(promo)


async def _get_promo_or_404(session: AsyncSession, promo_code_id: uuid.UUID):
    promo = await promo_code_service.get_promo_code(session, promo_code_id)
    if promo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Promo code not found"
        )
    return promo


@admin_router.get(
    "/{promo_code_id}", response_model=PromoCodeRead, summary="Get promo code"
)
async def get_promo_code(
    promo_code_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PromoCodeRead:
    promo = await _get_promo_or_404(session, promo_code_id)
    return PromoCodeRead.model_validate(promo)


@admin_router.patch(
    "/{promo_code_id}", response_model=PromoCodeRead, summary="Update promo code"
)
async def update_promo_code(
    promo_code_id: uuid.UUID,
    payload: PromoCodeUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PromoCodeRead:
    promo = await _get_promo_or_404(session, promo_code_id)
    try:
        updated = await promo_code_service.update_promo_code(
            session, promo=promo, payload=payload
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return PromoCodeRead.model_validate(updated)
