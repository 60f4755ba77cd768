"""Stateless cart pricing endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api import deps
from marketplace.schemas.pricing import (
    PricingBreakdownRead,
    PricingQuoteRead,
    PricingQuoteRequest,
)
from marketplace.services import checkout_service
from marketplace.services.pricing_engine import CartEntry

router = APIRouter(prefix="/pricing")


@router.post(
    "/quote",
    response_model=PricingQuoteRead,
    summary="Quote cart pricing",
    dependencies=[deps.DEFAULT_RATE_DEP],
)
async def quote_cart_pricing(
    payload: PricingQuoteRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> PricingQuoteRead:
    breakdown, evaluation = await checkout_service.quote_cart(
        session,
        entries=[
            CartEntry(service_id=item.service_id, quantity=item.quantity)
            for item in payload.items
        ],
        promo_code=payload.promo_code,
        user_id=caller.user_id,
    )
    return PricingQuoteRead(
        breakdown=PricingBreakdownRead.model_validate(breakdown.to_dict()),
        promo_rejection_reason=evaluation.rejection_reason if evaluation else None,
        promo_message=evaluation.message if evaluation else None,
    )
