"""Checkout draft and booking endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api import deps
from marketplace.models import Booking, CheckoutDraft
from marketplace.schemas.checkout import (
    ApplyPromoCodeRead,
    ApplyPromoCodeRequest,
    BookingRead,
    CartUpdate,
    CheckoutDraftCreate,
    CheckoutDraftRead,
    PaymentMethodUpdate,
)
from marketplace.schemas.pricing import CartEntryIn
from marketplace.schemas.promo_code import PromoEvaluationRead
from marketplace.services import checkout_service
from marketplace.services.checkout_service import (
    CheckoutError,
    DraftClosedError,
    PricingChangedError,
)
from marketplace.services.pricing_engine import CartEntry

router = APIRouter(prefix="/checkout")


def _entries(items: list[CartEntryIn]) -> list[CartEntry]:
    return [
        CartEntry(service_id=item.service_id, quantity=item.quantity) for item in items
    ]


def _checkout_http_error(exc: CheckoutError) -> HTTPException:
    code = (
        status.HTTP_409_CONFLICT
        if isinstance(exc, (DraftClosedError, PricingChangedError))
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(exc))


async def _get_draft_for_caller(
    session: AsyncSession, draft_id: uuid.UUID, caller: deps.Caller
) -> CheckoutDraft:
    draft = await checkout_service.get_draft(session, draft_id)
    # Drafts owned by a signed-in user are invisible to everyone else.
    if draft is None or (draft.user_id and draft.user_id != caller.user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Checkout draft not found"
        )
    return draft


@router.post(
    "/drafts",
    response_model=CheckoutDraftRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start checkout",
    dependencies=[deps.DEFAULT_RATE_DEP],
)
async def create_draft(
    payload: CheckoutDraftCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> CheckoutDraftRead:
    draft = await checkout_service.create_draft(
        session, entries=_entries(payload.items), user_id=caller.user_id
    )
    return CheckoutDraftRead.model_validate(draft)


@router.get(
    "/drafts/{draft_id}", response_model=CheckoutDraftRead, summary="Get checkout"
)
async def get_draft(
    draft_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> CheckoutDraftRead:
    draft = await _get_draft_for_caller(session, draft_id, caller)
    return CheckoutDraftRead.model_validate(draft)


@router.put(
    "/drafts/{draft_id}/cart",
    response_model=CheckoutDraftRead,
    summary="Replace cart contents",
)
async def replace_cart(
    draft_id: uuid.UUID,
    payload: CartUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> CheckoutDraftRead:
    draft = await _get_draft_for_caller(session, draft_id, caller)
    try:
        draft = await checkout_service.replace_cart(
            session, draft=draft, entries=_entries(payload.items)
        )
    except CheckoutError as exc:
        raise _checkout_http_error(exc) from exc
    return CheckoutDraftRead.model_validate(draft)


@router.post(
    "/drafts/{draft_id}/promo-code",
    response_model=ApplyPromoCodeRead,
    summary="Apply promo code",
    dependencies=[deps.PROMO_RATE_DEP],
)
async def apply_promo_code(
    draft_id: uuid.UUID,
    payload: ApplyPromoCodeRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> ApplyPromoCodeRead:
    draft = await _get_draft_for_caller(session, draft_id, caller)
    try:
        evaluation = await checkout_service.apply_promo_code(
            session, draft=draft, code=payload.code
        )
    except CheckoutError as exc:
        raise _checkout_http_error(exc) from exc
    return ApplyPromoCodeRead(
        evaluation=PromoEvaluationRead.model_validate(evaluation),
        draft=CheckoutDraftRead.model_validate(draft),
    )


@router.delete(
    "/drafts/{draft_id}/promo-code",
    response_model=CheckoutDraftRead,
    summary="Remove promo code",
)
async def remove_promo_code(
    draft_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> CheckoutDraftRead:
    draft = await _get_draft_for_caller(session, draft_id, caller)
    try:
        draft = await checkout_service.remove_promo_code(session, draft=draft)
    except CheckoutError as exc:
        raise _checkout_http_error(exc) from exc
    return CheckoutDraftRead.model_validate(draft)


@router.put(
    "/drafts/{draft_id}/payment-method",
    response_model=CheckoutDraftRead,
    summary="Choose payment method",
)
async def set_payment_method(
    draft_id: uuid.UUID,
    payload: PaymentMethodUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> CheckoutDraftRead:
    draft = await _get_draft_for_caller(session, draft_id, caller)
    try:
        draft = await checkout_service.set_payment_method(
            session, draft=draft, method=payload.payment_method
        )
    except CheckoutError as exc:
        raise _checkout_http_error(exc) from exc
    return CheckoutDraftRead.model_validate(draft)


@router.post(
    "/drafts/{draft_id}/booking",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Place booking",
    dependencies=[deps.DEFAULT_RATE_DEP],
)
async def place_booking(
    draft_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> BookingRead:
    draft = await _get_draft_for_caller(session, draft_id, caller)
    try:
        booking = await checkout_service.place_booking(session, draft=draft)
    except CheckoutError as exc:
        raise _checkout_http_error(exc) from exc
    return BookingRead.model_validate(booking)


@router.get(
    "/bookings/{booking_id}", response_model=BookingRead, summary="Get booking"
)
async def get_booking(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    caller: Annotated[deps.Caller, Depends(deps.get_caller)],
) -> BookingRead:
    booking: Booking | None = await checkout_service.get_booking(session, booking_id)
    if booking is None or (booking.user_id and booking.user_id != caller.user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return BookingRead.model_validate(booking)
