"""Promo code endpoints for shoppers and administrators."""

from __future__ import annotations

import uuid
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.config import get_settings
from app.models.user import User
from app.schemas.promo import (
    MessageResponse,
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeUpdate,
    PromoStatsRead,
    PromoStatsSummary,
    PromoUsageRead,
    PromoValidateRequest,
    PromoValidateResponse,
)
from app.services import promo_service

router = APIRouter(prefix="/promos", tags=["promos"])

_PROMO_RATE_DEP = deps.rate_limit(
    deps.parse_rate(get_settings().rate_limit_promo, fallback=(20, 60))
)


def _raise_for(exc: Exception) -> NoReturn:
    if isinstance(exc, promo_service.PromoCodeNotFound):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
    ) from exc


@router.post(
    "/validate",
    response_model=PromoValidateResponse,
    summary="Validate a promo code against a cart total",
    dependencies=[_PROMO_RATE_DEP],
)
async def validate_promo_code(
    payload: PromoValidateRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> PromoValidateResponse:
    try:
        validation = await promo_service.validate_for_user(
            session,
            code=payload.code,
            cart_total=payload.cart_total,
            user_id=current_user.id,
        )
    except (promo_service.PromoCodeNotFound, promo_service.PromoCodeRejected) as exc:
        _raise_for(exc)
    application = validation.application
    return PromoValidateResponse(
        promo_code_id=validation.promo.id,
        code=validation.promo.code,
        discount=application.discount,
        final_amount=application.final_amount,
        message=application.message,
    )


@router.get("/admin", response_model=list[PromoCodeRead], summary="List promo codes")
async def list_promo_codes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[User, Depends(deps.get_current_admin)],
) -> list[PromoCodeRead]:
    promos = await promo_service.list_promos(session)
    return [PromoCodeRead.model_validate(promo) for promo in promos]


@router.post(
    "/admin",
    response_model=PromoCodeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a promo code",
)
async def create_promo_code(
    payload: PromoCodeCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[User, Depends(deps.get_current_admin)],
) -> PromoCodeRead:
    try:
        promo = await promo_service.create_promo(session, **payload.model_dump())
    except promo_service.PromoCodeRejected as exc:
        _raise_for(exc)
    return PromoCodeRead.model_validate(promo)


@router.put(
    "/admin/{promo_id}", response_model=PromoCodeRead, summary="Update a promo code"
)
async def update_promo_code(
    promo_id: uuid.UUID,
    payload: PromoCodeUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[User, Depends(deps.get_current_admin)],
) -> PromoCodeRead:
    try:
        promo = await promo_service.update_promo(
            session, promo_id, payload.model_dump(exclude_unset=True)
        )
    except (promo_service.PromoCodeNotFound, promo_service.PromoCodeRejected) as exc:
        _raise_for(exc)
    return PromoCodeRead.model_validate(promo)


@router.delete(
    "/admin/{promo_id}",
    response_model=MessageResponse,
    summary="Deactivate a promo code",
)
async def delete_promo_code(
    promo_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[User, Depends(deps.get_current_admin)],
) -> MessageResponse:
    try:
        await promo_service.deactivate_promo(session, promo_id)
    except promo_service.PromoCodeNotFound as exc:
        _raise_for(exc)
    return MessageResponse(message="Promo code deactivated successfully")


@router.get(
    "/admin/{promo_id}/stats",
    response_model=PromoStatsRead,
    summary="Promo code usage statistics",
)
async def get_promo_code_stats(
    promo_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[User, Depends(deps.get_current_admin)],
) -> PromoStatsRead:
    try:
        stats = await promo_service.promo_stats(session, promo_id)
    except promo_service.PromoCodeNotFound as exc:
        _raise_for(exc)
    usages = [
        PromoUsageRead(
            id=usage.id,
            user_id=usage.user_id,
            user_email=usage.user.email if usage.user else None,
            order_id=usage.order_id,
            order_total=usage.order.total_price if usage.order else None,
            discount_amount=usage.discount_amount,
            used_at=usage.used_at,
        )
        for usage in stats.usages
    ]
    return PromoStatsRead(
        promo_code=PromoCodeRead.model_validate(stats.promo),
        usages=usages,
        stats=PromoStatsSummary(
            total_usages=stats.total_usages,
            remaining_usages=stats.remaining_usages,
            total_discount_given=stats.total_discount_given,
            unique_users=stats.unique_users,
        ),
    )
