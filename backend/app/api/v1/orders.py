"""Order endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.v1.pricing import to_cart_lines
from app.core.config import get_settings
from app.models import Order
from app.models.user import User
from app.schemas.order import InvoiceRead, OrderCreate, OrderPayRequest, OrderRead
from app.security.permissions import require_order_access
from app.services import invoice_service, order_service, promo_service
from app.services.pricing_service import pricing_config_from_settings

router = APIRouter(prefix="/orders", tags=["orders"])


async def _get_accessible_order(
    session: AsyncSession, *, order_id: uuid.UUID, current_user: User
) -> Order:
    order = await order_service.get_order(session, order_id)
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    require_order_access(current_user, order)
    return order


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order from cart contents",
)
async def create_order(
    payload: OrderCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> OrderRead:
    shipping = (
        payload.shipping_address.model_dump() if payload.shipping_address else None
    )
    try:
        order = await order_service.create_order(
            session,
            user=current_user,
            lines=to_cart_lines(payload.items),
            config=pricing_config_from_settings(get_settings()),
            shipping_address=shipping,
            payment_method=payload.payment_method,
            promo_code=payload.promo_code,
        )
    except (promo_service.PromoCodeNotFound, promo_service.PromoCodeRejected) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    except order_service.OrderError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return OrderRead.model_validate(order)


@router.get("/mine", response_model=list[OrderRead], summary="List my orders")
async def list_my_orders(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[OrderRead]:
    orders = await order_service.list_orders_for_user(session, current_user.id)
    return [OrderRead.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderRead, summary="Get an order")
async def get_order(
    order_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> OrderRead:
    order = await _get_accessible_order(
        session, order_id=order_id, current_user=current_user
    )
    return OrderRead.model_validate(order)


@router.put("/{order_id}/pay", response_model=OrderRead, summary="Mark order paid")
async def pay_order(
    order_id: uuid.UUID,
    payload: OrderPayRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> OrderRead:
    await _get_accessible_order(session, order_id=order_id, current_user=current_user)
    try:
        order = await order_service.mark_order_paid(
            session, order_id=order_id, payment_reference=payload.payment_reference
        )
    except promo_service.PromoRedemptionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    except order_service.OrderError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return OrderRead.model_validate(order)


@router.put("/{order_id}/cancel", response_model=OrderRead, summary="Cancel an order")
async def cancel_order(
    order_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> OrderRead:
    await _get_accessible_order(session, order_id=order_id, current_user=current_user)
    try:
        order = await order_service.cancel_order(session, order_id=order_id)
    except order_service.OrderError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return OrderRead.model_validate(order)


@router.get(
    "/{order_id}/invoice", response_model=InvoiceRead, summary="Order invoice summary"
)
async def get_order_invoice(
    order_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> InvoiceRead:
    order = await _get_accessible_order(
        session, order_id=order_id, current_user=current_user
    )
    settings = get_settings()
    summary = invoice_service.build_invoice(
        order, store_name=settings.store_name, currency=settings.currency
    )
    return InvoiceRead.model_validate(summary.to_dict())
