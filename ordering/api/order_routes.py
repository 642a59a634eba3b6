from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional

from ordering.auth.dependencies import get_current_staff_user, get_current_user_id
from ordering.core.errors import NotFound
from ordering.crud import order as order_crud
from ordering.db import get_db
from ordering.models.order import OrderStatus
from ordering.schemas.cart import OrderType
from ordering.schemas.order import (
    CheckoutRequest,
    OrderCancel,
    OrderList,
    OrderRead,
    OrderStatusUpdate,
    ReorderRead,
)
from ordering.services.checkout import CheckoutService
from ordering.services.lifecycle import OrderLifecycle
from ordering.services.reorder import ReorderService
from ordering.utils.timezones import to_naive_utc

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderRead, status_code=201)
async def checkout(
    payload: CheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Place an order from the current cart"""
    return await CheckoutService(db).checkout(user_id, payload)


@router.get("", response_model=OrderList)
async def list_orders(
    status: Optional[OrderStatus] = None,
    order_type: Optional[OrderType] = None,
    restaurant_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Order history, newest first"""
    orders, total = await order_crud.list_orders(
        db,
        user_id,
        status=status,
        order_type=order_type.value if order_type else None,
        restaurant_id=restaurant_id,
        start_date=to_naive_utc(start_date),
        end_date=to_naive_utc(end_date),
        limit=limit,
        offset=offset,
    )
    return OrderList(orders=[OrderRead.model_validate(o) for o in orders], total_count=total)


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    order = await order_crud.get_order(db, order_id, user_id=user_id)
    if not order:
        raise NotFound("Order not found", code="order_not_found")
    return order


@router.patch("/{order_id}", response_model=OrderRead)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    staff_id: str = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
):
    """Restaurant-side status change"""
    return await OrderLifecycle(db).transition(order_id, payload.status, payload.cancellation_reason)


@router.delete("/{order_id}", response_model=OrderRead)
async def cancel_order(
    order_id: str,
    payload: Optional[OrderCancel] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Customer cancellation"""
    reason = payload.cancellation_reason if payload else None
    return await OrderLifecycle(db).cancel_by_customer(order_id, user_id, reason)


@router.post("/{order_id}/reorder", response_model=ReorderRead)
async def reorder(
    order_id: str,
    replace_cart: bool = False,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Rebuild the cart from a past order at current menu prices"""
    return await ReorderService(db).reorder(order_id, user_id, replace_cart=replace_cart)
