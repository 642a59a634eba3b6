from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import func, update
from ordering.models.order import Order, OrderStatus, STATUS_TIMESTAMP_FIELDS


async def create_order(db: AsyncSession, order: Order) -> Order:
    """Insert an order with its items. Flushes only; checkout commits."""
    db.add(order)
    await db.flush()
    return order


async def get_order(db: AsyncSession, order_id: str, user_id: Optional[str] = None) -> Optional[Order]:
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_orders(
    db: AsyncSession,
    user_id: str,
    status: Optional[OrderStatus] = None,
    order_type: Optional[str] = None,
    restaurant_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Order], int]:
    """A user's order history, newest first, with the unpaginated count"""
    filters = [Order.user_id == user_id]
    if status:
        filters.append(Order.status == status)
    if order_type:
        filters.append(Order.order_type == order_type)
    if restaurant_id:
        filters.append(Order.restaurant_id == restaurant_id)
    if start_date:
        filters.append(Order.created_at >= start_date)
    if end_date:
        filters.append(Order.created_at <= end_date)

    result = await db.execute(
        select(Order)
        .where(*filters)
        .options(selectinload(Order.items))
        .order_by(Order.order_received_at.desc())
        .limit(limit)
        .offset(offset)
    )
    orders = result.scalars().all()

    count = await db.execute(select(func.count(Order.id)).where(*filters))
    return orders, count.scalar_one()


async def update_order_status(
    db: AsyncSession,
    order: Order,
    previous: OrderStatus,
    status: OrderStatus,
    timestamp: datetime,
    cancellation_reason: Optional[str] = None,
) -> bool:
    """
    Compare-and-set the status. The row only changes while it still reads
    ``previous``; returns False when another writer got there first.
    """
    values = {
        "status": status,
        STATUS_TIMESTAMP_FIELDS[status]: timestamp,
        "updated_at": timestamp,
    }
    if status == OrderStatus.CANCELLED:
        values["cancellation_reason"] = cancellation_reason

    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == previous)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
