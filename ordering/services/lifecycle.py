"""
Order Lifecycle

Fulfillment state machine. The path is fixed by the order type at creation:

    pickup:   order_received -> preparing -> ready            -> delivered
    delivery: order_received -> preparing -> out_for_delivery -> delivered

Transitions only move one step forward. ``cancelled`` is reachable from any
non-terminal state and needs a reason. ``delivered`` and ``cancelled`` are
terminal. Each transition stamps the matching timestamp column.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ordering.core.errors import InvalidTransition, NotFound, ValidationError
from ordering.crud import order as order_crud
from ordering.models.order import Order, OrderStatus
from ordering.schemas.cart import OrderType
from ordering.utils.timezones import utcnow

log = logging.getLogger(__name__)

FULFILLMENT_PATHS: Dict[OrderType, Tuple[OrderStatus, ...]] = {
    OrderType.pickup: (
        OrderStatus.ORDER_RECEIVED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.DELIVERED,
    ),
    OrderType.delivery: (
        OrderStatus.ORDER_RECEIVED,
        OrderStatus.PREPARING,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    ),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Customers may only cancel before the food is ready or on its way
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.ORDER_RECEIVED, OrderStatus.PREPARING})

DEFAULT_CUSTOMER_REASON = "Cancelled by customer"


def allowed_transitions(order_type, status: OrderStatus) -> List[OrderStatus]:
    """Statuses reachable from ``status`` for an order of ``order_type``."""
    if status in TERMINAL_STATUSES:
        return []
    path = FULFILLMENT_PATHS[OrderType(order_type)]
    position = path.index(status)
    return [path[position + 1], OrderStatus.CANCELLED]


def check_transition(order_type, current: OrderStatus, requested: OrderStatus, reason: Optional[str] = None) -> None:
    """Raise InvalidTransition unless ``current -> requested`` is legal."""
    current = OrderStatus(current)
    requested = OrderStatus(requested)

    if current in TERMINAL_STATUSES:
        raise InvalidTransition(
            current.value, requested.value,
            f"Order is already {current.value}; no further changes are allowed",
        )
    if requested not in allowed_transitions(order_type, current):
        raise InvalidTransition(current.value, requested.value)
    if requested == OrderStatus.CANCELLED and not (reason or "").strip():
        raise ValidationError("A cancellation reason is required", code="cancellation_reason_required")


class OrderLifecycle:
    """Drives persisted orders through the state machine"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, order_id: str, user_id: Optional[str] = None) -> Order:
        order = await order_crud.get_order(self.db, order_id, user_id=user_id)
        if not order:
            raise NotFound("Order not found", code="order_not_found")
        return order

    async def transition(
        self,
        order_id: str,
        status: OrderStatus,
        cancellation_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        """Restaurant/ops-side status change"""
        order = await self._get(order_id)
        try:
            check_transition(order.order_type, order.status, status, cancellation_reason)
        except InvalidTransition:
            log.warning("invalid transition: order=%s from=%s to=%s",
                        order_id, order.status.value, OrderStatus(status).value)
            raise

        return await self._persist(order, OrderStatus(status), now or utcnow(), cancellation_reason)

    async def cancel_by_customer(
        self,
        order_id: str,
        user_id: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        order = await self._get(order_id, user_id=user_id)
        if order.status in TERMINAL_STATUSES:
            raise InvalidTransition(
                order.status.value, OrderStatus.CANCELLED.value,
                "Order cannot be cancelled", code="cannot_cancel",
            )
        if order.status not in CUSTOMER_CANCELLABLE:
            log.warning("late cancel refused: order=%s status=%s", order_id, order.status.value)
            raise InvalidTransition(
                order.status.value, OrderStatus.CANCELLED.value,
                "Order cannot be cancelled - already prepared or in transit",
                code="too_late_to_cancel",
            )
        reason = (reason or "").strip() or DEFAULT_CUSTOMER_REASON
        return await self._persist(order, OrderStatus.CANCELLED, now or utcnow(), reason)

    async def _persist(self, order: Order, status: OrderStatus, at: datetime, reason: Optional[str]) -> Order:
        order_id, previous = order.id, order.status
        try:
            updated = await order_crud.update_order_status(
                self.db, order, previous, status, at,
                cancellation_reason=reason.strip() if reason else None,
            )
            if not updated:
                raise InvalidTransition(
                    previous.value, status.value,
                    "Order status changed while updating; reload and try again",
                )
            await self.db.commit()
        except InvalidTransition:
            await self.db.rollback()
            log.warning("stale transition: order=%s expected=%s to=%s", order_id, previous.value, status.value)
            raise
        except Exception:
            await self.db.rollback()
            raise

        log.info("order transition: order=%s from=%s to=%s", order_id, previous.value, status.value)
        return await self._get(order_id)
