"""
Checkout Service

Freezes the user's priced cart into an Order. All checks run before any
write; the writes (order, items, redemption, cart removal) share a single
commit, so either the order exists and the cart is gone, or neither changed.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ordering.core.errors import DiscountError, MinimumOrderNotMet, NotFound, ValidationError
from ordering.crud import cart as cart_crud
from ordering.crud import discount as discount_crud
from ordering.crud import menu as menu_crud
from ordering.crud import order as order_crud
from ordering.models.order import Order, OrderItem, OrderStatus
from ordering.models.restaurant import Restaurant
from ordering.schemas.cart import CartState, OrderType
from ordering.schemas.order import CheckoutRequest
from ordering.services.cart_store import CartStore
from ordering.services.pricing import PricingEngine
from ordering.utils.locks import KeyedLock, cart_locks
from ordering.utils.timezones import utcnow

log = logging.getLogger(__name__)


def _estimated_ready_at(restaurant: Restaurant, order_type: OrderType, now: datetime) -> datetime:
    minutes = restaurant.estimated_prep_minutes or 0
    if order_type == OrderType.delivery:
        minutes += restaurant.estimated_delivery_minutes or 0
    return now + timedelta(minutes=minutes)


def build_order(cart: CartState, restaurant: Restaurant, request: CheckoutRequest, now: datetime) -> Order:
    """Snapshot a priced cart. Order items copy prices so later menu edits never touch history."""
    order = Order(
        user_id=cart.user_id,
        restaurant_id=cart.restaurant_id,
        order_type=cart.order_type.value,
        status=OrderStatus.ORDER_RECEIVED,
        delivery_address=(
            cart.delivery_address.model_dump()
            if cart.order_type == OrderType.delivery and cart.delivery_address else None
        ),
        special_instructions=request.special_instructions,
        subtotal=cart.subtotal,
        discount_amount=cart.discount_amount,
        discount_id=cart.applied_discount.discount_id if cart.applied_discount else None,
        discount_code=cart.applied_discount.code if cart.applied_discount else None,
        delivery_fee=cart.delivery_fee,
        tax=cart.tax,
        tip=cart.tip,
        grand_total=cart.grand_total,
        payment_method_id=request.payment_method_id.strip(),
        estimated_ready_at=_estimated_ready_at(restaurant, cart.order_type, now),
        order_received_at=now,
        created_at=now,
        updated_at=now,
    )
    order.items = [
        OrderItem(
            menu_item_id=line.menu_item_id,
            name=line.name,
            unit_price=line.unit_price,
            size_name=line.selected_size.name if line.selected_size else None,
            size_price_adjustment=line.selected_size.price_adjustment if line.selected_size else 0,
            addons=[a.model_dump() for a in line.addons],
            modifications=[m.model_dump() for m in line.modifications],
            special_instructions=line.special_instructions,
            quantity=line.quantity,
            item_total=line.item_total,
        )
        for line in cart.items
    ]
    return order


class CheckoutService:
    """Cart -> Order"""

    def __init__(self, db: AsyncSession, pricing: Optional[PricingEngine] = None, locks: KeyedLock = cart_locks):
        self.db = db
        self.store = CartStore(db, pricing, locks)
        self.locks = locks

    async def checkout(self, user_id: str, request: CheckoutRequest, now: Optional[datetime] = None) -> Order:
        if not (request.payment_method_id or "").strip():
            raise ValidationError("A payment method is required", code="payment_method_required")
        if request.tip is not None and (isinstance(request.tip, bool) or request.tip < 0):
            raise ValidationError("Tip must be a non-negative amount", code="invalid_tip")
        now = now or utcnow()

        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            restaurant = await self._validate(cart)

            if request.tip is not None:
                cart.tip = request.tip

            # Discount must still hold at the moment of purchase; DiscountError blocks checkout
            if cart.applied_discount:
                cart.applied_discount = await self.store.discounts.revalidate(cart, now=now)

            await self.store.price(cart)
            if cart.subtotal < (restaurant.minimum_order_amount or 0):
                log.warning("checkout below minimum: user=%s subtotal=%s minimum=%s",
                            user_id, cart.subtotal, restaurant.minimum_order_amount)
                raise MinimumOrderNotMet(restaurant.minimum_order_amount, cart.subtotal)

            order = build_order(cart, restaurant, request, now)
            try:
                await order_crud.create_order(self.db, order)
                if cart.applied_discount:
                    redemption = await discount_crud.record_redemption(
                        self.db,
                        cart.applied_discount.discount_id,
                        user_id,
                        order.id,
                        cart.discount_amount,
                    )
                    if redemption is None:
                        raise DiscountError(
                            DiscountError.REDEMPTION_LIMIT,
                            "This discount has reached its redemption limit",
                            {"code": cart.applied_discount.code, "scope": "global"},
                        )
                await cart_crud.delete_cart(self.db, user_id)
                await self.db.commit()
            except DiscountError:
                await self.db.rollback()
                log.warning("checkout discount exhausted at commit: user=%s code=%s", user_id, cart.applied_discount.code)
                raise
            except Exception:
                await self.db.rollback()
                log.exception("checkout failed: user=%s", user_id)
                raise

            log.info("checkout: user=%s order=%s restaurant=%s total=%s",
                     user_id, order.id, order.restaurant_id, order.grand_total)
            return await order_crud.get_order(self.db, order.id)

    async def _validate(self, cart: CartState) -> Restaurant:
        if cart.is_empty:
            raise ValidationError("Cart is empty", code="cart_empty")
        if cart.order_type is None:
            raise ValidationError("Choose delivery or pickup before checkout", code="order_type_required")

        restaurant = await menu_crud.get_restaurant(self.db, cart.restaurant_id)
        if not restaurant:
            raise NotFound("Restaurant not found", code="restaurant_not_found")
        if not self.store.accepts(restaurant, cart.order_type):
            raise ValidationError(
                f"This restaurant does not accept {cart.order_type.value} orders",
                code="order_type_not_accepted",
            )
        if cart.order_type == OrderType.delivery:
            address = cart.delivery_address
            if not address or not all(
                (getattr(address, field) or "").strip()
                for field in ("street_address", "city", "state", "zip_code")
            ):
                raise ValidationError("Delivery address required for delivery orders", code="address_required")
        return restaurant
