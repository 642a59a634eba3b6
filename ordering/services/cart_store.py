"""
Cart Store

Owns the per-user cart aggregate. Every mutation runs as one unit under the
user's lock:

    load cart -> mutate -> revalidate discount -> price -> save -> commit

Anything raised before the save leaves the stored cart exactly as it was.
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ordering.core.config import MAX_ITEM_QUANTITY
from ordering.core.errors import DiscountError, NotFound, RestaurantConflict, ValidationError
from ordering.crud import cart as cart_crud
from ordering.crud import menu as menu_crud
from ordering.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartLine,
    CartNotice,
    CartRead,
    CartState,
    DeliveryAddress,
    OrderType,
    PricedOption,
    SelectedSize,
)
from ordering.schemas.order import CartSeed
from ordering.services.discounts import DiscountEvaluator, terms_for
from ordering.services.pricing import PricingEngine
from ordering.utils.locks import KeyedLock, cart_locks

log = logging.getLogger(__name__)


def check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number", code="invalid_quantity")
    if quantity < 1 or quantity > MAX_ITEM_QUANTITY:
        raise ValidationError(
            f"Quantity must be between 1 and {MAX_ITEM_QUANTITY}",
            code="invalid_quantity",
            details={"quantity": quantity},
        )
    return quantity


def check_option_names(names: List[str], label: str) -> List[str]:
    cleaned = []
    seen = set()
    for raw in names:
        name = (raw or "").strip()
        if not name:
            raise ValidationError(f"Every {label} needs a name", code="invalid_customization")
        if name.lower() in seen:
            raise ValidationError(
                f"{label.capitalize()} '{name}' is listed twice",
                code="invalid_customization",
            )
        seen.add(name.lower())
        cleaned.append(name)
    return cleaned


def price_addons(menu_item, names: List[str]) -> List[PricedOption]:
    """Every add-on must be offered for the item; its price is the catalog price."""
    priced = []
    for name in check_option_names(names, "add-on"):
        addon = menu_crud.find_addon(menu_item, name, kind="addon")
        if not addon:
            raise ValidationError(
                f"Add-on '{name}' is not offered for {menu_item.name}",
                code="invalid_customization",
                details={"addon": name},
            )
        priced.append(PricedOption(name=addon.name, price=addon.price))
    return priced


def price_modifications(menu_item, names: List[str]) -> List[PricedOption]:
    """Listed modifications carry their catalog price; anything else is free."""
    priced = []
    for name in check_option_names(names, "modification"):
        listed = menu_crud.find_addon(menu_item, name, kind="modification")
        if listed:
            priced.append(PricedOption(name=listed.name, price=listed.price))
        else:
            priced.append(PricedOption(name=name, price=0))
    return priced


def reset_cart(cart: CartState) -> None:
    """An empty cart has no restaurant, order type, address, discount or tip."""
    cart.items = []
    cart.restaurant_id = None
    cart.order_type = None
    cart.delivery_address = None
    cart.applied_discount = None
    cart.tip = 0


def bind_restaurant(cart: CartState, restaurant_id: str, replace_cart: bool = False) -> None:
    """Enforce single-restaurant carts. A switch needs explicit confirmation."""
    if cart.is_empty:
        cart.restaurant_id = restaurant_id
        return
    if cart.restaurant_id == restaurant_id:
        return
    if not replace_cart:
        log.warning(
            "restaurant conflict: user=%s cart_restaurant=%s requested=%s",
            cart.user_id, cart.restaurant_id, restaurant_id,
        )
        raise RestaurantConflict(cart.restaurant_id, restaurant_id)

    log.info("cart replaced: user=%s old_restaurant=%s new_restaurant=%s",
             cart.user_id, cart.restaurant_id, restaurant_id)
    reset_cart(cart)
    cart.restaurant_id = restaurant_id


def merge_line(cart: CartState, line: CartLine) -> CartLine:
    """Add ``line`` or fold it into an identical one by summing quantities."""
    for existing in cart.items:
        if existing.signature() == line.signature():
            existing.quantity = check_quantity(existing.quantity + line.quantity)
            if not existing.special_instructions:
                existing.special_instructions = line.special_instructions
            return existing
    cart.items.append(line)
    return line


def fold_duplicates(cart: CartState, line: CartLine) -> None:
    """After an edit, absorb any other line that now has the same identity."""
    for other in list(cart.items):
        if other is not line and other.signature() == line.signature():
            line.quantity = check_quantity(line.quantity + other.quantity)
            if not line.special_instructions:
                line.special_instructions = other.special_instructions
            cart.items.remove(other)


def reconcile(cart: CartRead, provisional_total: Optional[int]) -> CartRead:
    """The server total always wins; a differing client preview gets a notice."""
    if provisional_total is not None and provisional_total != cart.grand_total:
        cart.notices.append(CartNotice(
            code="total_mismatch",
            message="Your cart total was updated.",
            details={"provisional_total": provisional_total, "grand_total": cart.grand_total},
        ))
    return cart


class CartStore:
    """Service layer over the cart aggregate"""

    def __init__(self, db: AsyncSession, pricing: Optional[PricingEngine] = None, locks: KeyedLock = cart_locks):
        self.db = db
        self.pricing = pricing or PricingEngine()
        self.discounts = DiscountEvaluator(db, self.pricing)
        self.locks = locks

    # ---------- reads ----------

    async def get_cart(self, user_id: str, provisional_total: Optional[int] = None) -> CartRead:
        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            return reconcile(await self._commit(cart), provisional_total)

    # ---------- item mutations ----------

    async def add_item(
        self,
        user_id: str,
        payload: CartItemCreate,
        replace_cart: bool = False,
        provisional_total: Optional[int] = None,
    ) -> CartRead:
        check_quantity(payload.quantity)

        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)

            menu_item = await menu_crud.get_menu_item(self.db, payload.menu_item_id)
            if not menu_item:
                raise NotFound(f"Menu item {payload.menu_item_id} not found", code="item_not_found")
            if not menu_item.is_available:
                raise ValidationError(f"{menu_item.name} is not available", code="item_unavailable")

            line = CartLine(
                menu_item_id=menu_item.id,
                name=menu_item.name,
                unit_price=menu_item.price,
                selected_size=self._size_for(menu_item, payload.selected_size),
                addons=price_addons(menu_item, payload.addons),
                modifications=price_modifications(menu_item, payload.modifications),
                special_instructions=payload.special_instructions,
                quantity=payload.quantity,
            )

            bind_restaurant(cart, menu_item.restaurant_id, replace_cart)
            merged = merge_line(cart, line)
            log.info("cart add: user=%s item=%s qty=%s line=%s",
                     user_id, menu_item.id, payload.quantity, merged.line_id)
            return reconcile(await self._commit(cart), provisional_total)

    async def update_item(
        self,
        user_id: str,
        line_id: str,
        payload: CartItemUpdate,
        provisional_total: Optional[int] = None,
    ) -> CartRead:
        changes = payload.model_dump(exclude_unset=True)

        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            line = cart.find_line(line_id)
            if not line:
                raise NotFound("Item not in cart", code="item_not_in_cart")

            quantity = changes.get("quantity")
            if quantity is not None and quantity <= 0:
                cart.items.remove(line)
                log.info("cart remove via update: user=%s line=%s", user_id, line_id)
                return reconcile(await self._commit(cart), provisional_total)
            if quantity is not None:
                line.quantity = check_quantity(quantity)

            menu_item = None
            if changes.get("selected_size") or payload.addons is not None or payload.modifications is not None:
                menu_item = await menu_crud.get_menu_item(self.db, line.menu_item_id)
                if not menu_item:
                    raise NotFound(f"Menu item {line.menu_item_id} not found", code="item_not_found")

            if "selected_size" in changes:
                line.selected_size = self._size_for(menu_item, changes["selected_size"]) if menu_item else None
            if payload.addons is not None:
                line.addons = price_addons(menu_item, payload.addons)
            if payload.modifications is not None:
                line.modifications = price_modifications(menu_item, payload.modifications)
            if "special_instructions" in changes:
                line.special_instructions = changes["special_instructions"]

            fold_duplicates(cart, line)
            log.info("cart update: user=%s line=%s fields=%s", user_id, line_id, sorted(changes))
            return reconcile(await self._commit(cart), provisional_total)

    async def remove_item(self, user_id: str, line_id: str, provisional_total: Optional[int] = None) -> CartRead:
        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            line = cart.find_line(line_id)
            if not line:
                raise NotFound("Item not in cart", code="item_not_in_cart")
            cart.items.remove(line)
            log.info("cart remove: user=%s line=%s", user_id, line_id)
            return reconcile(await self._commit(cart), provisional_total)

    async def clear(self, user_id: str) -> CartRead:
        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            reset_cart(cart)
            log.info("cart cleared: user=%s", user_id)
            return await self._commit(cart)

    # ---------- fulfillment, discount, tip ----------

    async def set_order_type(self, user_id: str, order_type: OrderType, provisional_total: Optional[int] = None) -> CartRead:
        async with self.locks.hold(user_id):
            cart = await self._load_nonempty(user_id)
            restaurant = await menu_crud.get_restaurant(self.db, cart.restaurant_id)
            if restaurant and not self.accepts(restaurant, order_type):
                raise ValidationError(
                    f"This restaurant does not accept {order_type.value} orders",
                    code="order_type_not_accepted",
                )
            cart.order_type = order_type
            return reconcile(await self._commit(cart), provisional_total)

    async def set_delivery_address(self, user_id: str, address: DeliveryAddress, provisional_total: Optional[int] = None) -> CartRead:
        missing = [
            field for field in ("street_address", "city", "state", "zip_code")
            if not (getattr(address, field) or "").strip()
        ]
        if missing:
            raise ValidationError(
                "Delivery address is incomplete",
                code="address_incomplete",
                details={"missing": missing},
            )
        async with self.locks.hold(user_id):
            cart = await self._load_nonempty(user_id)
            cart.delivery_address = address
            return reconcile(await self._commit(cart), provisional_total)

    async def apply_discount(self, user_id: str, code: str, provisional_total: Optional[int] = None) -> CartRead:
        if not (code or "").strip():
            raise ValidationError("Coupon code required", code="missing_coupon")
        async with self.locks.hold(user_id):
            cart = await self._load_nonempty(user_id)
            cart.applied_discount = await self.discounts.apply(cart, code)
            log.info("discount applied: user=%s code=%s amount=%s",
                     user_id, cart.applied_discount.code, cart.applied_discount.computed_amount)
            return reconcile(await self._commit(cart), provisional_total)

    async def remove_discount(self, user_id: str, provisional_total: Optional[int] = None) -> CartRead:
        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            cart.applied_discount = None
            return reconcile(await self._commit(cart), provisional_total)

    async def set_tip(self, user_id: str, tip: int, provisional_total: Optional[int] = None) -> CartRead:
        if isinstance(tip, bool) or not isinstance(tip, int) or tip < 0:
            raise ValidationError("Tip must be a non-negative amount", code="invalid_tip")
        async with self.locks.hold(user_id):
            cart = await self._load_nonempty(user_id)
            cart.tip = tip
            return reconcile(await self._commit(cart), provisional_total)

    # ---------- reorder ----------

    async def load_seed(self, user_id: str, seed: CartSeed, replace_cart: bool = False) -> CartRead:
        """Merge a reconstructed order into the live cart under the conflict policy."""
        async with self.locks.hold(user_id):
            cart = await cart_crud.load_cart(self.db, user_id)
            if seed.items:
                bind_restaurant(cart, seed.restaurant_id, replace_cart)
                for line in seed.items:
                    merge_line(cart, line.model_copy(deep=True))
            return await self._commit(cart)

    # ---------- helpers ----------

    @staticmethod
    def accepts(restaurant, order_type: OrderType) -> bool:
        if order_type == OrderType.delivery:
            return bool(restaurant.accepts_delivery)
        return bool(restaurant.accepts_pickup)

    @staticmethod
    def _size_for(menu_item, size_name: Optional[str]) -> Optional[SelectedSize]:
        if not size_name:
            return None
        size = menu_crud.find_size(menu_item, size_name)
        if not size:
            raise ValidationError(
                f"Size '{size_name}' is not offered for {menu_item.name}",
                code="invalid_size",
            )
        return SelectedSize(name=size.size_name, price_adjustment=size.price_adjustment)

    async def _load_nonempty(self, user_id: str) -> CartState:
        cart = await cart_crud.load_cart(self.db, user_id)
        if cart.is_empty:
            raise ValidationError("Cart is empty", code="cart_empty")
        return cart

    async def price(self, cart: CartState) -> CartState:
        """Recompute every derived money field on ``cart`` in place."""
        delivery_fee = 0
        if cart.order_type == OrderType.delivery and cart.restaurant_id:
            restaurant = await menu_crud.get_restaurant(self.db, cart.restaurant_id)
            delivery_fee = restaurant.delivery_fee if restaurant else 0

        self.pricing.price_lines(cart.items)
        discount = terms_for(cart.applied_discount) if cart.applied_discount else None
        totals = self.pricing.compute_cart_totals(cart.items, delivery_fee, cart.tip, discount)

        cart.subtotal = totals.subtotal
        cart.discount_amount = totals.discount_amount
        cart.delivery_fee = totals.delivery_fee
        cart.tax = totals.tax
        cart.grand_total = totals.grand_total
        if cart.applied_discount:
            cart.applied_discount.computed_amount = totals.discount_amount
        return cart

    async def _commit(self, cart: CartState) -> CartRead:
        notices: List[CartNotice] = []

        if cart.is_empty:
            reset_cart(cart)
        elif cart.applied_discount:
            code = cart.applied_discount.code
            try:
                cart.applied_discount = await self.discounts.revalidate(cart)
            except DiscountError as e:
                log.warning("discount auto-removed: user=%s code=%s reason=%s", cart.user_id, code, e.reason)
                cart.applied_discount = None
                notices.append(CartNotice(
                    code="discount_removed",
                    message=e.message,
                    details={"code": code, "reason": e.reason},
                ))

        await self.price(cart)
        try:
            await cart_crud.save_cart(self.db, cart)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return CartRead.model_validate({**cart.model_dump(), "notices": notices})
