"""
Reorder Service

Rebuilds a cart from a past order. Lines are repriced from the current
menu; items that are gone, unavailable or whose size was dropped are left
out and reported back so the UI can tell the customer. Add-ons and
modifications take their current catalog price, never the historical one.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ordering.core.errors import NotFound
from ordering.crud import menu as menu_crud
from ordering.crud import order as order_crud
from ordering.models.order import Order
from ordering.schemas.cart import CartLine, PricedOption, SelectedSize
from ordering.schemas.order import CartSeed, OmittedItem, ReorderRead
from ordering.services.cart_store import CartStore
from ordering.services.pricing import PricingEngine

log = logging.getLogger(__name__)


class ReorderService:

    def __init__(self, db: AsyncSession, pricing: Optional[PricingEngine] = None):
        self.db = db
        self.pricing = pricing or PricingEngine()

    async def reconstruct(self, order: Order) -> CartSeed:
        catalog = await menu_crud.get_menu_items(self.db, [item.menu_item_id for item in order.items])
        seed = CartSeed(restaurant_id=order.restaurant_id)

        for item in order.items:
            current = catalog.get(item.menu_item_id)
            if current is None or current.restaurant_id != order.restaurant_id:
                seed.omitted.append(OmittedItem(menu_item_id=item.menu_item_id, name=item.name, reason="not_found"))
                continue
            if not current.is_available:
                seed.omitted.append(OmittedItem(menu_item_id=item.menu_item_id, name=item.name, reason="unavailable"))
                continue

            size = None
            if item.size_name:
                current_size = menu_crud.find_size(current, item.size_name)
                if not current_size:
                    seed.omitted.append(
                        OmittedItem(menu_item_id=item.menu_item_id, name=item.name, reason="size_unavailable")
                    )
                    continue
                size = SelectedSize(name=current_size.size_name, price_adjustment=current_size.price_adjustment)

            addons = []
            for a in item.addons or []:
                addon = menu_crud.find_addon(current, a["name"], kind="addon")
                if not addon:
                    break
                addons.append(PricedOption(name=addon.name, price=addon.price))
            if len(addons) != len(item.addons or []):
                seed.omitted.append(
                    OmittedItem(menu_item_id=item.menu_item_id, name=item.name, reason="addon_unavailable")
                )
                continue
            modifications = []
            for m in item.modifications or []:
                listed = menu_crud.find_addon(current, m["name"], kind="modification")
                modifications.append(PricedOption(name=m["name"], price=listed.price if listed else 0))

            line = CartLine(
                menu_item_id=current.id,
                name=current.name,
                unit_price=current.price,
                selected_size=size,
                addons=addons,
                modifications=modifications,
                special_instructions=item.special_instructions,
                quantity=item.quantity,
            )
            line.item_total = self.pricing.compute_item_total(line)
            seed.items.append(line)

        if seed.omitted:
            log.info("reorder omitted items: order=%s omitted=%s",
                     order.id, [o.menu_item_id for o in seed.omitted])
        return seed

    async def reorder(self, order_id: str, user_id: str, replace_cart: bool = False) -> ReorderRead:
        order = await order_crud.get_order(self.db, order_id, user_id=user_id)
        if not order:
            raise NotFound("Order not found", code="order_not_found")

        seed = await self.reconstruct(order)
        cart = await CartStore(self.db, self.pricing).load_seed(user_id, seed, replace_cart=replace_cart)
        log.info("reorder: user=%s order=%s lines=%s omitted=%s",
                 user_id, order_id, len(seed.items), len(seed.omitted))
        return ReorderRead(cart=cart, omitted_count=len(seed.omitted), omitted_items=seed.omitted)
