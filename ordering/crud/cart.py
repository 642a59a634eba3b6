from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from ordering.models.cart import Cart, CartItem
from ordering.schemas.cart import CartLine, CartState, PricedOption, SelectedSize


def _line_from_row(row: CartItem) -> CartLine:
    size = None
    if row.size_name:
        size = SelectedSize(name=row.size_name, price_adjustment=row.size_price_adjustment)
    return CartLine(
        line_id=row.id,
        menu_item_id=row.menu_item_id,
        name=row.name,
        unit_price=row.unit_price,
        selected_size=size,
        addons=[PricedOption(**a) for a in row.addons or []],
        modifications=[PricedOption(**m) for m in row.modifications or []],
        special_instructions=row.special_instructions,
        quantity=row.quantity,
        item_total=row.item_total,
    )


def _copy_line(line: CartLine, row: CartItem, position: int) -> None:
    row.position = position
    row.menu_item_id = line.menu_item_id
    row.name = line.name
    row.unit_price = line.unit_price
    row.size_name = line.selected_size.name if line.selected_size else None
    row.size_price_adjustment = line.selected_size.price_adjustment if line.selected_size else 0
    row.addons = [a.model_dump() for a in line.addons]
    row.modifications = [m.model_dump() for m in line.modifications]
    row.special_instructions = line.special_instructions
    row.quantity = line.quantity
    row.item_total = line.item_total


async def _get_cart_row(db: AsyncSession, user_id: str):
    result = await db.execute(
        select(Cart).where(Cart.user_id == user_id).options(selectinload(Cart.items))
    )
    return result.scalar_one_or_none()


async def load_cart(db: AsyncSession, user_id: str) -> CartState:
    """Load the user's cart; a user without a row has an empty cart"""
    cart = await _get_cart_row(db, user_id)
    if not cart:
        return CartState(user_id=user_id)

    return CartState.model_validate({
        "user_id": cart.user_id,
        "restaurant_id": cart.restaurant_id,
        "items": [_line_from_row(row) for row in cart.items],
        "order_type": cart.order_type,
        "delivery_address": cart.delivery_address,
        "applied_discount": cart.applied_discount,
        "tip": cart.tip,
        "subtotal": cart.subtotal,
        "discount_amount": cart.discount_amount,
        "delivery_fee": cart.delivery_fee,
        "tax": cart.tax,
        "grand_total": cart.grand_total,
    })


async def save_cart(db: AsyncSession, state: CartState) -> None:
    """Write the aggregate back. Flushes only; the caller owns the commit."""
    cart = await _get_cart_row(db, state.user_id)
    if not cart:
        cart = Cart(user_id=state.user_id, items=[])
        db.add(cart)

    cart.restaurant_id = state.restaurant_id
    cart.order_type = state.order_type.value if state.order_type else None
    cart.delivery_address = state.delivery_address.model_dump() if state.delivery_address else None
    cart.applied_discount_id = state.applied_discount.discount_id if state.applied_discount else None
    cart.applied_discount = state.applied_discount.model_dump(mode="json") if state.applied_discount else None
    cart.tip = state.tip
    cart.subtotal = state.subtotal
    cart.discount_amount = state.discount_amount
    cart.delivery_fee = state.delivery_fee
    cart.tax = state.tax
    cart.grand_total = state.grand_total

    # Update rows in place by line id so ids stay stable across saves
    existing = {row.id: row for row in cart.items}
    rows = []
    for position, line in enumerate(state.items):
        row = existing.pop(line.line_id, None) or CartItem(id=line.line_id)
        _copy_line(line, row, position)
        rows.append(row)
    cart.items = rows  # rows left in `existing` are deleted as orphans

    await db.flush()


async def delete_cart(db: AsyncSession, user_id: str) -> None:
    cart = await _get_cart_row(db, user_id)
    if cart:
        await db.delete(cart)
        await db.flush()
