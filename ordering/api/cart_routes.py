from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ordering.auth.dependencies import get_current_user_id
from ordering.db import get_db
from ordering.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartRead,
    DeliveryAddress,
    DiscountApply,
    OrderTypeUpdate,
    TipUpdate,
)
from ordering.services.cart_store import CartStore

router = APIRouter(prefix="/cart", tags=["Cart"])


def get_cart_store(db: AsyncSession = Depends(get_db)) -> CartStore:
    return CartStore(db)


@router.get("", response_model=CartRead)
async def get_cart(
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    """Current cart with server-computed totals"""
    return await store.get_cart(user_id, provisional_total)


@router.post("/items", response_model=CartRead)
async def add_item(
    payload: CartItemCreate,
    replace_cart: bool = False,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    """Add a menu item. Items from another restaurant need replace_cart=true."""
    return await store.add_item(user_id, payload, replace_cart=replace_cart, provisional_total=provisional_total)


@router.patch("/items/{line_id}", response_model=CartRead)
async def update_item(
    line_id: str,
    payload: CartItemUpdate,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.update_item(user_id, line_id, payload, provisional_total)


@router.delete("/items/{line_id}", response_model=CartRead)
async def remove_item(
    line_id: str,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.remove_item(user_id, line_id, provisional_total)


@router.delete("", response_model=CartRead)
async def clear_cart(
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.clear(user_id)


@router.put("/order-type", response_model=CartRead)
async def set_order_type(
    payload: OrderTypeUpdate,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.set_order_type(user_id, payload.order_type, provisional_total)


@router.put("/delivery-address", response_model=CartRead)
async def set_delivery_address(
    payload: DeliveryAddress,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.set_delivery_address(user_id, payload, provisional_total)


@router.post("/discount", response_model=CartRead)
async def apply_discount(
    payload: DiscountApply,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    """Apply a coupon code"""
    return await store.apply_discount(user_id, payload.code, provisional_total)


@router.delete("/discount", response_model=CartRead)
async def remove_discount(
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.remove_discount(user_id, provisional_total)


@router.put("/tip", response_model=CartRead)
async def set_tip(
    payload: TipUpdate,
    provisional_total: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    store: CartStore = Depends(get_cart_store),
):
    return await store.set_tip(user_id, payload.tip, provisional_total)
