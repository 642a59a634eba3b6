from pydantic import BaseModel, computed_field
from typing import Dict, List, Optional
from datetime import datetime

from ordering.models.order import OrderStatus
from ordering.schemas.cart import CartLine, CartRead, DeliveryAddress, PricedOption


class CheckoutRequest(BaseModel):
    payment_method_id: str
    special_instructions: Optional[str] = None
    tip: Optional[int] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    cancellation_reason: Optional[str] = None


class OrderCancel(BaseModel):
    cancellation_reason: Optional[str] = None


class OrderItemRead(BaseModel):
    id: str
    menu_item_id: str
    name: str
    unit_price: int
    size_name: Optional[str] = None
    size_price_adjustment: int = 0
    addons: List[PricedOption] = []
    modifications: List[PricedOption] = []
    special_instructions: Optional[str] = None
    quantity: int
    item_total: int

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: str
    user_id: str
    restaurant_id: str
    order_type: str
    status: OrderStatus
    delivery_address: Optional[DeliveryAddress] = None
    special_instructions: Optional[str] = None

    subtotal: int
    discount_amount: int
    discount_id: Optional[str] = None
    discount_code: Optional[str] = None
    delivery_fee: int
    tax: int
    tip: int
    grand_total: int

    payment_method_id: str
    estimated_ready_at: Optional[datetime] = None

    order_received_at: datetime
    preparing_started_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    out_for_delivery_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    items: List[OrderItemRead] = []

    class Config:
        from_attributes = True

    @computed_field
    @property
    def status_timestamps(self) -> Dict[str, Optional[datetime]]:
        return {
            "received": self.order_received_at,
            "preparing_started": self.preparing_started_at,
            "ready": self.ready_at,
            "out_for_delivery": self.out_for_delivery_at,
            "delivered": self.delivered_at,
            "cancelled": self.cancelled_at,
        }


class OrderList(BaseModel):
    orders: List[OrderRead]
    total_count: int


class OmittedItem(BaseModel):
    menu_item_id: str
    name: str
    reason: str  # not_found, unavailable, size_unavailable, addon_unavailable


class CartSeed(BaseModel):
    restaurant_id: str
    items: List[CartLine] = []
    omitted: List[OmittedItem] = []


class ReorderRead(BaseModel):
    cart: CartRead
    omitted_count: int
    omitted_items: List[OmittedItem] = []
