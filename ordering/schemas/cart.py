from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from decimal import Decimal
from enum import Enum
import uuid

from ordering.schemas.discount import DiscountType


class OrderType(str, Enum):
    delivery = "delivery"
    pickup = "pickup"


class PricedOption(BaseModel):
    """An add-on or modification and its per-unit price in minor units"""
    name: str
    price: int = 0


class SelectedSize(BaseModel):
    name: str
    price_adjustment: int = 0


class DeliveryAddress(BaseModel):
    street_address: str
    apartment_suite: Optional[str] = None
    city: str
    state: str
    zip_code: str


class CartLine(BaseModel):
    line_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    menu_item_id: str
    name: str
    unit_price: int
    selected_size: Optional[SelectedSize] = None
    addons: List[PricedOption] = []
    modifications: List[PricedOption] = []
    special_instructions: Optional[str] = None
    quantity: int
    item_total: int = 0

    def signature(self) -> tuple:
        """Identity used to merge lines: item, size, add-on set and modification set."""
        return (
            self.menu_item_id,
            self.selected_size.name if self.selected_size else None,
            tuple(sorted(a.name for a in self.addons)),
            tuple(sorted(m.name for m in self.modifications)),
        )


class AppliedDiscount(BaseModel):
    discount_id: str
    code: str
    type: DiscountType
    value: Decimal
    computed_amount: int = 0
    excluded_item_ids: List[str] = []


class CartState(BaseModel):
    """Authoritative cart aggregate for one user"""
    user_id: str
    restaurant_id: Optional[str] = None
    items: List[CartLine] = []
    order_type: Optional[OrderType] = None
    delivery_address: Optional[DeliveryAddress] = None
    applied_discount: Optional[AppliedDiscount] = None
    tip: int = 0

    subtotal: int = 0
    discount_amount: int = 0
    delivery_fee: int = 0
    tax: int = 0
    grand_total: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_line(self, line_id: str) -> Optional[CartLine]:
        for line in self.items:
            if line.line_id == line_id:
                return line
        return None


class CartNotice(BaseModel):
    code: str  # discount_removed, total_mismatch
    message: str
    details: Dict[str, Any] = {}


class CartRead(CartState):
    notices: List[CartNotice] = []


# ---- Requests ----

class CartItemCreate(BaseModel):
    """Customizations are named only; prices come from the menu catalog"""
    menu_item_id: str
    quantity: int = 1
    selected_size: Optional[str] = None
    addons: List[str] = []
    modifications: List[str] = []
    special_instructions: Optional[str] = None


class CartItemUpdate(BaseModel):
    quantity: Optional[int] = None
    selected_size: Optional[str] = None
    addons: Optional[List[str]] = None
    modifications: Optional[List[str]] = None
    special_instructions: Optional[str] = None


class OrderTypeUpdate(BaseModel):
    order_type: OrderType


class DiscountApply(BaseModel):
    code: str


class TipUpdate(BaseModel):
    tip: int
