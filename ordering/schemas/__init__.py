from .discount import DiscountType, DiscountRule

from .cart import (
    OrderType,
    PricedOption,
    SelectedSize,
    DeliveryAddress,
    CartLine,
    AppliedDiscount,
    CartState,
    CartNotice,
    CartRead,
    CartItemCreate,
    CartItemUpdate,
    OrderTypeUpdate,
    DiscountApply,
    TipUpdate,
)

from .order import (
    CheckoutRequest,
    OrderStatusUpdate,
    OrderCancel,
    OrderItemRead,
    OrderRead,
    OrderList,
    OmittedItem,
    CartSeed,
    ReorderRead,
)

__all__ = [
    # Discounts
    "DiscountType",
    "DiscountRule",
    # Cart
    "OrderType",
    "PricedOption",
    "SelectedSize",
    "DeliveryAddress",
    "CartLine",
    "AppliedDiscount",
    "CartState",
    "CartNotice",
    "CartRead",
    "CartItemCreate",
    "CartItemUpdate",
    "OrderTypeUpdate",
    "DiscountApply",
    "TipUpdate",
    # Orders
    "CheckoutRequest",
    "OrderStatusUpdate",
    "OrderCancel",
    "OrderItemRead",
    "OrderRead",
    "OrderList",
    "OmittedItem",
    "CartSeed",
    "ReorderRead",
]
