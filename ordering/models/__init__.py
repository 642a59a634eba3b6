from .base import Base
from .restaurant import Restaurant
from .menu_item import MenuItem, MenuItemSize, MenuItemAddon
from .cart import Cart, CartItem
from .discount import Discount, DiscountRedemption
from .order import Order, OrderItem, OrderStatus, STATUS_TIMESTAMP_FIELDS
