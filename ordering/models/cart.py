from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from ordering.models.base import Base
import uuid


class Cart(Base):
    """One live cart per user. Totals are the last authoritative pricing."""
    __tablename__ = "carts"

    user_id = Column(String, primary_key=True)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=True)
    order_type = Column(String, nullable=True)  # delivery, pickup
    delivery_address = Column(JSON, nullable=True)

    applied_discount_id = Column(String, ForeignKey("discounts.id"), nullable=True)
    applied_discount = Column(JSON, nullable=True)  # AppliedDiscount snapshot

    # Minor units
    tip = Column(Integer, nullable=False, default=0)
    subtotal = Column(Integer, nullable=False, default=0)
    discount_amount = Column(Integer, nullable=False, default=0)
    delivery_fee = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    grand_total = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.position",
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    cart_user_id = Column(String, ForeignKey("carts.user_id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    menu_item_id = Column(String, ForeignKey("menu_items.id"), nullable=False)
    name = Column(String, nullable=False)
    unit_price = Column(Integer, nullable=False)
    size_name = Column(String, nullable=True)
    size_price_adjustment = Column(Integer, nullable=False, default=0)
    addons = Column(JSON, nullable=False, default=list)
    modifications = Column(JSON, nullable=False, default=list)
    special_instructions = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False)
    item_total = Column(Integer, nullable=False)

    cart = relationship("Cart", back_populates="items")
