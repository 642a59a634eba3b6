from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text, Enum, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from ordering.models.base import Base
import uuid, enum


class OrderStatus(str, enum.Enum):
    ORDER_RECEIVED = "order_received"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Order(Base):
    """Checked-out snapshot of a cart. Only lifecycle columns change after insert."""
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False)
    order_type = Column(String, nullable=False)  # fixed at creation
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.ORDER_RECEIVED)

    delivery_address = Column(JSON, nullable=True)
    special_instructions = Column(Text, nullable=True)

    # Pricing snapshot, minor units
    subtotal = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    discount_id = Column(String, ForeignKey("discounts.id"), nullable=True)
    discount_code = Column(String, nullable=True)
    delivery_fee = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False)
    tip = Column(Integer, nullable=False, default=0)
    grand_total = Column(Integer, nullable=False)

    payment_method_id = Column(String, nullable=False)  # opaque gateway reference
    estimated_ready_at = Column(DateTime, nullable=True)

    order_received_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    preparing_started_at = Column(DateTime, nullable=True)
    ready_at = Column(DateTime, nullable=True)
    out_for_delivery_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_orders_user", "user_id"),
        Index("idx_orders_restaurant", "restaurant_id"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(String, nullable=False)  # no FK: history outlives the menu

    # Snapshot pricing and name at time of order
    name = Column(String, nullable=False)
    unit_price = Column(Integer, nullable=False)
    size_name = Column(String, nullable=True)
    size_price_adjustment = Column(Integer, nullable=False, default=0)
    addons = Column(JSON, nullable=False, default=list)
    modifications = Column(JSON, nullable=False, default=list)
    special_instructions = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False)
    item_total = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")


# Column stamped when an order enters each status
STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.ORDER_RECEIVED: "order_received_at",
    OrderStatus.PREPARING: "preparing_started_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}
