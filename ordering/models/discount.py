from sqlalchemy import (
    Column, String, Integer, Boolean, ForeignKey, DateTime, Numeric, Text, JSON, Index
)
from sqlalchemy.orm import relationship
from datetime import datetime
from ordering.models.base import Base
import uuid


class Discount(Base):
    """Restaurant-scoped coupon"""
    __tablename__ = "discounts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False)
    code = Column(String, nullable=False)  # stored upper-case
    description = Column(Text, nullable=True)

    discount_type = Column(String, nullable=False)  # percentage, fixed_amount
    # percentage: percent off (10.00 = 10%); fixed_amount: minor units
    value = Column(Numeric(10, 2), nullable=False)

    minimum_order_amount = Column(Integer, nullable=True)
    excluded_items = Column(JSON, nullable=False, default=list)  # menu_item ids
    valid_days = Column(JSON, nullable=False, default=list)  # 0=Sunday .. 6=Saturday, empty = every day

    is_one_time_use = Column(Boolean, nullable=False, default=False)
    max_redemptions_per_user = Column(Integer, nullable=True)
    total_redemption_limit = Column(Integer, nullable=True)
    current_redemption_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    restaurant = relationship("Restaurant", back_populates="discounts")
    redemptions = relationship("DiscountRedemption", back_populates="discount", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_discounts_code", "code"),
        Index("idx_discounts_restaurant", "restaurant_id"),
    )


class DiscountRedemption(Base):
    __tablename__ = "discount_redemptions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    discount_id = Column(String, ForeignKey("discounts.id"), nullable=False)
    user_id = Column(String, nullable=False)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False)
    discount_amount_applied = Column(Integer, nullable=False)
    redeemed_at = Column(DateTime, default=datetime.utcnow)

    discount = relationship("Discount", back_populates="redemptions")

    __table_args__ = (
        Index("idx_redemptions_discount_user", "discount_id", "user_id"),
    )
