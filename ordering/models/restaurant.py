from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from ordering.models.base import Base
import uuid


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)

    # Minor units (cents)
    delivery_fee = Column(Integer, nullable=False, default=0)
    minimum_order_amount = Column(Integer, nullable=False, default=0)

    accepts_delivery = Column(Boolean, nullable=False, default=True)
    accepts_pickup = Column(Boolean, nullable=False, default=True)
    estimated_prep_minutes = Column(Integer, nullable=False, default=20)
    estimated_delivery_minutes = Column(Integer, nullable=False, default=25)
    timezone = Column(String, nullable=True)  # IANA name; falls back to DEFAULT_TIMEZONE

    created_at = Column(DateTime, default=datetime.utcnow)

    menu_items = relationship("MenuItem", back_populates="restaurant", cascade="all, delete-orphan")
    discounts = relationship("Discount", back_populates="restaurant", cascade="all, delete-orphan")
