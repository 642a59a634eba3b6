from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from ordering.models.base import Base
import uuid


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)  # minor units
    is_available = Column(Boolean, nullable=False, default=True)

    restaurant = relationship("Restaurant", back_populates="menu_items")
    sizes = relationship("MenuItemSize", back_populates="menu_item", cascade="all, delete-orphan")
    addons = relationship(
        "MenuItemAddon",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="MenuItemAddon.display_order",
    )


class MenuItemSize(Base):
    __tablename__ = "menu_item_sizes"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    menu_item_id = Column(String, ForeignKey("menu_items.id"), nullable=False)
    size_name = Column(String, nullable=False)
    price_adjustment = Column(Integer, nullable=False, default=0)

    menu_item = relationship("MenuItem", back_populates="sizes")

    __table_args__ = (
        UniqueConstraint("menu_item_id", "size_name", name="uq_menu_item_size"),
    )


class MenuItemAddon(Base):
    """Priced extra offered for a menu item. Cart prices always come from here."""
    __tablename__ = "menu_item_addons"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    menu_item_id = Column(String, ForeignKey("menu_items.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False, default="addon")  # addon, modification
    price = Column(Integer, nullable=False, default=0)  # minor units
    display_order = Column(Integer, nullable=False, default=0)

    menu_item = relationship("MenuItem", back_populates="addons")

    __table_args__ = (
        UniqueConstraint("menu_item_id", "kind", "name", name="uq_menu_item_addon"),
    )
