"""
Seed Demo Restaurant Data

Creates one restaurant with a small menu and a couple of coupons so the
cart and checkout routes can be tried locally.
It is SAFE to run multiple times (idempotent).

Usage:
    python scripts/seed_demo_menu.py [--restaurant-id demo-pizzeria]
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import timedelta
from decimal import Decimal

# -------------------------------------------------------------------
# WINDOWS EVENT LOOP FIX
# -------------------------------------------------------------------
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy.future import select

from ordering.db import async_session, create_db_and_tables
from ordering.models import Discount, MenuItem, MenuItemAddon, MenuItemSize, Restaurant
from ordering.services.money import to_minor_units
from ordering.utils.timezones import utcnow

log = logging.getLogger("seed_demo_menu")

# -------------------------------------------------------------------
# MENU SEED DATA
# (name, price, sizes: [(size_name, adjustment)])
# -------------------------------------------------------------------
MENU = [
    ("Margherita Pizza", "12.00", [("Small", "-2.00"), ("Large", "3.00")]),
    ("Pepperoni Pizza", "14.00", [("Small", "-2.00"), ("Large", "3.00")]),
    ("Garlic Knots", "5.50", []),
    ("Buffalo Wings", "9.00", [("12 pc", "6.00")]),
    ("Caesar Salad", "8.25", []),
    ("Fountain Soda", "2.50", [("Large", "0.75")]),
]

# menu item name -> [(name, kind, price)]
ADDONS = {
    "Margherita Pizza": [("Extra Cheese", "addon", "1.50"), ("Basil", "addon", "0.35"), ("Gluten Free Crust", "modification", "2.00")],
    "Pepperoni Pizza": [("Extra Cheese", "addon", "1.50"), ("Jalapenos", "addon", "0.75")],
    "Buffalo Wings": [("Ranch", "addon", "0.50"), ("Extra Crispy", "modification", "0.99")],
}

# (code, type, value, minimum_order, valid_days)
COUPONS = [
    ("WELCOME10", "percentage", Decimal("10"), None, []),
    ("FIVEOFF30", "fixed_amount", Decimal("500"), "30.00", []),
    ("WEEKDAY15", "percentage", Decimal("15"), "20.00", [1, 2, 3, 4, 5]),
]


async def seed(restaurant_id: str):
    await create_db_and_tables()

    async with async_session() as db:
        restaurant = await db.get(Restaurant, restaurant_id)
        if not restaurant:
            restaurant = Restaurant(
                id=restaurant_id,
                name="Demo Pizzeria",
                delivery_fee=to_minor_units("3.99"),
                minimum_order_amount=to_minor_units("10.00"),
                timezone="America/New_York",
            )
            db.add(restaurant)
            log.info("Created restaurant %s", restaurant_id)

        result = await db.execute(select(MenuItem.name).where(MenuItem.restaurant_id == restaurant_id))
        existing_items = set(result.scalars().all())
        for name, price, sizes in MENU:
            if name in existing_items:
                continue
            item = MenuItem(restaurant_id=restaurant_id, name=name, price=to_minor_units(price))
            item.sizes = [
                MenuItemSize(size_name=size, price_adjustment=_signed_minor_units(adjustment))
                for size, adjustment in sizes
            ]
            item.addons = [
                MenuItemAddon(name=addon, kind=kind, price=to_minor_units(addon_price), display_order=i)
                for i, (addon, kind, addon_price) in enumerate(ADDONS.get(name, []))
            ]
            db.add(item)
            log.info("Added menu item %s", name)

        result = await db.execute(select(Discount.code).where(Discount.restaurant_id == restaurant_id))
        existing_codes = set(result.scalars().all())
        now = utcnow()
        for code, discount_type, value, minimum, valid_days in COUPONS:
            if code in existing_codes:
                continue
            db.add(Discount(
                restaurant_id=restaurant_id,
                code=code,
                discount_type=discount_type,
                value=value,
                minimum_order_amount=to_minor_units(minimum) if minimum else None,
                excluded_items=[],
                valid_days=valid_days,
                start_date=now,
                end_date=now + timedelta(days=365),
            ))
            log.info("Added coupon %s", code)

        await db.commit()
    log.info("Seed complete.")


def _signed_minor_units(amount: str) -> int:
    if amount.startswith("-"):
        return -to_minor_units(amount[1:])
    return to_minor_units(amount)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Seed a demo restaurant")
    parser.add_argument("--restaurant-id", default="demo-pizzeria")
    args = parser.parse_args()
    asyncio.run(seed(args.restaurant_id))
