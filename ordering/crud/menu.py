from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from ordering.models.menu_item import MenuItem, MenuItemAddon, MenuItemSize
from ordering.models.restaurant import Restaurant


async def get_menu_item(db: AsyncSession, menu_item_id: str) -> Optional[MenuItem]:
    """Catalog lookup with sizes and add-ons loaded"""
    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.id == menu_item_id)
        .options(selectinload(MenuItem.sizes), selectinload(MenuItem.addons))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_menu_items(db: AsyncSession, menu_item_ids: Iterable[str]) -> Dict[str, MenuItem]:
    ids = list(set(menu_item_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.id.in_(ids))
        .options(selectinload(MenuItem.sizes), selectinload(MenuItem.addons))
        .execution_options(populate_existing=True)
    )
    return {item.id: item for item in result.scalars().all()}


def find_size(menu_item: MenuItem, size_name: str) -> Optional[MenuItemSize]:
    for size in menu_item.sizes or []:
        if size.size_name == size_name:
            return size
    return None


def find_addon(menu_item: MenuItem, name: str, kind: str = "addon") -> Optional[MenuItemAddon]:
    """Case-insensitive match within one kind (addon or modification)"""
    wanted = (name or "").strip().lower()
    for addon in menu_item.addons or []:
        if addon.kind == kind and addon.name.lower() == wanted:
            return addon
    return None


async def get_restaurant(db: AsyncSession, restaurant_id: str) -> Optional[Restaurant]:
    return await db.get(Restaurant, restaurant_id)
