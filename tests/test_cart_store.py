import asyncio

import pytest

from ordering.core.errors import NotFound, RestaurantConflict, ValidationError
from ordering.crud import cart as cart_crud
from ordering.models import MenuItem, MenuItemAddon
from ordering.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    DeliveryAddress,
    OrderType,
    PricedOption,
)
from ordering.services.cart_store import CartStore
from ordering.utils.locks import cart_locks

from tests.conftest import USER_ID

ADDRESS = DeliveryAddress(street_address="1 Main St", city="Springfield", state="IL", zip_code="62701")


def pizza(quantity=1, **kwargs):
    return CartItemCreate(menu_item_id="m-pizza", quantity=quantity, **kwargs)


def wings(quantity=1, **kwargs):
    return CartItemCreate(menu_item_id="m-wings", quantity=quantity, **kwargs)


def taco(quantity=1):
    return CartItemCreate(menu_item_id="m-taco", quantity=quantity)


@pytest.fixture
def store(db, seed):
    return CartStore(db)


async def test_empty_cart(store):
    cart = await store.get_cart(USER_ID)
    assert cart.is_empty
    assert cart.restaurant_id is None
    assert cart.grand_total == 0


async def test_add_item_prices_from_catalog(store):
    cart = await store.add_item(
        USER_ID,
        pizza(2, selected_size="Large", addons=["cheese"]),
    )
    assert cart.restaurant_id == "r-pizza"
    [line] = cart.items
    assert line.unit_price == 1000
    assert line.selected_size.price_adjustment == 300
    assert line.item_total == (1000 + 300 + 150) * 2
    assert cart.subtotal == 2900
    assert cart.tax == 247  # 246.5
    assert cart.grand_total == 2900 + 247


async def test_same_item_merges_quantity(store):
    await store.add_item(USER_ID, pizza(1))
    cart = await store.add_item(USER_ID, pizza(2))
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3


async def test_different_customizations_stay_separate(store):
    await store.add_item(USER_ID, pizza(1))
    await store.add_item(USER_ID, pizza(1, selected_size="Large"))
    cart = await store.add_item(USER_ID, pizza(1, addons=["cheese"]))
    assert len(cart.items) == 3


async def test_addon_order_does_not_change_identity(store):
    await store.add_item(USER_ID, pizza(1, addons=["cheese", "basil"]))
    cart = await store.add_item(USER_ID, pizza(1, addons=["basil", "cheese"]))
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2


async def test_other_restaurant_is_rejected_without_confirmation(store):
    before = await store.add_item(USER_ID, pizza(1))
    with pytest.raises(RestaurantConflict) as exc:
        await store.add_item(USER_ID, taco())
    assert exc.value.current_restaurant_id == "r-pizza"
    assert exc.value.requested_restaurant_id == "r-tacos"

    after = await store.get_cart(USER_ID)
    assert after.restaurant_id == "r-pizza"
    assert [line.line_id for line in after.items] == [line.line_id for line in before.items]


async def test_replace_cart_switches_restaurant(store):
    await store.add_item(USER_ID, pizza(1))
    await store.apply_discount(USER_ID, "SAVE10")
    await store.set_tip(USER_ID, 200)

    cart = await store.add_item(USER_ID, taco(2), replace_cart=True)
    assert cart.restaurant_id == "r-tacos"
    assert [line.menu_item_id for line in cart.items] == ["m-taco"]
    assert cart.applied_discount is None
    assert cart.tip == 0


async def test_unknown_and_unavailable_items(store):
    with pytest.raises(NotFound):
        await store.add_item(USER_ID, CartItemCreate(menu_item_id="nope"))
    with pytest.raises(ValidationError) as exc:
        await store.add_item(USER_ID, CartItemCreate(menu_item_id="m-soda"))
    assert exc.value.code == "item_unavailable"


async def test_unknown_size_is_rejected(store):
    with pytest.raises(ValidationError) as exc:
        await store.add_item(USER_ID, pizza(1, selected_size="Family"))
    assert exc.value.code == "invalid_size"


@pytest.mark.parametrize("quantity", [0, -1, 100])
async def test_add_quantity_bounds(store, quantity):
    with pytest.raises(ValidationError) as exc:
        await store.add_item(USER_ID, pizza(quantity))
    assert exc.value.code == "invalid_quantity"


async def test_merge_cannot_exceed_max_quantity(store):
    await store.add_item(USER_ID, pizza(60))
    with pytest.raises(ValidationError):
        await store.add_item(USER_ID, pizza(40))
    cart = await store.get_cart(USER_ID)
    assert cart.items[0].quantity == 60


async def test_bad_customizations(store):
    with pytest.raises(ValidationError) as exc:
        await store.add_item(USER_ID, pizza(1, addons=["anchovies"]))
    assert exc.value.code == "invalid_customization"
    with pytest.raises(ValidationError):
        await store.add_item(USER_ID, pizza(1, modifications=[" "]))
    with pytest.raises(ValidationError):
        await store.add_item(USER_ID, pizza(1, addons=["cheese", "Cheese"]))
    with pytest.raises(ValidationError):
        await store.add_item(USER_ID, wings(1, addons=["cheese"]))

    cart = await store.get_cart(USER_ID)
    assert cart.is_empty


async def test_addon_and_modification_prices_come_from_catalog(store):
    cart = await store.add_item(USER_ID, pizza(1, addons=[" Olives "], modifications=["well done"]))
    [line] = cart.items
    assert line.addons == [PricedOption(name="olives", price=75)]
    assert line.modifications == [PricedOption(name="well done", price=0)]
    assert line.item_total == 1075

    cart = await store.add_item(USER_ID, wings(1, modifications=["Extra Crispy"]))
    assert cart.items[1].modifications == [PricedOption(name="extra crispy", price=99)]
    assert cart.subtotal == 1075 + 899


async def test_update_reprices_addons_from_catalog(store, db):
    cart = await store.add_item(USER_ID, pizza(1, addons=["cheese"]))
    line_id = cart.items[0].line_id

    cheese = await db.get(MenuItemAddon, "a-cheese")
    cheese.price = 200
    await db.commit()

    cart = await store.update_item(USER_ID, line_id, CartItemUpdate(addons=["cheese", "basil"]))
    assert cart.items[0].addons == [PricedOption(name="cheese", price=200), PricedOption(name="basil", price=35)]
    assert cart.subtotal == 1235

    with pytest.raises(ValidationError) as exc:
        await store.update_item(USER_ID, line_id, CartItemUpdate(addons=["pineapple"]))
    assert exc.value.code == "invalid_customization"
    after = await store.get_cart(USER_ID)
    assert after.subtotal == 1235


async def test_update_quantity(store):
    cart = await store.add_item(USER_ID, pizza(1))
    line_id = cart.items[0].line_id
    cart = await store.update_item(USER_ID, line_id, CartItemUpdate(quantity=4))
    assert cart.items[0].quantity == 4
    assert cart.items[0].line_id == line_id
    assert cart.subtotal == 4000


async def test_update_to_zero_removes_line_and_resets_empty_cart(store):
    cart = await store.add_item(USER_ID, pizza(1))
    await store.set_order_type(USER_ID, OrderType.pickup)
    cart = await store.update_item(USER_ID, cart.items[0].line_id, CartItemUpdate(quantity=0))
    assert cart.is_empty
    assert cart.restaurant_id is None
    assert cart.order_type is None


async def test_update_unknown_line(store):
    await store.add_item(USER_ID, pizza(1))
    with pytest.raises(NotFound):
        await store.update_item(USER_ID, "missing", CartItemUpdate(quantity=2))


async def test_update_that_duplicates_a_line_folds_it(store):
    await store.add_item(USER_ID, pizza(1, selected_size="Large"))
    cart = await store.add_item(USER_ID, pizza(2))
    plain = next(line for line in cart.items if line.selected_size is None)

    cart = await store.update_item(USER_ID, plain.line_id, CartItemUpdate(selected_size="Large"))
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3


async def test_remove_item(store):
    await store.add_item(USER_ID, pizza(1))
    cart = await store.add_item(USER_ID, wings(1))
    wings_line = next(line for line in cart.items if line.menu_item_id == "m-wings")
    cart = await store.remove_item(USER_ID, wings_line.line_id)
    assert [line.menu_item_id for line in cart.items] == ["m-pizza"]


async def test_clear(store):
    await store.add_item(USER_ID, pizza(1))
    cart = await store.clear(USER_ID)
    assert cart.is_empty
    assert (await store.get_cart(USER_ID)).restaurant_id is None


async def test_order_type_controls_delivery_fee(store):
    await store.add_item(USER_ID, pizza(1))
    cart = await store.set_order_type(USER_ID, OrderType.delivery)
    assert cart.delivery_fee == 300
    assert cart.tax == 111  # (1000 + 300) * 0.085 = 110.5
    cart = await store.set_order_type(USER_ID, OrderType.pickup)
    assert cart.delivery_fee == 0


async def test_order_type_must_be_accepted(store):
    await store.add_item(USER_ID, taco())
    with pytest.raises(ValidationError) as exc:
        await store.set_order_type(USER_ID, OrderType.delivery)
    assert exc.value.code == "order_type_not_accepted"


async def test_delivery_address(store):
    await store.add_item(USER_ID, pizza(1))
    cart = await store.set_delivery_address(USER_ID, ADDRESS)
    assert cart.delivery_address.city == "Springfield"
    with pytest.raises(ValidationError) as exc:
        await store.set_delivery_address(USER_ID, ADDRESS.model_copy(update={"zip_code": ""}))
    assert exc.value.details["missing"] == ["zip_code"]


async def test_tip(store):
    await store.add_item(USER_ID, pizza(1))
    cart = await store.set_tip(USER_ID, 300)
    assert cart.tip == 300
    assert cart.grand_total == 1000 + 85 + 300
    with pytest.raises(ValidationError):
        await store.set_tip(USER_ID, -1)


async def test_cart_level_changes_need_items(store):
    with pytest.raises(ValidationError) as exc:
        await store.set_tip(USER_ID, 100)
    assert exc.value.code == "cart_empty"
    with pytest.raises(ValidationError):
        await store.apply_discount(USER_ID, "SAVE10")


async def test_discount_is_auto_removed_when_cart_falls_below_minimum(store):
    await store.add_item(USER_ID, pizza(2))
    cart = await store.add_item(USER_ID, wings(1))
    cart = await store.apply_discount(USER_ID, "BIG25")
    assert cart.discount_amount == 700  # 25% of 2800

    wings_line = next(line for line in cart.items if line.menu_item_id == "m-wings")
    cart = await store.remove_item(USER_ID, wings_line.line_id)
    assert cart.applied_discount is None
    assert cart.discount_amount == 0
    [notice] = cart.notices
    assert notice.code == "discount_removed"
    assert notice.details["reason"] == "minimum_not_met"


async def test_discount_amount_tracks_cart_changes(store):
    cart = await store.add_item(USER_ID, pizza(1))
    cart = await store.apply_discount(USER_ID, "SAVE10")
    assert cart.discount_amount == 100
    cart = await store.update_item(USER_ID, cart.items[0].line_id, CartItemUpdate(quantity=3))
    assert cart.discount_amount == 300
    assert cart.applied_discount.computed_amount == 300


async def test_remove_discount(store):
    await store.add_item(USER_ID, pizza(1))
    await store.apply_discount(USER_ID, "SAVE10")
    cart = await store.remove_discount(USER_ID)
    assert cart.applied_discount is None
    assert cart.discount_amount == 0


async def test_provisional_total_mismatch_is_flagged(store):
    cart = await store.add_item(USER_ID, pizza(1), provisional_total=1085)
    assert cart.notices == []
    cart = await store.add_item(USER_ID, pizza(1), provisional_total=2000)
    assert cart.grand_total == 2170
    [notice] = cart.notices
    assert notice.code == "total_mismatch"
    assert notice.details == {"provisional_total": 2000, "grand_total": 2170}


async def test_get_cart_is_idempotent(store):
    await store.add_item(USER_ID, pizza(2, selected_size="Large"))
    await store.apply_discount(USER_ID, "SAVE10")
    first = await store.get_cart(USER_ID)
    second = await store.get_cart(USER_ID)
    assert first.model_dump() == second.model_dump()


async def test_catalog_changes_do_not_reprice_existing_lines(store, db):
    await store.add_item(USER_ID, pizza(1))
    menu_item = await db.get(MenuItem, "m-pizza")
    menu_item.price = 5000
    await db.commit()
    cart = await store.get_cart(USER_ID)
    assert cart.items[0].unit_price == 1000


async def test_failed_mutation_leaves_cart_untouched(store, db):
    await store.add_item(USER_ID, pizza(1))
    before = await cart_crud.load_cart(db, USER_ID)
    with pytest.raises(ValidationError):
        await store.add_item(USER_ID, CartItemCreate(menu_item_id="m-wings", quantity=200))
    after = await cart_crud.load_cart(db, USER_ID)
    assert after == before


async def test_concurrent_adds_are_serialized(session_factory, seed):
    async def add_one():
        async with session_factory() as session:
            await CartStore(session).add_item(USER_ID, pizza(1))

    await asyncio.gather(*(add_one() for _ in range(5)))

    async with session_factory() as session:
        cart = await CartStore(session).get_cart(USER_ID)
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 5
    assert len(cart_locks) == 0


async def test_reapplying_a_removed_discount_gives_the_same_amount(store):
    await store.add_item(USER_ID, pizza(3, selected_size="Small", addons=["basil"]))
    applied = await store.apply_discount(USER_ID, "SAVE10")
    await store.remove_discount(USER_ID)
    reapplied = await store.apply_discount(USER_ID, "SAVE10")
    assert reapplied.discount_amount == applied.discount_amount == 251  # 250.5 rounds up
    assert reapplied.grand_total == applied.grand_total


async def test_grand_total_identity_holds(store):
    await store.add_item(USER_ID, pizza(3, selected_size="Large"))
    await store.add_item(USER_ID, wings(2, modifications=["extra crispy"]))
    await store.set_order_type(USER_ID, OrderType.delivery)
    await store.apply_discount(USER_ID, "BIG25")
    cart = await store.set_tip(USER_ID, 333)
    assert cart.grand_total == cart.subtotal - cart.discount_amount + cart.delivery_fee + cart.tax + cart.tip
