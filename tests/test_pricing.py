from decimal import Decimal

from ordering.schemas.cart import CartLine, PricedOption, SelectedSize
from ordering.schemas.discount import DiscountType
from ordering.services.pricing import DiscountTerms, PricingEngine

engine = PricingEngine(tax_rate=Decimal("0.085"))


def line(menu_item_id="m1", unit_price=1000, quantity=1, **kwargs):
    return CartLine(menu_item_id=menu_item_id, name=menu_item_id, unit_price=unit_price, quantity=quantity, **kwargs)


def test_item_total_includes_size_addons_and_modifications():
    item = line(
        unit_price=1000,
        quantity=3,
        selected_size=SelectedSize(name="Large", price_adjustment=300),
        addons=[PricedOption(name="cheese", price=150), PricedOption(name="olives", price=75)],
        modifications=[PricedOption(name="gluten free crust", price=200), PricedOption(name="no onions")],
    )
    assert engine.compute_item_total(item) == (1000 + 300 + 150 + 75 + 200) * 3


def test_worked_example():
    items = [line(unit_price=1000, quantity=2, addons=[PricedOption(name="cheese", price=150)])]
    totals = engine.compute_cart_totals(
        items,
        delivery_fee=300,
        tip=400,
        discount=DiscountTerms(type=DiscountType.percentage, value=Decimal("10")),
    )
    assert totals.subtotal == 2300
    assert totals.discount_amount == 230
    assert totals.delivery_fee == 300
    assert totals.tax == 201
    assert totals.tip == 400
    assert totals.grand_total == 2971


def test_tip_is_not_taxed():
    items = [line(unit_price=1000)]
    without_tip = engine.compute_cart_totals(items)
    with_tip = engine.compute_cart_totals(items, tip=500)
    assert without_tip.tax == with_tip.tax == 85
    assert with_tip.grand_total == without_tip.grand_total + 500


def test_fixed_discount_never_exceeds_subtotal():
    items = [line(unit_price=300)]
    totals = engine.compute_cart_totals(
        items, discount=DiscountTerms(type=DiscountType.fixed_amount, value=Decimal("500"))
    )
    assert totals.discount_amount == 300
    assert totals.tax == 0
    assert totals.grand_total == 0


def test_excluded_items_shrink_discount_base():
    items = [line("pizza", 1000), line("wings", 800)]
    terms = DiscountTerms(type=DiscountType.percentage, value=Decimal("50"), excluded_item_ids=["wings"])
    totals = engine.compute_cart_totals(items, discount=terms)
    assert totals.subtotal == 1800
    assert totals.discount_amount == 500


def test_fixed_discount_clamped_to_non_excluded_base():
    items = [line("pizza", 200), line("wings", 800)]
    terms = DiscountTerms(type=DiscountType.fixed_amount, value=Decimal("500"), excluded_item_ids=["wings"])
    assert engine.compute_discount(items, terms) == 200


def test_empty_cart_prices_to_zero():
    totals = engine.compute_cart_totals([])
    assert totals.subtotal == totals.tax == totals.grand_total == 0


def test_recomputing_is_deterministic():
    items = [line(unit_price=1234, quantity=7, addons=[PricedOption(name="x", price=33)])]
    terms = DiscountTerms(type=DiscountType.percentage, value=Decimal("12.5"))
    first = engine.compute_cart_totals(items, 299, 100, terms)
    second = engine.compute_cart_totals(items, 299, 100, terms)
    assert first == second


def test_price_lines_refreshes_item_totals():
    items = [line(unit_price=500, quantity=2), line("m2", 250, quantity=4)]
    engine.price_lines(items)
    assert [i.item_total for i in items] == [1000, 1000]
