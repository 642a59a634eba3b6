"""
Pricing Engine

Turns cart lines into monetary totals:
- item_total = (unit_price + size adjustment + add-ons + modifications) x quantity
- subtotal = sum of item totals
- discount never exceeds its base (the non-excluded subtotal)
- tax on (subtotal - discount + delivery fee); tip is never taxed
- grand_total = subtotal - discount + delivery fee + tax + tip

Every derived field is rounded once from exact inputs, so recomputing the
same cart always yields the same numbers.
"""
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel

from ordering.core.config import TAX_RATE
from ordering.schemas.cart import CartLine
from ordering.schemas.discount import DiscountType
from ordering.services.money import percent_of, apply_rate, round_half_up


class DiscountTerms(BaseModel):
    type: DiscountType
    value: Decimal
    excluded_item_ids: List[str] = []


class CartTotals(BaseModel):
    subtotal: int
    discount_amount: int
    delivery_fee: int
    tax: int
    tip: int
    grand_total: int


class PricingEngine:
    """Computes per-item and per-cart totals in minor units"""

    def __init__(self, tax_rate: Decimal = TAX_RATE):
        self.tax_rate = Decimal(tax_rate)

    def compute_item_total(self, item: CartLine) -> int:
        unit = item.unit_price
        if item.selected_size:
            unit += item.selected_size.price_adjustment
        unit += sum(a.price for a in item.addons)
        unit += sum(m.price for m in item.modifications)
        return unit * item.quantity

    def compute_discount(self, items: Iterable[CartLine], discount: Optional[DiscountTerms]) -> int:
        if discount is None:
            return 0
        excluded = set(discount.excluded_item_ids)
        base = sum(
            self.compute_item_total(item)
            for item in items
            if item.menu_item_id not in excluded
        )
        if discount.type == DiscountType.percentage:
            amount = percent_of(base, discount.value)
        else:
            amount = round_half_up(discount.value)
        return max(0, min(amount, base))

    def compute_cart_totals(
        self,
        items: List[CartLine],
        delivery_fee: int = 0,
        tip: int = 0,
        discount: Optional[DiscountTerms] = None,
    ) -> CartTotals:
        subtotal = sum(self.compute_item_total(item) for item in items)
        discount_amount = self.compute_discount(items, discount)
        taxable = subtotal - discount_amount + delivery_fee
        tax = apply_rate(taxable, self.tax_rate)
        grand_total = subtotal - discount_amount + delivery_fee + tax + tip

        return CartTotals(
            subtotal=subtotal,
            discount_amount=discount_amount,
            delivery_fee=delivery_fee,
            tax=tax,
            tip=tip,
            grand_total=grand_total,
        )

    def price_lines(self, items: List[CartLine]) -> None:
        """Refresh the stored item_total on each line"""
        for item in items:
            item.item_total = self.compute_item_total(item)
