"""
Discount Evaluation Service

Single authoritative check of a coupon against a cart. Rules run in a fixed
order and the first failure wins:

1. code exists, is active and today is inside [start_date, end_date]
2. today (restaurant local time) is one of valid_days
3. minimum_order_amount <= cart subtotal
4. cart restaurant == discount restaurant
5. per-user and global redemption limits
6. excluded items are left out of the discount base
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ordering.core.errors import DiscountError
from ordering.crud import discount as discount_crud
from ordering.crud import menu as menu_crud
from ordering.schemas.cart import AppliedDiscount, CartState
from ordering.schemas.discount import DiscountRule, DiscountType
from ordering.services.money import format_minor_units
from ordering.services.pricing import DiscountTerms, PricingEngine
from ordering.utils.timezones import sunday_based_weekday, to_local, utcnow

log = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass
class DiscountContext:
    now: datetime  # naive UTC
    timezone: Optional[str] = None
    user_redemptions: int = 0


def terms_for(discount: AppliedDiscount) -> DiscountTerms:
    return DiscountTerms(
        type=discount.type,
        value=discount.value,
        excluded_item_ids=discount.excluded_item_ids,
    )


def evaluate(
    rule: Optional[DiscountRule],
    cart: CartState,
    context: DiscountContext,
    pricing: Optional[PricingEngine] = None,
) -> AppliedDiscount:
    """Check ``rule`` against ``cart``; raise DiscountError or return the applied discount."""
    pricing = pricing or PricingEngine()

    # 1. existence, active flag, date window
    if rule is None or not rule.is_active:
        raise DiscountError(DiscountError.NOT_FOUND, "This discount code is not valid")
    if context.now < rule.start_date:
        raise DiscountError(
            DiscountError.NOT_YET_VALID,
            "This discount is not active yet",
            {"start_date": rule.start_date.isoformat()},
        )
    if context.now > rule.end_date:
        raise DiscountError(
            DiscountError.EXPIRED,
            "This discount has expired",
            {"end_date": rule.end_date.isoformat()},
        )

    # 2. day of week
    if rule.valid_days:
        today = sunday_based_weekday(to_local(context.now, context.timezone))
        if today not in rule.valid_days:
            raise DiscountError(
                DiscountError.NOT_VALID_TODAY,
                "This discount is only valid on " + ", ".join(DAY_NAMES[d] for d in sorted(rule.valid_days)),
                {"valid_days": sorted(rule.valid_days)},
            )

    # 3. minimum order
    subtotal = sum(pricing.compute_item_total(item) for item in cart.items)
    if rule.minimum_order_amount and subtotal < rule.minimum_order_amount:
        raise DiscountError(
            DiscountError.MINIMUM_NOT_MET,
            f"Minimum order of {format_minor_units(rule.minimum_order_amount)} required for this coupon",
            {"minimum_order_amount": rule.minimum_order_amount, "subtotal": subtotal},
        )

    # 4. restaurant scope
    if cart.restaurant_id != rule.restaurant_id:
        raise DiscountError(
            DiscountError.WRONG_RESTAURANT,
            "This discount is not valid for this restaurant",
        )

    # 5. redemption limits
    per_user = rule.per_user_limit
    if per_user is not None and context.user_redemptions >= per_user:
        raise DiscountError(
            DiscountError.REDEMPTION_LIMIT,
            "You have already redeemed this discount",
            {"scope": "user", "limit": per_user},
        )
    if rule.total_redemption_limit is not None and rule.current_redemption_count >= rule.total_redemption_limit:
        raise DiscountError(
            DiscountError.REDEMPTION_LIMIT,
            "This discount is no longer available",
            {"scope": "global", "limit": rule.total_redemption_limit},
        )

    # 6. exclusions only shape the amount
    applied = AppliedDiscount(
        discount_id=rule.id,
        code=rule.code,
        type=rule.discount_type,
        value=rule.value,
        excluded_item_ids=list(rule.excluded_items),
    )
    applied.computed_amount = pricing.compute_discount(cart.items, terms_for(applied))
    return applied


class DiscountEvaluator:
    """Loads discount rules and redemption history, then runs ``evaluate``"""

    def __init__(self, db: AsyncSession, pricing: Optional[PricingEngine] = None):
        self.db = db
        self.pricing = pricing or PricingEngine()

    async def _find_rule(self, code: str, restaurant_id: Optional[str]) -> Optional[DiscountRule]:
        candidates = await discount_crud.get_discounts_by_code(self.db, code)
        if not candidates:
            return None
        # Codes may repeat across restaurants; prefer the cart's restaurant
        chosen = next((d for d in candidates if d.restaurant_id == restaurant_id), candidates[0])
        return DiscountRule.model_validate(chosen)

    async def apply(
        self,
        cart: CartState,
        code: str,
        now: Optional[datetime] = None,
    ) -> AppliedDiscount:
        rule = await self._find_rule(code, cart.restaurant_id)

        context = DiscountContext(now=now or utcnow())
        if rule is not None:
            restaurant = await menu_crud.get_restaurant(self.db, rule.restaurant_id)
            context.timezone = restaurant.timezone if restaurant else None
            context.user_redemptions = await discount_crud.count_user_redemptions(
                self.db, rule.id, cart.user_id
            )

        try:
            return evaluate(rule, cart, context, self.pricing)
        except DiscountError as e:
            log.warning("discount rejected: user=%s code=%s reason=%s", cart.user_id, code, e.reason)
            raise

    async def revalidate(self, cart: CartState, now: Optional[datetime] = None) -> Optional[AppliedDiscount]:
        """Re-run the rules for the cart's current discount, if any."""
        if cart.applied_discount is None:
            return None
        return await self.apply(cart, cart.applied_discount.code, now=now)
