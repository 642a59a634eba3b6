from .pricing import PricingEngine, CartTotals, DiscountTerms
from .discounts import DiscountEvaluator, DiscountContext, evaluate
from .cart_store import CartStore
from .lifecycle import OrderLifecycle, allowed_transitions, check_transition
from .checkout import CheckoutService
from .reorder import ReorderService

__all__ = [
    "PricingEngine",
    "CartTotals",
    "DiscountTerms",
    "DiscountEvaluator",
    "DiscountContext",
    "evaluate",
    "CartStore",
    "OrderLifecycle",
    "allowed_transitions",
    "check_transition",
    "CheckoutService",
    "ReorderService",
]
