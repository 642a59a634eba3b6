"""
Error taxonomy for the cart/order engine.

Every error carries a machine-readable ``code`` so the API layer can render a
precise message. None of these leave a cart or order partially updated: they
are raised before anything is written.
"""
from typing import Any, Dict, Optional


class OrderingError(Exception):
    """Base class for all engine errors"""

    code = "ordering_error"
    status_code = 400

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(OrderingError):
    """Bad quantity, malformed customization or an incomplete checkout"""

    code = "validation_error"
    status_code = 422


class NotFound(OrderingError):
    code = "not_found"
    status_code = 404


class DiscountError(OrderingError):
    """A discount code failed one of the evaluator's rules"""

    code = "discount_error"
    status_code = 400

    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    NOT_VALID_TODAY = "not_valid_today"
    MINIMUM_NOT_MET = "minimum_not_met"
    WRONG_RESTAURANT = "wrong_restaurant"
    REDEMPTION_LIMIT = "redemption_limit"
    NOT_FOUND = "not_found"

    def __init__(self, reason: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        super().__init__(message, details={"reason": reason, **(details or {})})


class RestaurantConflict(OrderingError):
    """The cart is bound to another restaurant; the caller must confirm a replace"""

    code = "restaurant_conflict"
    status_code = 409

    def __init__(self, current_restaurant_id: str, requested_restaurant_id: str):
        self.current_restaurant_id = current_restaurant_id
        self.requested_restaurant_id = requested_restaurant_id
        super().__init__(
            "Your cart contains items from another restaurant. "
            "Confirm to clear it and start a new cart.",
            details={
                "current_restaurant_id": current_restaurant_id,
                "requested_restaurant_id": requested_restaurant_id,
            },
        )


class MinimumOrderNotMet(OrderingError):
    code = "minimum_order_not_met"
    status_code = 400

    def __init__(self, minimum: int, subtotal: int):
        self.minimum = minimum
        self.subtotal = subtotal
        super().__init__(
            f"Minimum order amount is {minimum} and the cart subtotal is {subtotal}",
            details={"minimum": minimum, "subtotal": subtotal},
        )


class InvalidTransition(OrderingError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, requested: str, message: Optional[str] = None, code: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move order from {current} to {requested}",
            code=code,
            details={"current": current, "requested": requested},
        )
