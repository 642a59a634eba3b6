from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed_amount = "fixed_amount"


class DiscountRule(BaseModel):
    """Snapshot of a Discount row, the input to the pure evaluator"""
    id: str
    restaurant_id: str
    code: str
    discount_type: DiscountType
    value: Decimal
    minimum_order_amount: Optional[int] = None
    excluded_items: List[str] = []
    valid_days: List[int] = []
    is_one_time_use: bool = False
    max_redemptions_per_user: Optional[int] = None
    total_redemption_limit: Optional[int] = None
    current_redemption_count: int = 0
    is_active: bool = True
    start_date: datetime
    end_date: datetime

    class Config:
        from_attributes = True

    @property
    def per_user_limit(self) -> Optional[int]:
        if self.is_one_time_use:
            return 1
        return self.max_redemptions_per_user
