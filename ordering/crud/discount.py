from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, or_, update
from ordering.models.discount import Discount, DiscountRedemption
from ordering.utils.timezones import utcnow


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


async def get_discounts_by_code(db: AsyncSession, code: str) -> List[Discount]:
    result = await db.execute(
        select(Discount)
        .where(Discount.code == normalize_code(code))
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def count_user_redemptions(db: AsyncSession, discount_id: str, user_id: str) -> int:
    result = await db.execute(
        select(func.count(DiscountRedemption.id)).where(
            DiscountRedemption.discount_id == discount_id,
            DiscountRedemption.user_id == user_id,
        )
    )
    return result.scalar_one()


async def record_redemption(
    db: AsyncSession,
    discount_id: str,
    user_id: str,
    order_id: str,
    amount: int,
) -> Optional[DiscountRedemption]:
    """
    Bump the global counter and log a redemption. Flushes only.

    The counter only moves while it is under ``total_redemption_limit``, checked
    in the same UPDATE. Returns None when the limit was already used up, in
    which case nothing is written.
    """
    result = await db.execute(
        update(Discount)
        .where(
            Discount.id == discount_id,
            or_(
                Discount.total_redemption_limit.is_(None),
                Discount.current_redemption_count < Discount.total_redemption_limit,
            ),
        )
        .values(current_redemption_count=Discount.current_redemption_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    redemption = DiscountRedemption(
        discount_id=discount_id,
        user_id=user_id,
        order_id=order_id,
        discount_amount_applied=amount,
        redeemed_at=utcnow(),
    )
    db.add(redemption)
    await db.flush()
    return redemption
