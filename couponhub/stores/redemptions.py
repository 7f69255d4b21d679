# couponhub/stores/redemptions.py
from __future__ import annotations

from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from couponhub.models.redemption import CouponRedemption


class RedemptionLedger(Protocol):
    """Append-only; entries are never updated or deleted."""

    async def count_by_coupon_and_user(self, coupon_id: int, user_id: str) -> int:
        ...

    async def append(self, entry: CouponRedemption) -> CouponRedemption:
        ...


class SQLRedemptionLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_by_coupon_and_user(self, coupon_id: int, user_id: str) -> int:
        res = await self.db.execute(
            select(func.count())
            .select_from(CouponRedemption)
            .where(
                CouponRedemption.coupon_id == coupon_id,
                CouponRedemption.user_id == user_id,
            )
        )
        return int(res.scalar_one())

    async def append(self, entry: CouponRedemption) -> CouponRedemption:
        self.db.add(entry)
        await self.db.flush()
        return entry
