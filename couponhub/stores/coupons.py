# couponhub/stores/coupons.py
from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from couponhub.models.coupon import Coupon


class CouponStore(Protocol):
    async def get(self, coupon_id: int) -> Coupon | None:
        ...

    async def get_by_code(self, code: str) -> Coupon | None:
        ...

    async def add(self, coupon: Coupon) -> Coupon:
        ...

    async def save(self, coupon: Coupon) -> Coupon:
        """Flush pending attribute changes on an already loaded coupon."""
        ...

    async def delete(self, coupon_id: int) -> bool:
        ...

    async def list_active_for_location(self, location_id: int) -> Sequence[Coupon]:
        ...

    async def find_and_decrement_if_eligible(self, coupon_id: int, now: datetime) -> Coupon | None:
        """
        Atomically take one unit from an active, unexpired coupon with stock.
        Returns the post-decrement record, or None when nothing matched.
        """
        ...

    async def increment_quantity(self, coupon_id: int, delta: int) -> Coupon | None:
        """Unconditional quantity += delta."""
        ...

    async def adjust_quantity(self, coupon_id: int, delta: int) -> Coupon | None:
        """quantity += delta only if the result stays >= 0."""
        ...

    async def set_active(self, coupon_id: int, active: bool) -> Coupon | None:
        """Flip is_active only if it currently holds the opposite value."""
        ...


class SQLCouponStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, coupon_id: int) -> Coupon | None:
        res = await self.db.execute(select(Coupon).where(Coupon.id == coupon_id))
        return res.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Coupon | None:
        res = await self.db.execute(select(Coupon).where(Coupon.code == code))
        return res.scalar_one_or_none()

    async def add(self, coupon: Coupon) -> Coupon:
        self.db.add(coupon)
        await self.db.flush()
        await self.db.refresh(coupon)
        return coupon

    async def save(self, coupon: Coupon) -> Coupon:
        await self.db.flush()
        await self.db.refresh(coupon)
        return coupon

    async def delete(self, coupon_id: int) -> bool:
        res = await self.db.execute(
            delete(Coupon)
            .where(Coupon.id == coupon_id)
            .returning(Coupon.id)
            .execution_options(synchronize_session="fetch")
        )
        return res.scalar_one_or_none() is not None

    async def list_active_for_location(self, location_id: int) -> Sequence[Coupon]:
        res = await self.db.execute(
            select(Coupon)
            .where(Coupon.location_id == location_id, Coupon.is_active.is_(True))
            .order_by(Coupon.expiration_date.asc(), Coupon.id.asc())
        )
        return res.scalars().all()

    async def _update_returning(self, stmt) -> Coupon | None:
        res = await self.db.execute(
            stmt.returning(Coupon).execution_options(
                synchronize_session="fetch", populate_existing=True
            )
        )
        return res.scalar_one_or_none()

    async def find_and_decrement_if_eligible(self, coupon_id: int, now: datetime) -> Coupon | None:
        # eligibility and decrement in ONE statement; never read-then-write
        return await self._update_returning(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_active.is_(True),
                Coupon.expiration_date >= now,
                Coupon.quantity > 0,
            )
            .values(quantity=Coupon.quantity - 1)
        )

    async def increment_quantity(self, coupon_id: int, delta: int) -> Coupon | None:
        return await self._update_returning(
            update(Coupon)
            .where(Coupon.id == coupon_id)
            .values(quantity=Coupon.quantity + delta)
        )

    async def adjust_quantity(self, coupon_id: int, delta: int) -> Coupon | None:
        return await self._update_returning(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.quantity + delta >= 0)
            .values(quantity=Coupon.quantity + delta)
        )

    async def set_active(self, coupon_id: int, active: bool) -> Coupon | None:
        return await self._update_returning(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.is_active.is_(not active))
            .values(is_active=active)
        )
