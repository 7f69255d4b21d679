"""
Record stores used by the coupon services.

Each store is a Protocol plus a SQLAlchemy implementation bound to the
request's AsyncSession. The session doubles as the unit of work: stores
only execute/flush, services decide when to commit or roll back.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from couponhub.stores.coupons import CouponStore, SQLCouponStore
from couponhub.stores.locations import LocationDirectory, SQLLocationDirectory
from couponhub.stores.redemptions import RedemptionLedger, SQLRedemptionLedger


class UnitOfWork(Protocol):
    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


@dataclass
class Stores:
    session: UnitOfWork
    coupons: CouponStore
    ledger: RedemptionLedger
    locations: LocationDirectory


def sql_stores(db: AsyncSession) -> Stores:
    return Stores(
        session=db,
        coupons=SQLCouponStore(db),
        ledger=SQLRedemptionLedger(db),
        locations=SQLLocationDirectory(db),
    )


__all__ = [
    "CouponStore",
    "LocationDirectory",
    "RedemptionLedger",
    "SQLCouponStore",
    "SQLLocationDirectory",
    "SQLRedemptionLedger",
    "Stores",
    "UnitOfWork",
    "sql_stores",
]
