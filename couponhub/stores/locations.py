# couponhub/stores/locations.py
from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from couponhub.models.location import Location


class LocationDirectory(Protocol):
    async def get(self, location_id: int) -> Location | None:
        ...


class SQLLocationDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, location_id: int) -> Location | None:
        res = await self.db.execute(select(Location).where(Location.id == location_id))
        return res.scalar_one_or_none()
