import itertools
import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-for-couponhub-tests-0123456789")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from couponhub.core.db import Base, get_db
from couponhub.core.security import create_access_token
from couponhub.main import app
from couponhub.models import Coupon, Location
from couponhub.stores import sql_stores


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'couponhub.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def stores(db):
    return sql_stores(db)


@pytest.fixture
async def location(session_factory):
    async with session_factory() as s:
        loc = Location(restaurant_id="rest-1", name="Taco Spot", address="1 Main St, Vancouver, Canada")
        s.add(loc)
        await s.commit()
        return loc


@pytest.fixture
def make_coupon(session_factory, location):
    codes = itertools.count(1)

    async def _make(**overrides) -> Coupon:
        data = dict(
            location_id=location.id,
            type="FlatDiscount",
            code=f"SAVE{next(codes)}",
            terms={"discountValue": 5.0},
            is_active=True,
            expiration_date=utcnow() + timedelta(days=7),
            quantity=5,
            max_usage_per_user=1,
        )
        data.update(overrides)
        async with session_factory() as s:
            coupon = Coupon(**data)
            s.add(coupon)
            await s.commit()
            return coupon

    return _make


@pytest.fixture
def fetch_coupon(session_factory):
    async def _fetch(coupon_id: int) -> Coupon | None:
        async with session_factory() as s:
            return await s.get(Coupon, coupon_id)

    return _fetch


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth_header(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id=user_id, role=role)}"}


@pytest.fixture
def customer_headers():
    return auth_header("customer-a", "Customer")


@pytest.fixture
def restaurant_headers():
    return auth_header("rest-1", "Restaurant")
