import asyncio
import logging
from datetime import timedelta

import pytest

from couponhub.services.coupons import activate_coupon, deactivate_coupon
from couponhub.services.redemptions import CouponUnavailable, UserLimitExceeded, redeem_coupon
from tests.conftest import utcnow
from tests.fakes import BrokenIncrementCouponStore, FakeCouponStore, fake_stores


def seed(stores, **fields):
    data = dict(
        location_id=1,
        type="BOGO",
        code="BOGO1",
        terms={},
        is_active=True,
        expiration_date=utcnow() + timedelta(days=1),
        quantity=1,
        max_usage_per_user=1,
    )
    data.update(fields)
    return stores.coupons.seed(**data)


async def redeem_many(stores, coupon_id, users):
    return await asyncio.gather(
        *(redeem_coupon(stores, coupon_id=coupon_id, location_id=1, user_id=u) for u in users),
        return_exceptions=True,
    )


async def test_never_more_successes_than_stock():
    stores = fake_stores()
    coupon = seed(stores, quantity=5)

    results = await redeem_many(stores, coupon.id, [f"user-{i}" for i in range(40)])

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 5
    assert all(isinstance(f, CouponUnavailable) for f in failures)
    assert coupon.quantity == 0
    assert len(stores.ledger.entries) == 5


async def test_quantity_is_conserved_when_users_race_their_own_limit():
    stores = fake_stores()
    coupon = seed(stores, quantity=10, max_usage_per_user=1)

    users = ["alice"] * 6 + ["bob"] * 6
    results = await redeem_many(stores, coupon.id, users)

    for r in results:
        if isinstance(r, Exception):
            assert isinstance(r, (CouponUnavailable, UserLimitExceeded))
    successes = sum(1 for r in results if not isinstance(r, Exception))

    # every unit is either still in stock or backed by exactly one ledger row
    assert successes == len(stores.ledger.entries)
    assert coupon.quantity + len(stores.ledger.entries) == 10
    assert coupon.quantity >= 0


async def test_sequential_over_limit_attempts_are_compensated():
    stores = fake_stores()
    coupon = seed(stores, quantity=5, max_usage_per_user=2)

    for _ in range(2):
        await redeem_coupon(stores, coupon_id=coupon.id, location_id=1, user_id="alice")

    for _ in range(3):
        with pytest.raises(UserLimitExceeded):
            await redeem_coupon(stores, coupon_id=coupon.id, location_id=1, user_id="alice")

    assert coupon.quantity == 3
    assert len(stores.ledger.entries) == 2


async def test_deactivation_racing_redemptions_leaves_consistent_state():
    stores = fake_stores()
    coupon = seed(stores, quantity=50, max_usage_per_user=1)

    redemptions = redeem_many(stores, coupon.id, [f"user-{i}" for i in range(20)])
    results, _ = await asyncio.gather(redemptions, deactivate_coupon(stores, coupon.id))

    successes = sum(1 for r in results if not isinstance(r, Exception))
    assert coupon.is_active is False
    assert coupon.quantity == 50 - successes
    assert len(stores.ledger.entries) == successes

    await activate_coupon(stores, coupon.id)
    await redeem_coupon(stores, coupon_id=coupon.id, location_id=1, user_id="late-user")
    assert coupon.quantity == 49 - successes


async def test_failed_compensation_is_logged_and_caller_sees_user_limit(caplog):
    stores = fake_stores(BrokenIncrementCouponStore())
    coupon = seed(stores, quantity=5, max_usage_per_user=1)

    await redeem_coupon(stores, coupon_id=coupon.id, location_id=1, user_id="alice")

    with caplog.at_level(logging.ERROR, logger="couponhub.services.redemptions"):
        with pytest.raises(UserLimitExceeded):
            await redeem_coupon(stores, coupon_id=coupon.id, location_id=1, user_id="alice")

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "manual reconciliation" in errors[0].getMessage()
    assert f"coupon_id={coupon.id}" in errors[0].getMessage()
    assert "user_id=alice" in errors[0].getMessage()
    assert errors[0].exc_info is not None

    # the reserved unit is lost
    assert coupon.quantity == 3
    assert len(stores.ledger.entries) == 1


async def test_rejected_redemption_rolls_back():
    stores = fake_stores(FakeCouponStore())
    coupon = seed(stores, quantity=0)

    with pytest.raises(CouponUnavailable):
        await redeem_coupon(stores, coupon_id=coupon.id, location_id=1, user_id="alice")

    assert stores.session.rollbacks == 1
    assert stores.session.commits == 0
