# couponhub/services/redemptions.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from couponhub.models.coupon import Coupon
from couponhub.models.redemption import CouponRedemption
from couponhub.services.coupons import CouponError, LocationNotFound
from couponhub.stores import Stores

logger = logging.getLogger(__name__)


class CouponUnavailable(CouponError):
    message = "Coupon not available or no quantity left"


class UserLimitExceeded(CouponError):
    message = "You have already redeemed this coupon"


@dataclass
class RedemptionResult:
    coupon: Coupon
    redemption: CouponRedemption


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


async def _compensate(stores: Stores, coupon: Coupon, user_id: str) -> None:
    """Give back the unit taken by the reserve step."""
    try:
        await stores.coupons.increment_quantity(coupon.id, 1)
        await stores.session.commit()
    except Exception:
        # Nothing else returns this unit: coupon is one short with no ledger row.
        logger.error(
            "compensation failed, manual reconciliation needed: coupon_id=%s user_id=%s",
            coupon.id,
            user_id,
            exc_info=True,
        )
        await stores.session.rollback()


async def redeem_coupon(
    stores: Stores,
    *,
    coupon_id: int,
    location_id: int,
    user_id: str,
    now: datetime | None = None,
) -> RedemptionResult:
    """
    Redeem one unit of a coupon for a user.

    Steps:
      1) location must exist                          -> LocationNotFound
      2) atomic reserve: decrement quantity only if
         active, unexpired and quantity > 0           -> CouponUnavailable
      3) count this user's ledger entries for coupon
      4) at/over max_usage_per_user: give the unit
         back (compensating increment)                -> UserLimitExceeded
      5) append ledger entry, commit

    Steps 2-5 share one transaction. Concurrency safety rests on step 2 being
    a single conditional UPDATE; there are no application-side locks.
    """
    now = now or _now_utc()

    location = await stores.locations.get(location_id)
    if location is None:
        raise LocationNotFound()

    try:
        coupon = await stores.coupons.find_and_decrement_if_eligible(coupon_id, now)
        if coupon is None:
            raise CouponUnavailable()

        used = await stores.ledger.count_by_coupon_and_user(coupon.id, user_id)
        limit = int(coupon.max_usage_per_user or 1)
        if used >= limit:
            await _compensate(stores, coupon, user_id)
            raise UserLimitExceeded()

        redemption = await stores.ledger.append(
            CouponRedemption(
                coupon_id=coupon.id,
                user_id=user_id,
                location_id=location.id,
                redeemed_at=now,
            )
        )

        await stores.session.commit()

    except CouponError as e:
        await stores.session.rollback()
        logger.debug("redemption rejected coupon_id=%s user_id=%s: %s", coupon_id, user_id, e)
        raise
    except Exception:
        await stores.session.rollback()
        raise

    logger.info(
        "coupon %s redeemed by %s at location %s (remaining=%s)",
        coupon.id,
        user_id,
        location.id,
        coupon.quantity,
    )
    return RedemptionResult(coupon=coupon, redemption=redemption)
