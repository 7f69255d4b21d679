# couponhub/services/coupons.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from couponhub.models.coupon import Coupon
from couponhub.schemas.coupons import (
    TERMS_MODELS,
    CouponCreateBase,
    CouponUpdate,
    split_terms,
)
from couponhub.stores import Stores

logger = logging.getLogger(__name__)


class CouponError(Exception):
    status_code = 400
    message = "Coupon request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class CouponNotFound(CouponError):
    status_code = 404
    message = "Coupon not found"


class LocationNotFound(CouponError):
    status_code = 404
    message = "Location not found"


class AlreadyActive(CouponError):
    message = "Coupon is already active."


class AlreadyInactive(CouponError):
    message = "Coupon is already inactive."


class DuplicateCouponCode(CouponError):
    status_code = 409
    message = "Coupon code already exists"


class InvalidQuantityAdjustment(CouponError):
    message = "Quantity cannot go below zero"


class InvalidCouponTerms(CouponError):
    status_code = 422


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_redeemable(coupon: Coupon, now: datetime | None = None) -> bool:
    """
    Read-side form of the eligibility rule. The reserve step evaluates the
    same rule inside its UPDATE, so never use this to gate a write.
    """
    now = now or _now_utc()
    return (
        bool(coupon.is_active)
        and _as_utc(coupon.expiration_date) >= _as_utc(now)
        and int(coupon.quantity) > 0
    )


# -------------------------
# Lifecycle
# -------------------------
async def _transition(stores: Stores, coupon_id: int, *, active: bool) -> Coupon:
    try:
        coupon = await stores.coupons.set_active(coupon_id, active)
        if coupon is None:
            existing = await stores.coupons.get(coupon_id)
            if existing is None:
                raise CouponNotFound()
            raise AlreadyActive() if active else AlreadyInactive()

        await stores.session.commit()

    except Exception:
        await stores.session.rollback()
        raise

    logger.info("coupon %s %s", coupon_id, "activated" if active else "deactivated")
    return coupon


async def activate_coupon(stores: Stores, coupon_id: int) -> Coupon:
    return await _transition(stores, coupon_id, active=True)


async def deactivate_coupon(stores: Stores, coupon_id: int) -> Coupon:
    return await _transition(stores, coupon_id, active=False)


async def adjust_coupon_quantity(stores: Stores, coupon_id: int, delta: int) -> Coupon:
    """Restock (delta > 0) or withdraw (delta < 0) redemption budget."""
    try:
        coupon = await stores.coupons.adjust_quantity(coupon_id, delta)
        if coupon is None:
            if await stores.coupons.get(coupon_id) is None:
                raise CouponNotFound()
            raise InvalidQuantityAdjustment()

        await stores.session.commit()

    except Exception:
        await stores.session.rollback()
        raise

    logger.info("coupon %s quantity adjusted by %+d -> %d", coupon_id, delta, coupon.quantity)
    return coupon


# -------------------------
# CRUD
# -------------------------
async def create_coupon(stores: Stores, payload: CouponCreateBase) -> Coupon:
    if await stores.locations.get(payload.location_id) is None:
        raise LocationNotFound()

    if await stores.coupons.get_by_code(payload.code) is not None:
        raise DuplicateCouponCode()

    coupon = Coupon(
        location_id=payload.location_id,
        type=payload.type,
        code=payload.code,
        terms=split_terms(payload),
        is_active=payload.is_active,
        expiration_date=payload.expiration_date,
        quantity=payload.quantity,
        max_usage_per_user=payload.max_usage_per_user,
    )

    try:
        await stores.coupons.add(coupon)
        await stores.session.commit()
    except IntegrityError:
        # lost a race on the unique code
        await stores.session.rollback()
        raise DuplicateCouponCode()
    except Exception:
        await stores.session.rollback()
        raise

    logger.info("coupon %s created for location %s (%s)", coupon.id, coupon.location_id, coupon.type)
    return coupon


async def get_coupon(stores: Stores, coupon_id: int) -> Coupon:
    coupon = await stores.coupons.get(coupon_id)
    if coupon is None:
        raise CouponNotFound()
    return coupon


async def list_location_coupons(
    stores: Stores,
    location_id: int,
    *,
    redeemable_only: bool = False,
) -> list[Coupon]:
    coupons = list(await stores.coupons.list_active_for_location(location_id))
    if redeemable_only:
        now = _now_utc()
        coupons = [c for c in coupons if is_redeemable(c, now)]
    return coupons


async def update_coupon(stores: Stores, coupon_id: int, payload: CouponUpdate) -> Coupon:
    coupon = await get_coupon(stores, coupon_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("code") and data["code"] != coupon.code:
        if await stores.coupons.get_by_code(data["code"]) is not None:
            raise DuplicateCouponCode()

    if data.get("terms") is not None:
        terms_model = TERMS_MODELS[coupon.type]
        try:
            terms = terms_model.model_validate({**data["terms"], "type": coupon.type})
        except ValidationError as e:
            raise InvalidCouponTerms(f"Invalid terms for {coupon.type}: {e.errors()[0]['msg']}")
        data["terms"] = terms.model_dump(mode="json", by_alias=True, exclude={"type"}, exclude_none=True)

    try:
        for field, value in data.items():
            if value is not None:
                setattr(coupon, field, value)

        await stores.coupons.save(coupon)
        await stores.session.commit()

    except IntegrityError:
        await stores.session.rollback()
        raise DuplicateCouponCode()
    except Exception:
        await stores.session.rollback()
        raise

    return coupon


async def delete_coupon(stores: Stores, coupon_id: int) -> None:
    try:
        deleted = await stores.coupons.delete(coupon_id)
        if not deleted:
            raise CouponNotFound()
        await stores.session.commit()
    except Exception:
        await stores.session.rollback()
        raise

    logger.info("coupon %s deleted", coupon_id)
