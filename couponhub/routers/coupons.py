# couponhub/routers/coupons.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from couponhub.core.deps import CurrentUser, get_stores, require_restaurant
from couponhub.schemas.coupons import (
    CouponCreate,
    CouponOut,
    CouponStatusOut,
    CouponUpdate,
    MessageOut,
    QuantityAdjustRequest,
)
from couponhub.services.coupons import (
    CouponError,
    activate_coupon,
    adjust_coupon_quantity,
    create_coupon,
    deactivate_coupon,
    delete_coupon,
    get_coupon,
    list_location_coupons,
    update_coupon,
)
from couponhub.stores import Stores

router = APIRouter(tags=["Coupons"])


def _http_error(e: CouponError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/coupons", response_model=CouponOut, status_code=201)
async def create(
    body: CouponCreate,
    stores: Stores = Depends(get_stores),
    restaurant: CurrentUser = Depends(require_restaurant),
):
    try:
        return await create_coupon(stores, body.root)
    except CouponError as e:
        raise _http_error(e)


@router.get("/coupons/{coupon_id}", response_model=CouponOut)
async def read(
    coupon_id: int,
    stores: Stores = Depends(get_stores),
):
    try:
        return await get_coupon(stores, coupon_id)
    except CouponError as e:
        raise _http_error(e)


@router.get("/locations/{location_id}/coupons", response_model=list[CouponOut])
async def list_for_location(
    location_id: int,
    redeemable_only: bool = Query(False, alias="redeemableOnly"),
    stores: Stores = Depends(get_stores),
):
    return await list_location_coupons(stores, location_id, redeemable_only=redeemable_only)


@router.put("/coupons/{coupon_id}", response_model=CouponOut)
async def update(
    coupon_id: int,
    body: CouponUpdate,
    stores: Stores = Depends(get_stores),
    restaurant: CurrentUser = Depends(require_restaurant),
):
    try:
        return await update_coupon(stores, coupon_id, body)
    except CouponError as e:
        raise _http_error(e)


@router.delete("/coupons/{coupon_id}", response_model=MessageOut)
async def delete(
    coupon_id: int,
    stores: Stores = Depends(get_stores),
    restaurant: CurrentUser = Depends(require_restaurant),
):
    try:
        await delete_coupon(stores, coupon_id)
    except CouponError as e:
        raise _http_error(e)
    return MessageOut(message="Coupon deleted successfully.")


@router.patch("/coupons/{coupon_id}/activate", response_model=CouponStatusOut)
async def activate(
    coupon_id: int,
    stores: Stores = Depends(get_stores),
    restaurant: CurrentUser = Depends(require_restaurant),
):
    try:
        coupon = await activate_coupon(stores, coupon_id)
    except CouponError as e:
        raise _http_error(e)
    return CouponStatusOut(message="Coupon activated successfully.", coupon=CouponOut.model_validate(coupon))


@router.patch("/coupons/{coupon_id}/deactivate", response_model=CouponStatusOut)
async def deactivate(
    coupon_id: int,
    stores: Stores = Depends(get_stores),
    restaurant: CurrentUser = Depends(require_restaurant),
):
    try:
        coupon = await deactivate_coupon(stores, coupon_id)
    except CouponError as e:
        raise _http_error(e)
    return CouponStatusOut(message="Coupon deactivated successfully.", coupon=CouponOut.model_validate(coupon))


@router.patch("/coupons/{coupon_id}/quantity", response_model=CouponOut)
async def adjust_quantity(
    coupon_id: int,
    body: QuantityAdjustRequest,
    stores: Stores = Depends(get_stores),
    restaurant: CurrentUser = Depends(require_restaurant),
):
    try:
        return await adjust_coupon_quantity(stores, coupon_id, body.delta)
    except CouponError as e:
        raise _http_error(e)
