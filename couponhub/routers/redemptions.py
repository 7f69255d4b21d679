# couponhub/routers/redemptions.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from couponhub.core.deps import CurrentUser, get_stores, require_customer
from couponhub.schemas.coupons import CouponOut
from couponhub.schemas.redemptions import RedeemResponse, RedemptionOut, RedemptionRequest
from couponhub.services.coupons import CouponError
from couponhub.services.redemptions import redeem_coupon
from couponhub.stores import Stores

router = APIRouter(prefix="/redemptions", tags=["Redemptions"])


@router.post("", response_model=RedeemResponse)
async def redeem(
    body: RedemptionRequest,
    stores: Stores = Depends(get_stores),
    customer: CurrentUser = Depends(require_customer),
) -> RedeemResponse:
    try:
        result = await redeem_coupon(
            stores,
            coupon_id=body.coupon_id,
            location_id=body.location_id,
            user_id=customer.id,
        )
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return RedeemResponse(
        message="Coupon redeemed successfully",
        coupon=CouponOut.model_validate(result.coupon),
        redemption=RedemptionOut.model_validate(result.redemption),
    )
