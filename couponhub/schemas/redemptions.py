# couponhub/schemas/redemptions.py
from __future__ import annotations

from datetime import datetime

from couponhub.schemas.coupons import CamelModel, CouponOut


class RedemptionRequest(CamelModel):
    coupon_id: int
    location_id: int


class RedemptionOut(CamelModel):
    id: int
    coupon_id: int
    user_id: str
    location_id: int
    redeemed_at: datetime


class RedeemResponse(CamelModel):
    message: str
    coupon: CouponOut
    redemption: RedemptionOut
