# couponhub/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from couponhub.models.location import Location  # noqa: F401
from couponhub.models.coupon import Coupon, CouponType  # noqa: F401
from couponhub.models.redemption import CouponRedemption  # noqa: F401
