# couponhub/models/coupon.py
from __future__ import annotations

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from couponhub.core.db import Base


class CouponType(str, enum.Enum):
    BOGO = "BOGO"
    FREE_ITEM = "FreeItem"
    DISCOUNT = "Discount"
    SPEND_MORE_SAVE_MORE = "SpendMoreSaveMore"
    FLAT_DISCOUNT = "FlatDiscount"
    COMBO_DEAL = "ComboDeal"
    FAMILY_PACK = "FamilyPack"
    LIMITED_TIME = "LimitedTime"
    HAPPY_HOUR = "HappyHour"


_TYPE_VALUES = ",".join(f"'{t.value}'" for t in CouponType)


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint(f"type IN ({_TYPE_VALUES})", name="coupons_type_check"),
        CheckConstraint("quantity >= 0", name="coupons_quantity_non_negative"),
        CheckConstraint("max_usage_per_user >= 1", name="coupons_max_usage_positive"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True)

    location_id = Column(
        Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    type = Column(Text, nullable=False)
    code = Column(Text, nullable=False, unique=True)

    # type-specific payload (discount value, item refs, time window); opaque to redemption
    terms = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, nullable=False, default=True)

    generation_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expiration_date = Column(DateTime(timezone=True), nullable=False)

    # mutated only through CouponStore conditional updates
    quantity = Column(Integer, nullable=False, default=0)
    max_usage_per_user = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    location = relationship("Location", back_populates="coupons", lazy="raise")
