# couponhub/models/redemption.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from couponhub.core.db import Base


class CouponRedemption(Base):
    """Append-only redemption ledger. Rows are never updated or deleted."""

    __tablename__ = "coupon_redemptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # no FK on coupon_id: the audit trail outlives a deleted coupon
    coupon_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # opaque identity-provider subject
    user_id: Mapped[str] = mapped_column(Text, nullable=False)

    location_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
    )

    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


Index("ix_coupon_redemptions_coupon_user", CouponRedemption.coupon_id, CouponRedemption.user_id)
Index("ix_coupon_redemptions_redeemed_at", CouponRedemption.redeemed_at.desc())
