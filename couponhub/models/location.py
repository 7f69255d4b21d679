# couponhub/models/location.py
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, Text, func
from sqlalchemy.orm import relationship

from couponhub.core.db import Base


class Location(Base):
    """
    A restaurant location. Redemption only needs to know it exists;
    address/geo/hours management lives with the location service.
    """

    __tablename__ = "locations"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True)

    # owner id from the identity provider (Restaurant role)
    restaurant_id = Column(Text, nullable=False, index=True)

    name = Column(Text, nullable=False)
    address = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    coupons = relationship("Coupon", back_populates="location", lazy="raise")
