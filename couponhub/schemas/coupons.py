# couponhub/schemas/coupons.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, RootModel, model_validator
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # naive datetimes are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]
Money = Annotated[float, Field(gt=0)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -------------------------
# Type-specific terms
# -------------------------
class _TimeWindow(CamelModel):
    start_time: UtcDatetime
    end_time: UtcDatetime
    discount_value: Money | None = None

    @model_validator(mode="after")
    def _window_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class BogoTerms(CamelModel):
    type: Literal["BOGO"]
    free_item_id: int | None = None


class FreeItemTerms(CamelModel):
    type: Literal["FreeItem"]
    free_item_id: int
    minimum_spend: Money | None = None


class DiscountTerms(CamelModel):
    type: Literal["Discount"]
    discount_value: float = Field(..., gt=0, le=100, description="Percent off")
    max_redeem_value: Money | None = None


class SpendMoreSaveMoreTerms(CamelModel):
    type: Literal["SpendMoreSaveMore"]
    minimum_spend: Money
    discount_value: Money


class FlatDiscountTerms(CamelModel):
    type: Literal["FlatDiscount"]
    discount_value: Money


class ComboDealTerms(CamelModel):
    type: Literal["ComboDeal"]
    combo_items: list[int] = Field(..., min_length=2)
    discount_value: Money | None = None


class FamilyPackTerms(CamelModel):
    type: Literal["FamilyPack"]
    combo_items: list[int] = Field(..., min_length=1)
    portion_size: str = Field(..., min_length=1)


class LimitedTimeTerms(_TimeWindow):
    type: Literal["LimitedTime"]


class HappyHourTerms(_TimeWindow):
    type: Literal["HappyHour"]


TERMS_MODELS: dict[str, type[CamelModel]] = {
    "BOGO": BogoTerms,
    "FreeItem": FreeItemTerms,
    "Discount": DiscountTerms,
    "SpendMoreSaveMore": SpendMoreSaveMoreTerms,
    "FlatDiscount": FlatDiscountTerms,
    "ComboDeal": ComboDealTerms,
    "FamilyPack": FamilyPackTerms,
    "LimitedTime": LimitedTimeTerms,
    "HappyHour": HappyHourTerms,
}


# -------------------------
# Create / update
# -------------------------
class CouponCreateBase(CamelModel):
    location_id: int
    code: str = Field(..., min_length=1, max_length=64)
    expiration_date: UtcDatetime
    is_active: bool = True
    quantity: int = Field(0, ge=0)
    max_usage_per_user: int = Field(1, ge=1)


class BogoCouponCreate(CouponCreateBase, BogoTerms):
    pass


class FreeItemCouponCreate(CouponCreateBase, FreeItemTerms):
    pass


class DiscountCouponCreate(CouponCreateBase, DiscountTerms):
    pass


class SpendMoreSaveMoreCouponCreate(CouponCreateBase, SpendMoreSaveMoreTerms):
    pass


class FlatDiscountCouponCreate(CouponCreateBase, FlatDiscountTerms):
    pass


class ComboDealCouponCreate(CouponCreateBase, ComboDealTerms):
    pass


class FamilyPackCouponCreate(CouponCreateBase, FamilyPackTerms):
    pass


class LimitedTimeCouponCreate(CouponCreateBase, LimitedTimeTerms):
    pass


class HappyHourCouponCreate(CouponCreateBase, HappyHourTerms):
    pass


class CouponCreate(RootModel[Annotated[
    Union[
        BogoCouponCreate,
        FreeItemCouponCreate,
        DiscountCouponCreate,
        SpendMoreSaveMoreCouponCreate,
        FlatDiscountCouponCreate,
        ComboDealCouponCreate,
        FamilyPackCouponCreate,
        LimitedTimeCouponCreate,
        HappyHourCouponCreate,
    ],
    Field(discriminator="type"),
]]):
    """Flat coupon payload; `type` selects which terms fields apply."""


def split_terms(payload: CouponCreateBase) -> dict:
    """Everything the payload carries beyond the shared coupon columns."""
    base = set(CouponCreateBase.model_fields) | {"type"}
    return payload.model_dump(mode="json", by_alias=True, exclude=base, exclude_none=True)


class CouponUpdate(CamelModel):
    # type and quantity are not editable here
    code: str | None = Field(None, min_length=1, max_length=64)
    expiration_date: UtcDatetime | None = None
    max_usage_per_user: int | None = Field(None, ge=1)
    terms: dict | None = None


class QuantityAdjustRequest(CamelModel):
    delta: int

    @model_validator(mode="after")
    def _non_zero(self):
        if self.delta == 0:
            raise ValueError("delta must be non-zero")
        return self


# -------------------------
# Output
# -------------------------
class CouponOut(CamelModel):
    id: int
    location_id: int
    type: str
    code: str
    terms: dict
    is_active: bool
    generation_date: datetime
    expiration_date: datetime
    quantity: int
    max_usage_per_user: int
    created_at: datetime
    updated_at: datetime | None = None


class CouponStatusOut(CamelModel):
    message: str
    coupon: CouponOut


class MessageOut(CamelModel):
    message: str
