from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

from .plan import PlanId


class DiscountType(StrEnum):
    PERCENT = "PERCENT"
    FIXED = "FIXED"


class Coupon(BaseModel):
    """할인 쿠폰.

    - code 는 항상 대문자로 저장/비교한다.
    - max_usage 가 None 이면 사용 횟수 제한이 없다.
    - plan_restriction 이 None 이면 모든 요금제에 적용된다.
    """

    id: str | None = None
    code: str
    name: str | None = None
    discount_type: DiscountType
    discount_value: float = Field(ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_usage: int | None = Field(default=None, ge=0)
    usage_count: int = Field(default=0, ge=0)
    plan_restriction: PlanId | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError("coupon code must not be blank")
        return normalized

    @model_validator(mode="after")
    def _check_percent_range(self) -> "Coupon":
        if self.discount_type is DiscountType.PERCENT and self.discount_value > 100:
            raise ValueError("percent discount must be between 0 and 100")
        return self


class CouponQuote(BaseModel):
    """쿠폰 적용 견적."""

    original_price: float
    discount_amount: float
    final_price: float
    is_free: bool


class CouponStats(BaseModel):
    total: int
    active: int
    total_usage: int
