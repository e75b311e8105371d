from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from ...models.coupon import Coupon
from ...models.order import Order


class OrderResponse(BaseModel):
    order_code: str
    user_code: str
    plan: str
    original_price: float
    discount_amount: float
    amount: float
    coupon_code: str | None
    status: str
    payment_method: str
    completed_at: datetime | None
    created_at: datetime

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            order_code=order.order_code,
            user_code=order.user_code,
            plan=order.plan.value,
            original_price=order.original_price,
            discount_amount=order.discount_amount,
            amount=order.amount,
            coupon_code=order.coupon_code,
            status=order.status.value,
            payment_method=order.payment_method.value,
            completed_at=order.completed_at,
            created_at=order.created_at,
        )


class CouponResponse(BaseModel):
    id: str | None
    code: str
    name: str | None
    discount_type: str
    discount_value: float
    valid_from: datetime | None
    valid_until: datetime | None
    max_usage: int | None
    usage_count: int
    plan_restriction: str | None
    is_active: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, coupon: Coupon) -> "CouponResponse":
        return cls(
            id=coupon.id,
            code=coupon.code,
            name=coupon.name,
            discount_type=coupon.discount_type.value,
            discount_value=coupon.discount_value,
            valid_from=coupon.valid_from,
            valid_until=coupon.valid_until,
            max_usage=coupon.max_usage,
            usage_count=coupon.usage_count,
            plan_restriction=(
                coupon.plan_restriction.value if coupon.plan_restriction else None
            ),
            is_active=coupon.is_active,
            created_at=coupon.created_at,
        )
