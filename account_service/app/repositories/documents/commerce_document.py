"""쿠폰 / 주문 MongoDB 도큐먼트."""

from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.coupon import Coupon, DiscountType
from ...models.order import Order, OrderStatus, PaymentMethod
from ...models.plan import PlanId


class CouponDocument(BaseDocument):
    """MongoDB coupons 컬렉션 도큐먼트 모델."""

    code: str
    name: str | None = None
    discount_type: str
    discount_value: float
    valid_from: MongoDateTime | None = None
    valid_until: MongoDateTime | None = None
    max_usage: int | None = None
    usage_count: int = 0
    plan_restriction: str | None = None
    is_active: bool = True

    @classmethod
    def from_domain(cls, coupon: Coupon) -> "CouponDocument":
        data = build_document_data_from_domain(coupon)
        return cls.model_validate(data)

    def to_domain(self) -> Coupon:
        return Coupon(
            id=from_object_id(self.id),
            code=self.code,
            name=self.name,
            discount_type=DiscountType(self.discount_type),
            discount_value=self.discount_value,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            max_usage=self.max_usage,
            usage_count=self.usage_count,
            plan_restriction=PlanId(self.plan_restriction) if self.plan_restriction else None,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class OrderDocument(BaseDocument):
    """MongoDB orders 컬렉션 도큐먼트 모델."""

    order_code: str
    user_code: str
    plan: str
    original_price: float
    discount_amount: float = 0
    amount: float
    coupon_code: str | None = None
    status: str
    payment_method: str
    completed_at: MongoDateTime | None = None
    activated_at: MongoDateTime | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderDocument":
        data = build_document_data_from_domain(order)
        return cls.model_validate(data)

    def to_domain(self) -> Order:
        return Order(
            id=from_object_id(self.id),
            order_code=self.order_code,
            user_code=self.user_code,
            plan=PlanId(self.plan),
            original_price=self.original_price,
            discount_amount=self.discount_amount,
            amount=self.amount,
            coupon_code=self.coupon_code,
            status=OrderStatus(self.status),
            payment_method=PaymentMethod(self.payment_method),
            completed_at=self.completed_at,
            activated_at=self.activated_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
