"""쿠폰 검증 / 주문(구매) API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...models.plan import PaymentSettings, PlanId
from ...services.coupon_service import CouponService, get_coupon_service
from ...services.order_service import OrderService, get_order_service
from ..dependencies import IdentityDep
from ..schemas.commerce import OrderResponse


router = APIRouter(tags=["commerce"])


class ValidateCouponRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str = Field(..., min_length=1, max_length=64)
    plan: PlanId
    original_price: float = Field(..., ge=0)


class ValidateCouponResponse(BaseModel):
    valid: bool = True
    code: str
    discount_type: str
    discount_value: float
    original_price: float
    discount_amount: float
    final_price: float
    is_free: bool


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan: PlanId
    original_price: float = Field(..., ge=0)
    coupon_code: str | None = Field(default=None, max_length=64)


class CheckoutResponse(BaseModel):
    order: OrderResponse
    subscription_activated: bool
    payment: PaymentSettings | None


@router.post("/coupons/validate")
def validate_coupon(
    req: ValidateCouponRequest,
    identity: IdentityDep,
    coupons: Annotated[CouponService, Depends(get_coupon_service)],
) -> ValidateCouponResponse:
    """쿠폰 적용 견적 조회. 사용 횟수는 바뀌지 않는다."""
    coupon, quote = coupons.validate(req.code, req.plan, req.original_price)
    return ValidateCouponResponse(
        code=coupon.code,
        discount_type=coupon.discount_type.value,
        discount_value=coupon.discount_value,
        original_price=quote.original_price,
        discount_amount=quote.discount_amount,
        final_price=quote.final_price,
        is_free=quote.is_free,
    )


@router.post("/orders/checkout")
def checkout(
    req: CheckoutRequest,
    identity: IdentityDep,
    orders: Annotated[OrderService, Depends(get_order_service)],
) -> CheckoutResponse:
    result = orders.checkout(
        identity.user_code, req.plan, req.original_price, req.coupon_code
    )
    return CheckoutResponse(
        order=OrderResponse.from_domain(result.order),
        subscription_activated=result.subscription_activated,
        payment=result.payment,
    )


@router.get("/orders/me")
def list_my_orders(
    identity: IdentityDep,
    orders: Annotated[OrderService, Depends(get_order_service)],
    limit: int = 20,
) -> list[OrderResponse]:
    limit = min(max(limit, 1), 100)
    return [
        OrderResponse.from_domain(order)
        for order in orders.list_for_user(identity.user_code, limit)
    ]
