"""관리자 쿠폰 / 판매(주문) 관리 API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from common.schemas.pagination import normalize_paging
from common.types.datetime import utcnow

from ....exceptions import ValidationError
from ....models.admin_log import AdminAction, TargetType
from ....models.coupon import Coupon, CouponStats, DiscountType
from ....models.order import OrderFilter, OrderStatus, SalesStats
from ....models.plan import PlanId
from ....services.admin_log_service import AdminLogService, get_admin_log_service
from ....services.coupon_service import CouponService, get_coupon_service
from ....services.order_service import OrderService, get_order_service
from ...dependencies import AdminDep, AuditDep
from ...schemas.commerce import CouponResponse, OrderResponse


router = APIRouter()

AuditServiceDep = Annotated[AdminLogService, Depends(get_admin_log_service)]
CouponServiceDep = Annotated[CouponService, Depends(get_coupon_service)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]


# -------- Coupons --------


class CreateCouponRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(default=None, max_length=200)
    discount_type: DiscountType
    discount_value: float = Field(..., ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_usage: int | None = Field(default=None, ge=0)
    plan_restriction: PlanId | None = None
    is_active: bool = True


class UpdateCouponRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    discount_type: DiscountType | None = None
    discount_value: float | None = Field(default=None, ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_usage: int | None = Field(default=None, ge=0)
    plan_restriction: PlanId | None = None
    is_active: bool | None = None


class CouponMutationResponse(BaseModel):
    coupon: CouponResponse
    audit_logged: bool


class CouponListResponse(BaseModel):
    items: list[CouponResponse]
    stats: CouponStats


class DeleteResponse(BaseModel):
    success: bool = True
    audit_logged: bool


@router.get("/coupons")
def list_coupons(admin: AdminDep, coupons: CouponServiceDep) -> CouponListResponse:
    items, stats = coupons.list_with_stats()
    return CouponListResponse(
        items=[CouponResponse.from_domain(coupon) for coupon in items], stats=stats
    )


@router.post("/coupons")
def create_coupon(
    req: CreateCouponRequest,
    ctx: AuditDep,
    coupons: CouponServiceDep,
    audit: AuditServiceDep,
) -> CouponMutationResponse:
    now = utcnow()
    try:
        coupon = Coupon(**req.model_dump(), usage_count=0, created_at=now, updated_at=now)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    created = coupons.create(coupon)
    audit_logged = audit.record(
        ctx,
        AdminAction.CREATE,
        TargetType.COUPON,
        created.id,
        req.model_dump(mode="json"),
    )
    return CouponMutationResponse(
        coupon=CouponResponse.from_domain(created), audit_logged=audit_logged
    )


@router.patch("/coupons/{coupon_id}")
def update_coupon(
    coupon_id: str,
    req: UpdateCouponRequest,
    ctx: AuditDep,
    coupons: CouponServiceDep,
    audit: AuditServiceDep,
) -> CouponMutationResponse:
    fields = req.model_dump(exclude_unset=True)
    updated = coupons.update(coupon_id, fields)
    audit_logged = audit.record(
        ctx,
        AdminAction.UPDATE,
        TargetType.COUPON,
        coupon_id,
        req.model_dump(mode="json", exclude_unset=True),
    )
    return CouponMutationResponse(
        coupon=CouponResponse.from_domain(updated), audit_logged=audit_logged
    )


@router.delete("/coupons/{coupon_id}")
def delete_coupon(
    coupon_id: str,
    ctx: AuditDep,
    coupons: CouponServiceDep,
    audit: AuditServiceDep,
) -> DeleteResponse:
    coupons.delete(coupon_id)
    audit_logged = audit.record(ctx, AdminAction.DELETE, TargetType.COUPON, coupon_id)
    return DeleteResponse(audit_logged=audit_logged)


# -------- Sales --------


class SalesListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
    stats: SalesStats


class OrderMutationResponse(BaseModel):
    order: OrderResponse
    audit_logged: bool


@router.get("/orders")
def list_orders(
    admin: AdminDep,
    orders: OrderServiceDep,
    page: int = 1,
    page_size: int = 20,
    status: OrderStatus | None = None,
    plan: PlanId | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> SalesListResponse:
    page, page_size = normalize_paging(page, page_size)
    order_filter = OrderFilter(
        status=status, plan=plan, search=search, date_from=date_from, date_to=date_to
    )
    items, total, stats = orders.search(order_filter, page, page_size)
    return SalesListResponse(
        items=[OrderResponse.from_domain(order) for order in items],
        total=total,
        page=page,
        page_size=page_size,
        stats=stats,
    )


@router.post("/orders/{order_code}/confirm")
def confirm_order(
    order_code: str,
    ctx: AuditDep,
    orders: OrderServiceDep,
    audit: AuditServiceDep,
) -> OrderMutationResponse:
    """입금 확인: 주문 완료 + 구독 활성화."""
    order = orders.confirm(order_code)
    audit_logged = audit.record(
        ctx,
        AdminAction.APPROVE,
        TargetType.SALE,
        order_code,
        {"user_code": order.user_code, "plan": order.plan.value, "amount": order.amount},
    )
    return OrderMutationResponse(
        order=OrderResponse.from_domain(order), audit_logged=audit_logged
    )


@router.post("/orders/{order_code}/reject")
def reject_order(
    order_code: str,
    ctx: AuditDep,
    orders: OrderServiceDep,
    audit: AuditServiceDep,
) -> OrderMutationResponse:
    order = orders.reject(order_code)
    audit_logged = audit.record(
        ctx,
        AdminAction.REJECT,
        TargetType.SALE,
        order_code,
        {"user_code": order.user_code, "plan": order.plan.value},
    )
    return OrderMutationResponse(
        order=OrderResponse.from_domain(order), audit_logged=audit_logged
    )
