from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from .plan import PaymentSettings, PlanId


class OrderStatus(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(StrEnum):
    BANK_TRANSFER = "BANK_TRANSFER"
    COUPON = "COUPON"


class Order(BaseModel):
    """구매 주문 (판매 기록)."""

    id: str | None = None
    order_code: str
    user_code: str
    plan: PlanId
    original_price: float
    discount_amount: float = 0
    amount: float
    coupon_code: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    completed_at: datetime | None = None
    activated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CheckoutResult(BaseModel):
    order: Order
    subscription_activated: bool
    payment: PaymentSettings | None = None


class OrderFilter(BaseModel):
    status: OrderStatus | None = None
    plan: PlanId | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class SalesStats(BaseModel):
    total_orders: int
    completed_orders: int
    pending_orders: int
    total_revenue: float
