"""계정 잔액(Entitlement) 도메인 모델.

유저당 하나의 users 도큐먼트가 크레딧과 CV 채팅 토큰 잔액, 구독 정보를 함께 가진다.
잔액 변경은 항상 이 도큐먼트 하나에 대한 원자적 업데이트로만 일어난다.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from common.models.user import Role

from .plan import PlanId


class ResourceKind(StrEnum):
    """차감 가능한 잔액 종류. 값은 users 도큐먼트의 필드 이름과 같다."""

    CREDITS = "credits"
    CV_CHAT_TOKENS = "cv_chat_tokens"


class SubscriptionStatus(StrEnum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class Subscription(BaseModel):
    plan: PlanId = PlanId.FREE
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    order_code: str | None = None
    started_at: datetime | None = None
    expires_at: datetime | None = None


class Account(BaseModel):
    id: str | None = None
    user_code: str
    email: str = ""
    name: str = ""
    role: Role = Role.USER
    credits: int = Field(default=0, ge=0)
    cv_chat_tokens: int = Field(default=0, ge=0)
    cv_applications_used: int = 0
    subscription: Subscription | None = None
    created_at: datetime
    updated_at: datetime

    def balance_of(self, kind: ResourceKind) -> int:
        return self.credits if kind is ResourceKind.CREDITS else self.cv_chat_tokens

    def effective_plan(self, now: datetime) -> PlanId:
        """ACTIVE 이고 만료되지 않은 구독이면 그 요금제, 아니면 FREE."""
        sub = self.subscription
        if sub is None or sub.status is not SubscriptionStatus.ACTIVE:
            return PlanId.FREE
        if sub.expires_at is not None and sub.expires_at <= now:
            return PlanId.FREE
        return sub.plan


class GateDecision(BaseModel):
    """잔액 검사 결과. 부수효과 없이 판단만 담는다."""

    allowed: bool
    kind: ResourceKind
    required: int
    available: int
    unlimited: bool = False


class Consumption(BaseModel):
    """consumptions 컬렉션의 차감 이력 한 건."""

    id: str | None = None
    user_code: str
    kind: ResourceKind
    amount: int
    balance_after: int
    reason: str
    underflow: bool = False
    idempotency_key: str | None = None
    created_at: datetime
    updated_at: datetime


class ConsumptionResult(BaseModel):
    kind: ResourceKind
    amount: int
    balance: int
    underflow: bool = False
    replayed: bool = False
    unlimited: bool = False
