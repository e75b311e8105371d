from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from ...models.account import Account, Consumption, ConsumptionResult, Subscription
from ...models.plan import PlanDefinition


class SubscriptionResponse(BaseModel):
    plan: str
    status: str
    order_code: str | None
    started_at: datetime | None
    expires_at: datetime | None

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            plan=subscription.plan.value,
            status=subscription.status.value,
            order_code=subscription.order_code,
            started_at=subscription.started_at,
            expires_at=subscription.expires_at,
        )


class AccountResponse(BaseModel):
    """잔액 + effective plan."""

    user_code: str
    email: str
    name: str
    role: str
    credits: int
    cv_chat_tokens: int
    plan: str
    is_unlimited: bool
    has_consultant_access: bool
    subscription: SubscriptionResponse | None

    @classmethod
    def build(cls, account: Account, plan: PlanDefinition) -> "AccountResponse":
        return cls(
            user_code=account.user_code,
            email=account.email,
            name=account.name,
            role=account.role.value,
            credits=account.credits,
            cv_chat_tokens=account.cv_chat_tokens,
            plan=plan.id.value,
            is_unlimited=plan.is_unlimited,
            has_consultant_access=plan.has_consultant_access,
            subscription=(
                SubscriptionResponse.from_domain(account.subscription)
                if account.subscription is not None
                else None
            ),
        )


class ConsumptionItemResponse(BaseModel):
    id: str | None
    kind: str
    amount: int
    balance_after: int
    reason: str
    underflow: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, consumption: Consumption) -> "ConsumptionItemResponse":
        return cls(
            id=consumption.id,
            kind=consumption.kind.value,
            amount=consumption.amount,
            balance_after=consumption.balance_after,
            reason=consumption.reason,
            underflow=consumption.underflow,
            created_at=consumption.created_at,
        )


class ChargeResponse(BaseModel):
    """과금 작업 응답에 붙는 차감 결과. 무제한 요금제면 remaining 은 -1."""

    kind: str
    amount: int
    remaining: int
    underflow: bool
    replayed: bool

    @classmethod
    def from_result(cls, result: ConsumptionResult) -> "ChargeResponse":
        return cls(
            kind=result.kind.value,
            amount=result.amount,
            remaining=-1 if result.unlimited else result.balance,
            underflow=result.underflow,
            replayed=result.replayed,
        )
