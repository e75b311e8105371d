from __future__ import annotations

from pydantic import BaseModel

from common.models.user import Role
from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.account import (
    Account,
    Consumption,
    ResourceKind,
    Subscription,
    SubscriptionStatus,
)
from ...models.plan import PlanId


class SubscriptionDocument(BaseModel):
    """users.subscription 서브 도큐먼트."""

    plan: str
    status: str
    order_code: str | None = None
    started_at: MongoDateTime | None = None
    expires_at: MongoDateTime | None = None

    def to_domain(self) -> Subscription:
        return Subscription(
            plan=PlanId(self.plan),
            status=SubscriptionStatus(self.status),
            order_code=self.order_code,
            started_at=self.started_at,
            expires_at=self.expires_at,
        )


class AccountDocument(BaseDocument):
    """MongoDB users 컬렉션 도큐먼트 모델."""

    user_code: str
    email: str = ""
    name: str = ""
    role: str = Role.USER.value
    credits: int = 0
    cv_chat_tokens: int = 0
    cv_applications_used: int = 0
    subscription: SubscriptionDocument | None = None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountDocument":
        data = build_document_data_from_domain(account)
        return cls.model_validate(data)

    def to_domain(self) -> Account:
        return Account(
            id=from_object_id(self.id),
            user_code=self.user_code,
            email=self.email,
            name=self.name,
            role=Role(self.role),
            credits=max(self.credits, 0),
            cv_chat_tokens=max(self.cv_chat_tokens, 0),
            cv_applications_used=self.cv_applications_used,
            subscription=self.subscription.to_domain() if self.subscription else None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ConsumptionDocument(BaseDocument):
    """MongoDB consumptions 컬렉션 도큐먼트 모델 (차감 이력)."""

    user_code: str
    kind: str
    amount: int
    balance_after: int
    reason: str
    underflow: bool = False
    idempotency_key: str | None = None

    @classmethod
    def from_domain(cls, consumption: Consumption) -> "ConsumptionDocument":
        data = build_document_data_from_domain(consumption)
        return cls.model_validate(data)

    def to_domain(self) -> Consumption:
        return Consumption(
            id=from_object_id(self.id),
            user_code=self.user_code,
            kind=ResourceKind(self.kind),
            amount=self.amount,
            balance_after=self.balance_after,
            reason=self.reason,
            underflow=self.underflow,
            idempotency_key=self.idempotency_key,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
