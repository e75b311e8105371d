"""쿠키 동의 / 월간 사용량 MongoDB 도큐먼트."""

from __future__ import annotations

from pydantic import Field

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.cookie_consent import CookieConsent
from ...models.usage import UsageStats


class CookieConsentDocument(BaseDocument):
    ip_address: str
    consent_type: str = "all"
    user_agent: str | None = None
    accepted_at: MongoDateTime
    expires_at: MongoDateTime

    @classmethod
    def from_domain(cls, consent: CookieConsent) -> "CookieConsentDocument":
        return cls.model_validate(build_document_data_from_domain(consent))

    def to_domain(self) -> CookieConsent:
        return CookieConsent(
            id=from_object_id(self.id),
            ip_address=self.ip_address,
            consent_type=self.consent_type,
            user_agent=self.user_agent,
            accepted_at=self.accepted_at,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UsageStatsDocument(BaseDocument):
    """MongoDB usage_stats 컬렉션 도큐먼트 모델.

    processed_event_ids 는 최근에 반영한 이벤트 id 목록(상한 있음)으로, 재전달된 이벤트의 중복 집계를 막는다.
    """

    user_code: str
    period: str
    credits_used: int = 0
    cv_chat_tokens_used: int = 0
    operations: dict[str, int] = Field(default_factory=dict)
    underflow_count: int = 0
    processed_event_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> UsageStats:
        return UsageStats(
            id=from_object_id(self.id),
            user_code=self.user_code,
            period=self.period,
            credits_used=self.credits_used,
            cv_chat_tokens_used=self.cv_chat_tokens_used,
            operations=dict(self.operations),
            underflow_count=self.underflow_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
