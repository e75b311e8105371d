"""요금제 카탈로그 / 과금 단가 / 결제 안내 도메인 모델.

모두 site_settings 컬렉션에 JSON 으로 저장되며, 값이 없으면 constants 의 기본값을 쓴다.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class PlanId(StrEnum):
    FREE = "FREE"
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"


class PlanDefinition(BaseModel):
    """요금제 정의.

    cv_limit / cv_application_limit 의 0 은 "무제한" 을 뜻한다.
    """

    id: PlanId
    name: str
    price: float = Field(ge=0)
    credits: int = Field(ge=0)
    cv_chat_tokens: int = Field(ge=0)
    chat_session_limit: int = Field(ge=0)
    cv_limit: int = Field(default=0, ge=0)
    cv_application_limit: int = Field(default=0, ge=0)
    has_consultant_access: bool = False
    is_unlimited: bool = False
    features: list[str] = Field(default_factory=list)


class TokenCosts(BaseModel):
    """작업 1회당 차감되는 잔액."""

    job_analyze: int = Field(default=5, ge=1)
    job_suggest: int = Field(default=10, ge=1)
    bulk_match: int = Field(default=5, ge=1)
    cv_chat_message: int = Field(default=2, ge=1)


class PaymentSettings(BaseModel):
    """계좌이체 / WhatsApp 결제 안내."""

    bank_name: str = ""
    account_holder: str = ""
    iban: str = ""
    whatsapp_number: str = ""
    note: str = ""


class ChatLimits(BaseModel):
    """CV 빌더 채팅의 UX 한도 (서버에서 강제하지 않는 안내용 값)."""

    session_limit: int
    token_cost: int
    cv_application_limit: int
    cv_applications_used: int
    cv_applications_remaining: int  # -1 = 무제한
