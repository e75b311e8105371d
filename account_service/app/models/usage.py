from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UsageStats(BaseModel):
    """유저별 월간 사용량 집계 (entitlement.consumed 이벤트 기반)."""

    id: str | None = None
    user_code: str
    period: str  # "YYYY-MM"
    credits_used: int = 0
    cv_chat_tokens_used: int = 0
    operations: dict[str, int] = Field(default_factory=dict)
    underflow_count: int = 0
    created_at: datetime
    updated_at: datetime


class UsageLimit(BaseModel):
    current: int
    limit: int  # -1 = 무제한
    remaining: int  # -1 = 무제한


class UsageReport(BaseModel):
    plan: str
    period: str
    credits_used: int
    cv_chat_tokens_used: int
    operations: dict[str, int]
    cv: UsageLimit
    cv_applications: UsageLimit
