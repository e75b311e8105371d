from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CookieConsent(BaseModel):
    """클라이언트 IP 기준 쿠키 동의 기록."""

    id: str | None = None
    ip_address: str
    consent_type: str = "all"
    user_agent: str | None = None
    accepted_at: datetime
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
