"""관리자 감사 로그 도메인 모델.

감사 로그는 추가만 가능하다. 삭제는 관리자가 명시적으로 요청한 일괄 정리(purge)뿐이다.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class AdminAction(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    LOGIN = "LOGIN"


class TargetType(StrEnum):
    USER = "USER"
    JOB = "JOB"
    COUPON = "COUPON"
    SALE = "SALE"
    SETTINGS = "SETTINGS"
    CONSULTANT = "CONSULTANT"
    LOGS = "LOGS"


class AdminLog(BaseModel):
    id: str | None = None
    admin_code: str
    action: AdminAction
    target_type: TargetType
    target_id: str | None = None
    details: str | None = None  # JSON 직렬화 문자열
    ip_address: str = "unknown"
    user_agent: str = "unknown"
    created_at: datetime
    updated_at: datetime


class AdminLogFilter(BaseModel):
    action: AdminAction | None = None
    target_type: TargetType | None = None
    admin_code: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class AuditContext(BaseModel):
    """감사 로그에 남길 요청 정보."""

    admin_code: str
    ip_address: str = "unknown"
    user_agent: str = "unknown"
