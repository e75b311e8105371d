from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, field_validator


class Role(StrEnum):
    """계정 역할.

    MODERATOR 는 상담사(Consultant) 계정에 연결된 역할이다.
    """

    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class Identity(BaseModel):
    """게이트웨이(인증 제공자)가 전달한 호출자 정보.

    - 서비스는 이 값을 검증 없이 신뢰한다.
    - user_code 는 인증 제공자 기준의 안정적인 사용자 식별자다.
    """

    user_code: str
    role: Role = Role.USER

    @field_validator("user_code")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("user_code must not be blank")
        return value.strip()

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
