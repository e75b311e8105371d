from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from common.types.datetime import utcnow


class CvChatRole(StrEnum):
    """CV 빌더 채팅 메시지 역할."""

    USER = "user"
    ASSISTANT = "assistant"


class CvChatMessage(BaseModel):
    role: CvChatRole
    content: str
    created_at: datetime = Field(default_factory=utcnow)


class CvChatSession(BaseModel):
    id: str | None = None
    user_code: str
    title: str = "Yeni CV"
    messages: list[CvChatMessage] = Field(default_factory=list)
    is_finished: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
