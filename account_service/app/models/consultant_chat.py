"""1:1 커리어 상담 채팅 도메인 모델.

채팅방 상태 머신: ACTIVE -> CLOSED (close), CLOSED -> ACTIVE (restart, 방 주인만).
메시지는 방마다 1 부터 증가하는 seq 로 순서가 정해진다.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class RoomStatus(StrEnum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class SenderType(StrEnum):
    USER = "USER"
    CONSULTANT = "CONSULTANT"


class Consultant(BaseModel):
    id: str | None = None
    name: str
    title: str = ""
    bio: str = ""
    user_code: str | None = None  # 연결된 MODERATOR 계정
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class ChatRoom(BaseModel):
    id: str | None = None
    user_code: str
    consultant_id: str
    status: RoomStatus = RoomStatus.ACTIVE
    message_seq: int = 0
    closed_at: datetime | None = None
    closed_by: str | None = None
    last_message_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ChatMessage(BaseModel):
    id: str | None = None
    room_id: str
    seq: int
    sender_type: SenderType
    sender_code: str
    content: str
    is_read: bool = False
    created_at: datetime
    updated_at: datetime


class RoomSummary(BaseModel):
    """목록 화면용 채팅방 요약."""

    room: ChatRoom
    consultant: Consultant | None = None
    last_message: ChatMessage | None = None
    unread_count: int = 0


class ConsultantRating(BaseModel):
    id: str | None = None
    room_id: str
    consultant_id: str
    user_code: str
    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    created_at: datetime
    updated_at: datetime
