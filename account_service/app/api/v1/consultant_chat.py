"""1:1 커리어 상담 채팅 API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...models.consultant_chat import (
    ChatMessage,
    ChatRoom,
    Consultant,
    ConsultantRating,
    RoomSummary,
)
from ...services.consultant_chat_service import (
    MAX_MESSAGE_LENGTH,
    ConsultantChatService,
    get_consultant_chat_service,
)
from ..dependencies import IdentityDep


router = APIRouter(tags=["consultant_chat"])

ServiceDep = Annotated[ConsultantChatService, Depends(get_consultant_chat_service)]


class OpenRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    consultant_id: str = Field(..., min_length=1)


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class RateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class UnreadCountResponse(BaseModel):
    unread_count: int


@router.get("/consultants")
def list_consultants(identity: IdentityDep, service: ServiceDep) -> list[Consultant]:
    return service.list_consultants(active_only=True)


@router.post("/consultant-chat/rooms")
def open_room(req: OpenRoomRequest, identity: IdentityDep, service: ServiceDep) -> ChatRoom:
    """상담사와의 채팅방을 열거나 기존 방을 돌려준다."""
    return service.open_room(identity, req.consultant_id)


@router.get("/consultant-chat/rooms")
def list_rooms(identity: IdentityDep, service: ServiceDep) -> list[RoomSummary]:
    return service.list_rooms(identity)


@router.get("/consultant-chat/rooms/{room_id}/messages")
def list_messages(room_id: str, identity: IdentityDep, service: ServiceDep) -> list[ChatMessage]:
    return service.list_messages(identity, room_id)


@router.post("/consultant-chat/rooms/{room_id}/messages")
def send_message(
    room_id: str, req: SendMessageRequest, identity: IdentityDep, service: ServiceDep
) -> ChatMessage:
    return service.send_message(identity, room_id, req.content)


@router.post("/consultant-chat/rooms/{room_id}/close")
def close_room(room_id: str, identity: IdentityDep, service: ServiceDep) -> ChatRoom:
    return service.close_room(identity, room_id)


@router.post("/consultant-chat/rooms/{room_id}/restart")
def restart_room(room_id: str, identity: IdentityDep, service: ServiceDep) -> ChatRoom:
    return service.restart_room(identity, room_id)


@router.post("/consultant-chat/rooms/{room_id}/rating")
def rate_room(
    room_id: str, req: RateRequest, identity: IdentityDep, service: ServiceDep
) -> ConsultantRating:
    return service.rate(identity, room_id, req.rating, req.comment)


@router.get("/consultant-chat/unread-count")
def unread_count(identity: IdentityDep, service: ServiceDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=service.unread_count(identity))
