"""AI CV 빌더 채팅 API (CV 채팅 토큰 과금)."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...models.cv_chat import CvChatMessage, CvChatRole, CvChatSession
from ...services.cv_chat_service import (
    OPERATION_CV_CHAT_MESSAGE,
    CvChatService,
    get_cv_chat_service,
)
from ..dependencies import IdempotencyKeyDep, IdentityDep
from ..schemas.accounts import ChargeResponse
from .publishers import publish_balance_consumed


router = APIRouter(prefix="/cv-chat", tags=["cv_chat"])


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=200)


class ChatMessageIn(BaseModel):
    role: CvChatRole
    content: str = Field(..., min_length=1, max_length=8000)


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(..., min_length=1)
    messages: list[ChatMessageIn] = Field(..., min_length=1, max_length=200)


class ChatResponse(BaseModel):
    reply: str
    is_finished: bool
    session: CvChatSession
    charge: ChargeResponse


@router.put("/sessions")
def create_session(
    identity: IdentityDep,
    service: Annotated[CvChatService, Depends(get_cv_chat_service)],
    req: CreateSessionRequest | None = None,
) -> CvChatSession:
    return service.create_session(identity.user_code, req.title if req else None)


@router.get("/sessions/{session_id}")
def get_session(
    session_id: str,
    identity: IdentityDep,
    service: Annotated[CvChatService, Depends(get_cv_chat_service)],
) -> CvChatSession:
    return service.get_session(identity.user_code, session_id)


@router.post("")
def chat(
    req: ChatRequest,
    identity: IdentityDep,
    idempotency_key: IdempotencyKeyDep,
    service: Annotated[CvChatService, Depends(get_cv_chat_service)],
) -> ChatResponse:
    messages = [CvChatMessage(role=m.role, content=m.content) for m in req.messages]
    turn = service.chat(
        identity.user_code, req.session_id, messages, idempotency_key=idempotency_key
    )
    publish_balance_consumed(identity.user_code, turn.consumption, OPERATION_CV_CHAT_MESSAGE)

    return ChatResponse(
        reply=turn.reply,
        is_finished=turn.session.is_finished,
        session=turn.session,
        charge=ChargeResponse.from_result(turn.consumption),
    )
