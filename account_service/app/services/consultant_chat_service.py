"""1:1 커리어 상담 채팅 서비스.

참여자 판별:
- 방 주인 (USER 로 발신)
- 방 상담사에 연결된 MODERATOR 계정 (CONSULTANT 로 발신)
- ADMIN (조회/종료만 가능, 발신 불가)
"""

from __future__ import annotations

import logging

from fastapi import Depends
from pymongo.database import Database

from common.models.user import Identity, Role
from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RoomClosedError,
    ValidationError,
)
from ..models.consultant_chat import (
    ChatMessage,
    ChatRoom,
    Consultant,
    ConsultantRating,
    RoomStatus,
    RoomSummary,
    SenderType,
)
from ..repositories.consultant_chat_repository import (
    ChatMessageRepository,
    ChatRoomRepository,
    ConsultantRatingRepository,
    ConsultantRepository,
)
from ..repositories.interfaces import (
    ChatMessageRepositoryInterface,
    ChatRoomRepositoryInterface,
    ConsultantRatingRepositoryInterface,
    ConsultantRepositoryInterface,
)
from .entitlement_service import EntitlementService, get_entitlement_service


logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000


class ConsultantChatService:
    def __init__(
        self,
        consultant_repo: ConsultantRepositoryInterface,
        room_repo: ChatRoomRepositoryInterface,
        message_repo: ChatMessageRepositoryInterface,
        rating_repo: ConsultantRatingRepositoryInterface,
        entitlements: EntitlementService,
    ) -> None:
        self._consultant_repo = consultant_repo
        self._room_repo = room_repo
        self._message_repo = message_repo
        self._rating_repo = rating_repo
        self._entitlements = entitlements

    # 상담사 -------------------------------------------------------------
    def list_consultants(self, active_only: bool = True) -> list[Consultant]:
        return self._consultant_repo.list(active_only)

    def create_consultant(
        self, name: str, title: str = "", bio: str = "", user_code: str | None = None
    ) -> Consultant:
        if not name.strip():
            raise ValidationError("Danışman adı gerekli")
        now = utcnow()
        return self._consultant_repo.insert(
            Consultant(
                name=name.strip(),
                title=title,
                bio=bio,
                user_code=user_code,
                created_at=now,
                updated_at=now,
            )
        )

    def set_consultant_active(self, consultant_id: str, is_active: bool) -> Consultant:
        updated = self._consultant_repo.update(consultant_id, {"is_active": is_active})
        if updated is None:
            raise NotFoundError("Danışman bulunamadı")
        return updated

    # 접근 제어 ----------------------------------------------------------
    def _require_consultant_access(self, user_code: str) -> None:
        account = self._entitlements.get_account(user_code)
        plan = self._entitlements.plan_of(account)
        if not (plan.has_consultant_access or plan.is_unlimited):
            raise PermissionDeniedError(
                "Danışman sohbeti yalnızca Premium üyeler için kullanılabilir"
            )

    def _load_room(self, room_id: str) -> ChatRoom:
        room = self._room_repo.find_by_id(room_id)
        if room is None:
            raise NotFoundError("Sohbet bulunamadı")
        return room

    def _consultant_of(self, identity: Identity) -> Consultant | None:
        if identity.role is not Role.MODERATOR:
            return None
        return self._consultant_repo.find_by_user_code(identity.user_code)

    def _participant_type(self, identity: Identity, room: ChatRoom) -> SenderType | None:
        """identity 가 방에서 발신할 수 있는 역할. 참여자가 아니면 None."""
        if room.user_code == identity.user_code:
            return SenderType.USER
        consultant = self._consultant_of(identity)
        if consultant is not None and consultant.id == room.consultant_id:
            return SenderType.CONSULTANT
        return None

    def _authorize_view(self, identity: Identity, room: ChatRoom) -> SenderType | None:
        participant = self._participant_type(identity, room)
        if participant is None and not identity.is_admin:
            raise PermissionDeniedError()
        return participant

    # 채팅방 -------------------------------------------------------------
    def open_room(self, identity: Identity, consultant_id: str) -> ChatRoom:
        self._require_consultant_access(identity.user_code)
        consultant = self._consultant_repo.find_by_id(consultant_id)
        if consultant is None or not consultant.is_active:
            raise NotFoundError("Danışman bulunamadı")
        return self._room_repo.get_or_create(identity.user_code, consultant_id)

    def list_rooms(self, identity: Identity) -> list[RoomSummary]:
        if identity.is_admin:
            rooms = self._room_repo.list_all()
            unread_sender = SenderType.USER
        else:
            consultant = self._consultant_of(identity)
            if consultant is not None and consultant.id is not None:
                rooms = self._room_repo.list_by_consultant(consultant.id)
                unread_sender = SenderType.USER
            else:
                rooms = self._room_repo.list_by_user(identity.user_code)
                unread_sender = SenderType.CONSULTANT

        room_ids = [room.id for room in rooms if room.id is not None]
        unread = self._message_repo.count_unread(room_ids, unread_sender)

        consultants: dict[str, Consultant | None] = {}
        summaries: list[RoomSummary] = []
        for room in rooms:
            if room.consultant_id not in consultants:
                consultants[room.consultant_id] = self._consultant_repo.find_by_id(
                    room.consultant_id
                )
            summaries.append(
                RoomSummary(
                    room=room,
                    consultant=consultants[room.consultant_id],
                    last_message=self._message_repo.last_message(room.id or ""),
                    unread_count=unread.get(room.id or "", 0),
                )
            )
        return summaries

    def list_messages(self, identity: Identity, room_id: str) -> list[ChatMessage]:
        """메시지를 순서대로 돌려주고, 상대방이 보낸 메시지를 읽음 처리한다."""
        room = self._load_room(room_id)
        participant = self._authorize_view(identity, room)

        if participant is SenderType.USER:
            self._message_repo.mark_read(room_id, SenderType.CONSULTANT)
        elif participant is SenderType.CONSULTANT:
            self._message_repo.mark_read(room_id, SenderType.USER)

        return self._message_repo.list_by_room(room_id)

    def send_message(self, identity: Identity, room_id: str, content: str) -> ChatMessage:
        text = content.strip()
        if not text:
            raise ValidationError("Mesaj boş olamaz")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError("Mesaj çok uzun")

        room = self._load_room(room_id)
        sender = self._participant_type(identity, room)
        if sender is None:
            raise PermissionDeniedError()
        if sender is SenderType.USER:
            self._require_consultant_access(identity.user_code)

        now = utcnow()
        seq = self._room_repo.claim_next_seq(room_id, now)
        if seq is None:
            raise RoomClosedError()

        return self._message_repo.insert(
            ChatMessage(
                room_id=room_id,
                seq=seq,
                sender_type=sender,
                sender_code=identity.user_code,
                content=text,
                created_at=now,
                updated_at=now,
            )
        )

    def close_room(self, identity: Identity, room_id: str) -> ChatRoom:
        room = self._load_room(room_id)
        self._authorize_view(identity, room)

        closed = self._room_repo.close(room_id, identity.user_code, utcnow())
        if closed is None:
            raise ConflictError("Bu sohbet zaten kapatılmış")
        logger.info("consultant chat closed room_id=%s by=%s", room_id, identity.user_code)
        return closed

    def restart_room(self, identity: Identity, room_id: str) -> ChatRoom:
        room = self._load_room(room_id)
        if room.user_code != identity.user_code:
            raise PermissionDeniedError()
        self._require_consultant_access(identity.user_code)

        reopened = self._room_repo.reopen(room_id, utcnow())
        if reopened is None:
            raise ConflictError("Sohbet zaten aktif")
        return reopened

    def rate(
        self, identity: Identity, room_id: str, rating: int, comment: str | None = None
    ) -> ConsultantRating:
        if not 1 <= rating <= 5:
            raise ValidationError("Puan 1 ile 5 arasında olmalı")

        room = self._load_room(room_id)
        if room.user_code != identity.user_code:
            raise PermissionDeniedError()
        if room.status is not RoomStatus.CLOSED:
            raise ConflictError("Sohbet kapatılmadan değerlendirme yapılamaz")

        now = utcnow()
        stored = self._rating_repo.insert(
            ConsultantRating(
                room_id=room_id,
                consultant_id=room.consultant_id,
                user_code=identity.user_code,
                rating=rating,
                comment=comment,
                created_at=now,
                updated_at=now,
            )
        )
        if stored is None:
            raise ConflictError("Bu sohbet zaten değerlendirilmiş")
        return stored

    def unread_count(self, identity: Identity) -> int:
        return sum(summary.unread_count for summary in self.list_rooms(identity))


def get_consultant_chat_service(
    db: Database = Depends(get_database),
    entitlements: EntitlementService = Depends(get_entitlement_service),
) -> ConsultantChatService:
    """FastAPI DI용 ConsultantChatService 팩토리."""

    return ConsultantChatService(
        consultant_repo=ConsultantRepository(db),
        room_repo=ChatRoomRepository(db),
        message_repo=ChatMessageRepository(db),
        rating_repo=ConsultantRatingRepository(db),
        entitlements=entitlements,
    )
