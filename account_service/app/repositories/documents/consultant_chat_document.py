"""상담 채팅 MongoDB 도큐먼트 (consultants / chat_rooms / chat_messages / consultant_ratings)."""

from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.consultant_chat import (
    ChatMessage,
    ChatRoom,
    Consultant,
    ConsultantRating,
    RoomStatus,
    SenderType,
)


class ConsultantDocument(BaseDocument):
    name: str
    title: str = ""
    bio: str = ""
    user_code: str | None = None
    is_active: bool = True

    @classmethod
    def from_domain(cls, consultant: Consultant) -> "ConsultantDocument":
        return cls.model_validate(build_document_data_from_domain(consultant))

    def to_domain(self) -> Consultant:
        return Consultant(
            id=from_object_id(self.id),
            name=self.name,
            title=self.title,
            bio=self.bio,
            user_code=self.user_code,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ChatRoomDocument(BaseDocument):
    user_code: str
    consultant_id: str
    status: str
    message_seq: int = 0
    closed_at: MongoDateTime | None = None
    closed_by: str | None = None
    last_message_at: MongoDateTime | None = None

    @classmethod
    def from_domain(cls, room: ChatRoom) -> "ChatRoomDocument":
        return cls.model_validate(build_document_data_from_domain(room))

    def to_domain(self) -> ChatRoom:
        return ChatRoom(
            id=from_object_id(self.id),
            user_code=self.user_code,
            consultant_id=self.consultant_id,
            status=RoomStatus(self.status),
            message_seq=self.message_seq,
            closed_at=self.closed_at,
            closed_by=self.closed_by,
            last_message_at=self.last_message_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ChatMessageDocument(BaseDocument):
    room_id: str
    seq: int
    sender_type: str
    sender_code: str
    content: str
    is_read: bool = False

    @classmethod
    def from_domain(cls, message: ChatMessage) -> "ChatMessageDocument":
        return cls.model_validate(build_document_data_from_domain(message))

    def to_domain(self) -> ChatMessage:
        return ChatMessage(
            id=from_object_id(self.id),
            room_id=self.room_id,
            seq=self.seq,
            sender_type=SenderType(self.sender_type),
            sender_code=self.sender_code,
            content=self.content,
            is_read=self.is_read,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ConsultantRatingDocument(BaseDocument):
    room_id: str
    consultant_id: str
    user_code: str
    rating: int
    comment: str | None = None

    @classmethod
    def from_domain(cls, rating: ConsultantRating) -> "ConsultantRatingDocument":
        return cls.model_validate(build_document_data_from_domain(rating))

    def to_domain(self) -> ConsultantRating:
        return ConsultantRating(
            id=from_object_id(self.id),
            room_id=self.room_id,
            consultant_id=self.consultant_id,
            user_code=self.user_code,
            rating=self.rating,
            comment=self.comment,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
