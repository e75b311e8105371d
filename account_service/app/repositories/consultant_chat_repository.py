"""상담 채팅 레포지토리.

메시지 순서는 채팅방 도큐먼트의 message_seq 카운터로 정한다. 카운터 증가는
status=ACTIVE 조건부 업데이트라서, 동시에 방이 닫히면 메시지 전송이 실패한다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.types import try_object_id
from common.types.datetime import utcnow

from .documents.consultant_chat_document import (
    ChatMessageDocument,
    ChatRoomDocument,
    ConsultantDocument,
    ConsultantRatingDocument,
)
from .interfaces import (
    ChatMessageRepositoryInterface,
    ChatRoomRepositoryInterface,
    ConsultantRatingRepositoryInterface,
    ConsultantRepositoryInterface,
)
from ..models.consultant_chat import (
    ChatMessage,
    ChatRoom,
    Consultant,
    ConsultantRating,
    RoomStatus,
    SenderType,
)


class ConsultantRepository(ConsultantRepositoryInterface):
    """consultants 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["consultants"]

    def insert(self, consultant: Consultant) -> Consultant:
        payload = ConsultantDocument.from_domain(consultant).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return ConsultantDocument.model_validate(payload).to_domain()

    def find_by_id(self, consultant_id: str) -> Consultant | None:
        oid = try_object_id(consultant_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return ConsultantDocument.model_validate(doc).to_domain()

    def find_by_user_code(self, user_code: str) -> Consultant | None:
        doc = self._col.find_one({"user_code": user_code})
        if not doc:
            return None
        return ConsultantDocument.model_validate(doc).to_domain()

    def list(self, active_only: bool) -> list[Consultant]:
        query: dict[str, Any] = {"is_active": True} if active_only else {}
        cursor = self._col.find(query).sort("name", ASCENDING)
        return [ConsultantDocument.model_validate(doc).to_domain() for doc in cursor]

    def update(self, consultant_id: str, fields: dict[str, Any]) -> Consultant | None:
        oid = try_object_id(consultant_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return ConsultantDocument.model_validate(doc).to_domain()


class ChatRoomRepository(ChatRoomRepositoryInterface):
    """chat_rooms 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["chat_rooms"]

    @staticmethod
    def _from_document(doc: dict) -> ChatRoom:
        return ChatRoomDocument.model_validate(doc).to_domain()

    def _update_room(self, room_id: str, filter_extra: dict, update: dict) -> ChatRoom | None:
        oid = try_object_id(room_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid, **filter_extra},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def find_by_id(self, room_id: str) -> ChatRoom | None:
        oid = try_object_id(room_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return self._from_document(doc)

    def get_or_create(self, user_code: str, consultant_id: str) -> ChatRoom:
        now = utcnow()
        try:
            doc = self._col.find_one_and_update(
                {"user_code": user_code, "consultant_id": consultant_id},
                {
                    "$setOnInsert": {
                        "user_code": user_code,
                        "consultant_id": consultant_id,
                        "status": RoomStatus.ACTIVE.value,
                        "message_seq": 0,
                        "closed_at": None,
                        "closed_by": None,
                        "last_message_at": None,
                        "created_at": now,
                        "updated_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # 동시 upsert 경합: 먼저 생성된 방을 다시 읽는다.
            doc = self._col.find_one({"user_code": user_code, "consultant_id": consultant_id})
        return self._from_document(doc)

    def list_by_user(self, user_code: str) -> list[ChatRoom]:
        cursor = self._col.find({"user_code": user_code}).sort("updated_at", DESCENDING)
        return [self._from_document(doc) for doc in cursor]

    def list_by_consultant(self, consultant_id: str) -> list[ChatRoom]:
        cursor = self._col.find({"consultant_id": consultant_id}).sort(
            "updated_at", DESCENDING
        )
        return [self._from_document(doc) for doc in cursor]

    def list_all(self) -> list[ChatRoom]:
        cursor = self._col.find({}).sort("updated_at", DESCENDING)
        return [self._from_document(doc) for doc in cursor]

    def claim_next_seq(self, room_id: str, now: datetime) -> int | None:
        room = self._update_room(
            room_id,
            {"status": RoomStatus.ACTIVE.value},
            {
                "$inc": {"message_seq": 1},
                "$set": {"last_message_at": now, "updated_at": now},
            },
        )
        if room is None:
            return None
        return room.message_seq

    def close(self, room_id: str, closed_by: str, now: datetime) -> ChatRoom | None:
        return self._update_room(
            room_id,
            {"status": RoomStatus.ACTIVE.value},
            {
                "$set": {
                    "status": RoomStatus.CLOSED.value,
                    "closed_at": now,
                    "closed_by": closed_by,
                    "updated_at": now,
                }
            },
        )

    def reopen(self, room_id: str, now: datetime) -> ChatRoom | None:
        return self._update_room(
            room_id,
            {"status": RoomStatus.CLOSED.value},
            {
                "$set": {
                    "status": RoomStatus.ACTIVE.value,
                    "closed_at": None,
                    "closed_by": None,
                    "updated_at": now,
                }
            },
        )


class ChatMessageRepository(ChatMessageRepositoryInterface):
    """chat_messages 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["chat_messages"]

    def insert(self, message: ChatMessage) -> ChatMessage:
        payload = ChatMessageDocument.from_domain(message).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return ChatMessageDocument.model_validate(payload).to_domain()

    def list_by_room(self, room_id: str) -> list[ChatMessage]:
        cursor = self._col.find({"room_id": room_id}).sort("seq", ASCENDING)
        return [ChatMessageDocument.model_validate(doc).to_domain() for doc in cursor]

    def last_message(self, room_id: str) -> ChatMessage | None:
        doc = self._col.find_one({"room_id": room_id}, sort=[("seq", DESCENDING)])
        if not doc:
            return None
        return ChatMessageDocument.model_validate(doc).to_domain()

    def mark_read(self, room_id: str, sender_type: SenderType) -> int:
        result = self._col.update_many(
            {"room_id": room_id, "sender_type": sender_type.value, "is_read": False},
            {"$set": {"is_read": True, "updated_at": utcnow()}},
        )
        return result.modified_count

    def count_unread(self, room_ids: list[str], sender_type: SenderType) -> dict[str, int]:
        if not room_ids:
            return {}
        pipeline = [
            {
                "$match": {
                    "room_id": {"$in": room_ids},
                    "sender_type": sender_type.value,
                    "is_read": False,
                }
            },
            {"$group": {"_id": "$room_id", "count": {"$sum": 1}}},
        ]
        return {row["_id"]: row["count"] for row in self._col.aggregate(pipeline)}


class ConsultantRatingRepository(ConsultantRatingRepositoryInterface):
    """consultant_ratings 컬렉션에 대한 MongoDB 접근 레이어 (방당 1건)."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["consultant_ratings"]

    def insert(self, rating: ConsultantRating) -> ConsultantRating | None:
        payload = ConsultantRatingDocument.from_domain(rating).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError:
            return None
        payload["_id"] = result.inserted_id
        return ConsultantRatingDocument.model_validate(payload).to_domain()

    def find_by_room(self, room_id: str) -> ConsultantRating | None:
        doc = self._col.find_one({"room_id": room_id})
        if not doc:
            return None
        return ConsultantRatingDocument.model_validate(doc).to_domain()
