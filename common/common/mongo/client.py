from __future__ import annotations

import logging
import os
import threading
from typing import Optional, cast

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import ConfigurationError


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 에서 URI 를 읽어온다.
    - ping 으로 연결을 검증한다.
    - URI 에 기본 데이터베이스가 포함되어 있지 않으면 에러를 발생시킨다.
    - 필요한 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        uri = os.getenv("MONGO_URI", "").strip()
        if not uri:
            raise RuntimeError("MONGO_URI environment variable is required for MongoDB")
        # 잔액 차감과 쿠폰 사용 트랜잭션은 replica set 연결에서만 동작한다.
        client = MongoClient(uri, tz_aware=True)

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        # 사용할 DB 이름 결정: MONGO_DB_NAME 우선, 없으면 URI의 기본 DB 사용
        db_name = os.getenv("MONGO_DB_NAME", "").strip()
        try:
            db = client[db_name] if db_name else client.get_default_database()
        except ConfigurationError as exc:
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        _client = client
        _db = db

        try:
            _ensure_indexes(_db)
        except Exception as exc:  # noqa: BLE001
            # 인덱스 생성 실패는 치명적 오류로 간주한다.
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            raise

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert (
        _db is not None
    )  # get_client 에서 _db 를 초기화하지 못했다면 예외가 이미 발생했어야 한다.
    return _db


def _ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다.

    중복 생성해도 MongoDB 가 처리하므로 idempotent 하다.
    """

    users = db["users"]
    users.create_index([("user_code", ASCENDING)], name="uniq_user_code", unique=True)

    consumptions = db["consumptions"]
    consumptions.create_index(
        [("user_code", ASCENDING), ("created_at", DESCENDING)],
        name="idx_user_created_at",
    )
    # idempotency_key 가 있는 문서에만 유니크 제약을 건다.
    consumptions.create_index(
        [("user_code", ASCENDING), ("idempotency_key", ASCENDING)],
        name="uniq_user_idempotency_key",
        unique=True,
        partialFilterExpression={"idempotency_key": {"$type": "string"}},
    )

    coupons = db["coupons"]
    coupons.create_index([("code", ASCENDING)], name="uniq_code", unique=True)

    orders = db["orders"]
    orders.create_index([("order_code", ASCENDING)], name="uniq_order_code", unique=True)
    orders.create_index(
        [("user_code", ASCENDING), ("created_at", DESCENDING)],
        name="idx_user_created_at",
    )

    admin_logs = db["admin_logs"]
    admin_logs.create_index(
        [("action", ASCENDING), ("target_type", ASCENDING), ("created_at", DESCENDING)],
        name="idx_action_target_created_at",
    )
    admin_logs.create_index([("created_at", DESCENDING)], name="idx_created_at")

    chat_rooms = db["chat_rooms"]
    chat_rooms.create_index(
        [("user_code", ASCENDING), ("consultant_id", ASCENDING)],
        name="uniq_user_consultant",
        unique=True,
    )

    chat_messages = db["chat_messages"]
    chat_messages.create_index(
        [("room_id", ASCENDING), ("seq", ASCENDING)],
        name="uniq_room_seq",
        unique=True,
    )

    ratings = db["consultant_ratings"]
    ratings.create_index([("room_id", ASCENDING)], name="uniq_room_id", unique=True)

    cookie_consents = db["cookie_consents"]
    cookie_consents.create_index(
        [("ip_address", ASCENDING), ("accepted_at", DESCENDING)],
        name="idx_ip_accepted_at",
    )

    usage_stats = db["usage_stats"]
    usage_stats.create_index(
        [("user_code", ASCENDING), ("period", ASCENDING)],
        name="uniq_user_period",
        unique=True,
    )

    site_settings = db["site_settings"]
    site_settings.create_index([("key", ASCENDING)], name="uniq_key", unique=True)

    cvs = db["cvs"]
    cvs.create_index(
        [("user_code", ASCENDING), ("created_at", DESCENDING)],
        name="idx_user_created_at",
    )

    analyses = db["job_analyses"]
    analyses.create_index(
        [("user_code", ASCENDING), ("created_at", DESCENDING)],
        name="idx_user_created_at",
    )
