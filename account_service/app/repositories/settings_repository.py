from __future__ import annotations

from typing import Any

from pymongo.database import Database

from common.types.datetime import utcnow

from .interfaces import SettingsRepositoryInterface


class SettingsRepository(SettingsRepositoryInterface):
    """site_settings 컬렉션 (key -> value) 에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["site_settings"]

    def get(self, key: str) -> Any | None:
        doc = self._col.find_one({"key": key})
        if not doc:
            return None
        return doc.get("value")

    def set(self, key: str, value: Any) -> None:
        now = utcnow()
        self._col.update_one(
            {"key": key},
            {
                "$set": {"value": value, "updated_at": now},
                "$setOnInsert": {"key": key, "created_at": now},
            },
            upsert=True,
        )
