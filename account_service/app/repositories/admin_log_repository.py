from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pymongo import DESCENDING
from pymongo.database import Database

from .documents.admin_log_document import AdminLogDocument
from .interfaces import AdminLogRepositoryInterface
from ..models.admin_log import AdminLog, AdminLogFilter


class AdminLogRepository(AdminLogRepositoryInterface):
    """admin_logs 컬렉션에 대한 MongoDB 접근 레이어 (insert-only)."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["admin_logs"]

    def insert(self, log: AdminLog) -> AdminLog:
        payload = AdminLogDocument.from_domain(log).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return AdminLogDocument.model_validate(payload).to_domain()

    def search(
        self, log_filter: AdminLogFilter, page: int, page_size: int
    ) -> tuple[list[AdminLog], int]:
        query: dict[str, Any] = {}
        if log_filter.action is not None:
            query["action"] = log_filter.action.value
        if log_filter.target_type is not None:
            query["target_type"] = log_filter.target_type.value
        if log_filter.admin_code:
            query["admin_code"] = log_filter.admin_code
        if log_filter.search:
            pattern = re.escape(log_filter.search.strip())
            query["$or"] = [
                {"details": {"$regex": pattern, "$options": "i"}},
                {"target_id": {"$regex": pattern, "$options": "i"}},
            ]
        created: dict[str, datetime] = {}
        if log_filter.date_from is not None:
            created["$gte"] = log_filter.date_from
        if log_filter.date_to is not None:
            created["$lte"] = log_filter.date_to
        if created:
            query["created_at"] = created

        total = self._col.count_documents(query)
        cursor = (
            self._col.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        items = [AdminLogDocument.model_validate(doc).to_domain() for doc in cursor]
        return items, total

    def count_by_action_since(self, since: datetime) -> dict[str, int]:
        pipeline = [
            {"$match": {"created_at": {"$gte": since}}},
            {"$group": {"_id": "$action", "count": {"$sum": 1}}},
        ]
        return {row["_id"]: row["count"] for row in self._col.aggregate(pipeline)}

    def delete_older_than(self, cutoff: datetime) -> int:
        result = self._col.delete_many({"created_at": {"$lt": cutoff}})
        return result.deleted_count
