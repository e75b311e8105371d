"""cvs / job_listings / job_analyses / cv_chat_sessions 컬렉션 레포지토리."""

from __future__ import annotations

import re
from typing import Any

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from common.mongo.types import try_object_id
from common.types.datetime import utcnow

from .documents.cv_document import (
    CvChatMessageDocument,
    CvChatSessionDocument,
    CvDocument,
    JobAnalysisDocument,
    JobListingDocument,
)
from .interfaces import (
    CvChatSessionRepositoryInterface,
    CvRepositoryInterface,
    JobAnalysisRepositoryInterface,
    JobListingRepositoryInterface,
)
from ..models.cv import Cv, JobAnalysis, JobListing
from ..models.cv_chat import CvChatMessage, CvChatSession


class CvRepository(CvRepositoryInterface):
    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["cvs"]

    def insert(self, cv: Cv) -> Cv:
        payload = CvDocument.from_domain(cv).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return CvDocument.model_validate(payload).to_domain()

    def find(self, cv_id: str, user_code: str) -> Cv | None:
        oid = try_object_id(cv_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid, "user_code": user_code})
        if not doc:
            return None
        return CvDocument.model_validate(doc).to_domain()

    def list_by_user(self, user_code: str) -> list[Cv]:
        cursor = self._col.find({"user_code": user_code}).sort("created_at", DESCENDING)
        return [CvDocument.model_validate(doc).to_domain() for doc in cursor]

    def count_by_user(self, user_code: str) -> int:
        return self._col.count_documents({"user_code": user_code})


class JobListingRepository(JobListingRepositoryInterface):
    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["job_listings"]

    def insert(self, job: JobListing) -> JobListing:
        payload = JobListingDocument.from_domain(job).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return JobListingDocument.model_validate(payload).to_domain()

    def find_by_id(self, job_id: str) -> JobListing | None:
        oid = try_object_id(job_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return JobListingDocument.model_validate(doc).to_domain()

    def list(
        self, page: int, page_size: int, active_only: bool, search: str | None
    ) -> tuple[list[JobListing], int]:
        query: dict[str, Any] = {}
        if active_only:
            query["is_active"] = True
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"company": {"$regex": pattern, "$options": "i"}},
                {"location": {"$regex": pattern, "$options": "i"}},
            ]
        total = self._col.count_documents(query)
        cursor = (
            self._col.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return [JobListingDocument.model_validate(doc).to_domain() for doc in cursor], total

    def update(self, job_id: str, fields: dict[str, Any]) -> JobListing | None:
        oid = try_object_id(job_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return JobListingDocument.model_validate(doc).to_domain()

    def delete(self, job_id: str) -> bool:
        oid = try_object_id(job_id)
        if oid is None:
            return False
        return self._col.delete_one({"_id": oid}).deleted_count > 0


class JobAnalysisRepository(JobAnalysisRepositoryInterface):
    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["job_analyses"]

    def insert(self, analysis: JobAnalysis) -> JobAnalysis:
        payload = JobAnalysisDocument.from_domain(analysis).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return JobAnalysisDocument.model_validate(payload).to_domain()

    def list_by_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[JobAnalysis], int]:
        query = {"user_code": user_code}
        total = self._col.count_documents(query)
        cursor = (
            self._col.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return [JobAnalysisDocument.model_validate(doc).to_domain() for doc in cursor], total


class CvChatSessionRepository(CvChatSessionRepositoryInterface):
    """cv_chat_sessions 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["cv_chat_sessions"]

    def create(self, session: CvChatSession) -> CvChatSession:
        doc = CvChatSessionDocument.from_domain(session)
        result = self._col.insert_one(doc.to_mongo_record())
        doc.id = result.inserted_id
        return doc.to_domain()

    def get_by_id(self, session_id: str, user_code: str) -> CvChatSession | None:
        oid = try_object_id(session_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid, "user_code": user_code})
        if not doc:
            return None
        return CvChatSessionDocument.model_validate(doc).to_domain()

    def replace_messages(
        self, session_id: str, messages: list[CvChatMessage], is_finished: bool
    ) -> CvChatSession | None:
        """세션 대화 내용을 통째로 교체하고 updated_at 을 갱신한다."""
        oid = try_object_id(session_id)
        if oid is None:
            return None
        message_docs = [
            CvChatMessageDocument(
                role=m.role.value, content=m.content, created_at=m.created_at
            ).model_dump()
            for m in messages
        ]
        updated = self._col.find_one_and_update(
            {"_id": oid},
            {
                "$set": {
                    "messages": message_docs,
                    "is_finished": is_finished,
                    "updated_at": utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            return None
        return CvChatSessionDocument.model_validate(updated).to_domain()
