"""users / consumptions 컬렉션 레포지토리.

잔액 차감은 반드시 단일 도큐먼트 원자 연산으로 처리한다.
- try_debit: "잔액 >= amount" 조건부 $inc
- debit_clamped: 파이프라인 업데이트로 max(0, 잔액 - amount), 갱신 전 도큐먼트를 돌려준다
읽고-계산하고-쓰는(read-modify-write) 방식은 쓰지 않는다.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.types.datetime import utcnow

from .documents.account_document import AccountDocument, ConsumptionDocument
from .interfaces import AccountRepositoryInterface, ConsumptionRepositoryInterface
from ..models.account import Account, Consumption, ResourceKind, Subscription
from ..models.plan import PlanId


class AccountRepository(AccountRepositoryInterface):
    """users 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["users"]

    @staticmethod
    def _from_document(doc: dict) -> Account:
        return AccountDocument.model_validate(doc).to_domain()

    def _update(
        self,
        filter_query: dict,
        update: Any,
        return_document: ReturnDocument = ReturnDocument.AFTER,
    ) -> Account | None:
        doc = self._col.find_one_and_update(
            filter_query,
            update,
            return_document=return_document,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def find_by_user_code(self, user_code: str) -> Account | None:
        doc = self._col.find_one({"user_code": user_code})
        if not doc:
            return None
        return self._from_document(doc)

    def insert(self, account: Account) -> Account:
        now = utcnow()
        account.created_at = now
        account.updated_at = now

        payload = AccountDocument.from_domain(account).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError:
            # 첫 로그인 요청이 동시에 들어오면 먼저 들어간 쪽을 그대로 쓴다.
            existing = self.find_by_user_code(account.user_code)
            if existing is None:
                raise
            return existing
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def update_profile(self, user_code: str, email: str, name: str) -> Account | None:
        return self._update(
            {"user_code": user_code},
            {"$set": {"email": email, "name": name, "updated_at": utcnow()}},
        )

    def try_debit(self, user_code: str, kind: ResourceKind, amount: int) -> Account | None:
        field = kind.value
        return self._update(
            {"user_code": user_code, field: {"$gte": amount}},
            {"$inc": {field: -amount}, "$set": {"updated_at": utcnow()}},
        )

    def debit_clamped(
        self, user_code: str, kind: ResourceKind, amount: int
    ) -> Account | None:
        field = kind.value
        return self._update(
            {"user_code": user_code},
            [
                {
                    "$set": {
                        field: {"$max": [0, {"$subtract": [f"${field}", amount]}]},
                        "updated_at": utcnow(),
                    }
                }
            ],
            return_document=ReturnDocument.BEFORE,
        )

    def credit(self, user_code: str, kind: ResourceKind, amount: int) -> Account | None:
        return self._update(
            {"user_code": user_code},
            {"$inc": {kind.value: amount}, "$set": {"updated_at": utcnow()}},
        )

    def activate_subscription(
        self,
        user_code: str,
        subscription: Subscription,
        credits: int,
        cv_chat_tokens: int,
    ) -> Account | None:
        return self._update(
            {"user_code": user_code},
            {
                "$set": {
                    "subscription": {
                        "plan": subscription.plan.value,
                        "status": subscription.status.value,
                        "order_code": subscription.order_code,
                        "started_at": subscription.started_at,
                        "expires_at": subscription.expires_at,
                    },
                    "updated_at": utcnow(),
                },
                "$inc": {
                    ResourceKind.CREDITS.value: credits,
                    ResourceKind.CV_CHAT_TOKENS.value: cv_chat_tokens,
                },
            },
        )

    def update_fields(self, user_code: str, fields: dict[str, Any]) -> Account | None:
        return self._update(
            {"user_code": user_code},
            {"$set": {**fields, "updated_at": utcnow()}},
        )

    def cap_chat_tokens(self, plan: PlanId, cap: int, now: datetime) -> int:
        field = ResourceKind.CV_CHAT_TOKENS.value
        active = {
            "subscription.status": "ACTIVE",
            "$or": [
                {"subscription.expires_at": None},
                {"subscription.expires_at": {"$gt": now}},
            ],
        }
        if plan is PlanId.FREE:
            plan_filter: dict[str, Any] = {
                "$or": [
                    {"subscription": None},
                    {"subscription.plan": PlanId.FREE.value},
                    {"subscription.status": {"$ne": "ACTIVE"}},
                    {"subscription.expires_at": {"$lte": now}},
                ]
            }
        else:
            plan_filter = {"subscription.plan": plan.value, **active}

        result = self._col.update_many(
            {**plan_filter, field: {"$gt": cap}},
            {"$set": {field: cap, "updated_at": utcnow()}},
        )
        return result.modified_count

    def count(self) -> int:
        return self._col.count_documents({})

    def list(
        self, page: int, page_size: int, search: str | None = None
    ) -> tuple[list[Account], int]:
        filter_query: dict[str, Any] = {}
        if search:
            pattern = re.escape(search.strip())
            filter_query["$or"] = [
                {"email": {"$regex": pattern, "$options": "i"}},
                {"name": {"$regex": pattern, "$options": "i"}},
                {"user_code": {"$regex": pattern, "$options": "i"}},
            ]

        total = self._col.count_documents(filter_query)
        cursor = (
            self._col.find(filter_query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return [self._from_document(doc) for doc in cursor], total


class ConsumptionRepository(ConsumptionRepositoryInterface):
    """consumptions 컬렉션 (차감 이력) 에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["consumptions"]

    def insert(self, consumption: Consumption) -> Consumption | None:
        payload = ConsumptionDocument.from_domain(consumption).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError:
            # (user_code, idempotency_key) 유니크 인덱스 충돌 -> 이미 처리된 요청
            return None
        payload["_id"] = result.inserted_id
        return ConsumptionDocument.model_validate(payload).to_domain()

    def find_by_idempotency_key(
        self, user_code: str, idempotency_key: str
    ) -> Consumption | None:
        doc = self._col.find_one(
            {"user_code": user_code, "idempotency_key": idempotency_key}
        )
        if not doc:
            return None
        return ConsumptionDocument.model_validate(doc).to_domain()

    def list_by_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[Consumption], int]:
        filter_query = {"user_code": user_code}
        total = self._col.count_documents(filter_query)
        cursor = (
            self._col.find(filter_query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        items = [ConsumptionDocument.model_validate(doc).to_domain() for doc in cursor]
        return items, total
