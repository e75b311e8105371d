from __future__ import annotations

from typing import Any

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.types import try_object_id
from common.types.datetime import utcnow

from .documents.commerce_document import CouponDocument
from .interfaces import CouponRepositoryInterface
from ..models.coupon import Coupon, CouponStats


class CouponRepository(CouponRepositoryInterface):
    """coupons 컬렉션에 대한 MongoDB 접근 레이어.

    usage_count 증가는 주문 생성 트랜잭션(OrderRepository.create)에서만 일어난다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["coupons"]

    @staticmethod
    def _from_document(doc: dict) -> Coupon:
        return CouponDocument.model_validate(doc).to_domain()

    def find_by_code(self, code: str) -> Coupon | None:
        doc = self._col.find_one({"code": code.strip().upper()})
        if not doc:
            return None
        return self._from_document(doc)

    def find_by_id(self, coupon_id: str) -> Coupon | None:
        oid = try_object_id(coupon_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return self._from_document(doc)

    def insert(self, coupon: Coupon) -> Coupon | None:
        payload = CouponDocument.from_domain(coupon).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError:
            return None
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def update(self, coupon_id: str, fields: dict[str, Any]) -> Coupon | None:
        oid = try_object_id(coupon_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def delete(self, coupon_id: str) -> bool:
        oid = try_object_id(coupon_id)
        if oid is None:
            return False
        result = self._col.delete_one({"_id": oid})
        return result.deleted_count > 0

    def list_all(self) -> list[Coupon]:
        cursor = self._col.find({}).sort("created_at", DESCENDING)
        return [self._from_document(doc) for doc in cursor]

    def stats(self) -> CouponStats:
        pipeline = [
            {
                "$group": {
                    "_id": None,
                    "total": {"$sum": 1},
                    "active": {"$sum": {"$cond": ["$is_active", 1, 0]}},
                    "total_usage": {"$sum": "$usage_count"},
                }
            }
        ]
        rows = list(self._col.aggregate(pipeline))
        if not rows:
            return CouponStats(total=0, active=0, total_usage=0)
        row = rows[0]
        return CouponStats(
            total=row["total"],
            active=row["active"],
            total_usage=row["total_usage"],
        )
