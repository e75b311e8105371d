"""orders 컬렉션 레포지토리.

쿠폰을 사용한 주문은 "쿠폰 usage_count 증가 + 주문 insert" 를 하나의 트랜잭션으로 처리한다.
MongoDB 트랜잭션은 replica set (또는 sharded cluster) 구성을 필요로 한다.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pymongo import DESCENDING, ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from .documents.commerce_document import OrderDocument
from .interfaces import OrderRepositoryInterface
from ..models.order import Order, OrderFilter, OrderStatus, SalesStats


class _CouponNotRedeemable(Exception):
    """트랜잭션 콜백 안에서 쿠폰 증가 조건이 실패했음을 알려 트랜잭션을 중단시킨다."""


class OrderRepository(OrderRepositoryInterface):
    """orders 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["orders"]
        self._coupons = database["coupons"]

    @staticmethod
    def _from_document(doc: dict) -> Order:
        return OrderDocument.model_validate(doc).to_domain()

    def create(self, order: Order, redeem_coupon_code: str | None = None) -> Order | None:
        payload = OrderDocument.from_domain(order).to_mongo_record()

        if redeem_coupon_code is None:
            result = self._col.insert_one(payload)
            payload["_id"] = result.inserted_id
            return self._from_document(payload)

        code = redeem_coupon_code.strip().upper()

        def _callback(session: ClientSession) -> Any:
            # is_active 이고 (max_usage 없음 또는 usage_count < max_usage) 일 때만 증가
            redeemed = self._coupons.find_one_and_update(
                {
                    "code": code,
                    "is_active": True,
                    "$or": [
                        {"max_usage": None},
                        {"$expr": {"$lt": ["$usage_count", "$max_usage"]}},
                    ],
                },
                {"$inc": {"usage_count": 1}, "$set": {"updated_at": order.created_at}},
                session=session,
                return_document=ReturnDocument.AFTER,
            )
            if redeemed is None:
                raise _CouponNotRedeemable(code)
            return self._col.insert_one(payload, session=session).inserted_id

        try:
            with self._db.client.start_session() as session:
                inserted_id = session.with_transaction(_callback)
        except _CouponNotRedeemable:
            return None

        payload["_id"] = inserted_id
        return self._from_document(payload)

    def find_by_code(self, order_code: str) -> Order | None:
        doc = self._col.find_one({"order_code": order_code})
        if not doc:
            return None
        return self._from_document(doc)

    def transition(
        self,
        order_code: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        now: datetime,
    ) -> Order | None:
        update: dict[str, Any] = {"status": to_status.value, "updated_at": now}
        if to_status is OrderStatus.COMPLETED:
            update["completed_at"] = now

        doc = self._col.find_one_and_update(
            {"order_code": order_code, "status": from_status.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def claim_activation(self, order_code: str, now: datetime) -> Order | None:
        doc = self._col.find_one_and_update(
            {
                "order_code": order_code,
                "status": OrderStatus.COMPLETED.value,
                "activated_at": None,
            },
            {"$set": {"activated_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def release_activation(self, order_code: str) -> None:
        self._col.update_one(
            {"order_code": order_code},
            {"$set": {"activated_at": None}},
        )

    def list_by_user(self, user_code: str, limit: int) -> list[Order]:
        cursor = (
            self._col.find({"user_code": user_code})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [self._from_document(doc) for doc in cursor]

    @staticmethod
    def _build_filter(order_filter: OrderFilter) -> dict[str, Any]:
        query: dict[str, Any] = {}
        if order_filter.status is not None:
            query["status"] = order_filter.status.value
        if order_filter.plan is not None:
            query["plan"] = order_filter.plan.value
        if order_filter.search:
            pattern = re.escape(order_filter.search.strip())
            query["$or"] = [
                {"order_code": {"$regex": pattern, "$options": "i"}},
                {"user_code": {"$regex": pattern, "$options": "i"}},
            ]
        created: dict[str, datetime] = {}
        if order_filter.date_from is not None:
            created["$gte"] = order_filter.date_from
        if order_filter.date_to is not None:
            created["$lte"] = order_filter.date_to
        if created:
            query["created_at"] = created
        return query

    def search(
        self, order_filter: OrderFilter, page: int, page_size: int
    ) -> tuple[list[Order], int]:
        query = self._build_filter(order_filter)
        total = self._col.count_documents(query)
        cursor = (
            self._col.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return [self._from_document(doc) for doc in cursor], total

    def stats(self, order_filter: OrderFilter) -> SalesStats:
        pipeline = [
            {"$match": self._build_filter(order_filter)},
            {
                "$group": {
                    "_id": None,
                    "total_orders": {"$sum": 1},
                    "completed_orders": {
                        "$sum": {"$cond": [{"$eq": ["$status", "COMPLETED"]}, 1, 0]}
                    },
                    "pending_orders": {
                        "$sum": {"$cond": [{"$eq": ["$status", "PENDING"]}, 1, 0]}
                    },
                    "total_revenue": {
                        "$sum": {
                            "$cond": [{"$eq": ["$status", "COMPLETED"]}, "$amount", 0]
                        }
                    },
                }
            },
        ]
        rows = list(self._col.aggregate(pipeline))
        if not rows:
            return SalesStats(
                total_orders=0, completed_orders=0, pending_orders=0, total_revenue=0
            )
        row = rows[0]
        return SalesStats(
            total_orders=row["total_orders"],
            completed_orders=row["completed_orders"],
            pending_orders=row["pending_orders"],
            total_revenue=row["total_revenue"],
        )
