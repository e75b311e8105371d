from __future__ import annotations

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.types.datetime import utcnow

from ..constants import USAGE_PROCESSED_EVENT_IDS_LIMIT
from .documents.misc_document import UsageStatsDocument
from .interfaces import UsageStatsRepositoryInterface
from ..models.usage import UsageStats


class UsageStatsRepository(UsageStatsRepositoryInterface):
    """usage_stats 컬렉션 (유저별 월간 집계) 에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["usage_stats"]

    def apply(
        self,
        event_id: str,
        user_code: str,
        period: str,
        increments: dict[str, int],
    ) -> bool:
        """집계 반영 (Atomic).

        - 필터에 "아직 반영하지 않은 event_id" 조건을 넣어 한 번의 upsert 로 처리한다.
        - 이미 반영된 이벤트면 필터가 매칭되지 않아 insert 를 시도하고,
          (user_code, period) 유니크 인덱스 충돌로 DuplicateKeyError 가 난다 -> False.
        - processed_event_ids 는 최근 USAGE_PROCESSED_EVENT_IDS_LIMIT 개만 유지한다.
          그보다 오래된 이벤트가 다시 전달되면 한 번 더 집계된다.
        """
        now = utcnow()
        try:
            result = self._col.update_one(
                {
                    "user_code": user_code,
                    "period": period,
                    "processed_event_ids": {"$ne": event_id},
                },
                {
                    "$inc": increments,
                    "$push": {
                        "processed_event_ids": {
                            "$each": [event_id],
                            "$slice": -USAGE_PROCESSED_EVENT_IDS_LIMIT,
                        }
                    },
                    "$set": {"updated_at": now},
                    "$setOnInsert": {
                        "user_code": user_code,
                        "period": period,
                        "created_at": now,
                    },
                },
                upsert=True,
            )
        except DuplicateKeyError:
            return False

        return result.upserted_id is not None or result.modified_count > 0

    def get(self, user_code: str, period: str) -> UsageStats | None:
        doc = self._col.find_one({"user_code": user_code, "period": period})
        if not doc:
            return None
        return UsageStatsDocument.model_validate(doc).to_domain()
