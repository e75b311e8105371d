"""관리자 감사 로그 서비스.

감사 로그 기록 실패는 본 작업을 되돌리지 않는다. 실패는 로그로 남기고
호출자에게 False 로 알려 응답의 audit_logged 로 노출한다.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..constants import ADMIN_LOG_STATS_WINDOW_HOURS
from ..exceptions import ValidationError
from ..models.admin_log import (
    AdminAction,
    AdminLog,
    AdminLogFilter,
    AuditContext,
    TargetType,
)
from ..repositories.admin_log_repository import AdminLogRepository
from ..repositories.interfaces import AdminLogRepositoryInterface


logger = logging.getLogger(__name__)


class AdminLogService:
    def __init__(self, log_repo: AdminLogRepositoryInterface) -> None:
        self._log_repo = log_repo

    def record(
        self,
        ctx: AuditContext,
        action: AdminAction,
        target_type: TargetType,
        target_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> bool:
        """감사 로그 1건을 기록한다. 성공 여부를 반환하며 예외를 던지지 않는다."""
        now = utcnow()
        try:
            self._log_repo.insert(
                AdminLog(
                    admin_code=ctx.admin_code,
                    action=action,
                    target_type=target_type,
                    target_id=target_id,
                    details=(
                        json.dumps(details, ensure_ascii=False, default=str)
                        if details is not None
                        else None
                    ),
                    ip_address=ctx.ip_address,
                    user_agent=ctx.user_agent,
                    created_at=now,
                    updated_at=now,
                )
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to write admin log admin_code=%s action=%s target=%s/%s",
                ctx.admin_code,
                action,
                target_type,
                target_id,
            )
            return False
        return True

    def search(
        self, log_filter: AdminLogFilter, page: int, page_size: int
    ) -> tuple[list[AdminLog], int]:
        return self._log_repo.search(log_filter, page, page_size)

    def recent_stats(self, now: datetime | None = None) -> dict[str, int]:
        """최근 24시간 action 별 건수. 기록이 없는 action 은 0."""
        since = (now or utcnow()) - timedelta(hours=ADMIN_LOG_STATS_WINDOW_HOURS)
        counts = self._log_repo.count_by_action_since(since)
        return {action.value: counts.get(action.value, 0) for action in AdminAction}

    def purge(self, ctx: AuditContext, older_than_days: int) -> tuple[int, bool]:
        """older_than_days 보다 오래된 로그를 삭제하고, 삭제 자체를 감사 로그로 남긴다."""
        if older_than_days < 1:
            raise ValidationError("Gün sayısı en az 1 olmalı")

        cutoff = utcnow() - timedelta(days=older_than_days)
        deleted = self._log_repo.delete_older_than(cutoff)
        logger.info(
            "admin logs purged admin_code=%s older_than_days=%d deleted=%d",
            ctx.admin_code,
            older_than_days,
            deleted,
        )
        audit_logged = self.record(
            ctx,
            AdminAction.DELETE,
            TargetType.LOGS,
            details={"older_than_days": older_than_days, "deleted_count": deleted},
        )
        return deleted, audit_logged


def get_admin_log_repository(
    db: Database = Depends(get_database),
) -> AdminLogRepositoryInterface:
    """FastAPI DI용 AdminLogRepository 팩토리."""

    return AdminLogRepository(db)


def get_admin_log_service(
    log_repo: AdminLogRepositoryInterface = Depends(get_admin_log_repository),
) -> AdminLogService:
    """FastAPI DI용 AdminLogService 팩토리."""

    return AdminLogService(log_repo)
