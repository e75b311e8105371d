from __future__ import annotations

from datetime import datetime

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import month_period, utcnow

from ..models.usage import UsageLimit, UsageReport
from ..repositories.interfaces import (
    CvRepositoryInterface,
    UsageStatsRepositoryInterface,
)
from ..repositories.usage_repository import UsageStatsRepository
from .cv_service import get_cv_repository
from .entitlement_service import EntitlementService, get_entitlement_service


def _limit(current: int, limit: int) -> UsageLimit:
    """limit 0 은 무제한이며 응답에서는 -1 로 표현한다."""
    if limit == 0:
        return UsageLimit(current=current, limit=-1, remaining=-1)
    return UsageLimit(current=current, limit=limit, remaining=max(0, limit - current))


class UsageService:
    def __init__(
        self,
        usage_repo: UsageStatsRepositoryInterface,
        cv_repo: CvRepositoryInterface,
        entitlements: EntitlementService,
    ) -> None:
        self._usage_repo = usage_repo
        self._cv_repo = cv_repo
        self._entitlements = entitlements

    def report(self, user_code: str, now: datetime | None = None) -> UsageReport:
        now = now or utcnow()
        account = self._entitlements.get_account(user_code)
        plan = self._entitlements.plan_of(account, now)
        period = month_period(now)
        stats = self._usage_repo.get(user_code, period)

        return UsageReport(
            plan=plan.id.value,
            period=period,
            credits_used=stats.credits_used if stats else 0,
            cv_chat_tokens_used=stats.cv_chat_tokens_used if stats else 0,
            operations=dict(stats.operations) if stats else {},
            cv=_limit(self._cv_repo.count_by_user(user_code), plan.cv_limit),
            cv_applications=_limit(account.cv_applications_used, plan.cv_application_limit),
        )


def get_usage_stats_repository(
    db: Database = Depends(get_database),
) -> UsageStatsRepositoryInterface:
    """FastAPI DI용 UsageStatsRepository 팩토리."""

    return UsageStatsRepository(db)


def get_usage_service(
    usage_repo: UsageStatsRepositoryInterface = Depends(get_usage_stats_repository),
    cv_repo: CvRepositoryInterface = Depends(get_cv_repository),
    entitlements: EntitlementService = Depends(get_entitlement_service),
) -> UsageService:
    """FastAPI DI용 UsageService 팩토리."""

    return UsageService(usage_repo=usage_repo, cv_repo=cv_repo, entitlements=entitlements)
