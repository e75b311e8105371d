"""관리자 감사 로그 조회 / 정리 API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from common.schemas.pagination import normalize_paging

from ....models.admin_log import AdminAction, AdminLog, AdminLogFilter, TargetType
from ....services.admin_log_service import AdminLogService, get_admin_log_service
from ...dependencies import AdminDep, AuditDep


router = APIRouter()

AuditServiceDep = Annotated[AdminLogService, Depends(get_admin_log_service)]


class AdminLogListResponse(BaseModel):
    items: list[AdminLog]
    total: int
    page: int
    page_size: int
    stats: dict[str, int]


class PurgeResponse(BaseModel):
    deleted_count: int
    audit_logged: bool


@router.get("")
def search_logs(
    admin: AdminDep,
    audit: AuditServiceDep,
    page: int = 1,
    page_size: int = 50,
    action: AdminAction | None = None,
    target_type: TargetType | None = None,
    admin_code: str | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> AdminLogListResponse:
    """최신순 로그 목록과 최근 24시간 action 별 건수."""
    page, page_size = normalize_paging(page, page_size)
    log_filter = AdminLogFilter(
        action=action,
        target_type=target_type,
        admin_code=admin_code,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )
    items, total = audit.search(log_filter, page, page_size)
    return AdminLogListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        stats=audit.recent_stats(),
    )


@router.get("/stats")
def recent_log_stats(admin: AdminDep, audit: AuditServiceDep) -> dict[str, int]:
    return audit.recent_stats()


@router.delete("")
def purge_logs(
    ctx: AuditDep,
    audit: AuditServiceDep,
    older_than_days: Annotated[int, Query(ge=1)] = 90,
) -> PurgeResponse:
    deleted, audit_logged = audit.purge(ctx, older_than_days)
    return PurgeResponse(deleted_count=deleted, audit_logged=audit_logged)
