"""관리자 사용자(계정) 관리 API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from common.models.user import Role
from common.schemas.pagination import PaginatedResponse, normalize_paging

from ....models.admin_log import AdminAction, TargetType
from ....models.plan import PlanId
from ....services.admin_log_service import AdminLogService, get_admin_log_service
from ....services.entitlement_service import EntitlementService, get_entitlement_service
from ...dependencies import AdminDep, AuditDep
from ...schemas.accounts import AccountResponse


router = APIRouter()


class UpdateUserRequest(BaseModel):
    """값이 있는 필드만 변경한다. 잔액은 절대값으로 설정된다."""

    model_config = ConfigDict(extra="forbid")

    credits: int | None = Field(default=None, ge=0)
    cv_chat_tokens: int | None = Field(default=None, ge=0)
    role: Role | None = None
    plan: PlanId | None = None
    months: int = Field(default=1, ge=1, le=24)


class UpdateUserResponse(BaseModel):
    account: AccountResponse
    audit_logged: bool


class ResetTokensResponse(BaseModel):
    reset_count: int
    skipped_count: int
    plan_limits: dict[str, int]
    audit_logged: bool


@router.get("")
def list_users(
    admin: AdminDep,
    entitlements: Annotated[EntitlementService, Depends(get_entitlement_service)],
    page: int = 1,
    page_size: int = 20,
    search: str | None = None,
) -> PaginatedResponse[AccountResponse]:
    page, page_size = normalize_paging(page, page_size)
    accounts, total = entitlements.list_accounts(page, page_size, search)
    return PaginatedResponse(
        items=[
            AccountResponse.build(account, entitlements.plan_of(account))
            for account in accounts
        ],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.patch("/{user_code}")
def update_user(
    user_code: str,
    req: UpdateUserRequest,
    ctx: AuditDep,
    entitlements: Annotated[EntitlementService, Depends(get_entitlement_service)],
    audit: Annotated[AdminLogService, Depends(get_admin_log_service)],
) -> UpdateUserResponse:
    account = entitlements.update_account(
        user_code,
        credits=req.credits,
        cv_chat_tokens=req.cv_chat_tokens,
        role=req.role,
        plan=req.plan,
        months=req.months,
    )
    audit_logged = audit.record(
        ctx,
        AdminAction.UPDATE,
        TargetType.USER,
        user_code,
        req.model_dump(mode="json", exclude_none=True),
    )
    return UpdateUserResponse(
        account=AccountResponse.build(account, entitlements.plan_of(account)),
        audit_logged=audit_logged,
    )


@router.post("/reset-tokens")
def reset_chat_tokens(
    ctx: AuditDep,
    entitlements: Annotated[EntitlementService, Depends(get_entitlement_service)],
    audit: Annotated[AdminLogService, Depends(get_admin_log_service)],
) -> ResetTokensResponse:
    """모든 사용자의 CV 채팅 토큰을 요금제 지급량 이하로 맞춘다."""
    reset_count, skipped_count, plan_limits = entitlements.reset_chat_tokens()
    audit_logged = audit.record(
        ctx,
        AdminAction.UPDATE,
        TargetType.USER,
        details={
            "operation": "reset_chat_tokens",
            "reset_count": reset_count,
            "skipped_count": skipped_count,
        },
    )
    return ResetTokensResponse(
        reset_count=reset_count,
        skipped_count=skipped_count,
        plan_limits=plan_limits,
        audit_logged=audit_logged,
    )
