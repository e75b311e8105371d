"""계정 / 잔액 조회 API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from common.schemas.pagination import PaginatedResponse, normalize_paging

from ...services.entitlement_service import EntitlementService, get_entitlement_service
from ...services.metering_service import ConsumptionLedger, get_consumption_ledger
from ..dependencies import IdentityDep
from ..schemas.accounts import AccountResponse, ConsumptionItemResponse


router = APIRouter(tags=["accounts"])


class UpsertAccountRequest(BaseModel):
    """첫 로그인 시 게이트웨이가 호출하는 계정 동기화 요청."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(default="", max_length=320)
    name: str = Field(default="", max_length=200)


@router.post("/accounts/upsert")
def upsert_account(
    req: UpsertAccountRequest,
    identity: IdentityDep,
    entitlements: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> AccountResponse:
    account = entitlements.ensure_account(identity, req.email, req.name)
    return AccountResponse.build(account, entitlements.plan_of(account))


@router.get("/entitlements/me")
def get_my_entitlements(
    identity: IdentityDep,
    entitlements: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> AccountResponse:
    account = entitlements.get_account(identity.user_code)
    return AccountResponse.build(account, entitlements.plan_of(account))


@router.get("/entitlements/me/history")
def get_my_consumption_history(
    identity: IdentityDep,
    ledger: Annotated[ConsumptionLedger, Depends(get_consumption_ledger)],
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResponse[ConsumptionItemResponse]:
    """잔액 차감 이력 (최신순)."""
    page, page_size = normalize_paging(page, page_size)
    items, total = ledger.history(identity.user_code, page, page_size)
    return PaginatedResponse(
        items=[ConsumptionItemResponse.from_domain(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )
