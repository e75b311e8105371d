"""관리자 사이트 설정(요금제 / 과금 단가 / 결제 안내) API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ....models.admin_log import AdminAction, TargetType
from ....models.plan import PaymentSettings, PlanDefinition, TokenCosts
from ....services.admin_log_service import AdminLogService, get_admin_log_service
from ....services.settings_service import SettingsService, get_settings_service
from ...dependencies import AdminDep, AuditDep


router = APIRouter()

AuditServiceDep = Annotated[AdminLogService, Depends(get_admin_log_service)]
SettingsServiceDep = Annotated[SettingsService, Depends(get_settings_service)]


class SiteSettingsResponse(BaseModel):
    plans: list[PlanDefinition]
    token_costs: TokenCosts
    payment: PaymentSettings


class PlansMutationResponse(BaseModel):
    plans: list[PlanDefinition]
    audit_logged: bool


class TokenCostsMutationResponse(BaseModel):
    token_costs: TokenCosts
    audit_logged: bool


class PaymentMutationResponse(BaseModel):
    payment: PaymentSettings
    audit_logged: bool


@router.get("")
def get_site_settings(admin: AdminDep, settings: SettingsServiceDep) -> SiteSettingsResponse:
    return SiteSettingsResponse(
        plans=settings.get_plans(),
        token_costs=settings.get_token_costs(),
        payment=settings.get_payment(),
    )


@router.put("/plans")
def update_plans(
    plans: list[PlanDefinition],
    ctx: AuditDep,
    settings: SettingsServiceDep,
    audit: AuditServiceDep,
) -> PlansMutationResponse:
    stored = settings.update_plans(plans)
    audit_logged = audit.record(
        ctx,
        AdminAction.UPDATE,
        TargetType.SETTINGS,
        "subscription_plans",
        {"plans": [plan.model_dump(mode="json") for plan in stored]},
    )
    return PlansMutationResponse(plans=stored, audit_logged=audit_logged)


@router.put("/token-costs")
def update_token_costs(
    costs: TokenCosts,
    ctx: AuditDep,
    settings: SettingsServiceDep,
    audit: AuditServiceDep,
) -> TokenCostsMutationResponse:
    stored = settings.update_token_costs(costs)
    audit_logged = audit.record(
        ctx, AdminAction.UPDATE, TargetType.SETTINGS, "token_costs", stored.model_dump()
    )
    return TokenCostsMutationResponse(token_costs=stored, audit_logged=audit_logged)


@router.put("/payment")
def update_payment(
    payment: PaymentSettings,
    ctx: AuditDep,
    settings: SettingsServiceDep,
    audit: AuditServiceDep,
) -> PaymentMutationResponse:
    stored = settings.update_payment(payment)
    audit_logged = audit.record(
        ctx, AdminAction.UPDATE, TargetType.SETTINGS, "payment", stored.model_dump()
    )
    return PaymentMutationResponse(payment=stored, audit_logged=audit_logged)
