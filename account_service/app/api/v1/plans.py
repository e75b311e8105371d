from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ...models.plan import ChatLimits, PlanDefinition, TokenCosts
from ...services.entitlement_service import EntitlementService, get_entitlement_service
from ...services.settings_service import SettingsService, get_settings_service
from ..dependencies import IdentityDep


router = APIRouter(tags=["plans"])


@router.get("/plans")
def list_plans(
    settings: Annotated[SettingsService, Depends(get_settings_service)],
) -> list[PlanDefinition]:
    """공개 요금제 카탈로그."""
    return settings.get_plans()


@router.get("/settings/token-costs")
def get_token_costs(
    settings: Annotated[SettingsService, Depends(get_settings_service)],
) -> TokenCosts:
    return settings.get_token_costs()


@router.get("/settings/chat-limits")
def get_chat_limits(
    identity: IdentityDep,
    entitlements: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> ChatLimits:
    """CV 빌더 채팅 안내용 한도. 서버에서 강제하지 않는다."""
    return entitlements.get_chat_limits(identity.user_code)
